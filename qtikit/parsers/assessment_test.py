"""
Assessment Test Parser

Walks a QTI 3.0 assessmentTest (testPart -> assessmentSection ->
assessmentItem) and builds the AssessmentTest hierarchy. Items placed
directly under the test root are tolerated and collected into a default
part and section.
"""

import logging
from typing import Callable, List, Optional, Tuple
from xml.dom import minidom

from ..models.qti_items import (
    AssessmentSection,
    AssessmentTest,
    OutcomeDeclaration,
    QTIItem,
    TestPart,
)
from ..utils.dom import child_elements, find_first, get_attr, local_name, text_content

logger = logging.getLogger(__name__)

DEFAULT_PART_ID = 'default-part'
DEFAULT_SECTION_ID = 'default-section'


class AssessmentTestParser:
    """
    Build an AssessmentTest from its XML element

    Items are parsed through the item_parser callback one at a time; a
    failing item becomes an error string tagged with its 1-based position
    and does not stop the walk. Use one instance per parse call.
    """

    def __init__(self, item_parser: Callable[[minidom.Element], QTIItem]):
        self.item_parser = item_parser
        self.items: List[QTIItem] = []
        self.errors: List[str] = []
        self._position = 0

    def parse(self, test_element: minidom.Element) -> Tuple[AssessmentTest, List[QTIItem], List[str]]:
        """
        Returns:
            (assessment_test, flat item list in document order, errors)
        """
        test = AssessmentTest(
            identifier=get_attr(test_element, 'identifier', ''),
            title=get_attr(test_element, 'title', 'Untitled Test'),
            outcome_declarations=[
                parse_outcome_declaration(el) for el in child_elements(test_element, 'outcomeDeclaration')
            ],
        )

        for part_element in child_elements(test_element, 'testPart'):
            test.test_parts.append(self._parse_test_part(part_element))

        direct_items = child_elements(test_element, 'assessmentItem')
        if direct_items:
            logger.debug(f"{len(direct_items)} items sit directly under assessmentTest")
            section = AssessmentSection(identifier=DEFAULT_SECTION_ID, title='', visible=True)
            for item_element in direct_items:
                self._collect(item_element, section)
            test.test_parts.append(TestPart(identifier=DEFAULT_PART_ID, assessment_sections=[section]))

        return test, self.items, self.errors

    def _parse_test_part(self, part_element: minidom.Element) -> TestPart:
        part = TestPart(
            identifier=get_attr(part_element, 'identifier', ''),
            navigation_mode=get_attr(part_element, 'navigationMode', 'linear'),
            submission_mode=get_attr(part_element, 'submissionMode', 'individual'),
            score_aggregation=get_attr(part_element, 'scoreAggregation'),
        )

        loose_section: Optional[AssessmentSection] = None
        for child in child_elements(part_element):
            name = local_name(child)
            if name == 'assessmentSection':
                self._parse_section(child, part.assessment_sections)
            elif name == 'assessmentItem':
                if loose_section is None:
                    loose_section = AssessmentSection(identifier=DEFAULT_SECTION_ID)
                    part.assessment_sections.append(loose_section)
                self._collect(child, loose_section)

        return part

    def _parse_section(self, section_element: minidom.Element, sections: List[AssessmentSection]):
        """Append the section, then any nested sections, to a flat list"""
        section = AssessmentSection(
            identifier=get_attr(section_element, 'identifier', ''),
            title=get_attr(section_element, 'title', ''),
            visible=section_element.getAttribute('visible') != 'false',
        )
        sections.append(section)

        for child in child_elements(section_element):
            name = local_name(child)
            if name == 'assessmentItem':
                self._collect(child, section)
            elif name == 'assessmentSection':
                self._parse_section(child, sections)

    def _collect(self, item_element: minidom.Element, section: AssessmentSection):
        self._position += 1
        try:
            item = self.item_parser(item_element)
        except Exception as e:
            logger.debug(f"Item {self._position} failed to parse", exc_info=True)
            self.errors.append(f"Error parsing item {self._position}: {e}")
            return
        section.assessment_items.append(item)
        self.items.append(item)


def parse_outcome_declaration(element: minidom.Element) -> OutcomeDeclaration:
    default_value = None
    default = find_first(element, 'defaultValue')
    if default is not None:
        value = find_first(default, 'value')
        if value is not None:
            default_value = _number_or_text(text_content(value))

    return OutcomeDeclaration(
        identifier=get_attr(element, 'identifier', ''),
        cardinality=get_attr(element, 'cardinality', 'single'),
        base_type=get_attr(element, 'baseType', 'float'),
        default_value=default_value,
    )


def _number_or_text(value: str):
    try:
        return float(value)
    except ValueError:
        return value
