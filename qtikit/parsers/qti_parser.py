"""
QTI Structural Parser

Extracts assessment items from QTI 2.1 / 3.0 markup into the normalized item
model, and exposes the in-place XML edits for the same content. One engine
serves both versions; the differences live in a VersionProfile.
"""

import json
import logging
from typing import Callable, Dict, List, Optional, Union
from xml.dom import minidom

from ..converters.json_xml_converter import json_to_xml, extract_custom_logic
from ..errors import ItemParseError, QTIConversionError, XMLParseError
from ..models.qti_items import (
    ParseResult,
    QTIChoice,
    QTIItem,
    ResponseProcessing,
    SliderConfig,
    UnsupportedElement,
)
from ..models.qti_versions import QTIVersion
from ..utils import xml_updater
from ..utils.content_format import JSON, XML, detect_format
from ..utils.dom import (
    find_all,
    find_first,
    get_attr,
    has_ancestor,
    inner_xml,
    iter_elements,
    local_name,
    parse_document,
    strip_whitespace_nodes,
    text_content,
)
from ..utils.identifiers import generate_item_id
from ..utils.json_templates import get_blank_json_template
from ..utils.qti_templates import insert_item_into_xml
from .assessment_test import AssessmentTestParser
from .versions import VersionProfile

logger = logging.getLogger(__name__)

# Interaction elements in extractor precedence order
INTERACTIONS = (
    'choiceInteraction',
    'textEntryInteraction',
    'extendedTextInteraction',
    'hottextInteraction',
    'sliderInteraction',
    'orderInteraction',
)


class QTIParser:
    """Parse and edit QTI content for one QTI version"""

    def __init__(self, profile: VersionProfile, verbose: bool = False):
        self.profile = profile
        self.verbose = verbose
        self._extractors: Dict[str, Callable] = {
            'choiceInteraction': self._parse_choice_interaction,
            'textEntryInteraction': self._parse_text_entry_interaction,
            'extendedTextInteraction': self._parse_extended_text_interaction,
            'hottextInteraction': self._parse_hottext_interaction,
            'sliderInteraction': self._parse_slider_interaction,
            'orderInteraction': self._parse_order_interaction,
        }

    @property
    def version(self) -> QTIVersion:
        return self.profile.version

    def __repr__(self) -> str:
        return f"QTIParser(version={self.version.value!r})"

    # --- Parsing -----------------------------------------------------------

    def parse(self, content: str) -> ParseResult:
        """
        Parse QTI content into items

        Args:
            content: XML text, or (QTI 3.0) JSON text

        Returns:
            ParseResult. Problems are reported as strings in result.errors;
            this method does not raise for bad content.
        """
        xml_content = content or ''

        if self.profile.accepts_json and detect_format(xml_content) == JSON:
            try:
                xml_content = json_to_xml(xml_content)
            except QTIConversionError as e:
                return ParseResult(errors=[str(e)], version=self.version)

        try:
            doc = parse_document(xml_content)
        except XMLParseError as e:
            logger.debug(f"QTI {self.version} parse failed: {e}")
            return ParseResult(errors=['Invalid XML format'], version=self.version)

        result = ParseResult(version=self.version)
        root = doc.documentElement

        item_elements = find_all(doc, 'assessmentItem')
        if not item_elements:
            result.errors.append(self.profile.no_items_message)

        result.unsupported_elements = self._scan_for_unsupported_elements(doc)

        if self.profile.parses_assessment_test and local_name(root) == 'assessmentTest':
            test_parser = AssessmentTestParser(self._parse_assessment_item)
            result.assessment_test, items, errors = test_parser.parse(root)
            result.items.extend(items)
            result.errors.extend(errors)
        else:
            for position, item_element in enumerate(item_elements, start=1):
                try:
                    result.items.append(self._parse_assessment_item(item_element))
                except Exception as e:
                    logger.debug(f"Item {position} failed to parse", exc_info=True)
                    result.errors.append(f"Error parsing item {position}: {e}")

        if self.verbose:
            print(f"   📝 QTI {self.version}: {len(result.items)} items, {len(result.errors)} errors")
            for unsupported in result.unsupported_elements:
                print(f"   ⚠️  Unsupported: {unsupported.type} x{unsupported.count}")

        return result

    def _scan_for_unsupported_elements(self, doc: minidom.Document) -> List[UnsupportedElement]:
        """Tally every recognized-but-unimplemented element in the document"""
        tally: Dict[str, UnsupportedElement] = {}

        for element in iter_elements(doc):
            name = local_name(element)
            description = self.profile.unsupported_elements.get(name)
            if description is None:
                continue
            # Interactions the extractors handle only count outside an item body
            if name in INTERACTIONS and has_ancestor(element, 'itemBody'):
                continue

            if name in tally:
                tally[name].count += 1
            else:
                tally[name] = UnsupportedElement(type=name, count=1, description=description)

        return list(tally.values())

    def _parse_assessment_item(self, item_element: minidom.Element) -> QTIItem:
        """Parse one assessmentItem element"""
        identifier = get_attr(item_element, 'identifier') or generate_item_id()
        title = get_attr(item_element, 'title', 'Untitled Item')

        item_body = find_first(item_element, 'itemBody')
        if item_body is None:
            raise ItemParseError('No itemBody found')

        item = QTIItem(
            id=identifier,
            identifier=identifier,
            title=title,
            prompt=self._extract_prompt_text(item_body),
        )

        for name in INTERACTIONS:
            interaction = find_first(item_body, name)
            if interaction is not None:
                self._extractors[name](item, interaction, item_element)
                break

        item.max_score = self._get_max_score(item_element)
        item.response_processing = self._parse_response_processing(item_element)

        return item

    def _extract_prompt_text(self, item_body: minidom.Element) -> str:
        """Item body text with every interaction removed"""
        clone = item_body.cloneNode(True)
        for name in INTERACTIONS:
            for interaction in find_all(clone, name):
                interaction.parentNode.removeChild(interaction)
        return text_content(clone)

    def _apply_response(self, item: QTIItem, item_type: str, interaction: minidom.Element,
                        item_element: minidom.Element):
        response_identifier = get_attr(interaction, 'responseIdentifier', 'RESPONSE')
        item.type = item_type
        item.interaction_type = item_type
        item.response_identifier = response_identifier
        item.correct_response = self._find_correct_response(item_element, response_identifier)
        item.mapping = self._find_mapping(item_element, response_identifier)

    def _parse_choice_interaction(self, item, interaction, item_element):
        max_choices = _safe_int(interaction.getAttribute('maxChoices'), 1)
        item_type = 'choice' if max_choices == 1 else 'multipleResponse'
        self._apply_response(item, item_type, interaction, item_element)
        item.choices = _choices(find_all(interaction, 'simpleChoice'))

    def _parse_text_entry_interaction(self, item, interaction, item_element):
        self._apply_response(item, 'textEntry', interaction, item_element)

    def _parse_extended_text_interaction(self, item, interaction, item_element):
        self._apply_response(item, 'extendedText', interaction, item_element)

    def _parse_hottext_interaction(self, item, interaction, item_element):
        self._apply_response(item, 'hottext', interaction, item_element)
        item.hottext_choices = _choices(find_all(interaction, 'hottext'))

        # The hottext passage itself is the prompt
        clone = interaction.cloneNode(True)
        strip_whitespace_nodes(clone)
        item.prompt = inner_xml(clone)

    def _parse_slider_interaction(self, item, interaction, item_element):
        self._apply_response(item, 'slider', interaction, item_element)
        item.slider_config = SliderConfig(
            lower_bound=_safe_float(interaction.getAttribute('lowerBound'), 0.0),
            upper_bound=_safe_float(interaction.getAttribute('upperBound'), 100.0),
            step=_safe_float(interaction.getAttribute('step'), 1.0),
            step_label=interaction.getAttribute('stepLabel') == 'true',
            orientation=get_attr(interaction, 'orientation', 'horizontal'),
        )

    def _parse_order_interaction(self, item, interaction, item_element):
        self._apply_response(item, 'order', interaction, item_element)
        item.order_choices = _choices(find_all(interaction, 'simpleChoice'))

    def _response_declaration(self, item_element: minidom.Element,
                              response_identifier: str) -> Optional[minidom.Element]:
        for declaration in find_all(item_element, 'responseDeclaration'):
            if declaration.getAttribute('identifier') == response_identifier:
                return declaration
        return None

    def _find_correct_response(self, item_element: minidom.Element,
                               response_identifier: str) -> Optional[Union[str, List[str]]]:
        """None for no values, a string for one, an ordered list for several"""
        declaration = self._response_declaration(item_element, response_identifier)
        if declaration is None:
            return None

        correct = find_first(declaration, 'correctResponse')
        if correct is None:
            return None

        values = [text_content(value) for value in find_all(correct, 'value')]
        if not values:
            return None
        if len(values) == 1:
            return values[0]
        return values

    def _find_mapping(self, item_element: minidom.Element,
                      response_identifier: str) -> Optional[Dict[str, float]]:
        declaration = self._response_declaration(item_element, response_identifier)
        if declaration is None:
            return None

        mapping = find_first(declaration, 'mapping')
        if mapping is None:
            return None

        entries = {}
        for entry in find_all(mapping, 'mapEntry'):
            key = entry.getAttribute('mapKey')
            value = _safe_float(entry.getAttribute('mappedValue'), None)
            if key and value is not None:
                entries[key] = value
        return entries or None

    def _get_max_score(self, item_element: minidom.Element) -> float:
        """
        Maximum score of an item

        A positive SCORE default value wins, then a positive maxScore
        attribute (on the SCORE outcome or the item), otherwise 1.
        """
        score_outcome = None
        for outcome in find_all(item_element, 'outcomeDeclaration'):
            if outcome.getAttribute('identifier') == 'SCORE':
                score_outcome = outcome
                break

        if score_outcome is not None:
            default = find_first(score_outcome, 'defaultValue')
            value = find_first(default, 'value') if default is not None else None
            if value is not None:
                default_score = _safe_float(text_content(value), None)
                if default_score is not None and default_score > 0:
                    return default_score

        for element in (score_outcome, item_element):
            if element is None:
                continue
            max_score = _safe_float(element.getAttribute('maxScore'), None)
            if max_score is not None and max_score > 0:
                return max_score

        return 1.0

    def _parse_response_processing(self, item_element: minidom.Element) -> Optional[ResponseProcessing]:
        processing = find_first(item_element, 'responseProcessing')
        if processing is None:
            return None

        template = get_attr(processing, 'template')
        if template:
            return ResponseProcessing(template=template)

        custom_logic = extract_custom_logic(processing)
        return ResponseProcessing(custom_logic=custom_logic if custom_logic is not None else True)

    # --- Compatibility and templates --------------------------------------

    def is_compatible(self, content: str) -> bool:
        """Whether content looks like it was written for this version (never raises)"""
        if not isinstance(content, str):
            return False

        if any(marker in content for marker in self.profile.compatibility_markers):
            return True

        if self.profile.accepts_json and detect_format(content) == JSON:
            try:
                data = json.loads(content.strip())
            except ValueError:
                return False
            return isinstance(data, dict) and data.get('@type') in ('assessmentItem', 'assessmentTest')

        return False

    def get_blank_template(self, content_format: str = XML) -> str:
        """Starter document for a new item, as XML or (QTI 3.0 only) JSON"""
        if content_format == JSON:
            if not self.profile.accepts_json:
                raise ValueError(f"QTI {self.version} has no JSON representation")
            return json.dumps(get_blank_json_template(), indent=2)
        return self.profile.blank_template

    def get_supported_item_types(self) -> List[str]:
        return list(self.profile.supported_item_types)

    def get_constants(self) -> Dict:
        return {
            'item_type_labels': dict(self.profile.item_type_labels),
            'item_type_colors': dict(self.profile.item_type_colors),
            'namespace': self.profile.namespace,
            'schema_location': self.profile.schema_location,
        }

    # --- XML edits ---------------------------------------------------------

    def insert_item(self, xml_content: str, item_xml: str, insert_after_index: Optional[int] = None) -> str:
        return insert_item_into_xml(xml_content, item_xml, insert_after_index)

    def update_correct_response(self, xml_content: str, item_id: str,
                                correct_response: Union[str, List[str], int, float]) -> str:
        if not self.profile.supports_item_mutations:
            logger.debug(f"Correct-response edits are not implemented for QTI {self.version}")
            return xml_content
        return xml_updater.update_correct_response(xml_content, item_id, correct_response)

    def reorder_items(self, xml_content: str, from_index: int, to_index: int) -> str:
        if not self.profile.supports_item_mutations:
            logger.debug(f"Item reordering is not implemented for QTI {self.version}")
            return xml_content
        return xml_updater.reorder_items(xml_content, from_index, to_index)

    def format_xml(self, xml_content: str) -> str:
        return xml_updater.format_xml(xml_content)


def _choices(elements: List[minidom.Element]) -> List[QTIChoice]:
    """Choices with both an identifier and visible text"""
    choices = []
    for element in elements:
        identifier = element.getAttribute('identifier')
        text = text_content(element)
        if identifier and text:
            choices.append(QTIChoice(identifier=identifier, text=text))
    return choices


def _safe_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _safe_float(value: str, default: Optional[float]) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
