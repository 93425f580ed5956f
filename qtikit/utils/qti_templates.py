"""
QTI Item Templates

Starter XML for every authorable item type, rendered for either QTI
version, and the logic that splices a new item into an existing document.
"""

import logging
import re
from typing import Dict, List, Optional, Union

from ..errors import XMLParseError
from ..models.qti_versions import QTIVersion, QTI_VERSIONS, XSI_NAMESPACE
from .dom import (
    parse_document,
    xml_declaration,
    find_all,
    find_first,
    local_name,
)
from .identifiers import generate_item_id
from .xml_updater import format_xml

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

ITEM_TYPE_LABELS: Dict[str, str] = {
    'choice': 'Multiple Choice',
    'multipleResponse': 'Multiple Response',
    'textEntry': 'Fill in the Blank',
    'extendedText': 'Extended Text',
    'hottext': 'Hottext Selection',
    'slider': 'Slider',
    'order': 'Order Interaction',
}

ITEM_TYPE_COLORS: Dict[str, str] = {
    'choice': 'primary',
    'multipleResponse': 'secondary',
    'textEntry': 'success',
    'extendedText': 'info',
    'hottext': 'warning',
    'slider': 'default',
    'order': 'destructive',
}

SCORE_OUTCOME = """
  <outcomeDeclaration identifier="SCORE" cardinality="single" baseType="float">
    <defaultValue>
      <value>0</value>
    </defaultValue>
  </outcomeDeclaration>"""

CHOICES_ABCD = """
        <simpleChoice identifier="ChoiceA">Option A</simpleChoice>
        <simpleChoice identifier="ChoiceB">Option B</simpleChoice>
        <simpleChoice identifier="ChoiceC">Option C</simpleChoice>
        <simpleChoice identifier="ChoiceD">Option D</simpleChoice>"""

# item type -> (title, responseDeclaration, itemBody content)
QTI_ITEM_TEMPLATES: Dict[str, tuple] = {
    'choice': (
        'Multiple Choice Question',
        """
  <responseDeclaration identifier="RESPONSE" cardinality="single" baseType="identifier">
    <correctResponse>
      <value>ChoiceA</value>
    </correctResponse>
  </responseDeclaration>""",
        f"""
      <p>Enter your question text here.</p>
      <choiceInteraction responseIdentifier="RESPONSE" shuffle="false" maxChoices="1">
        <prompt>Select the correct answer:</prompt>{CHOICES_ABCD}
      </choiceInteraction>""",
    ),
    'multipleResponse': (
        'Multiple Response Question',
        """
  <responseDeclaration identifier="RESPONSE" cardinality="multiple" baseType="identifier">
    <correctResponse>
      <value>ChoiceA</value>
      <value>ChoiceC</value>
    </correctResponse>
  </responseDeclaration>""",
        f"""
      <p>Enter your question text here.</p>
      <choiceInteraction responseIdentifier="RESPONSE" shuffle="false" maxChoices="0">
        <prompt>Select all correct answers:</prompt>{CHOICES_ABCD}
      </choiceInteraction>""",
    ),
    'textEntry': (
        'Fill in the Blank',
        """
  <responseDeclaration identifier="RESPONSE" cardinality="single" baseType="string">
    <correctResponse>
      <value>Paris</value>
    </correctResponse>
  </responseDeclaration>""",
        """
      <p>Complete the sentence: The capital of France is <textEntryInteraction responseIdentifier="RESPONSE" expectedLength="10"/>.</p>""",
    ),
    'extendedText': (
        'Extended Text Response',
        """
  <responseDeclaration identifier="RESPONSE" cardinality="single" baseType="string"/>""",
        """
      <p>Explain your understanding of the topic in detail:</p>
      <extendedTextInteraction responseIdentifier="RESPONSE" expectedLines="5"/>""",
    ),
    'hottext': (
        'Hottext Selection',
        """
  <responseDeclaration identifier="RESPONSE" cardinality="single" baseType="identifier">
    <correctResponse>
      <value>H1</value>
    </correctResponse>
  </responseDeclaration>""",
        """
      <p>Select the correct word in the following sentence:</p>
      <hottextInteraction responseIdentifier="RESPONSE" maxChoices="1">
        <p>The <hottext identifier="H1">sun</hottext> is a <hottext identifier="H2">planet</hottext> that provides <hottext identifier="H3">light</hottext> to Earth.</p>
      </hottextInteraction>""",
    ),
    'slider': (
        'Slider Question',
        """
  <responseDeclaration identifier="RESPONSE" cardinality="single" baseType="integer">
    <correctResponse>
      <value>50</value>
    </correctResponse>
  </responseDeclaration>""",
        """
      <p>Use the slider to select your answer (0-100):</p>
      <sliderInteraction responseIdentifier="RESPONSE" lowerBound="0" upperBound="100" step="1" stepLabel="true"/>""",
    ),
    'order': (
        'Order Interaction',
        """
  <responseDeclaration identifier="RESPONSE" cardinality="ordered" baseType="identifier">
    <correctResponse>
      <value>ChoiceA</value>
      <value>ChoiceB</value>
      <value>ChoiceC</value>
    </correctResponse>
  </responseDeclaration>""",
        """
      <p>Arrange the following items in the correct order:</p>
      <orderInteraction responseIdentifier="RESPONSE" shuffle="true">
        <prompt>Drag to reorder:</prompt>
        <simpleChoice identifier="ChoiceA">First item</simpleChoice>
        <simpleChoice identifier="ChoiceB">Second item</simpleChoice>
        <simpleChoice identifier="ChoiceC">Third item</simpleChoice>
      </orderInteraction>""",
    ),
}

_RP_TEMPLATE_BASE = {
    QTIVersion.QTI_21: 'http://www.imsglobal.org/question/qti_v2p1/rptemplates/',
    QTIVersion.QTI_30: 'http://www.imsglobal.org/question/qti_v3p0/rptemplates/',
}


def response_processing_template(version: Union[QTIVersion, str], name: str = 'match_correct') -> str:
    """Full URI of a standard response-processing template"""
    return _RP_TEMPLATE_BASE[QTIVersion.coerce(version)] + name


def render_item_template(
    item_type: str,
    item_id: Optional[str] = None,
    version: Union[QTIVersion, str] = QTIVersion.QTI_21,
    title: Optional[str] = None,
) -> str:
    """
    Render starter XML for one item type

    Args:
        item_type: One of the keys of QTI_ITEM_TEMPLATES
        item_id: Item identifier (generated when omitted)
        version: QTI version whose namespace the item declares
        title: Overrides the template's default title

    Returns:
        A standalone assessmentItem (no XML declaration)
    """
    if item_type not in QTI_ITEM_TEMPLATES:
        raise ValueError(f"Unknown item type: {item_type}")

    version = QTIVersion.coerce(version)
    info = QTI_VERSIONS[version]
    default_title, response_declaration, body = QTI_ITEM_TEMPLATES[item_type]
    item_id = item_id or generate_item_id()

    return f"""<assessmentItem xmlns="{info.namespace}"
                xmlns:xsi="{XSI_NAMESPACE}"
                xsi:schemaLocation="{info.schema_location}"
                identifier="{_escape_attr(item_id)}"
                title="{_escape_attr(title or default_title)}"
                adaptive="false"
                timeDependent="false">
{response_declaration}
{SCORE_OUTCOME}

  <itemBody>
    <div>{body}
    </div>
  </itemBody>

  <responseProcessing template="{response_processing_template(version)}"/>

</assessmentItem>"""


def _escape_attr(value: str) -> str:
    return (value.replace('&', '&amp;').replace('<', '&lt;')
            .replace('>', '&gt;').replace('"', '&quot;'))


# --- Item insertion ---------------------------------------------------------

_ITEM_BLOCK_RE = re.compile(r'<assessmentItem\b[\s\S]*?</assessmentItem>')
_DECLARATION_RE = re.compile(r'^\s*<\?xml[^>]*\?>\s*')
_NAMESPACE_ATTRS = ('xmlns', 'xmlns:xsi', 'xsi:schemaLocation')


def insert_item_into_xml(
    xml_content: str,
    new_item_xml: str,
    insert_after_index: Optional[int] = None,
) -> str:
    """
    Insert an assessmentItem into a document

    Args:
        xml_content: Existing document (may be empty)
        new_item_xml: The item to insert
        insert_after_index: -1 prepends, None or any index past the last
            item appends, otherwise the item lands right after that index

    Returns:
        The new document. A single standalone item is upgraded to an
        assessmentTest holding both items. Unparseable input is returned
        unchanged.
    """
    new_item_text = _DECLARATION_RE.sub('', new_item_xml or '').strip()

    if not xml_content or not xml_content.strip():
        return f"{XML_DECLARATION}\n{new_item_text}"

    declaration = xml_declaration(xml_content)

    try:
        doc = parse_document(xml_content)
    except XMLParseError as e:
        blocks = _ITEM_BLOCK_RE.findall(xml_content)
        if len(blocks) >= 2:
            # Several bare items with no common container to anchor on
            return _splice_item_blocks(blocks, new_item_text, insert_after_index, declaration)
        logger.error(f"Error inserting item: {e}")
        return xml_content

    try:
        new_doc = parse_document(new_item_text)
    except XMLParseError as e:
        logger.error(f"Invalid item XML, nothing inserted: {e}")
        return xml_content

    new_item = find_first(new_doc, 'assessmentItem')
    if new_item is None:
        logger.error("Inserted XML contains no assessmentItem")
        return xml_content

    root = doc.documentElement

    if local_name(root) == 'assessmentItem':
        return _wrap_in_assessment_test(root, new_item, insert_after_index, declaration)

    imported = doc.importNode(new_item, True)
    # The container owns the namespace declarations
    _drop_namespace_attributes(imported)

    items = find_all(root, 'assessmentItem')
    if not items:
        sections = find_all(root, 'assessmentSection')
        container = sections[-1] if sections else root
        container.appendChild(imported)
    elif insert_after_index is not None and insert_after_index < 0:
        items[0].parentNode.insertBefore(imported, items[0])
    elif insert_after_index is None or insert_after_index >= len(items) - 1:
        last = items[-1]
        last.parentNode.insertBefore(imported, last.nextSibling)
    else:
        anchor = items[insert_after_index]
        anchor.parentNode.insertBefore(imported, anchor.nextSibling)

    body = ''.join(node.toxml() for node in doc.childNodes)
    return format_xml(f"{declaration}\n{body}" if declaration else body)


def _wrap_in_assessment_test(existing, new_item, insert_after_index, declaration) -> str:
    # Declarations move up to the wrapper; the existing item's take precedence
    namespace_attrs = {}
    for element in (existing, new_item):
        for name in _NAMESPACE_ATTRS:
            if name not in namespace_attrs and element.hasAttribute(name):
                namespace_attrs[name] = element.getAttribute(name)
        _drop_namespace_attributes(element)
    opening_attrs = ''.join(f' {name}="{_escape_attr(value)}"' for name, value in namespace_attrs.items())

    if insert_after_index is not None and insert_after_index < 0:
        ordered = [new_item, existing]
    else:
        ordered = [existing, new_item]

    items_xml = '\n'.join(element.toxml() for element in ordered)
    wrapped = (
        f'<assessmentTest{opening_attrs} identifier="assessment-test" title="Assessment Test">\n'
        f'{items_xml}\n'
        '</assessmentTest>'
    )
    return format_xml(f"{declaration or XML_DECLARATION}\n{wrapped}")


def _drop_namespace_attributes(element) -> None:
    for name in _NAMESPACE_ATTRS:
        if element.hasAttribute(name):
            element.removeAttribute(name)


def _splice_item_blocks(
    blocks: List[str],
    new_item_text: str,
    insert_after_index: Optional[int],
    declaration: Optional[str],
) -> str:
    new_item_text = _propagate_namespaces(blocks[0], new_item_text)

    if insert_after_index is not None and insert_after_index < 0:
        position = 0
    elif insert_after_index is None or insert_after_index >= len(blocks) - 1:
        position = len(blocks)
    else:
        position = insert_after_index + 1

    blocks = blocks[:position] + [new_item_text] + blocks[position:]
    joined = '\n\n'.join(blocks)
    return f"{declaration}\n{joined}" if declaration else joined


def _propagate_namespaces(reference_block: str, new_item_text: str) -> str:
    """Copy xmlns / xmlns:xsi / xsi:schemaLocation from a sibling item onto the new one"""
    opening = re.match(r'<assessmentItem\b[^>]*>', reference_block)
    new_opening = re.match(r'<assessmentItem\b[^>]*>', new_item_text)
    if not opening or not new_opening:
        return new_item_text

    additions = []
    for name in _NAMESPACE_ATTRS:
        pattern = re.compile(r'\s' + re.escape(name) + r'\s*=\s*("[^"]*"|\'[^\']*\')')
        found = pattern.search(opening.group(0))
        if found and not pattern.search(new_opening.group(0)):
            additions.append(f'{name}={found.group(1)}')

    if not additions:
        return new_item_text

    return new_item_text.replace('<assessmentItem', '<assessmentItem ' + ' '.join(additions), 1)
