"""
JSON <-> XML Converter

Translates between the QTI 3.0 JSON representation (nodes discriminated by
an "@type" key) and QTI XML. Recognized structures (item declarations, the
authorable interactions, the test hierarchy) have explicit mappings; any
other body element passes through a generic converter that keeps its tag,
attributes and text.

The round trip is semantic: whitespace and attribute spelling may differ
between an original document and its XML -> JSON -> XML image.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union
from xml.dom import minidom, Node

from ..errors import QTIConversionError, XMLParseError
from ..models.qti_versions import QTIVersion, QTI_VERSIONS, XSI_NAMESPACE
from ..utils.dom import (
    parse_document,
    local_name,
    child_elements,
    find_first,
    text_content,
    element_attributes,
)
from ..utils.xml_updater import format_document

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
CUSTOM_LOGIC_MARKER = 'Custom Logic:'

# Attributes lifted to top-level JSON keys rather than kept under "attributes"
_CHOICE_KEYS = ('responseIdentifier', 'shuffle', 'maxChoices')
_SIMPLE_INTERACTIONS = ('textEntryInteraction', 'extendedTextInteraction', 'sliderInteraction')


class JsonXmlConverter:
    """Convert QTI 3.0 content between its JSON and XML serializations"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.info = QTI_VERSIONS[QTIVersion.QTI_30]

    # --- JSON -> XML -------------------------------------------------------

    def json_to_xml(self, json_content: str) -> str:
        """
        Convert a QTI JSON document into XML

        Raises:
            QTIConversionError: "Invalid JSON format: ..." for unparseable
                JSON or an unknown root "@type"
        """
        try:
            data = json.loads(json_content)
        except (TypeError, ValueError) as e:
            raise QTIConversionError(f"Invalid JSON format: {e}") from e

        json_type = data.get('@type') if isinstance(data, dict) else None

        try:
            doc = minidom.Document()
            if json_type == 'assessmentItem':
                root = self._item_to_xml(doc, data, with_namespace=True)
            elif json_type == 'assessmentTest':
                root = self._test_to_xml(doc, data)
            else:
                raise QTIConversionError('Unknown QTI JSON type')
            doc.appendChild(root)
        except QTIConversionError as e:
            raise QTIConversionError(f"Invalid JSON format: {e}") from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise QTIConversionError(f"Invalid JSON format: {e}") from e

        if self.verbose:
            print(f"   🔄 Converted JSON {json_type} '{data.get('identifier', '')}' to XML")

        return format_document(doc, XML_DECLARATION)

    def _set_namespace(self, element: minidom.Element):
        element.setAttribute('xmlns', self.info.namespace)
        element.setAttribute('xmlns:xsi', XSI_NAMESPACE)
        element.setAttribute('xsi:schemaLocation', self.info.schema_location)

    def _item_to_xml(self, doc: minidom.Document, item: Dict, with_namespace: bool = False) -> minidom.Element:
        """Convert one assessmentItem node"""
        element = doc.createElement('assessmentItem')
        if with_namespace:
            self._set_namespace(element)
        element.setAttribute('identifier', _attr_text(item.get('identifier', '')))
        element.setAttribute('title', _attr_text(item.get('title', '')))
        element.setAttribute('adaptive', _attr_text(bool(item.get('adaptive', False))))
        element.setAttribute('timeDependent', _attr_text(bool(item.get('timeDependent', False))))

        for declaration in _as_list(item.get('responseDeclaration')):
            element.appendChild(self._response_declaration_to_xml(doc, declaration))

        for outcome in _as_list(item.get('outcomeDeclaration')):
            element.appendChild(self._outcome_declaration_to_xml(doc, outcome))

        item_body = doc.createElement('itemBody')
        body = item.get('itemBody') or {}
        content = body.get('content', []) if isinstance(body, dict) else body
        for node in content or []:
            self._append_body_node(doc, item_body, node)
        element.appendChild(item_body)

        processing = item.get('responseProcessing')
        if processing:
            element.appendChild(self._response_processing_to_xml(doc, processing))

        return element

    def _response_declaration_to_xml(self, doc: minidom.Document, declaration: Dict) -> minidom.Element:
        element = doc.createElement('responseDeclaration')
        element.setAttribute('identifier', _attr_text(declaration.get('identifier', 'RESPONSE')))
        element.setAttribute('cardinality', _attr_text(declaration.get('cardinality', 'single')))
        element.setAttribute('baseType', _attr_text(declaration.get('baseType', 'identifier')))

        correct = declaration.get('correctResponse')
        if correct is not None:
            correct_element = doc.createElement('correctResponse')
            values = correct.get('value') if isinstance(correct, dict) else correct
            for value in _as_list(values):
                correct_element.appendChild(_text_element(doc, 'value', value))
            element.appendChild(correct_element)

        mapping = declaration.get('mapping')
        if mapping:
            mapping_element = doc.createElement('mapping')
            if mapping.get('defaultValue') is not None:
                mapping_element.setAttribute('defaultValue', _attr_text(mapping['defaultValue']))
            entries = mapping.get('mapEntries') or mapping.get('mapEntry') or []
            for entry in _as_list(entries):
                entry_element = doc.createElement('mapEntry')
                entry_element.setAttribute('mapKey', _attr_text(entry.get('mapKey', '')))
                entry_element.setAttribute('mappedValue', _attr_text(entry.get('mappedValue', 0)))
                mapping_element.appendChild(entry_element)
            element.appendChild(mapping_element)

        return element

    def _outcome_declaration_to_xml(self, doc: minidom.Document, outcome: Dict) -> minidom.Element:
        element = doc.createElement('outcomeDeclaration')
        element.setAttribute('identifier', _attr_text(outcome.get('identifier', 'SCORE')))
        element.setAttribute('cardinality', _attr_text(outcome.get('cardinality', 'single')))
        element.setAttribute('baseType', _attr_text(outcome.get('baseType', 'float')))

        default = outcome.get('defaultValue')
        if default is not None:
            value = default.get('value') if isinstance(default, dict) else default
            default_element = doc.createElement('defaultValue')
            default_element.appendChild(_text_element(doc, 'value', value))
            element.appendChild(default_element)

        return element

    def _response_processing_to_xml(self, doc: minidom.Document, processing: Dict) -> minidom.Element:
        element = doc.createElement('responseProcessing')

        if processing.get('template'):
            element.setAttribute('template', _attr_text(processing['template']))
            if processing.get('score') is not None:
                element.setAttribute('data-custom-score', _attr_text(processing['score']))
        elif processing.get('customLogic') is not None:
            logic = json.dumps(processing['customLogic']).replace('"', '&quot;')
            # '--' may not appear inside an XML comment
            logic = logic.replace('--', '-\\u002d')
            element.appendChild(doc.createComment(f" {CUSTOM_LOGIC_MARKER} {logic} "))
            element.appendChild(self._placeholder_condition(doc))

        return element

    def _placeholder_condition(self, doc: minidom.Document) -> minidom.Element:
        """A responseCondition that sets SCORE to 0 on both branches"""
        condition = doc.createElement('responseCondition')
        response_if = doc.createElement('responseIf')
        is_null = doc.createElement('isNull')
        variable = doc.createElement('variable')
        variable.setAttribute('identifier', 'RESPONSE')
        is_null.appendChild(variable)
        response_if.appendChild(is_null)
        response_if.appendChild(self._set_score(doc, 0))
        response_else = doc.createElement('responseElse')
        response_else.appendChild(self._set_score(doc, 0))
        condition.appendChild(response_if)
        condition.appendChild(response_else)
        return condition

    def _set_score(self, doc: minidom.Document, value) -> minidom.Element:
        set_outcome = doc.createElement('setOutcomeValue')
        set_outcome.setAttribute('identifier', 'SCORE')
        base_value = _text_element(doc, 'baseValue', value)
        base_value.setAttribute('baseType', 'float')
        set_outcome.appendChild(base_value)
        return set_outcome

    def _append_body_node(self, doc: minidom.Document, parent: minidom.Element, node: Any):
        """Convert one itemBody content node and append it to parent"""
        if isinstance(node, str):
            parent.appendChild(doc.createTextNode(node))
            return
        if not isinstance(node, dict):
            raise QTIConversionError(f"Unexpected item body node: {node!r}")

        node_type = node.get('@type')
        if not node_type:
            raise QTIConversionError('Item body node without @type')

        if node_type == 'text':
            parent.appendChild(doc.createTextNode(_attr_text(node.get('text', ''))))
        elif node_type == 'paragraph':
            parent.appendChild(self._container_to_xml(doc, 'p', node))
        elif node_type in ('choiceInteraction', 'orderInteraction'):
            parent.appendChild(self._choice_family_to_xml(doc, node_type, node))
        elif node_type == 'hottextInteraction':
            parent.appendChild(self._hottext_interaction_to_xml(doc, node))
        elif node_type == 'hottext':
            element = self._container_to_xml(doc, 'hottext', node)
            if node.get('identifier') and not element.hasAttribute('identifier'):
                element.setAttribute('identifier', _attr_text(node['identifier']))
            parent.appendChild(element)
        elif node_type in _SIMPLE_INTERACTIONS:
            element = doc.createElement(node_type)
            element.setAttribute('responseIdentifier', _attr_text(node.get('responseIdentifier', 'RESPONSE')))
            _set_attributes(element, node.get('attributes'))
            parent.appendChild(element)
        else:
            parent.appendChild(self._container_to_xml(doc, node_type, node))

    def _container_to_xml(self, doc: minidom.Document, tag: str, node: Dict) -> minidom.Element:
        """Generic element: attributes verbatim, then text, then nested children"""
        element = doc.createElement(tag)
        _set_attributes(element, node.get('attributes'))

        if node.get('text') not in (None, ''):
            element.appendChild(doc.createTextNode(_attr_text(node['text'])))
        for child in node.get('children') or []:
            self._append_body_node(doc, element, child)

        return element

    def _choice_family_to_xml(self, doc: minidom.Document, tag: str, node: Dict) -> minidom.Element:
        element = doc.createElement(tag)
        element.setAttribute('responseIdentifier', _attr_text(node.get('responseIdentifier', 'RESPONSE')))
        if node.get('shuffle') is not None:
            element.setAttribute('shuffle', _attr_text(node['shuffle']))
        if node.get('maxChoices') is not None:
            element.setAttribute('maxChoices', _attr_text(node['maxChoices']))
        _set_attributes(element, node.get('attributes'))

        if node.get('prompt'):
            element.appendChild(_text_element(doc, 'prompt', node['prompt']))

        for choice in node.get('choices') or []:
            choice_element = _text_element(doc, 'simpleChoice', choice.get('text', ''))
            choice_element.setAttribute('identifier', _attr_text(choice.get('identifier', '')))
            element.appendChild(choice_element)

        return element

    def _hottext_interaction_to_xml(self, doc: minidom.Document, node: Dict) -> minidom.Element:
        element = doc.createElement('hottextInteraction')
        element.setAttribute('responseIdentifier', _attr_text(node.get('responseIdentifier', 'RESPONSE')))
        _set_attributes(element, node.get('attributes'))

        if node.get('prompt'):
            element.appendChild(_text_element(doc, 'prompt', node['prompt']))

        for child in node.get('content') or []:
            self._append_body_node(doc, element, child)

        return element

    def _test_to_xml(self, doc: minidom.Document, test: Dict) -> minidom.Element:
        element = doc.createElement('assessmentTest')
        self._set_namespace(element)
        element.setAttribute('identifier', _attr_text(test.get('identifier', '')))
        element.setAttribute('title', _attr_text(test.get('title', '')))

        for outcome in _as_list(test.get('outcomeDeclarations')):
            element.appendChild(self._outcome_declaration_to_xml(doc, outcome))

        for part in _as_list(test.get('testParts')):
            part_element = doc.createElement('testPart')
            part_element.setAttribute('identifier', _attr_text(part.get('identifier', '')))
            part_element.setAttribute('navigationMode', _attr_text(part.get('navigationMode', 'linear')))
            part_element.setAttribute('submissionMode', _attr_text(part.get('submissionMode', 'individual')))
            if part.get('scoreAggregation'):
                part_element.setAttribute('scoreAggregation', _attr_text(part['scoreAggregation']))

            for section in _as_list(part.get('assessmentSections')):
                part_element.appendChild(self._section_to_xml(doc, section))
            element.appendChild(part_element)

        # Items placed directly under the test root
        for item in _as_list(test.get('items')):
            element.appendChild(self._item_to_xml(doc, item))

        return element

    def _section_to_xml(self, doc: minidom.Document, section: Dict) -> minidom.Element:
        element = doc.createElement('assessmentSection')
        element.setAttribute('identifier', _attr_text(section.get('identifier', '')))
        element.setAttribute('title', _attr_text(section.get('title', '')))
        element.setAttribute('visible', _attr_text(section.get('visible', True)))

        for nested in _as_list(section.get('assessmentSections')):
            element.appendChild(self._section_to_xml(doc, nested))
        for item in _as_list(section.get('assessmentItems')):
            element.appendChild(self._item_to_xml(doc, item))

        return element

    # --- XML -> JSON -------------------------------------------------------

    def xml_to_json(self, xml_content: str) -> str:
        """
        Convert a QTI XML document into JSON (indented by two spaces)

        Raises:
            QTIConversionError: "Invalid XML format" or "Unknown QTI root element"
        """
        try:
            doc = parse_document(xml_content)
        except XMLParseError as e:
            logger.debug(f"XML to JSON conversion failed: {e}")
            raise QTIConversionError('Invalid XML format') from e

        root = doc.documentElement
        root_name = local_name(root)

        if root_name == 'assessmentItem':
            data = self._item_to_json(root)
        elif root_name == 'assessmentTest':
            data = self._test_to_json(root)
        else:
            raise QTIConversionError('Unknown QTI root element')

        return json.dumps(data, indent=2, ensure_ascii=False)

    def _item_to_json(self, element: minidom.Element) -> Dict:
        item: Dict[str, Any] = {
            '@type': 'assessmentItem',
            'identifier': element.getAttribute('identifier'),
            'title': element.getAttribute('title'),
            'adaptive': element.getAttribute('adaptive') == 'true',
            'timeDependent': element.getAttribute('timeDependent') == 'true',
        }

        declarations = [self._response_declaration_to_json(el) for el in child_elements(element, 'responseDeclaration')]
        if len(declarations) == 1:
            item['responseDeclaration'] = declarations[0]
        elif declarations:
            item['responseDeclaration'] = declarations

        outcomes = [self._outcome_declaration_to_json(el) for el in child_elements(element, 'outcomeDeclaration')]
        if outcomes:
            item['outcomeDeclaration'] = outcomes

        item_body = find_first(element, 'itemBody')
        item['itemBody'] = {
            'content': self._children_to_json(item_body) if item_body is not None else [],
        }

        processing = find_first(element, 'responseProcessing')
        if processing is not None:
            item['responseProcessing'] = self._response_processing_to_json(processing)

        return item

    def _response_declaration_to_json(self, element: minidom.Element) -> Dict:
        declaration: Dict[str, Any] = {
            'identifier': element.getAttribute('identifier'),
            'cardinality': element.getAttribute('cardinality') or 'single',
            'baseType': element.getAttribute('baseType') or 'identifier',
        }

        correct = find_first(element, 'correctResponse')
        if correct is not None:
            values = [text_content(value) for value in child_elements(correct, 'value')]
            declaration['correctResponse'] = {'value': values[0] if len(values) == 1 else values}

        mapping = find_first(element, 'mapping')
        if mapping is not None:
            mapping_json: Dict[str, Any] = {}
            if mapping.hasAttribute('defaultValue'):
                mapping_json['defaultValue'] = _coerce_number(mapping.getAttribute('defaultValue'))
            mapping_json['mapEntries'] = [
                {
                    'mapKey': entry.getAttribute('mapKey'),
                    'mappedValue': _coerce_number(entry.getAttribute('mappedValue')),
                }
                for entry in child_elements(mapping, 'mapEntry')
            ]
            declaration['mapping'] = mapping_json

        return declaration

    def _outcome_declaration_to_json(self, element: minidom.Element) -> Dict:
        outcome: Dict[str, Any] = {
            'identifier': element.getAttribute('identifier'),
            'cardinality': element.getAttribute('cardinality') or 'single',
            'baseType': element.getAttribute('baseType') or 'float',
        }
        default = find_first(element, 'defaultValue')
        if default is not None:
            value = find_first(default, 'value')
            if value is not None:
                outcome['defaultValue'] = {'value': _coerce_number(text_content(value))}
        return outcome

    def _response_processing_to_json(self, element: minidom.Element) -> Dict:
        processing: Dict[str, Any] = {}
        if element.getAttribute('template'):
            processing['template'] = element.getAttribute('template')
            if element.hasAttribute('data-custom-score'):
                processing['score'] = _coerce_number(element.getAttribute('data-custom-score'))
            return processing

        logic = extract_custom_logic(element)
        processing['customLogic'] = logic if logic is not None else True
        return processing

    def _children_to_json(self, element: minidom.Element) -> List[Dict]:
        content = []
        for child in element.childNodes:
            if child.nodeType in (Node.TEXT_NODE, Node.CDATA_SECTION_NODE):
                if child.data.strip():
                    content.append({'@type': 'text', 'text': child.data})
            elif child.nodeType == Node.ELEMENT_NODE:
                content.append(self._element_to_json(child))
        return content

    def _element_to_json(self, element: minidom.Element) -> Dict:
        """Map one body element onto its JSON node"""
        name = local_name(element)

        if name == 'p':
            return self._container_to_json('paragraph', element)
        if name in ('choiceInteraction', 'orderInteraction'):
            return self._choice_family_to_json(name, element)
        if name == 'hottextInteraction':
            node: Dict[str, Any] = {
                '@type': name,
                'responseIdentifier': element.getAttribute('responseIdentifier'),
            }
            attributes = _without(element_attributes(element), ('responseIdentifier',))
            if attributes:
                node['attributes'] = attributes
            prompt = find_first(element, 'prompt')
            if prompt is not None:
                node['prompt'] = text_content(prompt)
            node['content'] = [
                child for child in self._children_to_json(element) if child['@type'] != 'prompt'
            ]
            return node
        if name in _SIMPLE_INTERACTIONS:
            node = {
                '@type': name,
                'responseIdentifier': element.getAttribute('responseIdentifier'),
            }
            attributes = _without(element_attributes(element), ('responseIdentifier',))
            if attributes:
                node['attributes'] = attributes
            return node

        return self._container_to_json(name, element)

    def _container_to_json(self, node_type: str, element: minidom.Element) -> Dict:
        node: Dict[str, Any] = {'@type': node_type}
        attributes = _without(element_attributes(element), ('xmlns',))
        if attributes:
            node['attributes'] = attributes

        if child_elements(element):
            node['children'] = self._children_to_json(element)
        else:
            node['text'] = ''.join(
                child.data for child in element.childNodes
                if child.nodeType in (Node.TEXT_NODE, Node.CDATA_SECTION_NODE)
            ).strip()
        return node

    def _choice_family_to_json(self, name: str, element: minidom.Element) -> Dict:
        node: Dict[str, Any] = {
            '@type': name,
            'responseIdentifier': element.getAttribute('responseIdentifier'),
        }
        if name == 'choiceInteraction':
            node['shuffle'] = element.getAttribute('shuffle') == 'true'
            node['maxChoices'] = _safe_int(element.getAttribute('maxChoices'), 1)
            attributes = _without(element_attributes(element), _CHOICE_KEYS)
        else:
            attributes = _without(element_attributes(element), ('responseIdentifier',))
        if attributes:
            node['attributes'] = attributes

        prompt = find_first(element, 'prompt')
        if prompt is not None:
            node['prompt'] = text_content(prompt)

        node['choices'] = [
            {'identifier': choice.getAttribute('identifier'), 'text': text_content(choice)}
            for choice in child_elements(element, 'simpleChoice')
        ]
        return node

    def _test_to_json(self, element: minidom.Element) -> Dict:
        test: Dict[str, Any] = {
            '@type': 'assessmentTest',
            'identifier': element.getAttribute('identifier'),
            'title': element.getAttribute('title'),
        }

        outcomes = [self._outcome_declaration_to_json(el) for el in child_elements(element, 'outcomeDeclaration')]
        if outcomes:
            test['outcomeDeclarations'] = outcomes

        parts = []
        for part in child_elements(element, 'testPart'):
            part_json: Dict[str, Any] = {
                'identifier': part.getAttribute('identifier'),
                'navigationMode': part.getAttribute('navigationMode') or 'linear',
                'submissionMode': part.getAttribute('submissionMode') or 'individual',
            }
            if part.getAttribute('scoreAggregation'):
                part_json['scoreAggregation'] = part.getAttribute('scoreAggregation')
            part_json['assessmentSections'] = [
                self._section_to_json(section) for section in child_elements(part, 'assessmentSection')
            ]
            parts.append(part_json)
        if parts:
            test['testParts'] = parts

        items = [self._item_to_json(item) for item in child_elements(element, 'assessmentItem')]
        if items:
            test['items'] = items

        return test

    def _section_to_json(self, element: minidom.Element) -> Dict:
        section: Dict[str, Any] = {
            'identifier': element.getAttribute('identifier'),
            'title': element.getAttribute('title'),
            'visible': element.getAttribute('visible') != 'false',
        }
        nested = [self._section_to_json(child) for child in child_elements(element, 'assessmentSection')]
        if nested:
            section['assessmentSections'] = nested
        section['assessmentItems'] = [
            self._item_to_json(item) for item in child_elements(element, 'assessmentItem')
        ]
        return section


def extract_custom_logic(processing: minidom.Element) -> Optional[Any]:
    """
    Recover JSON-authored custom logic from a responseProcessing element

    Returns the decoded logic, or None when no readable Custom Logic comment
    is present.
    """
    for child in processing.childNodes:
        if child.nodeType != Node.COMMENT_NODE:
            continue
        text = child.data.strip()
        if not text.startswith(CUSTOM_LOGIC_MARKER):
            continue
        payload = text[len(CUSTOM_LOGIC_MARKER):].strip().replace('&quot;', '"')
        try:
            return json.loads(payload)
        except ValueError:
            logger.warning(f"Unreadable custom logic comment: {payload[:80]}")
            return None
    return None


def _as_list(value) -> List:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _attr_text(value) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _text_element(doc: minidom.Document, tag: str, value) -> minidom.Element:
    element = doc.createElement(tag)
    element.appendChild(doc.createTextNode(_attr_text(value)))
    return element


def _set_attributes(element: minidom.Element, attributes: Optional[Dict]):
    for name, value in (attributes or {}).items():
        element.setAttribute(name, _attr_text(value))


def _without(attributes: Dict[str, str], names) -> Dict[str, str]:
    return {name: value for name, value in attributes.items() if name not in names}


def _safe_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_number(value: str) -> Union[int, float, str]:
    """'1' -> 1, '0.5' -> 0.5, anything else unchanged"""
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return float(value)
    except (TypeError, ValueError):
        return value


_default_converter = JsonXmlConverter()


def json_to_xml(json_content: str) -> str:
    return _default_converter.json_to_xml(json_content)


def xml_to_json(xml_content: str) -> str:
    return _default_converter.xml_to_json(xml_content)
