"""
DOM Utilities

Thin helpers over xml.dom.minidom shared by the parsers, the converter and
the XML mutation utilities. Elements are matched by local name so that
namespaced documents, prefixed documents and QTI 3.0 kebab-case element
names (qti-choice-interaction) are all found the same way.
"""

import re
from typing import Iterator, List, Optional
from xml.dom import minidom, Node
from xml.parsers.expat import ExpatError

from ..errors import XMLParseError


_DECLARATION_RE = re.compile(r'^\s*(<\?xml[^>]*\?>)')


def parse_document(xml_content: str) -> minidom.Document:
    """
    Parse XML text into a DOM document

    Raises:
        XMLParseError: if the text is empty or not well-formed
    """
    if xml_content is None or not xml_content.strip():
        raise XMLParseError('Empty XML content')

    try:
        return minidom.parseString(xml_content.strip())
    except (ExpatError, ValueError) as e:
        raise XMLParseError(str(e)) from e


def xml_declaration(xml_content: str) -> Optional[str]:
    """Return the leading <?xml ...?> declaration of the text, if any"""
    match = _DECLARATION_RE.match(xml_content or '')
    return match.group(1) if match else None


def serialize(doc: minidom.Document, declaration: Optional[str] = None) -> str:
    """Serialize a document, optionally prefixed with an XML declaration"""
    body = ''.join(node.toxml() for node in doc.childNodes)
    if declaration:
        return f'{declaration}\n{body}'
    return body


def normalize_name(name: str) -> str:
    """
    Map an element name onto its camelCase QTI local name

    'qti:choiceInteraction' -> 'choiceInteraction'
    'qti-choice-interaction' -> 'choiceInteraction'
    """
    if ':' in name:
        name = name.split(':', 1)[1]
    if name.startswith('qti-'):
        head, *rest = name[4:].split('-')
        name = head + ''.join(part.capitalize() for part in rest)
    return name


def local_name(node: Node) -> str:
    if node.nodeType != Node.ELEMENT_NODE:
        return ''
    return normalize_name(node.localName or node.tagName)


def iter_elements(node: Node) -> Iterator[minidom.Element]:
    """Yield every descendant element of node in document order"""
    for child in node.childNodes:
        if child.nodeType == Node.ELEMENT_NODE:
            yield child
            yield from iter_elements(child)


def find_all(node: Node, name: str) -> List[minidom.Element]:
    return [el for el in iter_elements(node) if local_name(el) == name]


def find_first(node: Node, name: str) -> Optional[minidom.Element]:
    for el in iter_elements(node):
        if local_name(el) == name:
            return el
    return None


def child_elements(node: Node, name: Optional[str] = None) -> List[minidom.Element]:
    """Direct element children, optionally filtered by local name"""
    return [
        child for child in node.childNodes
        if child.nodeType == Node.ELEMENT_NODE
        and (name is None or local_name(child) == name)
    ]


def has_ancestor(node: Node, name: str) -> bool:
    parent = node.parentNode
    while parent is not None and parent.nodeType == Node.ELEMENT_NODE:
        if local_name(parent) == name:
            return True
        parent = parent.parentNode
    return False


def text_content(node: Node) -> str:
    """
    Concatenated text of a node with whitespace collapsed

    Whitespace-only runs between elements vanish, so the result does not
    depend on how the document was indented.
    """
    pieces = []
    for text in _iter_text(node):
        stripped = text.strip()
        if stripped:
            pieces.append(stripped)
    return re.sub(r'\s+', ' ', ' '.join(pieces)).strip()


def _iter_text(node: Node) -> Iterator[str]:
    for child in node.childNodes:
        if child.nodeType in (Node.TEXT_NODE, Node.CDATA_SECTION_NODE):
            yield child.data
        elif child.nodeType == Node.ELEMENT_NODE:
            yield from _iter_text(child)


def strip_whitespace_nodes(node: Node) -> None:
    """Recursively remove whitespace-only text nodes"""
    for child in list(node.childNodes):
        if child.nodeType == Node.TEXT_NODE and not child.data.strip():
            node.removeChild(child)
            child.unlink()
        elif child.nodeType == Node.ELEMENT_NODE:
            strip_whitespace_nodes(child)


def inner_xml(node: Node) -> str:
    """Serialized children of node (the DOM innerHTML)"""
    return ''.join(child.toxml() for child in node.childNodes)


def get_attr(node: minidom.Element, name: str, default: Optional[str] = None) -> Optional[str]:
    """Attribute value, treating a missing or empty attribute as default"""
    value = node.getAttribute(name) if node.hasAttribute(name) else ''
    return value if value != '' else default


def element_attributes(node: minidom.Element) -> dict:
    attributes = node.attributes
    return {attributes.item(i).name: attributes.item(i).value for i in range(attributes.length)}
