"""
XML Updater

In-place edits on serialized QTI documents: correct-response rewriting,
item reordering and pretty-printing. Every function takes XML text and
returns XML text; malformed input is logged and handed back unchanged so
callers can use these speculatively.
"""

import logging
import re
from typing import List, Optional, Union
from xml.dom import minidom

from ..errors import XMLParseError
from .dom import (
    parse_document,
    xml_declaration,
    serialize,
    find_all,
    find_first,
    child_elements,
    strip_whitespace_nodes,
)

logger = logging.getLogger(__name__)

INDENT = '  '

# An opening tag that is not self-closing: <name ...> but not <name .../>
_OPEN_TAG_RE = re.compile(r'<[A-Za-z_][^>]*?(?<!/)>')


def format_xml(xml_content: str) -> str:
    """
    Pretty-print an XML document with two-space indentation

    Whitespace-only text nodes are dropped first, so formatting an already
    formatted document gives the same text back.
    """
    if not xml_content or not xml_content.strip():
        return xml_content

    try:
        doc = parse_document(xml_content)
    except XMLParseError as e:
        logger.error(f"Error formatting XML: {e}")
        return xml_content

    return format_document(doc, xml_declaration(xml_content))


def format_document(doc: minidom.Document, declaration: Optional[str] = None) -> str:
    """Pretty-print an already parsed document"""
    strip_whitespace_nodes(doc)
    body = serialize(doc).replace('><', '>\n<')

    lines = []
    if declaration:
        lines.append(declaration)
    lines.extend(_indent_lines(body.split('\n')))

    return '\n'.join(lines)


def _indent_lines(raw_lines: List[str]) -> List[str]:
    depth = 0
    result = []

    for line in raw_lines:
        stripped = line.strip()
        if not stripped:
            continue

        if stripped.startswith('</'):
            depth = max(0, depth - 1)
            result.append(INDENT * depth + stripped)
            continue

        result.append(INDENT * depth + stripped)

        # Processing instructions, comments and doctypes never nest
        if stripped.startswith('<?') or stripped.startswith('<!'):
            continue

        opened = len(_OPEN_TAG_RE.findall(stripped))
        closed = stripped.count('</')
        depth = max(0, depth + opened - closed)

    return result


def update_correct_response(
    xml_content: str,
    item_id: str,
    correct_response: Union[str, List[str], int, float],
) -> str:
    """
    Replace the correct response of one assessment item

    Args:
        xml_content: Document containing the item
        item_id: identifier attribute of the assessmentItem to edit
        correct_response: A list writes cardinality="multiple" with one
            <value> per entry; a scalar writes cardinality="single"

    Returns:
        Updated XML, or the input object itself when the item is not found
        or the document cannot be parsed
    """
    try:
        doc = parse_document(xml_content)
    except XMLParseError as e:
        logger.error(f"Error updating XML: {e}")
        return xml_content

    item = next(
        (el for el in find_all(doc, 'assessmentItem') if el.getAttribute('identifier') == item_id),
        None,
    )
    if item is None:
        logger.warning(f"Could not find assessment item with identifier: {item_id}")
        return xml_content

    declaration = find_first(item, 'responseDeclaration')
    if declaration is None:
        declaration = _create_element(doc, item, 'responseDeclaration')
        declaration.setAttribute('identifier', 'RESPONSE')
        declaration.setAttribute('cardinality', 'single')
        declaration.setAttribute('baseType', 'identifier')

        outcomes = child_elements(item, 'outcomeDeclaration')
        if outcomes:
            item.insertBefore(declaration, outcomes[-1].nextSibling)
        else:
            item.insertBefore(declaration, item.firstChild)

    correct = find_first(declaration, 'correctResponse')
    if correct is None:
        correct = _create_element(doc, item, 'correctResponse')
        declaration.appendChild(correct)

    for child in list(correct.childNodes):
        correct.removeChild(child)
        child.unlink()

    if isinstance(correct_response, (list, tuple)):
        declaration.setAttribute('cardinality', 'multiple')
        values = [str(value) for value in correct_response]
    else:
        declaration.setAttribute('cardinality', 'single')
        values = [str(correct_response)]

    for value in values:
        value_element = _create_element(doc, item, 'value')
        value_element.appendChild(doc.createTextNode(value))
        correct.appendChild(value_element)

    return serialize(doc, xml_declaration(xml_content))


def reorder_items(xml_content: str, from_index: int, to_index: int) -> str:
    """
    Move the item at from_index so that it ends up at to_index

    The item is detached first and then inserted before whatever sits at
    to_index in the shortened list (appended when to_index runs past the
    end). Out-of-range indices return the input unchanged. The result is
    always re-formatted.
    """
    try:
        doc = parse_document(xml_content)
    except XMLParseError as e:
        logger.error(f"Error reordering items: {e}")
        return xml_content

    items = find_all(doc, 'assessmentItem')
    count = len(items)
    if not (0 <= from_index < count) or not (0 <= to_index < count):
        logger.debug(f"Reorder {from_index} -> {to_index} out of range for {count} items")
        return xml_content

    moving = items[from_index]
    parent = moving.parentNode
    parent.removeChild(moving)

    remaining = [item for item in items if item is not moving]
    if to_index < len(remaining):
        anchor = remaining[to_index]
        anchor.parentNode.insertBefore(moving, anchor)
    elif remaining:
        last = remaining[-1]
        last.parentNode.insertBefore(moving, last.nextSibling)
    else:
        parent.appendChild(moving)

    return format_xml(serialize(doc, xml_declaration(xml_content)))


def _create_element(doc: minidom.Document, sibling: minidom.Element, name: str) -> minidom.Element:
    """Create an element spelled the same way (prefix, naming style) as sibling"""
    tag = name
    if sibling.tagName.split(':')[-1].startswith('qti-'):
        tag = 'qti-' + re.sub(r'([A-Z])', lambda m: '-' + m.group(1).lower(), name)
    if sibling.prefix:
        tag = f'{sibling.prefix}:{tag}'
    return doc.createElement(tag)
