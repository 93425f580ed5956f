"""
Content Format Detection

Classifies raw assessment content as XML or JSON before any parsing begins.
"""

import json
from dataclasses import dataclass
from typing import Dict


XML = 'xml'
JSON = 'json'


@dataclass(frozen=True)
class ContentFormatInfo:
    format: str
    name: str
    description: str
    file_extension: str
    mime_type: str


CONTENT_FORMATS: Dict[str, ContentFormatInfo] = {
    XML: ContentFormatInfo(
        format=XML,
        name='XML',
        description='Traditional QTI XML format',
        file_extension='.xml',
        mime_type='application/xml',
    ),
    JSON: ContentFormatInfo(
        format=JSON,
        name='JSON',
        description='QTI 3.0 JSON format',
        file_extension='.json',
        mime_type='application/json',
    ),
}


def detect_format(content: str) -> str:
    """
    Classify content as 'json' or 'xml'

    Only a brace-delimited string that actually parses as JSON counts as
    JSON; anything else, including empty or garbled input, is XML.
    """
    trimmed = (content or '').strip()

    if trimmed.startswith('{') and trimmed.endswith('}'):
        try:
            json.loads(trimmed)
            return JSON
        except ValueError:
            pass

    return XML
