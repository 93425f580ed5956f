"""
Text helpers for previews
"""

import re

from bs4 import BeautifulSoup


def html_to_text(markup: str) -> str:
    """Flatten prompt or hottext markup to a single line of plain text"""
    if not markup:
        return ''
    soup = BeautifulSoup(markup, 'html.parser')
    text = soup.get_text(' ', strip=True)
    # get_text(' ') puts a space before punctuation that followed a tag
    return re.sub(r'\s+([.,;:!?])', r'\1', text)


def truncate(text: str, length: int = 60) -> str:
    text = text or ''
    if len(text) <= length:
        return text
    return text[:length - 3].rstrip() + '...'
