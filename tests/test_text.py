from __future__ import annotations

from qtikit.utils.qti_templates import render_item_template
from qtikit.utils.text import html_to_text, truncate


def test_hottext_prompt_flattens_to_sentence(qti21_parser):
    item = qti21_parser.parse(render_item_template("hottext")).items[0]
    assert html_to_text(item.prompt) == "The sun is a planet that provides light to Earth."


def test_html_to_text_handles_empty():
    assert html_to_text("") == ""
    assert html_to_text(None) == ""


def test_truncate():
    assert truncate("short") == "short"
    assert truncate("a" * 100, 10) == "aaaaaaa..."
    assert truncate(None) == ""
