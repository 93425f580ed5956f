from __future__ import annotations

import pytest

from qtikit.parsers.factory import get_parser

QTI21_NS = "http://www.imsglobal.org/xsd/imsqti_v2p1"
QTI30_NS = "http://www.imsglobal.org/xsd/imsqti_v3p0"


def choice_item(identifier: str, title: str | None = None, correct: str = "A", namespace: str | None = None) -> str:
    """A small single-choice assessmentItem."""

    xmlns = f' xmlns="{namespace}"' if namespace else ""
    return (
        f'<assessmentItem{xmlns} identifier="{identifier}" title="{title or identifier}" '
        'adaptive="false" timeDependent="false">'
        '<responseDeclaration identifier="RESPONSE" cardinality="single" baseType="identifier">'
        f"<correctResponse><value>{correct}</value></correctResponse>"
        "</responseDeclaration>"
        '<outcomeDeclaration identifier="SCORE" cardinality="single" baseType="float">'
        "<defaultValue><value>0</value></defaultValue>"
        "</outcomeDeclaration>"
        f"<itemBody><p>Question {identifier}</p>"
        '<choiceInteraction responseIdentifier="RESPONSE" shuffle="false" maxChoices="1">'
        '<simpleChoice identifier="A">Alpha</simpleChoice>'
        '<simpleChoice identifier="B">Beta</simpleChoice>'
        "</choiceInteraction></itemBody>"
        '<responseProcessing template="http://www.imsglobal.org/question/qti_v2p1/rptemplates/match_correct"/>'
        "</assessmentItem>"
    )


def assessment_test_xml(*identifiers: str) -> str:
    """A QTI 2.1 assessmentTest holding one choice item per identifier."""

    items = "".join(choice_item(identifier) for identifier in identifiers)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<assessmentTest xmlns="{QTI21_NS}" identifier="test-1" title="Test">'
        '<testPart identifier="part-1" navigationMode="linear" submissionMode="individual">'
        f'<assessmentSection identifier="section-1" title="Section" visible="true">{items}</assessmentSection>'
        "</testPart></assessmentTest>"
    )


@pytest.fixture
def qti21_choice_xml() -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<assessmentItem xmlns="{QTI21_NS}" identifier="capital" title="Capital" adaptive="false" timeDependent="false">
  <responseDeclaration identifier="RESPONSE" cardinality="single" baseType="identifier">
    <correctResponse>
      <value>B</value>
    </correctResponse>
  </responseDeclaration>
  <outcomeDeclaration identifier="SCORE" cardinality="single" baseType="float">
    <defaultValue>
      <value>0</value>
    </defaultValue>
  </outcomeDeclaration>
  <itemBody>
    <p>What is the capital of France?</p>
    <choiceInteraction responseIdentifier="RESPONSE" shuffle="false" maxChoices="1">
      <prompt>Pick one</prompt>
      <simpleChoice identifier="A">London</simpleChoice>
      <simpleChoice identifier="B">Paris</simpleChoice>
      <simpleChoice identifier="C">Berlin</simpleChoice>
    </choiceInteraction>
  </itemBody>
  <responseProcessing template="http://www.imsglobal.org/question/qti_v2p1/rptemplates/match_correct"/>
</assessmentItem>"""


@pytest.fixture
def three_item_xml() -> str:
    return assessment_test_xml("A", "B", "C")


@pytest.fixture
def qti30_test_xml() -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<assessmentTest xmlns="{QTI30_NS}" identifier="quiz" title="Quiz">
  <outcomeDeclaration identifier="TOTAL" cardinality="single" baseType="float">
    <defaultValue><value>0</value></defaultValue>
  </outcomeDeclaration>
  <testPart identifier="part-1" navigationMode="nonlinear" submissionMode="simultaneous">
    <assessmentSection identifier="sec-1" title="First" visible="true">
      {choice_item("q1")}
      <assessmentSection identifier="sec-1a" title="Nested" visible="false">
        {choice_item("q2")}
      </assessmentSection>
    </assessmentSection>
  </testPart>
</assessmentTest>"""


@pytest.fixture
def qti21_parser():
    return get_parser("2.1")


@pytest.fixture
def qti30_parser():
    return get_parser("3.0")
