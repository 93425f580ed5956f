"""
QTI 3.0 JSON Templates

Starter items in the JSON representation understood by
converters.json_xml_converter.
"""

import copy
from typing import Any, Dict, List, Optional

from .identifiers import generate_item_id
from .qti_templates import response_processing_template


def _choices(*pairs) -> List[Dict[str, str]]:
    return [{'identifier': identifier, 'text': text} for identifier, text in pairs]


ABCD = _choices(('ChoiceA', 'Option A'), ('ChoiceB', 'Option B'),
                ('ChoiceC', 'Option C'), ('ChoiceD', 'Option D'))

# item type -> (title, responseDeclaration, itemBody content)
_JSON_TEMPLATES: Dict[str, tuple] = {
    'choice': (
        'Multiple Choice Question',
        {'identifier': 'RESPONSE', 'cardinality': 'single', 'baseType': 'identifier',
         'correctResponse': {'value': 'ChoiceA'}},
        [
            {'@type': 'paragraph', 'text': 'Enter your question text here.'},
            {'@type': 'choiceInteraction', 'responseIdentifier': 'RESPONSE', 'shuffle': False,
             'maxChoices': 1, 'prompt': 'Select the correct answer:', 'choices': ABCD},
        ],
    ),
    'multipleResponse': (
        'Multiple Response Question',
        {'identifier': 'RESPONSE', 'cardinality': 'multiple', 'baseType': 'identifier',
         'correctResponse': {'value': ['ChoiceA', 'ChoiceC']}},
        [
            {'@type': 'paragraph', 'text': 'Select all correct answers.'},
            {'@type': 'choiceInteraction', 'responseIdentifier': 'RESPONSE', 'shuffle': False,
             'maxChoices': 0, 'prompt': 'Choose all that apply:', 'choices': ABCD},
        ],
    ),
    'textEntry': (
        'Fill in the Blank',
        {'identifier': 'RESPONSE', 'cardinality': 'single', 'baseType': 'string',
         'correctResponse': {'value': 'Paris'}},
        [
            {'@type': 'paragraph', 'text': 'What is the capital of France?'},
            {'@type': 'textEntryInteraction', 'responseIdentifier': 'RESPONSE',
             'attributes': {'expectedLength': '20'}},
        ],
    ),
    'extendedText': (
        'Extended Text Response',
        {'identifier': 'RESPONSE', 'cardinality': 'single', 'baseType': 'string'},
        [
            {'@type': 'paragraph', 'text': 'Provide a detailed response to the question below.'},
            {'@type': 'extendedTextInteraction', 'responseIdentifier': 'RESPONSE',
             'attributes': {'expectedLength': '500'}},
        ],
    ),
    'hottext': (
        'Hottext Selection',
        {'identifier': 'RESPONSE', 'cardinality': 'multiple', 'baseType': 'identifier',
         'correctResponse': {'value': ['hot1', 'hot3']}},
        [
            {'@type': 'paragraph', 'text': 'Select the correct words or phrases in the text.'},
            {'@type': 'hottextInteraction', 'responseIdentifier': 'RESPONSE',
             'attributes': {'maxChoices': '0'},
             'content': [{
                 '@type': 'paragraph',
                 'children': [
                     {'@type': 'text', 'text': 'Click on the '},
                     {'@type': 'hottext', 'text': 'correct', 'attributes': {'identifier': 'hot1'}},
                     {'@type': 'text', 'text': ' words in this '},
                     {'@type': 'hottext', 'text': 'sentence', 'attributes': {'identifier': 'hot2'}},
                     {'@type': 'text', 'text': ' to '},
                     {'@type': 'hottext', 'text': 'answer', 'attributes': {'identifier': 'hot3'}},
                     {'@type': 'text', 'text': ' the question.'},
                 ],
             }]},
        ],
    ),
    'slider': (
        'Slider Question',
        {'identifier': 'RESPONSE', 'cardinality': 'single', 'baseType': 'integer',
         'correctResponse': {'value': '50'}},
        [
            {'@type': 'paragraph', 'text': 'Use the slider to select your answer (0-100):'},
            {'@type': 'sliderInteraction', 'responseIdentifier': 'RESPONSE',
             'attributes': {'lowerBound': '0', 'upperBound': '100', 'step': '1', 'stepLabel': 'true'}},
        ],
    ),
    'order': (
        'Order Interaction',
        {'identifier': 'RESPONSE', 'cardinality': 'ordered', 'baseType': 'identifier',
         'correctResponse': {'value': ['ChoiceA', 'ChoiceB', 'ChoiceC']}},
        [
            {'@type': 'paragraph', 'text': 'Arrange the following items in the correct order:'},
            {'@type': 'orderInteraction', 'responseIdentifier': 'RESPONSE',
             'attributes': {'shuffle': 'true'}, 'prompt': 'Drag to reorder:',
             'choices': _choices(('ChoiceA', 'First item'), ('ChoiceB', 'Second item'),
                                 ('ChoiceC', 'Third item'))},
        ],
    ),
}

QTI_JSON_ITEM_TYPES = tuple(_JSON_TEMPLATES)


def render_json_template(item_type: str, item_id: Optional[str] = None,
                         title: Optional[str] = None) -> Dict[str, Any]:
    """Build a QTI 3.0 JSON assessmentItem for one item type"""
    if item_type not in _JSON_TEMPLATES:
        raise ValueError(f"Unknown item type: {item_type}")

    default_title, declaration, content = _JSON_TEMPLATES[item_type]

    return {
        '@type': 'assessmentItem',
        'identifier': item_id or generate_item_id(),
        'title': title or default_title,
        'adaptive': False,
        'timeDependent': False,
        'responseDeclaration': copy.deepcopy(declaration),
        'outcomeDeclaration': [{
            'identifier': 'SCORE',
            'cardinality': 'single',
            'baseType': 'float',
            'defaultValue': {'value': 0},
        }],
        'itemBody': {'content': copy.deepcopy(content)},
        'responseProcessing': {'template': response_processing_template('3.0')},
    }


def get_blank_json_template() -> Dict[str, Any]:
    return render_json_template('choice')
