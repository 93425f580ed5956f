"""
QTI Item Models

Normalized, version-agnostic representation of parsed assessment content.
Every parser produces these records; they are rebuilt from the XML text on
each parse and never edited in place.
"""

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any, Optional, Union

from .qti_versions import QTIVersion


ITEM_TYPES = (
    'choice',
    'multipleResponse',
    'textEntry',
    'extendedText',
    'hottext',
    'slider',
    'order',
    'unknown',
)

CorrectResponse = Union[str, List[str]]


@dataclass
class QTIChoice:
    """A selectable option (simpleChoice, hottext, order choice)"""
    identifier: str
    text: str


@dataclass
class SliderConfig:
    """Bounds and presentation of a slider interaction"""
    lower_bound: float = 0.0
    upper_bound: float = 100.0
    step: Optional[float] = 1.0
    step_label: bool = False
    orientation: str = 'horizontal'  # 'horizontal' or 'vertical'


@dataclass
class ResponseProcessing:
    """Either a named template URI or custom (non-template) logic"""
    template: Optional[str] = None
    custom_logic: Any = None


@dataclass
class QTIItem:
    """A single parsed assessment item"""
    id: str
    identifier: str
    title: str = 'Untitled Item'
    type: str = 'unknown'
    prompt: str = ''
    interaction_type: Optional[str] = None
    choices: Optional[List[QTIChoice]] = None
    hottext_choices: Optional[List[QTIChoice]] = None
    order_choices: Optional[List[QTIChoice]] = None
    slider_config: Optional[SliderConfig] = None
    correct_response: Optional[CorrectResponse] = None  # None => manual scoring
    response_identifier: Optional[str] = 'RESPONSE'
    max_score: float = 1.0
    mapping: Optional[Dict[str, float]] = None
    response_processing: Optional[ResponseProcessing] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UnsupportedElement:
    """Tally of one recognized-but-unimplemented element type"""
    type: str
    count: int
    description: str


@dataclass
class OutcomeDeclaration:
    """An outcome variable declared on a test or item"""
    identifier: str
    cardinality: str = 'single'
    base_type: str = 'float'
    default_value: Optional[Union[str, float]] = None


@dataclass
class AssessmentSection:
    """Section of a test part"""
    identifier: str
    title: str = ''
    visible: bool = True
    assessment_items: List[QTIItem] = field(default_factory=list)


@dataclass
class TestPart:
    """Top-level division of an assessment test"""
    __test__ = False

    identifier: str
    navigation_mode: str = 'linear'  # 'linear' or 'nonlinear'
    submission_mode: str = 'individual'  # 'individual' or 'simultaneous'
    score_aggregation: Optional[str] = None
    assessment_sections: List[AssessmentSection] = field(default_factory=list)


@dataclass
class AssessmentTest:
    """Hierarchical QTI 3.0 test container"""
    identifier: str
    title: str
    test_parts: List[TestPart] = field(default_factory=list)
    outcome_declarations: List[OutcomeDeclaration] = field(default_factory=list)


@dataclass
class ParseResult:
    """Outcome of one parse call"""
    items: List[QTIItem] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    unsupported_elements: List[UnsupportedElement] = field(default_factory=list)
    version: Optional[QTIVersion] = None
    assessment_test: Optional[AssessmentTest] = None

    @property
    def success(self) -> bool:
        return not self.errors or bool(self.items)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['version'] = str(self.version) if self.version else None
        data['success'] = self.success
        return data
