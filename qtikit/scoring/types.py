"""
Scoring Models

Records exchanged with the scoring engine.
"""

import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Union

ResponseValue = Union[str, List[str], int, float, bool]

RESPONSE_PROCESSING_TEMPLATES = (
    'match_correct',
    'map_response',
    'match_none',
    'match_correct_multiple',
)


@dataclass
class ItemResponse:
    """A learner's answer to one item"""
    item_id: str
    value: ResponseValue
    response_id: str = 'RESPONSE'
    timestamp: float = field(default_factory=time.time)


@dataclass
class ScoreResult:
    """Outcome of one response-processing rule"""
    score: float
    max_score: float
    feedback: Optional[str] = None
    is_correct: Optional[bool] = None
    partial_credit: Optional[bool] = None


@dataclass
class ItemScore:
    item_id: str
    score: float
    max_score: float
    feedback: Optional[str] = None
    is_correct: Optional[bool] = None
    partial_credit: Optional[bool] = None
    requires_manual_scoring: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TotalScore:
    total_score: float
    max_total_score: float
    percentage_score: float
    correct_items: int
    total_items: int
    requires_manual_scoring: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
