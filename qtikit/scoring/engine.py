"""
Scoring Engine

Scores learner responses against parsed items by interpreting each item's
response-processing template (match_correct, map_response, match_none,
match_correct_multiple) or its JSON-authored custom logic.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from ..models.qti_items import QTIItem
from .types import ItemResponse, ItemScore, ScoreResult, TotalScore

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = 'match_correct'


def template_name(template: str) -> str:
    """'.../rptemplates/map_response.xml' -> 'map_response'"""
    name = template.strip().rstrip('/').rsplit('/', 1)[-1]
    if name.endswith('.xml'):
        name = name[:-4]
    return name


class ScoringEngine:
    """
    Stateless response scorer

    Any number of instances behave identically; the module-level
    scoring_engine is a shared convenience instance.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._templates = {
            'match_correct': self._match_correct,
            'map_response': self._map_response,
            'match_none': self._match_none,
            'match_correct_multiple': self._match_correct_multiple,
        }
        self._custom_logic = {
            'conditional': self._conditional_logic,
            'range_scoring': self._range_scoring,
            'string_match': self._string_match,
            'length_based_scoring': self._length_based_scoring,
        }

    def calculate_item_score(self, item: QTIItem, response: Union[ItemResponse, Any]) -> ItemScore:
        """
        Score one response

        Args:
            item: Parsed item
            response: An ItemResponse, or the bare response value

        Returns:
            ItemScore. Errors while scoring give a zero score flagged for
            manual scoring instead of raising.
        """
        item_id = item.id or item.identifier
        value = response.value if isinstance(response, ItemResponse) else response

        try:
            result = self._execute_response_processing(item, value)
            if self.verbose:
                print(f"   🧮 {item_id}: {result.score:g}/{result.max_score:g}")
            return ItemScore(
                item_id=item_id,
                score=result.score,
                max_score=result.max_score,
                feedback=result.feedback,
                is_correct=result.is_correct,
                partial_credit=result.partial_credit,
                requires_manual_scoring=self.requires_manual_scoring(item),
            )
        except Exception:
            logger.exception(f"Error calculating score for item {item_id}")
            return ItemScore(
                item_id=item_id,
                score=0.0,
                max_score=self._safe_max_score(item),
                requires_manual_scoring=True,
            )

    def calculate_total_score(self, item_scores: Iterable[ItemScore]) -> TotalScore:
        """Aggregate item scores; any item needing manual scoring flags the total"""
        scores = list(item_scores)
        total = sum(score.score for score in scores)
        max_total = sum(score.max_score for score in scores)

        return TotalScore(
            total_score=total,
            max_total_score=max_total,
            percentage_score=(total / max_total) * 100 if max_total > 0 else 0.0,
            correct_items=sum(1 for score in scores if score.is_correct is True),
            total_items=len(scores),
            requires_manual_scoring=any(score.requires_manual_scoring for score in scores),
        )

    def requires_manual_scoring(self, item: QTIItem) -> bool:
        """
        Whether a human has to grade this item

        True for extended text, for items with no correct response, and for
        response processing that is not a named template.
        """
        if item.interaction_type == 'extendedText' or item.type == 'extendedText':
            return True
        if item.correct_response is None or item.correct_response in ('', []):
            return True
        if item.response_processing is not None and not item.response_processing.template:
            return True
        return False

    def get_max_score(self, item: QTIItem) -> float:
        if item.max_score is not None:
            return float(item.max_score)
        if item.mapping:
            positive = [value for value in item.mapping.values() if value > 0]
            return max(positive) if positive else 1.0
        return 1.0

    def _safe_max_score(self, item: QTIItem) -> float:
        try:
            return self.get_max_score(item)
        except (TypeError, ValueError, AttributeError):
            return 1.0

    def _execute_response_processing(self, item: QTIItem, value: Any) -> ScoreResult:
        processing = item.response_processing

        if processing is not None and processing.template:
            name = template_name(processing.template)
            handler = self._templates.get(name)
            if handler is None:
                logger.warning(f"Unknown template: {name}, falling back to {DEFAULT_TEMPLATE}")
                handler = self._match_correct
            return handler(item, value)

        if processing is not None and isinstance(processing.custom_logic, dict):
            return self._execute_custom_logic(processing.custom_logic, item, value)

        return self._match_correct(item, value)

    # --- Templates ---------------------------------------------------------

    def _match_correct(self, item: QTIItem, value: Any) -> ScoreResult:
        max_score = self.get_max_score(item)
        correct = item.correct_response

        if not correct:
            return ScoreResult(score=0.0, max_score=max_score, is_correct=False)

        # Array answers compare as sets, so sequence is ignored even for order items
        is_correct = self._compare_responses(value, correct, numeric=item.type == 'slider')
        return ScoreResult(
            score=max_score if is_correct else 0.0,
            max_score=max_score,
            is_correct=is_correct,
            partial_credit=False,
        )

    def _map_response(self, item: QTIItem, value: Any) -> ScoreResult:
        if not item.mapping:
            return self._match_correct(item, value)

        max_score = self.get_max_score(item)
        mapped = self._mapped_score(item.mapping, value)
        score = max(0.0, min(max_score, mapped))

        return ScoreResult(
            score=score,
            max_score=max_score,
            is_correct=score == max_score,
            partial_credit=0 < score < max_score,
        )

    def _match_none(self, item: QTIItem, value: Any) -> ScoreResult:
        return ScoreResult(score=0.0, max_score=0.0, is_correct=None)

    def _match_correct_multiple(self, item: QTIItem, value: Any) -> ScoreResult:
        max_score = self.get_max_score(item)
        correct = item.correct_response

        if not correct or not isinstance(value, (list, tuple)):
            return ScoreResult(score=0.0, max_score=max_score, is_correct=False)

        correct_values = correct if isinstance(correct, list) else [correct]
        is_correct = self._compare_multiple(value, correct_values)
        return ScoreResult(
            score=max_score if is_correct else 0.0,
            max_score=max_score,
            is_correct=is_correct,
            partial_credit=False,
        )

    # --- Custom logic ------------------------------------------------------

    def _execute_custom_logic(self, logic: Dict, item: QTIItem, value: Any) -> ScoreResult:
        handler = self._custom_logic.get(logic.get('type'))
        if handler is None:
            logger.warning(f"Unknown custom logic type: {logic.get('type')}")
            return self._match_correct(item, value)

        max_score = self.get_max_score(item)
        try:
            return handler(logic, item, value, max_score)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            logger.error(f"Error executing custom logic: {e}")
            return ScoreResult(score=0.0, max_score=max_score, is_correct=False)

    def _conditional_logic(self, logic: Dict, item: QTIItem, value: Any, max_score: float) -> ScoreResult:
        """exact_match, then partial_match, then else"""
        conditions = logic.get('conditions')
        if not isinstance(conditions, list):
            return ScoreResult(score=0.0, max_score=max_score, is_correct=False)

        user_values = [_as_text(v) for v in _as_list(value)]
        correct_values = [_as_text(v) for v in _as_list(item.correct_response)]

        exact = _find_condition(conditions, 'exact_match')
        if exact is not None and self._compare_multiple(user_values, correct_values):
            return ScoreResult(
                score=_number(exact.get('score'), max_score),
                max_score=max_score,
                is_correct=True,
                partial_credit=False,
            )

        partial = _find_condition(conditions, 'partial_match')
        if partial is not None and partial.get('requirement'):
            lowered = {v.lower() for v in user_values}
            if all(_as_text(req).lower() in lowered for req in partial['requirement']):
                return ScoreResult(
                    score=_number(partial.get('score'), max_score / 2),
                    max_score=max_score,
                    is_correct=False,
                    partial_credit=True,
                )

        for condition in conditions:
            if isinstance(condition, dict) and 'else' in condition:
                return ScoreResult(score=_number(condition['else'], 0.0), max_score=max_score, is_correct=False)

        return ScoreResult(score=0.0, max_score=max_score, is_correct=False)

    def _range_scoring(self, logic: Dict, item: QTIItem, value: Any, max_score: float) -> ScoreResult:
        """Slider-style scoring by exact value or numeric range"""
        user_value = _to_float(value)
        ranges = logic.get('score_ranges')
        if user_value is None or not ranges:
            return ScoreResult(score=0.0, max_score=max_score, is_correct=False)

        for score_range in ranges:
            condition = score_range.get('condition')
            score = _number(score_range.get('score'), 0.0)
            if condition == 'exact' and user_value == _to_float(score_range.get('value')):
                return ScoreResult(score=score, max_score=max_score, is_correct=True, partial_credit=False)
            if condition == 'range':
                low, high = _to_float(score_range.get('min')), _to_float(score_range.get('max'))
                if low is not None and high is not None and low <= user_value <= high:
                    return ScoreResult(
                        score=score,
                        max_score=max_score,
                        is_correct=score == max_score,
                        partial_credit=0 < score < max_score,
                    )

        return self._default_range(ranges, max_score)

    def _string_match(self, logic: Dict, item: QTIItem, value: Any, max_score: float) -> ScoreResult:
        user_value = _as_text(value).strip()
        acceptable = logic.get('acceptable_values') or [item.correct_response]
        case_sensitive = logic.get('caseSensitive', True) is not False

        for candidate in acceptable:
            candidate = _as_text(candidate)
            if case_sensitive:
                matches = user_value == candidate
            else:
                matches = user_value.lower() == candidate.lower()
            if matches:
                return ScoreResult(
                    score=_number(logic.get('score'), max_score),
                    max_score=max_score,
                    is_correct=True,
                    partial_credit=False,
                )

        return ScoreResult(score=0.0, max_score=max_score, is_correct=False)

    def _length_based_scoring(self, logic: Dict, item: QTIItem, value: Any, max_score: float) -> ScoreResult:
        """Essay-style scoring by word count"""
        ranges = logic.get('score_ranges')
        if not ranges:
            return ScoreResult(score=0.0, max_score=max_score, is_correct=False)

        word_count = len(_as_text(value).split())
        for score_range in ranges:
            threshold = _to_float(score_range.get('value'))
            if score_range.get('condition') == 'length_gte' and threshold is not None and word_count >= threshold:
                score = _number(score_range.get('score'), 0.0)
                return ScoreResult(
                    score=score,
                    max_score=max_score,
                    is_correct=score == max_score,
                    partial_credit=0 < score < max_score,
                )

        return self._default_range(ranges, max_score)

    def _default_range(self, ranges: List[Dict], max_score: float) -> ScoreResult:
        default = next((r for r in ranges if r.get('condition') == 'default'), None)
        score = _number(default.get('score'), 0.0) if default else 0.0
        return ScoreResult(score=score, max_score=max_score, is_correct=False)

    # --- Comparison --------------------------------------------------------

    def _compare_responses(self, value: Any, correct: Any, numeric: bool = False) -> bool:
        if isinstance(correct, list):
            return isinstance(value, (list, tuple)) and self._compare_multiple(value, correct)
        if isinstance(value, (list, tuple)):
            return False

        user_text = _as_text(value).strip().lower()
        correct_text = _as_text(correct).strip().lower()
        if user_text == correct_text:
            return True
        if not numeric:
            return False

        # Slider positions compare as numbers: 50 and 50.0 are the same answer
        user_number, correct_number = _to_float(user_text), _to_float(correct_text)
        return user_number is not None and user_number == correct_number

    def _compare_multiple(self, values: Iterable[Any], correct_values: Iterable[Any]) -> bool:
        """Same length and same elements after case-insensitive sort; blanks ignored"""
        user = sorted(_as_text(v).strip().lower() for v in values if v is not None and _as_text(v).strip())
        correct = sorted(_as_text(v).strip().lower() for v in correct_values if v is not None and _as_text(v).strip())
        return len(user) == len(correct) and user == correct

    def _mapped_score(self, mapping: Dict[str, float], value: Any) -> float:
        if isinstance(value, (list, tuple)):
            return sum(mapping.get(_as_text(v), 0.0) for v in value)
        return mapping.get(_as_text(value), 0.0)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return ''
    return str(value)


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _number(value: Any, default: float) -> float:
    number = _to_float(value)
    return default if number is None else number


def _find_condition(conditions: List[Any], name: str) -> Optional[Dict]:
    for condition in conditions:
        if isinstance(condition, dict) and condition.get('if') == name:
            return condition
    return None


scoring_engine = ScoringEngine()
