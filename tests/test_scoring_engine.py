from __future__ import annotations

import pytest

from qtikit.models.qti_items import QTIItem, ResponseProcessing
from qtikit.scoring.engine import ScoringEngine, scoring_engine, template_name
from qtikit.scoring.types import ItemResponse, ItemScore

RP = "http://www.imsglobal.org/question/qti_v2p1/rptemplates/"


def make_item(correct=None, template="match_correct", custom_logic=None, **kwargs) -> QTIItem:
    processing = None
    if template is not None:
        processing = ResponseProcessing(template=RP + template)
    elif custom_logic is not None:
        processing = ResponseProcessing(custom_logic=custom_logic)
    return QTIItem(
        id=kwargs.pop("id", "item-1"),
        identifier=kwargs.pop("identifier", "item-1"),
        type=kwargs.pop("type", "choice"),
        correct_response=correct,
        response_processing=processing,
        **kwargs,
    )


@pytest.mark.parametrize(
    "response,score,is_correct",
    [("B", 1.0, True), ("b", 1.0, True), (" B ", 1.0, True), ("A", 0.0, False)],
)
def test_match_correct_table(response, score, is_correct):
    result = scoring_engine.calculate_item_score(make_item("B"), ItemResponse(item_id="item-1", value=response))
    assert result.score == score
    assert result.is_correct is is_correct
    assert result.max_score == 1.0


def test_match_correct_arrays_ignore_order():
    item = make_item(["A", "C"], type="multipleResponse")
    assert scoring_engine.calculate_item_score(item, ["c", "a"]).is_correct is True
    assert scoring_engine.calculate_item_score(item, ["A"]).is_correct is False
    assert scoring_engine.calculate_item_score(item, "A").is_correct is False


def test_order_items_are_scored_order_insensitively():
    item = make_item(["ChoiceA", "ChoiceB", "ChoiceC"], type="order")
    result = scoring_engine.calculate_item_score(item, ["ChoiceC", "ChoiceB", "ChoiceA"])
    assert result.is_correct is True


def test_match_correct_numeric_response():
    item = make_item("50", type="slider")
    assert scoring_engine.calculate_item_score(item, 50).is_correct is True
    assert scoring_engine.calculate_item_score(item, 50.0).is_correct is True
    assert scoring_engine.calculate_item_score(item, 49).is_correct is False


@pytest.mark.parametrize("correct,response", [("0.50", "0.5"), ("Infinity", "inf"), ("10", "1e1")])
def test_text_entry_compares_as_text_not_numbers(correct, response):
    item = make_item(correct, type="textEntry")
    result = scoring_engine.calculate_item_score(item, response)
    assert result.is_correct is False
    assert result.score == 0.0


def test_match_correct_without_correct_response():
    result = scoring_engine.calculate_item_score(make_item(None), "A")
    assert (result.score, result.is_correct) == (0.0, False)
    assert result.requires_manual_scoring is True


def test_map_response_is_clamped_to_max():
    item = make_item(["A", "B"], template="map_response", mapping={"A": 0.5, "B": 1.0})
    result = scoring_engine.calculate_item_score(item, ["A", "B"])

    assert result.score == 1.0
    assert result.is_correct is True
    assert result.partial_credit is False


def test_map_response_partial_and_negative():
    item = make_item(["A", "B"], template="map_response", mapping={"A": 0.5, "B": 1.0, "X": -2.0}, max_score=2.0)

    partial = scoring_engine.calculate_item_score(item, ["A"])
    assert (partial.score, partial.partial_credit, partial.is_correct) == (0.5, True, False)

    negative = scoring_engine.calculate_item_score(item, ["X"])
    assert negative.score == 0.0
    assert negative.partial_credit is False

    scalar = scoring_engine.calculate_item_score(item, "B")
    assert scalar.score == 1.0


def test_map_response_without_mapping_matches_correct():
    item = make_item("A", template="map_response")
    assert scoring_engine.calculate_item_score(item, "a").score == 1.0


def test_match_none():
    result = scoring_engine.calculate_item_score(make_item("A", template="match_none"), "A")
    assert (result.score, result.max_score, result.is_correct) == (0.0, 0.0, None)


def test_match_correct_multiple():
    item = make_item(["A", "B"], template="match_correct_multiple")
    assert scoring_engine.calculate_item_score(item, ["b", "A"]).is_correct is True
    assert scoring_engine.calculate_item_score(item, ["A", "B", "C"]).is_correct is False
    assert scoring_engine.calculate_item_score(item, "A").is_correct is False


def test_unknown_template_falls_back_to_match_correct(caplog):
    result = scoring_engine.calculate_item_score(make_item("A", template="exotic_rule"), "A")
    assert result.is_correct is True
    assert "Unknown template: exotic_rule" in caplog.text


def test_template_name():
    assert template_name(RP + "map_response") == "map_response"
    assert template_name(RP + "match_correct.xml") == "match_correct"
    assert template_name("match_none") == "match_none"


def test_scoring_errors_become_manual_zero():
    item = make_item("A")
    item.max_score = "lots"
    result = scoring_engine.calculate_item_score(item, "A")

    assert result.score == 0.0
    assert result.max_score == 1.0
    assert result.requires_manual_scoring is True


def test_requires_manual_scoring():
    engine = ScoringEngine()
    assert engine.requires_manual_scoring(make_item("A", type="extendedText"))
    assert engine.requires_manual_scoring(make_item(None))
    assert engine.requires_manual_scoring(make_item([]))
    assert engine.requires_manual_scoring(make_item("A", template=None, custom_logic=True))
    assert not engine.requires_manual_scoring(make_item("A"))
    assert not engine.requires_manual_scoring(make_item("A", template=None))


def test_custom_logic_flag_without_rules_matches_correct():
    item = make_item("A", template=None, custom_logic=True)
    result = scoring_engine.calculate_item_score(item, "A")
    assert result.is_correct is True
    assert result.requires_manual_scoring is True


def test_conditional_logic():
    logic = {
        "type": "conditional",
        "conditions": [
            {"if": "exact_match", "score": 2},
            {"if": "partial_match", "requirement": ["A"], "score": 1},
            {"else": 0.25},
        ],
    }
    item = make_item(["A", "B"], template=None, custom_logic=logic, max_score=2.0)

    exact = scoring_engine.calculate_item_score(item, ["B", "A"])
    assert (exact.score, exact.is_correct) == (2.0, True)

    partial = scoring_engine.calculate_item_score(item, ["a", "C"])
    assert (partial.score, partial.partial_credit, partial.is_correct) == (1.0, True, False)

    neither = scoring_engine.calculate_item_score(item, ["C"])
    assert neither.score == 0.25


def test_conditional_partial_defaults_to_half():
    logic = {"type": "conditional", "conditions": [{"if": "partial_match", "requirement": ["A"]}]}
    item = make_item(["A", "B"], template=None, custom_logic=logic, max_score=4.0)
    assert scoring_engine.calculate_item_score(item, ["A"]).score == 2.0


def test_range_scoring():
    logic = {
        "type": "range_scoring",
        "score_ranges": [
            {"condition": "exact", "value": 50, "score": 2},
            {"condition": "range", "min": 40, "max": 60, "score": 1},
            {"condition": "default", "score": 0.5},
        ],
    }
    item = make_item("50", type="slider", template=None, custom_logic=logic, max_score=2.0)

    exact = scoring_engine.calculate_item_score(item, "50")
    assert (exact.score, exact.is_correct) == (2.0, True)

    near = scoring_engine.calculate_item_score(item, 45)
    assert (near.score, near.partial_credit, near.is_correct) == (1.0, True, False)

    far = scoring_engine.calculate_item_score(item, 90)
    assert far.score == 0.5

    garbage = scoring_engine.calculate_item_score(item, "abc")
    assert garbage.score == 0.0


def test_string_match():
    insensitive = {"type": "string_match", "acceptable_values": ["Paris", "Lutetia"], "caseSensitive": False}
    item = make_item("Paris", type="textEntry", template=None, custom_logic=insensitive)
    assert scoring_engine.calculate_item_score(item, " lutetia ").is_correct is True
    assert scoring_engine.calculate_item_score(item, "London").score == 0.0

    sensitive = {"type": "string_match"}
    item = make_item("Paris", type="textEntry", template=None, custom_logic=sensitive)
    assert scoring_engine.calculate_item_score(item, "Paris").score == 1.0
    assert scoring_engine.calculate_item_score(item, "paris").score == 0.0


def test_length_based_scoring():
    logic = {
        "type": "length_based_scoring",
        "score_ranges": [
            {"condition": "length_gte", "value": 5, "score": 2},
            {"condition": "length_gte", "value": 2, "score": 1},
            {"condition": "default", "score": 0},
        ],
    }
    item = make_item(None, type="extendedText", template=None, custom_logic=logic, max_score=2.0)

    assert scoring_engine.calculate_item_score(item, "one two three four five").score == 2.0
    assert scoring_engine.calculate_item_score(item, "one two").score == 1.0
    assert scoring_engine.calculate_item_score(item, "one").score == 0.0
    assert scoring_engine.calculate_item_score(item, "one").requires_manual_scoring is True


def test_unknown_custom_logic_type(caplog):
    item = make_item("A", template=None, custom_logic={"type": "astrology"})
    assert scoring_engine.calculate_item_score(item, "A").is_correct is True
    assert "Unknown custom logic type" in caplog.text


def _score(score, max_score, is_correct=None, manual=False) -> ItemScore:
    return ItemScore(item_id="x", score=score, max_score=max_score, is_correct=is_correct,
                     requires_manual_scoring=manual)


def test_total_score():
    total = scoring_engine.calculate_total_score([
        _score(1, 1, True),
        _score(0.5, 2, False),
        _score(0, 1, False, manual=True),
    ])

    assert total.total_score == 1.5
    assert total.max_total_score == 4
    assert total.percentage_score == pytest.approx(37.5)
    assert total.correct_items == 1
    assert total.total_items == 3
    assert total.requires_manual_scoring is True


def test_total_score_of_nothing_does_not_divide_by_zero():
    total = scoring_engine.calculate_total_score([])
    assert total.percentage_score == 0.0
    assert total.requires_manual_scoring is False

    unscored = scoring_engine.calculate_total_score([_score(0, 0)])
    assert unscored.percentage_score == 0.0


def test_engine_instances_agree():
    item = make_item("B")
    assert ScoringEngine().calculate_item_score(item, "B") == scoring_engine.calculate_item_score(item, "B")
