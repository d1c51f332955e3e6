import pytest

from ekman.core.DataModel import MatchResult, OverlayResult
from ekman.core.Ranker import best_score, rank_results


def _result(name, score=0.0, error=None, compared=4):
    if error is not None:
        return OverlayResult(name=name, width=2, height=2, error=error)
    m = MatchResult(name=name, offset=(0, 0), score=score, compared_pixels=compared)
    return OverlayResult(name=name, width=2, height=2, matches=[m])


@pytest.fixture
def results():
    return [
        _result("slow", error="timed out after 1s"),
        _result("mid", 12.5),
        _result("blank", None, compared=0),
        _result("best", 0.0),
        _result("mid-too", 12.5),
    ]


def test_input_order_is_default(results):
    assert [r.name for r in rank_results(results)] == ["slow", "mid", "blank", "best", "mid-too"]


def test_score_order(results):
    ranked = rank_results(results, "score")
    assert [r.name for r in ranked] == ["best", "mid", "mid-too", "blank", "slow"]


def test_undefined_never_ranks_as_zero():
    ranked = rank_results([_result("blank", None, compared=0), _result("zero", 0.0)], "score")
    assert [r.name for r in ranked] == ["zero", "blank"]


def test_best_score(results):
    assert best_score(results[0]) is None
    assert best_score(results[1]) == 12.5


def test_unknown_order(results):
    with pytest.raises(ValueError):
        rank_results(results, "random")
