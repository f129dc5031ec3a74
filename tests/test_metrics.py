from datetime import datetime, timedelta
from isit_game.models.schemas import VoteRecord, PollRecord, PollObjectRecord
from isit_game.services.metrics import (
    compute_aq, compute_user_metrics, fold_poll_correctness, last_poll_metrics,
    poll_max_points, stage_zero_level_points, total_possible_points,
)

def vote(poll_id, ok, pts=0, stage=1, level=1, **kw):
    return VoteRecord(user_id="u1", poll_id=poll_id, is_correct=ok, points_earned=pts, stage=stage, level=level, **kw)

def test_any_incorrect_vote_marks_poll_incorrect_regardless_of_order():
    for rows in ([vote("A", True), vote("A", False)], [vote("A", False), vote("A", True)]):
        assert fold_poll_correctness(rows) == {"A": False}
        m = compute_user_metrics(rows, 0)
        assert (m.polls_taken, m.polls_incorrect, m.overall_dq) == (1, 1, 1.0)

def test_dq_is_ratio_of_incorrect_polls():
    rows = [vote("A", True), vote("A", True), vote("B", False), vote("C", True), vote("D", True)]
    m = compute_user_metrics(rows, 12)
    assert m.polls_taken == 4 and m.polls_incorrect == 1
    assert m.overall_dq == 0.25
    assert m.raw_score == 12

def test_empty_history_defaults():
    m = compute_user_metrics([], 0)
    assert (m.polls_taken, m.polls_incorrect, m.overall_dq, m.aq) == (0, 0, 0.0, 50)

def test_repeated_computation_is_identical():
    rows = [vote("A", True, 5, stage=0), vote("B", False, -3, stage=0, level=2)]
    assert compute_user_metrics(rows, 7) == compute_user_metrics(rows, 7)

def test_aq_clamps_each_level_at_100():
    assert compute_aq({1: 60}) == 100
    assert compute_aq({1: 60, 2: 0}) == 75

def test_aq_only_counts_stage_zero_and_defaults_missing_level():
    rows = [vote("A", True, 10, stage=0, level=None), vote("B", True, 40, stage=1), vote("C", True, 4, stage=0, level=1)]
    assert stage_zero_level_points(rows) == {1: 14}
    assert compute_user_metrics(rows, 0).aq == 64

def test_aq_is_not_floored_for_negative_levels():
    assert compute_aq({1: -80}) == -30

def test_aq_rounds_half_up():
    assert compute_aq({1: 0, 2: 1}) == 51

def test_multiple_choice_ceiling_is_best_object():
    poll = PollRecord(id="mc", type="multiple_choice", stage=0, level=1,
                      objects=[PollObjectRecord(id=str(p), points=p) for p in (10, 30, 5)])
    assert poll_max_points(poll) == 30

def test_quad_ceiling_uses_scores_or_fallback():
    assert poll_max_points(PollRecord(id="q", type="quad_sorting", stage=2, level=3, quad_scores={"1-2": 4, "1-4": 9})) == 9
    assert poll_max_points(PollRecord(id="q", type="quad_sorting", stage=2, level=3)) == 12
    assert poll_max_points(PollRecord(id="q", type="quad_sorting", stage=0, level=1, quad_scores={})) == 2

def test_binary_ceiling_sums_objects_or_falls_back():
    objs = [PollObjectRecord(id="is", points=3), PollObjectRecord(id="it", points=4)]
    assert poll_max_points(PollRecord(id="b", type="isit_text", stage=1, level=1, objects=objs)) == 7
    zero = [PollObjectRecord(id="is"), PollObjectRecord(id="it")]
    assert poll_max_points(PollRecord(id="b", type="isit_image", stage=3, level=2, objects=zero)) == 12

def test_total_possible_skips_missing_polls():
    polls = {"mc": PollRecord(id="mc", type="multiple_choice", objects=[PollObjectRecord(id="a", points=8)])}
    assert total_possible_points(["mc", "gone", "mc"], polls) == 8

def test_last_poll_metrics_uses_latest_vote():
    t0 = datetime(2024, 1, 1)
    rows = [
        vote("A", False, 1, created_at=t0, id=1),
        vote("B", True, 4, created_at=t0 + timedelta(minutes=1), id=2),
        vote("B", False, 2, created_at=t0 + timedelta(minutes=1), id=3),
    ]
    last = last_poll_metrics(rows)
    assert last.last_dq == 0.5
    assert last.last_score == 6
    assert last_poll_metrics([]).last_score == 0
