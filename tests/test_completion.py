from isit_game.models.schemas import VoteRecord
from isit_game.services.completion import check_level_completion, level_bonus_awarded, next_bucket, summarize_level

def test_level_incomplete_until_every_poll_voted():
    assert check_level_completion(1, 2, ["p1", "p2", "p3"], ["p1", "p2"]).completed is False
    done = check_level_completion(1, 2, ["p1", "p2", "p3"], ["p3", "p1", "p2", "p2"])
    assert done.completed is True
    assert (done.stage, done.level, done.total_polls, done.voted_polls) == (1, 2, 3, 3)

def test_votes_outside_bucket_do_not_count():
    c = check_level_completion(0, 1, ["p1", "p2"], ["p1", "x9"])
    assert c.completed is False and c.voted_polls == 1

def test_empty_bucket_is_never_complete():
    assert check_level_completion(4, 1, [], ["p1"]).completed is False

def test_level_summary_bonus():
    rows = [VoteRecord(user_id="u", poll_id=f"p{i}", is_correct=i != 0, points_earned=3) for i in range(4)]
    s = summarize_level(rows)
    assert (s.total_votes, s.correct_votes, s.dq, s.points) == (4, 3, 0.25, 12)
    assert s.bonus == 10
    assert level_bonus_awarded(1, s) == 10
    assert level_bonus_awarded(0, s) == 0

def test_next_bucket_prefers_next_level_then_next_stage():
    buckets = {(1, 1), (1, 2), (2, 1)}
    has = lambda s, l: (s, l) in buckets
    assert next_bucket(1, 1, has) == (1, 2)
    assert next_bucket(1, 2, has) == (2, 1)
    assert next_bucket(2, 1, has) is None
