"""
Metrics engine: folds a user's vote history and the poll catalog into
Deviance Quotient, Awareness Quotient and point ceilings.

All functions here are pure; MetricsService only wires them to the stores.
"""
import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from isit_game.models.schemas import LastPollMetrics, PollRecord, UserMetrics, VoteRecord

logger = logging.getLogger(__name__)

AQ_BASELINE = 50
AQ_CEILING = 100
DEFAULT_LEVEL = 1

def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))

def fold_poll_correctness(votes: Iterable[VoteRecord]) -> Dict[str, bool]:
    """Map poll_id -> True only if every vote row for that poll is correct.

    A poll starts True on first sighting and is ANDed with each later row;
    once False it stays False whatever order the rows arrive in.
    """
    verdicts: Dict[str, bool] = {}
    for v in votes:
        verdicts[v.poll_id] = verdicts.get(v.poll_id, True) and bool(v.is_correct)
    return verdicts

def stage_zero_level_points(votes: Iterable[VoteRecord]) -> Dict[int, int]:
    points: Dict[int, int] = {}
    for v in votes:
        if v.stage != 0:
            continue
        lvl = v.level or DEFAULT_LEVEL
        points[lvl] = points.get(lvl, 0) + (v.points_earned or 0)
    return points

def compute_aq(level_points: Mapping[int, int]) -> int:
    # No floor on levelAQ: a very negative level drags the average below 0.
    if not level_points:
        return AQ_BASELINE
    total = sum(min(AQ_CEILING, AQ_BASELINE + pts) for pts in level_points.values())
    aq = min(AQ_CEILING, total / len(level_points))
    return round_half_up(aq)

def compute_user_metrics(votes: Iterable[VoteRecord], raw_score: int) -> UserMetrics:
    votes = list(votes)
    verdicts = fold_poll_correctness(votes)
    taken = len(verdicts)
    incorrect = sum(1 for ok in verdicts.values() if not ok)
    return UserMetrics(
        polls_taken=taken,
        polls_incorrect=incorrect,
        overall_dq=(incorrect / taken) if taken > 0 else 0.0,
        raw_score=raw_score or 0,
        aq=compute_aq(stage_zero_level_points(votes)),
    )

def fallback_points(stage: Optional[int], level: Optional[int]) -> int:
    return 2 * max(1, stage or 1) * max(1, level or 1)

def poll_max_points(poll: PollRecord) -> int:
    if poll.type == "multiple_choice":
        return max((o.points or 0 for o in poll.objects), default=0)
    if poll.type == "quad_sorting":
        best = max(poll.quad_scores.values(), default=0) if poll.quad_scores else 0
        return best if best != 0 else fallback_points(poll.stage, poll.level)
    total = sum(o.points or 0 for o in poll.objects)
    return total if total > 0 else fallback_points(poll.stage, poll.level)

def total_possible_points(poll_ids: Iterable[str], polls: Mapping[str, PollRecord]) -> int:
    total = 0
    for pid in dict.fromkeys(poll_ids):
        poll = polls.get(pid)
        if poll is None:
            logger.warning(f"Poll {pid} missing from catalog, skipped in point ceiling")
            continue
        total += poll_max_points(poll)
    return total

def last_poll_metrics(votes: Iterable[VoteRecord]) -> LastPollMetrics:
    votes = list(votes)
    if not votes:
        return LastPollMetrics()
    latest = max(votes, key=lambda v: (v.created_at or datetime.min, v.id or 0))
    rows = [v for v in votes if v.poll_id == latest.poll_id]
    wrong = sum(1 for v in rows if not v.is_correct)
    return LastPollMetrics(
        last_dq=wrong / len(rows),
        last_score=sum(v.points_earned or 0 for v in rows),
    )

class MetricsService:
    def __init__(self, ledger, catalog, profiles):
        self.ledger = ledger
        self.catalog = catalog
        self.profiles = profiles

    def votes(self, user_id: str) -> List[VoteRecord]:
        return self.ledger.get_votes(user_id)

    def get_user_metrics(self, user_id: str, votes: Optional[List[VoteRecord]] = None) -> UserMetrics:
        votes = self.votes(user_id) if votes is None else votes
        metrics = compute_user_metrics(votes, self.profiles.get_score(user_id))
        logger.debug(f"Metrics for {user_id}: {metrics}")
        return metrics

    def get_total_possible_points(self, user_id: str, votes: Optional[List[VoteRecord]] = None) -> int:
        votes = self.votes(user_id) if votes is None else votes
        poll_ids = list(dict.fromkeys(v.poll_id for v in votes))
        if not poll_ids:
            return 0
        polls = {p.id: p for p in self.catalog.get_polls(poll_ids)}
        return total_possible_points(poll_ids, polls)

    def get_last_poll_metrics(self, user_id: str, votes: Optional[List[VoteRecord]] = None) -> LastPollMetrics:
        votes = self.votes(user_id) if votes is None else votes
        return last_poll_metrics(votes)
