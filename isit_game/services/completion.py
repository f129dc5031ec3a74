"""
Level completion and the end-of-level summary.
"""
from typing import Iterable, Optional, Tuple

from isit_game.models.schemas import LevelCompletion, LevelSummary, VoteRecord
from isit_game.services.metrics import round_half_up

def check_level_completion(stage: int, level: int, bucket_poll_ids: Iterable[str], voted_poll_ids: Iterable[str]) -> LevelCompletion:
    """True iff every poll in the (stage, level) bucket has at least one vote.

    An empty bucket is never complete, so a level without polls cannot
    trigger advancement.
    """
    bucket = set(bucket_poll_ids)
    voted = set(voted_poll_ids) & bucket
    return LevelCompletion(
        stage=stage, level=level,
        completed=bool(bucket) and bucket <= voted,
        total_polls=len(bucket), voted_polls=len(voted),
    )

def summarize_level(votes: Iterable[VoteRecord]) -> LevelSummary:
    votes = list(votes)
    total = len(votes)
    correct = sum(1 for v in votes if v.is_correct)
    dq = (total - correct) / total if total > 0 else 0.0
    points = sum(v.points_earned or 0 for v in votes)
    return LevelSummary(total_votes=total, correct_votes=correct, dq=dq, points=points, bonus=round_half_up(points / (1 + dq)))

def level_bonus_awarded(stage: int, summary: LevelSummary) -> int:
    return summary.bonus if stage > 0 and summary.bonus > 0 else 0

def next_bucket(stage: int, level: int, has_bucket) -> Optional[Tuple[int, int]]:
    if has_bucket(stage, level + 1):
        return stage, level + 1
    if has_bucket(stage + 1, 1):
        return stage + 1, 1
    return None
