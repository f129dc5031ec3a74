"""
Vote flow: append votes, detect level completion, award bonuses and move
the user's stage/level pointer.
"""
import logging
from contextlib import nullcontext
from typing import List, Optional

from pydantic import BaseModel

from isit_game.models.schemas import LevelCompletion, LevelSummary, PollRecord, VoteRecord
from isit_game.services.completion import check_level_completion, level_bonus_awarded, next_bucket, summarize_level

logger = logging.getLogger(__name__)

PATH_SELECTOR = "path_selector"

class PollNotFound(Exception):
    pass

class VoteOutcome(BaseModel):
    poll_id: str
    points: int
    completion: LevelCompletion
    newly_completed: bool = False
    summary: Optional[LevelSummary] = None
    bonus: int = 0
    stage_bonus: int = 0
    next_stage: Optional[int] = None
    next_level: Optional[int] = None
    show_interstitial: bool = True

class ProgressionService:
    """Runs each vote flow as one unit of work on the session shared by the stores."""

    def __init__(self, db, ledger, catalog, profiles, lock=None):
        self.db = db
        self.ledger = ledger
        self.catalog = catalog
        self.profiles = profiles
        self.lock = lock or (lambda user_id: nullcontext())

    def submit_votes(self, user_id: str, poll_id: str, votes: List[VoteRecord]) -> VoteOutcome:
        poll = self.catalog.get_poll(poll_id)
        if poll is None:
            raise PollNotFound(poll_id)
        with self.lock(user_id):
            try:
                outcome = self._record(user_id, poll, votes)
                self.db.commit()
                return outcome
            except Exception:
                self.db.rollback()
                logger.error(f"Vote flow for {user_id} on {poll_id} rolled back", exc_info=True)
                raise

    def _record(self, user_id: str, poll: PollRecord, votes: List[VoteRecord]) -> VoteOutcome:
        seen_before = self.ledger.has_voted(user_id, poll.id)
        rows = [v.model_copy(update={"user_id": user_id, "poll_id": poll.id}) for v in votes]
        self.ledger.append_votes(rows)
        points = sum(v.points_earned or 0 for v in rows)
        if points:
            self.profiles.add_score(user_id, points)
            logger.info(f"Score for {user_id} changed by {points}")

        bucket = self.catalog.get_polls_in_bucket(poll.stage, poll.level)
        voted = self.ledger.voted_poll_ids(user_id, bucket)
        completion = check_level_completion(poll.stage, poll.level, bucket, voted)
        logger.info(f"Completion S{poll.stage} L{poll.level} for {user_id}: "
                    f"{completion.voted_polls}/{completion.total_polls}")
        outcome = VoteOutcome(poll_id=poll.id, points=points, completion=completion)
        if not completion.completed:
            return outcome

        config = self.catalog.get_level_config(poll.stage, poll.level)
        outcome.show_interstitial = config.show_interstitial if config else True
        summary = summarize_level(self.ledger.get_votes_for_polls(user_id, bucket))
        outcome.summary = summary
        # a path selector lets the user pick where to go, so no next pointer or stage bonus
        path_selector = bool(config) and PATH_SELECTOR in config.enabled_modules
        nxt = None if path_selector else next_bucket(poll.stage, poll.level, self.catalog.has_bucket)
        if nxt:
            outcome.next_stage, outcome.next_level = nxt
        if seen_before:
            # re-vote inside an already completed level
            return outcome

        outcome.newly_completed = True
        outcome.bonus = level_bonus_awarded(poll.stage, summary)
        if outcome.bonus:
            self.profiles.add_score(user_id, outcome.bonus)
            logger.info(f"Level S{poll.stage} L{poll.level} complete for {user_id}, bonus {outcome.bonus}")
        if nxt and nxt[0] > poll.stage:
            stage_bonus = self.catalog.get_stage_bonus(poll.stage)
            if stage_bonus > 0:
                self.profiles.add_score(user_id, stage_bonus)
                outcome.stage_bonus = stage_bonus
                logger.info(f"Stage {poll.stage} complete for {user_id}, stage bonus {stage_bonus}")
        return outcome

    def advance(self, user_id: str, stage: int, level: int) -> bool:
        with self.lock(user_id):
            try:
                moved = self.profiles.set_stage_level(user_id, stage, level)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
        if moved:
            logger.info(f"Advanced {user_id} to S{stage} L{level}")
        else:
            logger.info(f"Ignored backward or repeated advance for {user_id} to S{stage} L{level}")
        return moved
