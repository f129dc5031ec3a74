"""
SQLAlchemy-backed collaborators: vote ledger, poll catalog and profile store.

Rows are converted into pydantic records here so the scoring code never
touches ORM objects.
"""
import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy import select, func
from sqlalchemy.orm import Session
from pydantic import ValidationError

from isit_game.models.orm import Poll, PollObject, PollVote, UserProfile, LevelConfiguration, StageConfiguration
from isit_game.models.schemas import (
    LevelConfigRecord, PollObjectRecord, PollRecord, ProfileRecord, ScoreTier, VoteRecord,
)

logger = logging.getLogger(__name__)

def _vote_record(v: PollVote, stage: Optional[int], level: Optional[int]) -> VoteRecord:
    return VoteRecord(
        id=v.id, user_id=v.user_id, poll_id=v.poll_id, selected_object_id=v.selected_object_id,
        is_correct=bool(v.is_correct), points_earned=v.points_earned or 0, chosen_side=v.chosen_side,
        created_at=v.created_at, stage=stage, level=level,
    )

class VoteLedgerStore:
    def __init__(self, db: Session):
        self.db = db

    def _joined(self, user_id: str):
        return (select(PollVote, Poll.stage, Poll.level)
                .outerjoin(Poll, Poll.id == PollVote.poll_id)
                .where(PollVote.user_id == user_id)
                .order_by(PollVote.id))

    def get_votes(self, user_id: str) -> List[VoteRecord]:
        rows = self.db.execute(self._joined(user_id)).all()
        return [_vote_record(r[0], r[1], r[2]) for r in rows]

    def get_votes_for_polls(self, user_id: str, poll_ids: Iterable[str]) -> List[VoteRecord]:
        ids = list(poll_ids)
        if not ids:
            return []
        rows = self.db.execute(self._joined(user_id).where(PollVote.poll_id.in_(ids))).all()
        return [_vote_record(r[0], r[1], r[2]) for r in rows]

    def voted_poll_ids(self, user_id: str, poll_ids: Iterable[str]) -> Set[str]:
        ids = list(poll_ids)
        if not ids:
            return set()
        stmt = select(PollVote.poll_id).where(PollVote.user_id == user_id, PollVote.poll_id.in_(ids)).distinct()
        return set(self.db.execute(stmt).scalars().all())

    def has_voted(self, user_id: str, poll_id: str) -> bool:
        stmt = select(func.count(PollVote.id)).where(PollVote.user_id == user_id, PollVote.poll_id == poll_id)
        return (self.db.scalar(stmt) or 0) > 0

    def append_votes(self, votes: Iterable[VoteRecord]) -> List[int]:
        rows = [PollVote(user_id=v.user_id, poll_id=v.poll_id, selected_object_id=v.selected_object_id,
                         is_correct=v.is_correct, points_earned=v.points_earned, chosen_side=v.chosen_side)
                for v in votes]
        self.db.add_all(rows)
        self.db.flush()
        return [r.id for r in rows]

class PollCatalogStore:
    def __init__(self, db: Session):
        self.db = db

    def get_polls(self, ids: Iterable[str]) -> List[PollRecord]:
        ids = list(ids)
        if not ids:
            return []
        polls = self.db.execute(select(Poll).where(Poll.id.in_(ids))).scalars().all()
        objs = self.db.execute(select(PollObject).where(PollObject.poll_id.in_(ids))).scalars().all()
        by_poll: dict = {}
        for o in objs:
            by_poll.setdefault(o.poll_id, []).append(
                PollObjectRecord(id=o.id, text=o.text or "", points=o.points or 0, correct_side=o.correct_side))
        return [PollRecord(id=p.id, type=p.type, stage=p.stage or 0, level=p.level or 1, poll_order=p.poll_order or 1,
                           objects=by_poll.get(p.id, []), quad_scores=p.quad_scores or None) for p in polls]

    def get_poll(self, poll_id: str) -> Optional[PollRecord]:
        found = self.get_polls([poll_id])
        return found[0] if found else None

    def get_polls_in_bucket(self, stage: int, level: int) -> List[str]:
        stmt = select(Poll.id).where(Poll.stage == stage, Poll.level == level).order_by(Poll.poll_order)
        return list(self.db.execute(stmt).scalars().all())

    def has_bucket(self, stage: int, level: int) -> bool:
        stmt = select(func.count(Poll.id)).where(Poll.stage == stage, Poll.level == level)
        return (self.db.scalar(stmt) or 0) > 0

    def get_level_config(self, stage: int, level: int) -> Optional[LevelConfigRecord]:
        row = self.db.get(LevelConfiguration, {"stage": stage, "level": level})
        if not row:
            return None
        tiers = None
        if row.score_tiers:
            tiers = []
            for t in row.score_tiers:
                try:
                    tiers.append(ScoreTier.model_validate(t))
                except ValidationError as e:
                    logger.warning(f"Skipping malformed score tier {t!r} for S{stage} L{level}: {e.error_count()} error(s)")
        return LevelConfigRecord(stage=row.stage, level=row.level, instructions=row.instructions, score_tiers=tiers,
                                 show_interstitial=row.show_interstitial is not False,
                                 enabled_modules=row.enabled_modules or [])

    def get_stage_bonus(self, stage: int) -> int:
        row = self.db.get(StageConfiguration, stage)
        return (row.completion_bonus or 0) if row else 0

class ProfileStore:
    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        row = self.db.get(UserProfile, user_id)
        if not row:
            return None
        return ProfileRecord(id=row.id, score=row.score or 0, current_stage=row.current_stage or 0,
                             current_level=row.current_level or 1)

    def get_score(self, user_id: str) -> int:
        profile = self.get_profile(user_id)
        if profile is None:
            logger.warning(f"No profile for {user_id}, score defaults to 0")
            return 0
        return profile.score

    def _get_or_create(self, user_id: str) -> UserProfile:
        row = self.db.get(UserProfile, user_id, with_for_update=True)
        if row is None:
            row = UserProfile(id=user_id, score=0, current_stage=0, current_level=1)
            self.db.add(row)
        return row

    def add_score(self, user_id: str, delta: int) -> int:
        row = self._get_or_create(user_id)
        row.score = (row.score or 0) + delta
        self.db.flush()
        return row.score

    def set_stage_level(self, user_id: str, stage: int, level: int) -> bool:
        """Move the stage/level pointer forward; never backward. Returns whether it moved."""
        row = self._get_or_create(user_id)
        current = (row.current_stage or 0, row.current_level or 1)
        if (stage, level) <= current:
            self.db.flush()
            return False
        row.current_stage, row.current_level = stage, level
        self.db.flush()
        return True
