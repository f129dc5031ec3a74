from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from sqlalchemy.orm import Session
from isit_game.core.database import get_db
from isit_game.core.cache import get_progress_lock, ProgressBusy
from isit_game.models.schemas import VoteRecord
from isit_game.services.stores import VoteLedgerStore, PollCatalogStore, ProfileStore
from isit_game.services.progression import ProgressionService, PollNotFound

router = APIRouter()

class VoteIn(BaseModel):
  selected_object_id: Optional[str] = None
  is_correct: bool
  points_earned: int = 0
  chosen_side: Optional[Literal["IS", "IT"]] = None

class VoteSubmit(BaseModel):
  user_id: str = Field(min_length=1)
  votes: List[VoteIn] = Field(min_length=1)

class VoteResult(BaseModel):
  ok: bool = True
  points: int
  level_up: bool
  stage: int
  level: int
  bonus: int = 0
  stage_bonus: int = 0
  dq: Optional[float] = None
  total_votes: Optional[int] = None
  correct_votes: Optional[int] = None
  total_polls: int
  level_points: Optional[int] = None
  next_stage: Optional[int] = None
  next_level: Optional[int] = None
  show_interstitial: bool = True

@router.post("/{poll_id}/votes", response_model=VoteResult)
def submit_votes(poll_id: str, payload: VoteSubmit, db: Session = Depends(get_db), lock=Depends(get_progress_lock)):
  svc = ProgressionService(db, VoteLedgerStore(db), PollCatalogStore(db), ProfileStore(db), lock=lock)
  rows = [VoteRecord(user_id=payload.user_id, poll_id=poll_id, **v.model_dump()) for v in payload.votes]
  try:
    out = svc.submit_votes(payload.user_id, poll_id, rows)
  except PollNotFound:
    raise HTTPException(404, "Poll not found")
  except ProgressBusy:
    raise HTTPException(409, "Another vote is being processed")
  s = out.summary
  return VoteResult(
    points=out.points, level_up=out.completion.completed, stage=out.completion.stage, level=out.completion.level,
    bonus=out.bonus, stage_bonus=out.stage_bonus, total_polls=out.completion.total_polls,
    dq=s.dq if s else None, total_votes=s.total_votes if s else None, correct_votes=s.correct_votes if s else None,
    level_points=s.points if s else None, next_stage=out.next_stage, next_level=out.next_level,
    show_interstitial=out.show_interstitial,
  )
