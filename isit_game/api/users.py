from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from isit_game.core.database import get_db
from isit_game.core.cache import get_progress_lock, ProgressBusy
from isit_game.services.stores import VoteLedgerStore, PollCatalogStore, ProfileStore
from isit_game.services.metrics import MetricsService
from isit_game.services.progression import ProgressionService
from isit_game.services.feedback import FeedbackService, LevelMessage

router = APIRouter()

class MetricsOut(BaseModel):
    polls_taken: int; polls_incorrect: int; overall_dq: float; raw_score: int; aq: int
    total_possible_points: int; last_dq: float; last_score: int

@router.get("/{user_id}/metrics", response_model=MetricsOut)
def user_metrics(user_id: str, db: Session = Depends(get_db)):
    svc = MetricsService(VoteLedgerStore(db), PollCatalogStore(db), ProfileStore(db))
    votes = svc.votes(user_id)
    m = svc.get_user_metrics(user_id, votes)
    last = svc.get_last_poll_metrics(user_id, votes)
    return MetricsOut(**m.model_dump(), total_possible_points=svc.get_total_possible_points(user_id, votes),
                      last_dq=last.last_dq, last_score=last.last_score)

class AdvanceIn(BaseModel):
    stage: int = Field(ge=0); level: int = Field(ge=1)

class AdvanceOut(BaseModel):
    moved: bool; current_stage: int; current_level: int

@router.post("/{user_id}/advance", response_model=AdvanceOut)
def advance(user_id: str, payload: AdvanceIn, db: Session = Depends(get_db), lock=Depends(get_progress_lock)):
    profiles = ProfileStore(db)
    svc = ProgressionService(db, VoteLedgerStore(db), PollCatalogStore(db), profiles, lock=lock)
    try:
        moved = svc.advance(user_id, payload.stage, payload.level)
    except ProgressBusy:
        raise HTTPException(409, "Another vote is being processed")
    p = profiles.get_profile(user_id)
    return AdvanceOut(moved=moved, current_stage=p.current_stage, current_level=p.current_level)

@router.get("/{user_id}/levels/{stage}/{level}/message", response_model=LevelMessage)
def level_message(user_id: str, stage: int, level: int, db: Session = Depends(get_db)):
    svc = FeedbackService(VoteLedgerStore(db), PollCatalogStore(db), ProfileStore(db))
    return svc.level_message(user_id, stage, level)
