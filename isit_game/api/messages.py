from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session
from isit_game.core.database import get_db
from isit_game.services.stores import VoteLedgerStore, PollCatalogStore, ProfileStore
from isit_game.services.feedback import FeedbackService

router = APIRouter()

class RenderIn(BaseModel):
    user_id: str
    text: str

@router.post("/render")
def render(payload: RenderIn, db: Session = Depends(get_db)):
    svc = FeedbackService(VoteLedgerStore(db), PollCatalogStore(db), ProfileStore(db))
    return {"text": svc.render(payload.user_id, payload.text)}
