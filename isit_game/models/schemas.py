"""
Typed records exchanged between the stores and the scoring engine.
"""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

class PollObjectRecord(BaseModel):
    id: str
    text: str = ""
    points: int = 0
    correct_side: Optional[str] = None

class PollRecord(BaseModel):
    id: str
    type: str  # isit_text | isit_image | multiple_choice | quad_sorting
    stage: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    poll_order: int = 1
    objects: List[PollObjectRecord] = Field(default_factory=list)
    quad_scores: Optional[Dict[str, int]] = None

class VoteRecord(BaseModel):
    """A ledger row joined with the stage/level of its poll (None when the poll is gone)."""
    id: Optional[int] = None
    user_id: str
    poll_id: str
    selected_object_id: Optional[str] = None
    is_correct: bool = False
    points_earned: int = 0
    chosen_side: Optional[str] = None
    created_at: Optional[datetime] = None
    stage: Optional[int] = None
    level: Optional[int] = None

class ProfileRecord(BaseModel):
    id: str
    score: int = 0
    current_stage: int = 0
    current_level: int = 1

class UserMetrics(BaseModel):
    polls_taken: int
    polls_incorrect: int
    overall_dq: float
    raw_score: int
    aq: int

class LastPollMetrics(BaseModel):
    last_dq: float = 0.0
    last_score: int = 0

class MessageVariables(BaseModel):
    dq: float = 0.0
    aq: float = 0
    point_total: float = 0
    last_dq: float = 0.0
    last_score: float = 0

class ScoreTier(BaseModel):
    tier: str
    min_score: int
    message: str = ""
    title: Optional[str] = None

class LevelConfigRecord(BaseModel):
    stage: int
    level: int
    instructions: Optional[str] = None
    score_tiers: Optional[List[ScoreTier]] = None
    show_interstitial: bool = True
    enabled_modules: List[str] = Field(default_factory=list)

class LevelCompletion(BaseModel):
    stage: int
    level: int
    completed: bool
    total_polls: int
    voted_polls: int

class LevelSummary(BaseModel):
    total_votes: int
    correct_votes: int
    dq: float
    points: int
    bonus: int
