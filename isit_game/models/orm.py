from datetime import datetime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Boolean, ForeignKey, JSON, DateTime, func

class Base(DeclarativeBase): pass

class Poll(Base):
    __tablename__ = "polls"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, default="")
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String)
    stage: Mapped[int] = mapped_column(Integer, default=0, index=True)
    level: Mapped[int] = mapped_column(Integer, default=1, index=True)
    poll_order: Mapped[int] = mapped_column(Integer, default=1)
    quad_scores: Mapped[dict | None] = mapped_column(JSON, nullable=True)

class PollObject(Base):
    __tablename__ = "poll_objects"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    poll_id: Mapped[str] = mapped_column(String, ForeignKey("polls.id"), index=True)
    text: Mapped[str] = mapped_column(Text, default="")
    points: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0)
    correct_side: Mapped[str | None] = mapped_column(String, nullable=True)

class PollVote(Base):
    __tablename__ = "poll_votes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    poll_id: Mapped[str] = mapped_column(String, index=True)
    selected_object_id: Mapped[str | None] = mapped_column(String, nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)
    points_earned: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0)
    chosen_side: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

class UserProfile(Base):
    __tablename__ = "user_profiles"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    score: Mapped[int] = mapped_column(Integer, default=0)
    current_stage: Mapped[int] = mapped_column(Integer, default=0)
    current_level: Mapped[int] = mapped_column(Integer, default=1)

class LevelConfiguration(Base):
    __tablename__ = "level_configurations"
    stage: Mapped[int] = mapped_column(Integer, primary_key=True)
    level: Mapped[int] = mapped_column(Integer, primary_key=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    score_tiers: Mapped[list | None] = mapped_column(JSON, nullable=True)
    show_interstitial: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=True)
    enabled_modules: Mapped[list | None] = mapped_column(JSON, nullable=True)

class StageConfiguration(Base):
    __tablename__ = "stage_configurations"
    stage: Mapped[int] = mapped_column(Integer, primary_key=True)
    completion_bonus: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0)
