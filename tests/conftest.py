from contextlib import nullcontext
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from isit_game.models.orm import Base, Poll, PollObject, UserProfile, LevelConfiguration, StageConfiguration
from isit_game.core.database import get_db
from isit_game.core.cache import get_progress_lock
from isit_game.main import app

@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool, future=True)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()

@pytest.fixture
def seeded(db):
    """Stage 0 level 1 (two MC polls), stage 1 level 1 (two ISIT polls), stage 2 level 1 (one poll)."""
    db.add_all([
        Poll(id="s0p1", title="Zero one", type="multiple_choice", stage=0, level=1, poll_order=1),
        Poll(id="s0p2", title="Zero two", type="multiple_choice", stage=0, level=1, poll_order=2),
        Poll(id="s1p1", title="One one", type="isit_text", stage=1, level=1, poll_order=1),
        Poll(id="s1p2", title="One two", type="isit_text", stage=1, level=1, poll_order=2),
        Poll(id="s2p1", title="Two one", type="quad_sorting", stage=2, level=1, poll_order=1, quad_scores={"1-2": 4, "1-3": 9}),
        PollObject(id="s0p1:a", poll_id="s0p1", text="Alpha", points=10),
        PollObject(id="s0p1:b", poll_id="s0p1", text="Bravo", points=30),
        PollObject(id="s0p1:c", poll_id="s0p1", text="Charlie", points=5),
        PollObject(id="s0p2:a", poll_id="s0p2", text="Delta", points=20),
        PollObject(id="s1p1:is", poll_id="s1p1", text="Dog", points=0),
        PollObject(id="s1p1:it", poll_id="s1p1", text="Cat", points=0),
        PollObject(id="s1p2:is", poll_id="s1p2", text="Sun", points=3),
        PollObject(id="s1p2:it", poll_id="s1p2", text="Moon", points=3),
        UserProfile(id="u1", score=0, current_stage=0, current_level=1),
        LevelConfiguration(stage=1, level=1, instructions="Your DQ is [[DQ]] and AQ [[AQ]].", show_interstitial=False,
                           score_tiers=[{"tier": "C", "min_score": 0, "message": "Keep going, [[PointTotal]] pts"},
                                        {"tier": "A", "min_score": 10, "message": "Great! AQ [[aq]]", "title": "Ace"}]),
        StageConfiguration(stage=1, completion_bonus=25),
    ])
    db.commit()
    return db

@pytest.fixture
def client(seeded):
    def _get_db():
        yield seeded
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_progress_lock] = lambda: (lambda user_id: nullcontext())
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
