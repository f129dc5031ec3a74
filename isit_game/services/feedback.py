"""
Level-up feedback: picks the score tier for a finished level and renders
its text with the user's current metrics.
"""
from typing import Optional

from pydantic import BaseModel

from isit_game.models.schemas import MessageVariables
from isit_game.services.completion import level_bonus_awarded, summarize_level
from isit_game.services.messages import replace_message_variables
from isit_game.services.metrics import MetricsService
from isit_game.services.tiers import resolve_tier

DEFAULT_INSTRUCTIONS = "Fantastic work! You've mastered this level."

class LevelMessage(BaseModel):
    stage: int
    level: int
    level_points: int
    bonus: int
    tier_score: int
    instructions: str
    tier: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None

class FeedbackService:
    def __init__(self, ledger, catalog, profiles):
        self.ledger = ledger
        self.catalog = catalog
        self.metrics = MetricsService(ledger, catalog, profiles)

    def message_variables(self, user_id: str) -> MessageVariables:
        votes = self.metrics.votes(user_id)
        m = self.metrics.get_user_metrics(user_id, votes)
        last = self.metrics.get_last_poll_metrics(user_id, votes)
        return MessageVariables(dq=m.overall_dq, aq=m.aq, point_total=m.raw_score,
                                last_dq=last.last_dq, last_score=last.last_score)

    def render(self, user_id: str, text: str) -> str:
        return replace_message_variables(text, self.message_variables(user_id))

    def level_message(self, user_id: str, stage: int, level: int) -> LevelMessage:
        bucket = self.catalog.get_polls_in_bucket(stage, level)
        summary = summarize_level(self.ledger.get_votes_for_polls(user_id, bucket))
        bonus = level_bonus_awarded(stage, summary)
        tier_score = summary.points + bonus
        variables = self.message_variables(user_id)

        config = self.catalog.get_level_config(stage, level)
        instructions = (config.instructions if config else None) or DEFAULT_INSTRUCTIONS
        out = LevelMessage(stage=stage, level=level, level_points=summary.points, bonus=bonus, tier_score=tier_score,
                           instructions=replace_message_variables(instructions, variables))
        if config and config.score_tiers:
            matched = resolve_tier(config.score_tiers, tier_score)
            if matched:
                out.tier = matched.tier
                out.title = matched.title
                out.message = replace_message_variables(matched.message, variables)
        return out
