from typing import Iterable, Optional
from isit_game.models.schemas import ScoreTier

def resolve_tier(tiers: Iterable[ScoreTier], score: float) -> Optional[ScoreTier]:
    """Highest tier whose floor the score reaches; None when no floor is low enough."""
    for tier in sorted(tiers, key=lambda t: t.min_score, reverse=True):
        if score >= tier.min_score:
            return tier
    return None
