import logging
from contextlib import contextmanager
import redis
from isit_game.core.config import REDIS_URL, PROGRESS_LOCK_TTL

logger = logging.getLogger(__name__)

redis_client = redis.Redis.from_url(REDIS_URL, decode_responses=True)

class ProgressBusy(Exception):
    """Another vote flow for the same user holds the progression lock."""

def progress_key(user_id: str) -> str:
    return f"progress:{user_id}"

@contextmanager
def progress_lock(user_id: str):
    key = progress_key(user_id)
    if not redis_client.set(key, "1", nx=True, ex=PROGRESS_LOCK_TTL):
        logger.info(f"Progress lock busy for {user_id}")
        raise ProgressBusy(user_id)
    try:
        yield
    finally:
        redis_client.delete(key)

def get_progress_lock():
    return progress_lock
