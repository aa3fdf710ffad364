from redis import Redis
from rq import Queue
from dailies.core.config import settings

NOTIFICATIONS_QUEUE = "notifications"


def get_queue(name: str = NOTIFICATIONS_QUEUE) -> Queue:
    redis_conn = Redis.from_url(settings.redis_url)
    return Queue(name, connection=redis_conn, default_timeout=settings.rq_default_timeout)
