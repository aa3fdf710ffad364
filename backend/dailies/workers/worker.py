import logging
from redis import Redis
from rq import Worker
from dailies.core.config import settings
from dailies.core.logging import configure_logging
from dailies.workers.rq_queue import NOTIFICATIONS_QUEUE

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


if __name__ == "__main__":
    redis_conn = Redis.from_url(settings.redis_url)
    worker = Worker([NOTIFICATIONS_QUEUE], connection=redis_conn)
    logger.info("Worker starting", extra={"queue": NOTIFICATIONS_QUEUE})
    worker.work()
