import logging
import sys
import uuid
from contextvars import ContextVar
from pythonjsonlogger import jsonlogger

request_id_ctx_var: ContextVar[str] = ContextVar("request_id", default="-")
actor_id_ctx_var: ContextVar[int | None] = ContextVar("actor_id", default=None)


def get_request_id() -> str:
    return request_id_ctx_var.get()


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        record.actor_id = actor_id_ctx_var.get()
        return True


def configure_logging(level: str = "INFO") -> None:
    logger = logging.getLogger()
    logger.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(actor_id)s"
    )
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())
    logger.handlers = [handler]


def ensure_request_id(value: str | None) -> str:
    return value or str(uuid.uuid4())
