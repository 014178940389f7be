"""Structured JSON logging with invocation context fields."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter


event_id_ctx: ContextVar[str] = ContextVar("event_id", default="")
user_id_ctx: ContextVar[str] = ContextVar("user_id", default="")
function_ctx: ContextVar[str] = ContextVar("function", default="")


class ContextFilter(logging.Filter):
    """Inject service and invocation identifiers into every log record."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name
        record.event_id = event_id_ctx.get()
        record.user_id = user_id_ctx.get()
        record.function = function_ctx.get()
        return True


def configure_logging(service_name: str, log_level: str = "INFO") -> None:
    """Configure root logger once per process."""

    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter(service_name)
    handler.addFilter(context_filter)
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(service_name)s %(function)s %(event_id)s %(user_id)s %(message)s"
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)
    root.addFilter(context_filter)


logger = logging.getLogger("chargefn")
