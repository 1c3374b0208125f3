"""Structured logging for the skills worker.

Entries are single JSON objects with the fields the web core indexes:
``timestamp``, ``level``, ``service``, ``event`` plus the ``request_id`` and
``project_id`` of the NATS message being handled.
"""

from __future__ import annotations

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener

import structlog

_listener: QueueListener | None = None


def setup_logging(service: str = "notepilot-worker", level: str = "info", json_output: bool = True) -> None:
    """Route structlog and stdlib logging through one background writer.

    Calling it again replaces the previous writer, so tests can reconfigure
    freely. ``json_output=False`` renders plain console lines for local runs.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_start_listener(log_level))
    root.setLevel(log_level)

    structlog.configure(
        processors=_processors(service, json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def stop_logging() -> None:
    """Flush pending records and stop the writer thread. Safe to call twice."""
    global _listener
    if _listener is not None:
        _listener.stop()
        _listener = None


def bind_request_context(request_id: str = "", project_id: int | None = None) -> None:
    """Tag every following log line of this task with the message identifiers."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, project_id=project_id)


def _start_listener(log_level: int) -> QueueHandler:
    """(Re)start the stdout writer thread and return the handler that feeds it."""
    global _listener
    stop_logging()

    records: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=10_000)
    stdout = logging.StreamHandler(sys.stdout)
    stdout.setLevel(log_level)
    _listener = QueueListener(records, stdout, respect_handler_level=True)
    _listener.start()
    return QueueHandler(records)


def _processors(service: str, json_output: bool) -> list[structlog.types.Processor]:
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _stamp_service(service),
        renderer,
    ]


def _stamp_service(service: str) -> structlog.types.Processor:
    def processor(
        _logger: structlog.types.WrappedLogger,
        _method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["service"] = service
        return event_dict

    return processor
