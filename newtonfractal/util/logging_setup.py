import contextlib
import contextvars
import logging
import logging.handlers
import queue
from typing import Any, Iterator, Optional

_LOGGER_NAME = "newtonfractal"
_NO_REQUEST = "-"

_current_request: contextvars.ContextVar = contextvars.ContextVar("newtonfractal_request", default=_NO_REQUEST)


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)


@contextlib.contextmanager
def request_context(request_id: Any) -> Iterator[None]:
    """Tag every record logged from this thread with ``request_id`` until exit."""
    token = _current_request.set(_NO_REQUEST if request_id is None else str(request_id))
    try:
        yield
    finally:
        _current_request.reset(token)


class RequestContextFilter(logging.Filter):
    """Stamps ``record.request`` with the id of the request being rendered.

    Records that already carry one (re-emitted by the queue listener) keep it.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request"):
            record.request = _current_request.get()
        return True


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s.%(msecs)03dZ [%(threadName)s req=%(request)s] %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, fmt: Optional[logging.Formatter]) -> None:
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    if fmt is not None:
        handler.setFormatter(fmt)
    logger.addHandler(handler)


def _reset(level: int) -> logging.Logger:
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)
    return logger


def configure_root_logging(
    *,
    level: int = logging.INFO,
    console: bool = True,
    log_file: Optional[str] = "newtonfractal.log",
    rotate_bytes: int = 5 * 1024 * 1024,
    rotate_count: int = 5,
) -> logging.Logger:
    """Console and rotating-file output for the package logger.

    Lines carry the emitting thread (``newton-band_N`` for band workers)
    and the request id, so interleaved bands of concurrent requests stay
    attributable.
    """
    logger = _reset(level)
    fmt = _build_formatter()
    if console:
        _attach(logger, logging.StreamHandler(), level, fmt)
    if log_file:
        _attach(
            logger,
            logging.handlers.RotatingFileHandler(log_file, maxBytes=rotate_bytes, backupCount=rotate_count, encoding="utf-8"),
            level,
            fmt,
        )
    return logger


def create_log_queue() -> queue.Queue:
    return queue.Queue(-1)


def start_queue_listener(log_queue: queue.Queue, listener_logger: logging.Logger) -> logging.handlers.QueueListener:
    listener = logging.handlers.QueueListener(log_queue, *listener_logger.handlers, respect_handler_level=True)
    listener.start()
    return listener


def route_through_queue(log_queue: queue.Queue, *, level: int = logging.INFO) -> None:
    """Swap the package logger's handlers for a single QueueHandler.

    Band worker threads then only enqueue records; the listener started by
    :func:`start_queue_listener` does the console and file I/O. The request
    id is stamped here, in the emitting thread, before the record is queued.
    """
    _attach(_reset(level), logging.handlers.QueueHandler(log_queue), level, None)
