"""
Logging and console output for the SDK and the mock service.

Library modules only call ``logging.getLogger(__name__)``, so nothing is
emitted until someone opts in. ``setup_logging`` attaches a single handler
to the SDK logger hierarchy (``common``, ``transports``, ``orchestrator``)
plus the application's own logger; the root logger is left alone. The
Client calls it when ``log_level`` is set, the mock service when it runs
as a server.

Functions:
    setup_logging      - Attach the SDK handler and return the app logger.
    reset_logging      - Detach every handler setup_logging attached.
    set_print_logger   - Set the logger for print_and_log and print_error.
    monkeypatch_print  - Replace built-in print with rich print.
    print_and_log      - Print and log an info message.
    print_error        - Print and log an error message.
"""

import builtins
import logging
import logging.handlers
import os
import sys
from typing import Iterable, Optional, Union

from rich import print as rich_print

SDK_LOGGERS = ("common", "transports", "orchestrator")
MASK = "***"

# handlers attached by setup_logging, per logger name
_attached: dict[str, logging.Handler] = {}
_print_logger: Optional[logging.Logger] = None


class TokenFilter(logging.Filter):
    """Masks the access token in every record passing through the handler."""

    def __init__(self, token: Optional[str]):
        super().__init__()
        self.token = token

    def filter(self, record: logging.LogRecord) -> bool:
        if self.token:
            message = record.getMessage()
            if self.token in message:
                record.msg = message.replace(self.token, MASK)
                record.args = None
        return True


def setup_logging(
    app_name: str = "abstract_sdk",
    daemon: bool = False,
    loglevel: Union[int, str] = logging.INFO,
    logfile: Optional[str] = None,
    token: Optional[str] = None,
    extra_loggers: Iterable[str] = (),
) -> logging.Logger:
    """
    Route SDK log records to one handler and return the ``app_name`` logger.
    - daemon=True: syslog, or stderr when /dev/log is unavailable.
    - Otherwise: ``logfile``, defaulting to ~/.<app_name>/log.txt.
    Calling it again replaces the previous handler.
    """
    if daemon:
        formatter = logging.Formatter(f"%(asctime)s %(levelname)s %(process)d [{app_name}] %(name)s %(message)s")
        try:
            handler: logging.Handler = logging.handlers.SysLogHandler(address="/dev/log")
        except OSError as e:
            print(f"SysLogHandler unavailable ({e}), logging to stderr", file=sys.stderr)
            handler = logging.StreamHandler()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        if logfile is None:
            log_dir = os.path.expanduser(f"~/.{app_name}")
            os.makedirs(log_dir, exist_ok=True)
            logfile = os.path.join(log_dir, "log.txt")
        handler = logging.FileHandler(logfile)
    handler.setFormatter(formatter)
    handler.addFilter(TokenFilter(token))

    reset_logging()
    for name in dict.fromkeys((*SDK_LOGGERS, *extra_loggers, app_name)):
        logger = logging.getLogger(name)
        logger.setLevel(loglevel)
        logger.addHandler(handler)
        _attached[name] = handler

    app_logger = logging.getLogger(app_name)
    set_print_logger(app_logger)
    app_logger.debug("Logging initialized for %s", app_name)
    return app_logger


def reset_logging() -> None:
    """Detach and close whatever setup_logging attached. Levels are reset too."""
    handlers = set()
    for name, handler in _attached.items():
        logger = logging.getLogger(name)
        logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
        handlers.add(handler)
    _attached.clear()
    for handler in handlers:
        handler.close()


def set_print_logger(logger: Optional[logging.Logger]):
    """
    Set the logger used by print_and_log and print_error.
    setup_logging calls this for you.
    """
    global _print_logger
    _print_logger = logger


def monkeypatch_print():
    """Route built-in print through rich.print (markup, colours). No logging."""
    def print_to_rich(*args, **kwargs):
        rich_print(*args, **kwargs)
    builtins.print = print_to_rich


def print_and_log(message: str, **kwargs):
    print(message, **kwargs)
    if _print_logger is not None:
        _print_logger.info(message)


def print_error(message: str, **kwargs):
    """Print to stderr in red and log at error level."""
    print(f"[bold red]{message}[/bold red]", file=sys.stderr, **kwargs)
    if _print_logger is not None:
        _print_logger.error(message)
