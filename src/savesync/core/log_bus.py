"""Fan-out of emitted log lines.

Every line the savesync logger prints is also handed to the subscribers
registered here, so a front end can mirror console output. A subscriber
that raises is reported on stderr and skipped.
"""

from __future__ import annotations

import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class LogRecord:
    """One emitted line, without color codes."""

    level_name: str
    plain: str
    logger_name: str


LogSubscriber = Callable[[LogRecord], None]


class LogBus:
    def __init__(self) -> None:
        self._subscribers: list[LogSubscriber] = []

    def subscribe(self, callback: LogSubscriber) -> None:
        self._subscribers.append(callback)

    def publish(self, record: LogRecord) -> None:
        for callback in tuple(self._subscribers):
            try:
                callback(record)
            except Exception:
                # Reported directly; going through the logger would recurse.
                sys.stderr.write(
                    f"log subscriber {callback!r} failed on {record.logger_name}:\n"
                    f"{traceback.format_exc()}"
                )


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS
