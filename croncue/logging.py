"""
croncue logging — console + dated log file, and a JSONL event log fed by
the EventBus.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from croncue.core.bus import EventBus
from croncue.core.events import Event, EventType

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def level_from_name(name: str | int) -> int:
    """'warning' -> logging.WARNING. Unknown names fall back to WARNING."""
    if isinstance(name, int):
        return name
    return _LEVELS.get(name.upper(), logging.WARNING)


def setup_logging(
    log_dir: Path | None = None,
    console_level: int | str = logging.WARNING,
    file_level: int | str = logging.DEBUG,
) -> logging.Logger:
    """
    Setup croncue logging.

    Args:
        log_dir: Directory for log files (default: ~/.croncue/logs)
        console_level: Minimum level for console output
        file_level: Minimum level for file output

    Returns:
        The configured ``croncue`` logger
    """
    log_dir = (log_dir or Path.home() / ".croncue" / "logs").expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("croncue")
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Console handler (minimal output)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level_from_name(console_level))
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)

    # File handler (detailed output)
    log_file = log_dir / f"croncue_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level_from_name(file_level))
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    logger.info(f"Logging initialized. File: {log_file}")
    return logger


class EventLogger:
    """
    Appends every bus event to a dated JSON lines file.

    Usage:
        event_logger = EventLogger(log_dir=Path("~/.croncue/logs"))
        event_logger.attach(bus)
    """

    def __init__(
        self,
        log_dir: Path | None = None,
        log_events: bool = True,
    ) -> None:
        self._log_dir = (log_dir or Path.home() / ".croncue" / "logs").expanduser()
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._log_events = log_events
        self._logger = logging.getLogger("croncue.events")

    @property
    def events_file(self) -> Path:
        return self._log_dir / f"events_{datetime.now().strftime('%Y%m%d')}.jsonl"

    def attach(self, bus: EventBus) -> None:
        bus.on(EventType.ALL, self.handle)

    def detach(self, bus: EventBus) -> None:
        bus.off(EventType.ALL, self.handle)

    def handle(self, event: Event) -> None:
        self._logger.debug(
            f"[{event.type}] source={event.source} "
            f"data_keys={list(event.data.keys()) if event.data else []}"
        )
        if self._log_events:
            self._write_event(event)

    def _write_event(self, event: Event) -> None:
        """Write event to JSON lines file."""
        try:
            record = {
                "timestamp": datetime.fromtimestamp(event.timestamp).isoformat(),
                "id": event.id,
                "type": event.type,
                "source": event.source,
                "data": self._safe_serialize(event.data),
            }
            with open(self.events_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            self._logger.warning(f"Failed to write event log: {e}")

    @staticmethod
    def _safe_serialize(data: dict) -> dict:
        result = {}
        for key, value in data.items():
            try:
                json.dumps(value)
                result[key] = value
            except (TypeError, ValueError):
                result[key] = str(value)
        return result
