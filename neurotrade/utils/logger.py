import itertools
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from neurotrade.constants import LogType

def setup_logger(name: str = "NeuroTrade", level: int = logging.INFO) -> logging.Logger:
    LOG_FMT = "%(asctime)s │ %(levelname)-7s │ %(message)s"
    logging.basicConfig(level=level, format=LOG_FMT, datefmt="%H:%M:%S")
    return logging.getLogger(name)

log = setup_logger()

_LEVELS = {
    LogType.ERROR: logging.ERROR,
    LogType.WARNING: logging.WARNING,
    LogType.DEBUG: logging.DEBUG,
}


@dataclass(frozen=True)
class LogEntry:
    id: int
    timestamp: str
    kind: LogType
    message: str


class LogFeed:
    """Capped, append-only event feed read by whatever renders the dashboard.

    Every entry is mirrored to the python logger so headless runs still see
    the same stream on stdout.
    """

    def __init__(self, maxlen: int = 150, logger: logging.Logger = log):
        self._entries: deque[LogEntry] = deque(maxlen=maxlen)
        self._ids = itertools.count(1)
        self._logger = logger

    def add(self, kind: LogType, message: str) -> LogEntry:
        entry = LogEntry(
            id=next(self._ids),
            timestamp=datetime.now().strftime("%H:%M:%S"),
            kind=kind,
            message=message,
        )
        self._entries.append(entry)
        self._logger.log(_LEVELS.get(kind, logging.INFO), message)
        return entry

    def info(self, message: str) -> LogEntry:
        return self.add(LogType.INFO, message)

    def success(self, message: str) -> LogEntry:
        return self.add(LogType.SUCCESS, message)

    def error(self, message: str) -> LogEntry:
        return self.add(LogType.ERROR, message)

    def warning(self, message: str) -> LogEntry:
        return self.add(LogType.WARNING, message)

    def ai(self, message: str) -> LogEntry:
        return self.add(LogType.AI, message)

    def debug(self, message: str) -> LogEntry:
        return self.add(LogType.DEBUG, message)

    def entries(self) -> list[LogEntry]:
        """Newest first, feed style."""
        return list(reversed(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
