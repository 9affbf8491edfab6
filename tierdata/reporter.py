from __future__ import annotations

import logging
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class Reporter:
    """
    User-visible toast sink. The UI supplies its own; the default only logs.

    The data layer calls `report` and never waits on, or reacts to, what
    happens inside it.
    """

    def success(self, title: str, description: Optional[str] = None) -> None:
        logger.info("[toast:success] %s %s", title, description or "")

    def info(self, title: str, description: Optional[str] = None) -> None:
        logger.info("[toast:info] %s %s", title, description or "")

    def error(self, title: str, description: Optional[str] = None) -> None:
        logger.info("[toast:error] %s %s", title, description or "")

    def report(self, level: str, title: str, description: Optional[str] = None) -> None:
        fn = getattr(self, level, None)
        if not callable(fn):
            fn = self.info
        try:
            fn(title, description)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Reporter failed to show %r: %s", title, exc)


class RecordingReporter(Reporter):
    """Keeps (level, title, description) tuples. Handy for callers that batch toasts."""

    def __init__(self) -> None:
        self.messages: List[Tuple[str, str, Optional[str]]] = []

    def success(self, title: str, description: Optional[str] = None) -> None:
        self.messages.append(("success", title, description))

    def info(self, title: str, description: Optional[str] = None) -> None:
        self.messages.append(("info", title, description))

    def error(self, title: str, description: Optional[str] = None) -> None:
        self.messages.append(("error", title, description))
