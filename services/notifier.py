"""User-facing notifications collected during a request."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class Notifier:
    """Collects success / error toasts for the frontend.

    Fire-and-forget: callers never read anything back from it.
    """

    def __init__(self) -> None:
        self.messages: list[dict[str, str]] = []

    def success(self, message: str) -> None:
        logger.info("Notify success: %s", message)
        self.messages.append({"level": "success", "message": message})

    def error(self, message: str) -> None:
        logger.warning("Notify error: %s", message)
        self.messages.append({"level": "error", "message": message})
