from __future__ import annotations

from abc import ABC, abstractmethod


class AlertSink(ABC):
    @abstractmethod
    def send(self, message: str, urgent: bool, is_problem: bool) -> None:
        """Deliver one message. May raise; callers log and move on."""
        ...
