"""User-facing notices for explicit actions.

Background sync never posts here. A notice replaces any earlier notice of
the same kind and clears itself after a delay unless dismissed first.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum


class NoticeKind(str, Enum):
    ERROR = "error"
    SUCCESS = "success"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    text: str


class NoticeBoard:
    """One slot per notice kind with auto-clear timers."""

    def __init__(self, error_clear_seconds: float = 5.0, success_clear_seconds: float = 3.0) -> None:
        self._delays = {
            NoticeKind.ERROR: error_clear_seconds,
            NoticeKind.SUCCESS: success_clear_seconds,
        }
        self._notices: dict[NoticeKind, Notice] = {}
        self._timers: dict[NoticeKind, asyncio.TimerHandle] = {}

    def error(self, text: str) -> Notice:
        return self._post(NoticeKind.ERROR, text)

    def success(self, text: str) -> Notice:
        return self._post(NoticeKind.SUCCESS, text)

    def get(self, kind: NoticeKind) -> Notice | None:
        return self._notices.get(kind)

    @property
    def current_error(self) -> Notice | None:
        return self._notices.get(NoticeKind.ERROR)

    @property
    def current_success(self) -> Notice | None:
        return self._notices.get(NoticeKind.SUCCESS)

    def dismiss(self, kind: NoticeKind) -> None:
        """Clear a notice before its timer fires."""
        self._notices.pop(kind, None)
        timer = self._timers.pop(kind, None)
        if timer is not None:
            timer.cancel()

    def clear_all(self) -> None:
        for kind in list(NoticeKind):
            self.dismiss(kind)

    def _post(self, kind: NoticeKind, text: str) -> Notice:
        self.dismiss(kind)
        notice = Notice(kind=kind, text=text)
        self._notices[kind] = notice

        loop = asyncio.get_running_loop()
        self._timers[kind] = loop.call_later(self._delays[kind], self._expire, kind, notice)
        return notice

    def _expire(self, kind: NoticeKind, notice: Notice) -> None:
        # A newer notice of the same kind owns the slot now
        if self._notices.get(kind) is notice:
            self._notices.pop(kind, None)
            self._timers.pop(kind, None)
