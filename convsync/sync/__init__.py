"""Continuous synchronization of a mounted conversation.

Polling, push and manual refresh all feed snapshots into the view's
ReconciliationEngine.
"""

from convsync.sync.notices import Notice, NoticeBoard, NoticeKind
from convsync.sync.poller import PASSIVE_REFRESH, REPLY_WAIT, Cadence, PollScheduler
from convsync.sync.push import SNAPSHOT_EVENT_TYPES, PushChannel
from convsync.sync.results import FetchFailure, FetchResult, FetchSuccess, fetch_result
from convsync.sync.view import ConversationView

__all__ = [
    "PASSIVE_REFRESH",
    "REPLY_WAIT",
    "SNAPSHOT_EVENT_TYPES",
    "Cadence",
    "ConversationView",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "Notice",
    "NoticeBoard",
    "NoticeKind",
    "PollScheduler",
    "PushChannel",
    "fetch_result",
]
