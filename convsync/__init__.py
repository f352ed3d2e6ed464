"""convsync: client-side synchronization of agent conversations.

Keeps a displayed conversation consistent with the server through
optimistic sends, polling and a WebSocket push channel, and manages
short-lived voice session references alongside it.
"""

__version__ = "0.1.0"
