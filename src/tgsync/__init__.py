"""
tgsync - session refresh orchestration for the telegram-cli daemon.

Issues profile, contact and chat requests over an asynchronous
request/reply transport, aggregates their completion and keeps a
deduplicated view of the account's contacts.
"""

__version__ = "0.1.0"

from .lib.completion import CompletionSignal, CountingBarrier, JoinAll, Outcome
from .lib.errors import (
    BarrierOverflowError,
    BarrierStateError,
    DoubleFireError,
    NotConnectedError,
    TGSyncError,
    UpstreamRequestFailed,
)
from .models import Chat, Contact, IdentityCollection, SessionState
from .services.session_refresh import SessionRefreshOrchestrator

__all__ = [
    "CompletionSignal",
    "CountingBarrier",
    "JoinAll",
    "Outcome",
    "BarrierOverflowError",
    "BarrierStateError",
    "DoubleFireError",
    "NotConnectedError",
    "TGSyncError",
    "UpstreamRequestFailed",
    "Chat",
    "Contact",
    "IdentityCollection",
    "SessionState",
    "SessionRefreshOrchestrator",
]
