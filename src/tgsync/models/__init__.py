"""Data models for tgsync."""

from .entities import Chat, Contact, PeerType, contact_identity
from .identity_collection import IdentityCollection
from .request import Reply, RequestDescriptor
from .session_state import SessionState

__all__ = [
    "Chat",
    "Contact",
    "PeerType",
    "contact_identity",
    "IdentityCollection",
    "Reply",
    "RequestDescriptor",
    "SessionState",
]
