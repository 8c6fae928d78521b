"""Service interfaces."""

from .transport import IConnectionState, ITransport, ReplyHandler

__all__ = ["IConnectionState", "ITransport", "ReplyHandler"]
