"""Exception taxonomy for tgsync."""

from typing import Any, Optional


class TGSyncError(Exception):
    """Base class for every error raised by tgsync."""
    pass


class NotConnectedError(TGSyncError):
    """Raised before a request is sent when the transport is not usable."""

    def __init__(self, message: str = "It appears that the connection to the telegram-cli is disconnected."):
        super().__init__(message)


class UpstreamRequestFailed(TGSyncError):
    """A reply reported failure or carried a payload of unexpected shape."""

    def __init__(self, command: str, message: str, payload: Optional[Any] = None):
        super().__init__(message)
        self.command = command
        self.payload = payload


class DoubleFireError(TGSyncError):
    """A completion signal was fired a second time."""
    pass


class BarrierOverflowError(TGSyncError, OverflowError):
    """More arrivals were reported than the barrier expects."""
    pass


class BarrierStateError(TGSyncError):
    """A barrier or coordinator was driven outside its one-shot lifecycle."""
    pass
