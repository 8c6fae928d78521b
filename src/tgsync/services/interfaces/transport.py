"""Abstract interfaces for the daemon transport.

Defines ITransport for issuing requests and IConnectionState for checking
whether the transport can currently be used.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

from tgsync.models.request import RequestDescriptor


ReplyHandler = Callable[[bool, Any], None]


class ITransport(ABC):
    """Interface for one-request, one-reply exchange with the daemon."""

    @abstractmethod
    def send(self, request: RequestDescriptor, on_reply: ReplyHandler) -> None:
        """Issue ``request``; ``on_reply(success, payload)`` runs exactly once, later."""
        pass


class IConnectionState(ABC):
    """Interface for the transport's availability."""

    @abstractmethod
    def is_usable(self) -> bool:
        """Return True if requests can currently be sent."""
        pass
