"""Shared fixtures: a transport whose replies are delivered by the test."""

from typing import Any, List, Optional, Tuple

import pytest

from tgsync.models.request import RequestDescriptor
from tgsync.services.interfaces.transport import IConnectionState, ITransport, ReplyHandler


class ScriptedTransport(ITransport, IConnectionState):
    """Records requests and replies to them only when the test says so."""

    def __init__(self):
        self.connected = True
        self.sent: List[RequestDescriptor] = []
        self.pending: List[Tuple[RequestDescriptor, ReplyHandler]] = []

    def is_usable(self) -> bool:
        return self.connected

    def send(self, request: RequestDescriptor, on_reply: ReplyHandler) -> None:
        self.sent.append(request)
        self.pending.append((request, on_reply))

    def sent_commands(self) -> List[str]:
        return [request.command for request in self.sent]

    def pending_requests(self) -> List[str]:
        return [str(request) for request, _ in self.pending]

    def reply(self, command: str, payload: Any = None, success: bool = True,
              args: Optional[List[str]] = None) -> RequestDescriptor:
        """Deliver a reply to the oldest pending request matching ``command``/``args``."""
        for index, (request, on_reply) in enumerate(self.pending):
            if request.command == command and (args is None or request.args == args):
                del self.pending[index]
                on_reply(success, payload)
                return request
        raise AssertionError(f"No pending request for {command} {args or ''}")


@pytest.fixture
def transport():
    """Scripted transport for deterministic reply ordering."""
    return ScriptedTransport()


@pytest.fixture
def profile_payload():
    return {"peer_type": "user", "peer_id": 100, "print_name": "Self_User", "first_name": "Self", "phone": "15550100"}


@pytest.fixture
def contacts_payload():
    return [
        {"peer_type": "user", "peer_id": 200, "print_name": "Alice", "first_name": "Alice"},
        {"peer_type": "user", "peer_id": 300, "print_name": "Bob", "first_name": "Bob"},
    ]


@pytest.fixture
def dialog_payload():
    return [
        {"peer_type": "user", "peer_id": 200, "print_name": "Alice"},
        {"peer_type": "chat", "peer_id": 1, "print_name": "Team"},
        {"peer_type": "chat", "peer_id": 2, "print_name": "Family"},
    ]


@pytest.fixture
def chat_info():
    """Factory for chat_info reply payloads."""
    def build(peer_id: int, title: str) -> dict:
        return {
            "peer_type": "chat",
            "peer_id": peer_id,
            "title": title,
            "members_num": 2,
            "members": [
                {"peer_type": "user", "peer_id": 100, "print_name": "Self_User"},
                {"peer_type": "user", "peer_id": 200, "print_name": "Alice"},
            ],
        }

    return build
