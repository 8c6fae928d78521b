"""Contact and chat entities built from daemon payloads."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr, ValidationError, validator

from tgsync.lib.errors import UpstreamRequestFailed


class PeerType(str, Enum):
    """Peer type tags used by the daemon."""

    USER = "user"
    CHAT = "chat"


def _peer_id_of(payload: Dict[str, Any]) -> Any:
    # Older daemon builds only send "id".
    return payload.get("peer_id", payload.get("id"))


class Contact(BaseModel):
    """A user known to the session, including the session owner's profile."""

    peer_id: str = Field(..., description="External user identifier")
    peer_type: PeerType = Field(default=PeerType.USER, description="Peer type tag")
    print_name: Optional[str] = Field(None, description="Display name as printed by the daemon")
    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    username: Optional[str] = Field(None, description="Public username")
    phone: Optional[str] = Field(None, description="Phone number")

    _owner: Any = PrivateAttr(default=None)

    class Config:
        """Pydantic configuration."""

        use_enum_values = True

    @validator('peer_id', pre=True)
    def normalize_peer_id(cls, v):
        """Normalize identifiers to stripped strings."""
        if v is None:
            raise ValueError("peer_id is required")
        v = str(v).strip()
        if not v:
            raise ValueError("peer_id cannot be empty")
        return v

    @property
    def identity(self) -> str:
        return f"{PeerType(self.peer_type).value}#{self.peer_id}"

    @property
    def owner(self) -> Any:
        return self._owner

    @classmethod
    def from_payload(cls, owner: Any, payload: Dict[str, Any]) -> "Contact":
        """Build a contact from a raw user payload.

        Raises:
            UpstreamRequestFailed: if the payload is not a valid user description
        """
        if not isinstance(payload, dict):
            raise UpstreamRequestFailed("contact", f"Unexpected contact payload: {payload!r}", payload)

        try:
            contact = cls(
                peer_id=_peer_id_of(payload),
                peer_type=payload.get("peer_type", PeerType.USER),
                print_name=payload.get("print_name"),
                first_name=payload.get("first_name"),
                last_name=payload.get("last_name"),
                username=payload.get("username"),
                phone=payload.get("phone"),
            )
        except ValidationError as e:
            raise UpstreamRequestFailed("contact", f"Invalid contact payload: {e}", payload) from e

        contact._owner = owner
        return contact


class Chat(BaseModel):
    """A dialog: either a one-to-one user dialog or a group chat."""

    peer_id: str = Field(..., description="External peer identifier")
    peer_type: PeerType = Field(..., description="Peer type tag")
    title: Optional[str] = Field(None, description="Chat title or user print name")
    members_num: Optional[int] = Field(None, ge=0, description="Member count reported by the daemon")
    members: List[Contact] = Field(default_factory=list, description="Group members")

    _owner: Any = PrivateAttr(default=None)

    class Config:
        """Pydantic configuration."""

        use_enum_values = True

    @validator('peer_id', pre=True)
    def normalize_peer_id(cls, v):
        """Normalize identifiers to stripped strings."""
        if v is None:
            raise ValueError("peer_id is required")
        v = str(v).strip()
        if not v:
            raise ValueError("peer_id cannot be empty")
        return v

    @property
    def identity(self) -> str:
        return f"{PeerType(self.peer_type).value}#{self.peer_id}"

    @property
    def owner(self) -> Any:
        return self._owner

    @classmethod
    def from_payload(cls, owner: Any, payload: Dict[str, Any]) -> "Chat":
        """Build a chat from a dialog entry or a ``chat_info`` reply.

        Raises:
            UpstreamRequestFailed: if the payload is not a valid chat description
        """
        if not isinstance(payload, dict):
            raise UpstreamRequestFailed("chat", f"Unexpected chat payload: {payload!r}", payload)

        members = [Contact.from_payload(owner, member) for member in payload.get("members") or []]

        try:
            chat = cls(
                peer_id=_peer_id_of(payload),
                peer_type=payload.get("peer_type"),
                title=payload.get("title") or payload.get("print_name"),
                members_num=payload.get("members_num"),
                members=members,
            )
        except ValidationError as e:
            raise UpstreamRequestFailed("chat", f"Invalid chat payload: {e}", payload) from e

        chat._owner = owner
        return chat


def contact_identity(contact: Contact) -> str:
    """Identity key used to deduplicate contacts."""
    return contact.identity
