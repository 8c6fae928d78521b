"""Session state owned by the refresh orchestrator."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tgsync.models.entities import Chat, Contact, contact_identity
from tgsync.models.identity_collection import IdentityCollection


def new_contact_collection() -> IdentityCollection:
    return IdentityCollection(contact_identity)


class SessionState(BaseModel):
    """
    Profile, contacts and chats of the logged-in account.

    Contacts are deduplicated by identity; chats are kept in arrival order
    without deduplication.
    """

    profile: Optional[Contact] = Field(None, description="The account's own contact, set by the first refresh")
    contacts: IdentityCollection = Field(default_factory=new_contact_collection, description="Known contacts")
    chats: List[Chat] = Field(default_factory=list, description="Dialogs in arrival order")
    refreshed_at: Optional[datetime] = Field(None, description="When the last full refresh completed")
    last_error: Optional[str] = Field(None, description="Error of the last failed refresh")

    class Config:
        """Pydantic configuration."""

        arbitrary_types_allowed = True

    def reset_contacts(self) -> None:
        """Start a fresh contact collection, keeping the current profile in it."""
        self.contacts = new_contact_collection()
        if self.profile is not None:
            self.contacts.insert(self.profile)

    def summary(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.identity if self.profile else None,
            "contacts": len(self.contacts),
            "chats": len(self.chats),
            "refreshed_at": self.refreshed_at.isoformat() if self.refreshed_at else None,
            "last_error": self.last_error,
        }
