"""Unit tests for the identity-deduplicating collection."""

import pytest

from tgsync.models.entities import Contact, contact_identity
from tgsync.models.identity_collection import IdentityCollection


@pytest.fixture
def contacts():
    return IdentityCollection(contact_identity)


def make_contact(peer_id, **fields):
    return Contact.from_payload(None, {"peer_type": "user", "peer_id": peer_id, **fields})


class TestIdentityCollection:
    """Test dedup-on-insert semantics."""

    def test_same_identity_twice_keeps_first(self, contacts):
        """Test inserting the same logical entity leaves size unchanged."""
        first = make_contact(200, print_name="Alice", phone="1")
        second = make_contact("200", print_name="Alice (online)")

        assert contacts.insert(first) is first
        assert contacts.insert(second) is first

        assert len(contacts) == 1
        assert list(contacts)[0].print_name == "Alice"

    def test_different_identities(self, contacts):
        """Test two identities grow the collection by two."""
        contacts.insert(make_contact(200))
        contacts.insert(make_contact(300))

        assert len(contacts) == 2
        assert set(contacts.keys()) == {"user#200", "user#300"}

    def test_contains_uses_identity(self, contacts):
        """Test membership ignores incidental fields."""
        contacts.insert(make_contact(200, print_name="Alice"))

        assert contacts.contains(make_contact(200, print_name="Someone else"))
        assert make_contact(200) in contacts
        assert make_contact(201) not in contacts

    def test_get_by_identity(self, contacts):
        """Test lookup by identity key."""
        alice = contacts.insert(make_contact(200))

        assert contacts.get("user#200") is alice
        assert contacts.get("user#999") is None

    def test_initial_items_are_deduplicated(self):
        """Test constructor items go through insert."""
        collection = IdentityCollection(str.lower, ["a", "A", "b"])

        assert list(collection) == ["a", "b"]

    def test_preserves_first_seen_order(self):
        """Test insertion order of first-seen elements is kept."""
        collection = IdentityCollection(lambda item: item[0])
        for item in ["b1", "a1", "b2", "c1", "a2"]:
            collection.insert(item)

        assert list(collection) == ["b1", "a1", "c1"]
