"""Ownership checks shared by every mutating operation.

Each check runs before the operation touches any state, so a rejected caller
never leaves a partial write behind.
"""
import uuid

from app.core.errors import NotOwner


def ensure_owner(actor_id: uuid.UUID, owner_id: uuid.UUID, resource: str = "resource") -> None:
    if actor_id != owner_id:
        raise NotOwner(f"Only the owner of this {resource} can do that")


def ensure_party(actor_id: uuid.UUID, *party_ids: uuid.UUID, resource: str = "resource") -> None:
    if actor_id not in party_ids:
        raise NotOwner(f"You are not a party to this {resource}")
