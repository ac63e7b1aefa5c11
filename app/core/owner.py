# app/core/owner.py
"""
Owner reference attached to every account, goal, transaction and report.

An owner is either a user's personal workspace or a shared vault. Rows store
it as the ``(owner_id, owner_type)`` column pair; code passes the tagged
value around so "both set" / "neither set" can't be expressed.
"""
import enum
import uuid
from dataclasses import dataclass
from typing import Union


class OwnerType(str, enum.Enum):
    user = "user"
    vault = "vault"


@dataclass(frozen=True)
class PersonalOwner:
    user_id: uuid.UUID

    @property
    def owner_id(self) -> uuid.UUID:
        return self.user_id

    @property
    def owner_type(self) -> OwnerType:
        return OwnerType.user

    @property
    def is_personal(self) -> bool:
        return True


@dataclass(frozen=True)
class VaultOwner:
    vault_id: uuid.UUID

    @property
    def owner_id(self) -> uuid.UUID:
        return self.vault_id

    @property
    def owner_type(self) -> OwnerType:
        return OwnerType.vault

    @property
    def is_personal(self) -> bool:
        return False


Owner = Union[PersonalOwner, VaultOwner]


def owner_from_columns(owner_id: uuid.UUID, owner_type: Union[OwnerType, str]) -> Owner:
    if OwnerType(owner_type) is OwnerType.user:
        return PersonalOwner(owner_id)
    return VaultOwner(owner_id)


class OwnedMixin:
    """Column pair + helpers shared by owner-scoped models."""

    @property
    def owner(self) -> Owner:
        return owner_from_columns(self.owner_id, self.owner_type)

    def set_owner(self, owner: Owner) -> None:
        self.owner_id = owner.owner_id
        self.owner_type = owner.owner_type

    @classmethod
    def owned_by(cls, owner: Owner):
        """WHERE clause selecting rows that belong to ``owner``."""
        return (cls.owner_id == owner.owner_id) & (cls.owner_type == owner.owner_type)
