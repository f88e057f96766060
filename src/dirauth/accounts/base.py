"""
Account store collaborator contracts.

The local account store is owned elsewhere. The authenticator reads one
snapshot per attempt and requests mutations through AccountService.
Uniqueness violations must be reported with AccountStoreConflict.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from dirauth.core.types import LocalAccountRecord, ProfileFields


class AccountStore(ABC):
    """Read access to local user records."""

    @abstractmethod
    def lookup(self, username: str, domain_id: Any) -> Optional[LocalAccountRecord]:
        """Return the record for (username, domain_id), or None."""
        ...


class AccountService(ABC):
    """Account lifecycle operations."""

    @abstractmethod
    def find_account(self, group_name: str, domain_id: Any) -> Optional[Any]:
        """Return the id of the active account named group_name, or None."""
        ...

    @abstractmethod
    def create_account(
        self,
        group_name: str,
        domain_id: Any,
        account_type: int,
        profile: ProfileFields,
    ) -> Any:
        """
        Create the account for a directory group.

        Raises:
            AccountStoreConflict: account already exists for (group_name, domain_id)
        """
        ...

    @abstractmethod
    def create_user(
        self,
        username: str,
        group_name: str,
        domain_id: Any,
        profile: ProfileFields,
    ) -> Any:
        """
        Create a user attached to the account group_name.

        Raises:
            AccountStoreConflict: user already exists for (username, domain_id)
        """
        ...

    @abstractmethod
    def enable_user(self, user_id: Any) -> None:
        ...

    @abstractmethod
    def disable_user(self, user_id: Any) -> None:
        ...
