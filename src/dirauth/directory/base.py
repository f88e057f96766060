"""
Directory collaborator contracts.

The authentication decision only talks to the directory through these
interfaces. Implementations live outside the core (see ldap_client for
the ldap3-backed one).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from dirauth.core.types import DirectoryPrincipal, TrustMapping


class TrustMappingSource(ABC):
    """Read-only source of domain-to-directory trust bindings."""

    @abstractmethod
    def resolve_trust_mapping(self, domain_id: Any) -> Optional[TrustMapping]:
        """Return the mapping bound to domain_id, or None."""
        ...


class DirectoryClient(ABC):
    """
    Directory service client consumed by the authenticator.

    Failure modes:
    - no matching principal: resolve_principal returns None
    - bad credentials: verify returns False
    - anything else (transport, timeout, protocol): raise DirectoryError
      or DirectoryUnavailable
    """

    @abstractmethod
    def is_enabled(self) -> bool:
        """Whether directory authentication is administratively enabled."""
        ...

    @abstractmethod
    def resolve_principal(
        self,
        username: str,
        scope: Optional[TrustMapping] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[DirectoryPrincipal]:
        """
        Look up the principal for username.

        Args:
            username: Login name
            scope: Restrict the search to a trust mapping's group or OU;
                search the whole directory when None
            timeout: Upper bound in seconds for the round-trip
        """
        ...

    @abstractmethod
    def verify(
        self,
        principal: DirectoryPrincipal,
        password: str,
        *,
        timeout: Optional[float] = None,
    ) -> bool:
        """Check password against principal, e.g. by binding as it."""
        ...
