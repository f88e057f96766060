"""
DirAuth - Directory-backed authentication with local account reconciliation

Decides whether a username/password pair is valid against an LDAP-style
directory and keeps the local account store in step with it.

Modes:
- Trust-mapped domains: the domain is bound to a directory group or OU;
  users are looked up inside it and local accounts are created, enabled
  or disabled to match the directory
- Unmapped domains: users that already exist locally are checked against
  the whole directory; nothing is provisioned

Example Usage:
    from dirauth import (
        AccountSynchronizer,
        DirectoryAuthenticator,
        LdapConfig,
        LdapDirectoryClient,
        StaticTrustMappings,
        TrustMapping,
        TrustResolver,
    )

    mappings = StaticTrustMappings.of([
        TrustMapping(domain_id=1, bound_name="CN=devs,OU=groups,DC=example,DC=com"),
    ])
    authenticator = DirectoryAuthenticator(
        directory=LdapDirectoryClient(LdapConfig(host="dc.example.com", ...)),
        trust_resolver=TrustResolver(mappings),
        accounts=store,
        synchronizer=AccountSynchronizer(store),
    )

    decision = authenticator.authenticate("jdoe", "secret", domain_id=1)
    if decision.authenticated:
        ...
"""

from dirauth.core.types import (
    AccountState,
    AuthDecision,
    BindingType,
    DirectoryPrincipal,
    FollowupAction,
    LocalAccountRecord,
    TrustMapping,
)
from dirauth.core.exceptions import (
    DirAuthError,
    DirectoryError,
    DirectoryUnavailable,
    PrincipalNotFound,
    AccountStoreConflict,
)
from dirauth.accounts import AccountService, AccountStore, AccountSynchronizer
from dirauth.directory import (
    DirectoryClient,
    LdapConfig,
    LdapDirectoryClient,
    StaticTrustMappings,
    TrustResolver,
)
from dirauth.auth import Deadline, DirectoryAuthenticator, create_ldap_authenticator

__version__ = "0.1.0"

__all__ = [
    # Main API
    "DirectoryAuthenticator",
    "create_ldap_authenticator",
    "Deadline",
    # Collaborators
    "AccountService",
    "AccountStore",
    "AccountSynchronizer",
    "DirectoryClient",
    "LdapConfig",
    "LdapDirectoryClient",
    "StaticTrustMappings",
    "TrustResolver",
    # Types
    "AccountState",
    "AuthDecision",
    "BindingType",
    "DirectoryPrincipal",
    "FollowupAction",
    "LocalAccountRecord",
    "TrustMapping",
    # Exceptions
    "AccountStoreConflict",
    "DirAuthError",
    "DirectoryError",
    "DirectoryUnavailable",
    "PrincipalNotFound",
    # Metadata
    "__version__",
]
