"""
DirAuth Core Module

Provides the types and helpers shared by the directory, accounts and
auth packages.

Components:
- types: Value types (LocalAccountRecord, DirectoryPrincipal, TrustMapping, ...)
- dn: Distinguished name parsing
- trace: Per-attempt decision trace
- exceptions: Custom exception types
"""

from dirauth.core.types import (
    AccountSource,
    AccountState,
    AuthDecision,
    BindingType,
    CreateAccount,
    DirectoryPrincipal,
    DisableAccount,
    EnableAccount,
    FollowupAction,
    LocalAccountRecord,
    NoAction,
    ProfileFields,
    ProvisioningAction,
    TrustMapping,
)
from dirauth.core.dn import leaf_name, parse_leaf_name
from dirauth.core.trace import DecisionState, DecisionTrace, Transition
from dirauth.core.exceptions import (
    AccountStoreConflict,
    DirAuthError,
    DirectoryError,
    DirectoryUnavailable,
    DuplicateTrustMapping,
    InvalidDistinguishedName,
    InvalidTransition,
    PrincipalNotFound,
)

__all__ = [
    # Types
    "AccountSource",
    "AccountState",
    "AuthDecision",
    "BindingType",
    "CreateAccount",
    "DirectoryPrincipal",
    "DisableAccount",
    "EnableAccount",
    "FollowupAction",
    "LocalAccountRecord",
    "NoAction",
    "ProfileFields",
    "ProvisioningAction",
    "TrustMapping",
    # Distinguished names
    "leaf_name",
    "parse_leaf_name",
    # Trace
    "DecisionState",
    "DecisionTrace",
    "Transition",
    # Exceptions
    "AccountStoreConflict",
    "DirAuthError",
    "DirectoryError",
    "DirectoryUnavailable",
    "DuplicateTrustMapping",
    "InvalidDistinguishedName",
    "InvalidTransition",
    "PrincipalNotFound",
]
