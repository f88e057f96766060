"""
DirAuth Core Types

Value types shared by the trust resolver, the account synchronizer and
the authentication decision.

Design Principles:
- Immutable: All types use frozen attrs
- Validated: Type constraints enforced at construction
- Owned elsewhere: local accounts and directory principals are snapshots
  of state held by external collaborators
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Any, Optional, Tuple, Union

import attrs
from attrs import field, validators

from dirauth.core.dn import is_valid_dn


# =============================================================================
# ENUMS
# =============================================================================


class AccountState(Enum):
    """State of a locally persisted account."""

    ENABLED = "enabled"
    DISABLED = "disabled"

    @classmethod
    def parse(cls, value: Union[str, AccountState]) -> AccountState:
        """Parse a state name case-insensitively ("Enabled", "disabled", ...)."""
        if isinstance(value, AccountState):
            return value
        return cls(str(value).strip().lower())


class AccountSource(Enum):
    """Where a local account came from."""

    LDAP = auto()
    NATIVE = auto()
    UNKNOWN = auto()


class BindingType(Enum):
    """
    How a trust mapping scopes directory lookups.

    GROUP: principal must be a member of the bound group
    OU: principal must live under the bound organizational unit
    """

    GROUP = auto()
    OU = auto()


class FollowupAction(Enum):
    """Hint returned with a failed authentication."""

    INCREMENT_FAILED_ATTEMPT_COUNT = auto()


# =============================================================================
# LOCAL ACCOUNT STORE TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class LocalAccountRecord:
    """
    Snapshot of a user record in the local account store.

    INVARIANT: (username, domain_id) identifies at most one record
    """

    id: Any
    username: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    domain_id: Any = field()
    state: AccountState = field(
        default=AccountState.ENABLED,
        converter=AccountState.parse,
    )
    source: AccountSource = AccountSource.UNKNOWN

    @property
    def key(self) -> Tuple[str, Any]:
        return (self.username, self.domain_id)

    @property
    def is_disabled(self) -> bool:
        return self.state is AccountState.DISABLED


@attrs.define(frozen=True, slots=True)
class ProfileFields:
    """Profile attributes copied from the directory when provisioning."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""


# =============================================================================
# DIRECTORY TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class DirectoryPrincipal:
    """
    Directory-side identity for a username.

    Produced per lookup by the directory client and never persisted.
    """

    distinguished_name: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    username: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    disabled: bool = False

    @property
    def profile(self) -> ProfileFields:
        return ProfileFields(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
        )

    def __str__(self) -> str:
        return self.distinguished_name


def _validate_bound_name(instance: Any, attribute: attrs.Attribute, value: str) -> None:
    if not is_valid_dn(value):
        raise ValueError(f"{attribute.name} must be a distinguished name, got {value!r}")


@attrs.define(frozen=True, slots=True)
class TrustMapping:
    """
    Binding from a local domain to a directory group or OU.

    INVARIANT: a domain has at most one mapping
    INVARIANT: bound_name is a parseable distinguished name
    """

    domain_id: Any
    bound_name: str = field(validator=[validators.instance_of(str), _validate_bound_name])
    default_account_type: int = field(default=0, validator=validators.instance_of(int))
    binding_type: BindingType = field(
        default=BindingType.GROUP,
        validator=validators.instance_of(BindingType),
    )

    def describe(self) -> str:
        return f"{self.binding_type.name} {self.bound_name}"


# =============================================================================
# RESULT TYPES
# =============================================================================


@attrs.define(frozen=True, slots=True)
class AuthDecision:
    """
    Outcome of a single authentication attempt.

    Attributes:
        authenticated: Whether the credentials were accepted
        followup: Bookkeeping hint for a failed attempt

    INVARIANT: a successful decision carries no followup
    """

    authenticated: bool = field(validator=validators.instance_of(bool))
    followup: Optional[FollowupAction] = field(
        default=None,
        validator=validators.optional(validators.instance_of(FollowupAction)),
    )

    def __attrs_post_init__(self) -> None:
        if self.authenticated and self.followup is not None:
            raise ValueError("Successful authentication cannot carry a followup action")

    @classmethod
    def accepted(cls) -> AuthDecision:
        return cls(authenticated=True)

    @classmethod
    def rejected(cls, increment_failed_attempts: bool = False) -> AuthDecision:
        followup = (
            FollowupAction.INCREMENT_FAILED_ATTEMPT_COUNT
            if increment_failed_attempts
            else None
        )
        return cls(authenticated=False, followup=followup)

    def as_pair(self) -> Tuple[bool, Optional[FollowupAction]]:
        return (self.authenticated, self.followup)


# =============================================================================
# PROVISIONING ACTIONS
# =============================================================================


@attrs.define(frozen=True, slots=True)
class NoAction:
    """Local state already matches the directory."""

    def describe(self) -> str:
        return "none"


@attrs.define(frozen=True, slots=True)
class CreateAccount:
    """
    Import a directory user into the local store.

    group_name is the leaf RDN of the trust mapping's bound name and
    identifies the local account the user is attached to.
    """

    username: str
    group_name: str
    domain_id: Any
    account_type: int
    profile: ProfileFields = attrs.Factory(ProfileFields)

    def describe(self) -> str:
        return f"create {self.username} in {self.group_name}"


@attrs.define(frozen=True, slots=True)
class EnableAccount:
    user_id: Any

    def describe(self) -> str:
        return f"enable {self.user_id}"


@attrs.define(frozen=True, slots=True)
class DisableAccount:
    user_id: Any

    def describe(self) -> str:
        return f"disable {self.user_id}"


ProvisioningAction = Union[NoAction, CreateAccount, EnableAccount, DisableAccount]
