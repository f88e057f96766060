"""
DirAuth Account Synchronizer

Reconciles a local account with the state the directory reports for it.
Only used for trust-mapped domains; fallback authentication never
provisions.

Decision table:

    principal.disabled | verified | local record      | action
    -------------------+----------+-------------------+-----------------
    true               | any      | exists            | DisableAccount
    true               | any      | absent            | NoAction
    false              | true     | absent            | CreateAccount
    false              | true     | exists, disabled  | EnableAccount
    false              | true     | exists, enabled   | NoAction
    false              | false    | any               | NoAction

reconcile() is pure; apply() performs the mutation. Concurrent first
logins for the same user race on the account store's uniqueness
constraints; the loser sees AccountStoreConflict and treats the account
as already provisioned.
"""

from __future__ import annotations

from typing import Any, Optional

import attrs
import structlog

from dirauth.accounts.base import AccountService
from dirauth.core.dn import leaf_name
from dirauth.core.exceptions import AccountStoreConflict
from dirauth.core.types import (
    CreateAccount,
    DirectoryPrincipal,
    DisableAccount,
    EnableAccount,
    LocalAccountRecord,
    NoAction,
    ProvisioningAction,
    TrustMapping,
)


def reconcile(
    principal: DirectoryPrincipal,
    local: Optional[LocalAccountRecord],
    mapping: TrustMapping,
    verified: bool,
) -> ProvisioningAction:
    """Compute the single provisioning action the decision table requires."""
    if principal.disabled:
        if local is None:
            return NoAction()
        return DisableAccount(user_id=local.id)

    if not verified:
        return NoAction()

    if local is None:
        return CreateAccount(
            username=principal.username,
            group_name=leaf_name(mapping.bound_name),
            domain_id=mapping.domain_id,
            account_type=mapping.default_account_type,
            profile=principal.profile,
        )

    if local.is_disabled:
        return EnableAccount(user_id=local.id)

    return NoAction()


@attrs.define
class AccountSynchronizer:
    """
    Applies directory state to the local account store.

    Holds no per-attempt state, so one instance can serve concurrent
    authentication attempts.
    """

    service: AccountService
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def reconcile(
        self,
        principal: DirectoryPrincipal,
        local: Optional[LocalAccountRecord],
        mapping: TrustMapping,
        verified: bool,
    ) -> ProvisioningAction:
        return reconcile(principal, local, mapping, verified)

    def synchronize(
        self,
        principal: DirectoryPrincipal,
        local: Optional[LocalAccountRecord],
        mapping: TrustMapping,
        verified: bool,
    ) -> ProvisioningAction:
        """Reconcile and apply. Returns the action that was applied."""
        action = self.reconcile(principal, local, mapping, verified)
        return self.apply(action)

    def apply(self, action: ProvisioningAction) -> ProvisioningAction:
        """
        Perform the mutation described by action.

        AccountStoreConflict from a lost creation race is recovered here;
        any other error propagates.
        """
        if isinstance(action, NoAction):
            return action

        if isinstance(action, CreateAccount):
            self._create(action)
        elif isinstance(action, EnableAccount):
            self.service.enable_user(action.user_id)
            self._logger.info("user_enabled", user_id=action.user_id)
        elif isinstance(action, DisableAccount):
            self.service.disable_user(action.user_id)
            self._logger.info("user_disabled", user_id=action.user_id)
        else:
            raise TypeError(f"Unknown provisioning action: {action!r}")

        return action

    def _create(self, action: CreateAccount) -> None:
        account = self.service.find_account(action.group_name, action.domain_id)
        if account is None:
            self._logger.info(
                "account_missing_creating",
                account=action.group_name,
                domain_id=action.domain_id,
                username=action.username,
            )
            try:
                self.service.create_account(
                    action.group_name,
                    action.domain_id,
                    action.account_type,
                    action.profile,
                )
            except AccountStoreConflict:
                self._logger.debug(
                    "account_created_concurrently",
                    account=action.group_name,
                    domain_id=action.domain_id,
                )
        else:
            self._logger.debug(
                "account_exists_creating_user",
                account=action.group_name,
                domain_id=action.domain_id,
                username=action.username,
            )

        try:
            user_id = self.service.create_user(
                action.username,
                action.group_name,
                action.domain_id,
                action.profile,
            )
        except AccountStoreConflict:
            self._logger.debug(
                "user_created_concurrently",
                username=action.username,
                domain_id=action.domain_id,
            )
            return

        self._logger.info(
            "user_imported",
            username=action.username,
            account=action.group_name,
            domain_id=action.domain_id,
            user_id=user_id,
        )
