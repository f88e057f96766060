"""
DirAuth Directory Authenticator

Decides a single login attempt against the directory and reconciles the
local account as a side effect.

Decision flow:
1. Empty username or password: reject, touch nothing
2. Directory integration disabled: reject, defer to other authenticators
3. Read the local record once (snapshot)
4. Resolve the domain's trust mapping
5. Mapped: look the user up inside the bound group/OU, verify the
   password, then create/enable/disable the local account
6. Unmapped: only users with a local record are checked, against the
   whole directory, and nothing is provisioned
7. Failed attempts for users with a local record are flagged for
   lockout bookkeeping, whatever the reason for the failure

Error handling:
- "No such principal" is a negative result, logged at debug only
- Directory outages and deadline expiry raise DirectoryUnavailable
- Account store races are absorbed by the AccountSynchronizer
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

import attrs
import structlog
from returns.result import Failure

from dirauth.accounts.base import AccountService, AccountStore
from dirauth.accounts.synchronizer import AccountSynchronizer
from dirauth.auth.deadline import Deadline
from dirauth.core.exceptions import DirectoryError, InvalidTransition, PrincipalNotFound
from dirauth.core.trace import DecisionState, DecisionTrace
from dirauth.core.types import (
    AuthDecision,
    DirectoryPrincipal,
    LocalAccountRecord,
    TrustMapping,
)
from dirauth.directory.base import DirectoryClient, TrustMappingSource
from dirauth.directory.config import LdapConfig
from dirauth.directory.ldap_client import LdapDirectoryClient
from dirauth.directory.trust import TrustResolver

logger = structlog.get_logger()


@attrs.define
class DirectoryAuthenticator:
    """
    Directory-backed user authenticator.

    All collaborators are injected; the authenticator keeps no state
    between attempts and is safe to share across threads.

    Example:
        authenticator = DirectoryAuthenticator(
            directory=LdapDirectoryClient(config),
            trust_resolver=TrustResolver(mappings),
            accounts=store,
            synchronizer=AccountSynchronizer(service),
        )
        decision = authenticator.authenticate("jdoe", "secret", domain_id=1)
        if not decision.authenticated and decision.followup:
            store.increment_incorrect_login_attempts("jdoe", 1)
    """

    directory: DirectoryClient
    trust_resolver: TrustResolver
    accounts: AccountStore
    synchronizer: AccountSynchronizer
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def authenticate(
        self,
        username: str,
        password: str,
        domain_id: Any,
        request_context: Any = None,
        *,
        deadline: Optional[Deadline] = None,
    ) -> AuthDecision:
        """
        Authenticate username/password for a domain.

        Args:
            username: Login name
            password: Presented password
            domain_id: Local domain the user logs into
            request_context: Opaque caller context; not inspected
            deadline: Time budget / cancellation for the attempt

        Returns:
            AuthDecision with the pass/fail result and followup hint

        Raises:
            DirectoryUnavailable: directory unreachable, timed out or cancelled
            DirectoryError: any other directory failure
        """
        decision, _trace = self.authenticate_with_trace(
            username,
            password,
            domain_id,
            request_context,
            deadline=deadline,
        )
        return decision

    def authenticate_with_trace(
        self,
        username: str,
        password: str,
        domain_id: Any,
        request_context: Any = None,
        *,
        deadline: Optional[Deadline] = None,
    ) -> Tuple[AuthDecision, DecisionTrace]:
        """Like authenticate, also returning the attempt's decision trace."""
        trace = DecisionTrace()
        log = self._logger.bind(username=username, domain_id=domain_id)
        deadline = deadline or Deadline()

        self._advance(trace, DecisionState.VALIDATE_INPUT)
        if not username or not password:
            log.debug("empty_credentials")
            return self._finish(trace, AuthDecision.rejected(), log), trace

        if not self.directory.is_enabled():
            self._advance(trace, DecisionState.DISABLED)
            log.debug("directory_authentication_disabled")
            return self._finish(trace, AuthDecision.rejected(), log), trace

        log.info("authenticate_start")

        try:
            deadline.check("account lookup")
            local = self.accounts.lookup(username, domain_id)
            mapping = self.trust_resolver.resolve(domain_id)

            if mapping is not None:
                self._advance(
                    trace,
                    DecisionState.MAPPED,
                    bound_name=mapping.bound_name,
                    local_record=local is not None,
                )
                authenticated = self._authenticate_mapped(
                    username, password, local, mapping, deadline, log
                )
            else:
                self._advance(
                    trace,
                    DecisionState.UNMAPPED,
                    local_record=local is not None,
                )
                authenticated = self._authenticate_unmapped(
                    username, password, local, deadline, log
                )
        except DirectoryError as e:
            log.error("authenticate_directory_error", error=str(e), code=e.code)
            raise

        if authenticated:
            decision = AuthDecision.accepted()
        else:
            # known local users are flagged even when disabled upstream
            decision = AuthDecision.rejected(increment_failed_attempts=local is not None)

        return self._finish(trace, decision, log), trace

    # -------------------------------------------------------------------------
    # modes
    # -------------------------------------------------------------------------

    def _authenticate_mapped(
        self,
        username: str,
        password: str,
        local: Optional[LocalAccountRecord],
        mapping: TrustMapping,
        deadline: Deadline,
        log: Any,
    ) -> bool:
        principal = self._lookup_principal(username, mapping, deadline, log)
        if principal is None:
            return False

        if principal.disabled:
            log.info("principal_disabled", principal=principal.distinguished_name)
            deadline.check("account disable")
            self.synchronizer.synchronize(principal, local, mapping, verified=False)
            return False

        deadline.check("credential verification")
        verified = self.directory.verify(principal, password, timeout=deadline.remaining())
        if verified:
            deadline.check("account provisioning")
            action = self.synchronizer.synchronize(principal, local, mapping, verified=True)
            log.debug("account_reconciled", action=action.describe())
        return verified

    def _authenticate_unmapped(
        self,
        username: str,
        password: str,
        local: Optional[LocalAccountRecord],
        deadline: Deadline,
        log: Any,
    ) -> bool:
        if local is None:
            log.debug("unmapped_domain_unknown_user")
            return False

        principal = self._lookup_principal(username, None, deadline, log)
        if principal is None:
            return False

        if principal.disabled:
            log.debug("principal_disabled", principal=principal.distinguished_name)
            return False

        deadline.check("credential verification")
        return self.directory.verify(principal, password, timeout=deadline.remaining())

    def _lookup_principal(
        self,
        username: str,
        scope: Optional[TrustMapping],
        deadline: Deadline,
        log: Any,
    ) -> Optional[DirectoryPrincipal]:
        deadline.check("principal lookup")
        try:
            principal = self.directory.resolve_principal(
                username,
                scope,
                timeout=deadline.remaining(),
            )
        except PrincipalNotFound as e:
            log.debug("principal_not_found", reason=e.message)
            return None

        if principal is None:
            log.debug(
                "principal_not_found",
                scope=scope.describe() if scope else "directory",
            )
        return principal

    # -------------------------------------------------------------------------
    # trace helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _advance(trace: DecisionTrace, state: DecisionState, **detail: Any) -> None:
        result = trace.advance(state, **detail)
        if isinstance(result, Failure):
            raise InvalidTransition(result.failure())

    def _finish(self, trace: DecisionTrace, decision: AuthDecision, log: Any) -> AuthDecision:
        self._advance(
            trace,
            DecisionState.RESULT,
            authenticated=decision.authenticated,
            followup=decision.followup.name if decision.followup else None,
        )
        log.info(
            "authenticate_result",
            authenticated=decision.authenticated,
            followup=decision.followup.name if decision.followup else None,
        )
        return decision


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_ldap_authenticator(
    config: LdapConfig,
    accounts: AccountStore,
    service: AccountService,
    trust_mappings: TrustMappingSource,
) -> DirectoryAuthenticator:
    """
    Create an authenticator backed by an ldap3 directory client.

    Args:
        config: Directory connection settings
        accounts: Local account lookups
        service: Local account lifecycle operations
        trust_mappings: Domain-to-directory trust bindings

    Example:
        authenticator = create_ldap_authenticator(
            LdapConfig.from_domain("example.com", bind_dn=..., bind_password=...),
            accounts=store,
            service=store,
            trust_mappings=StaticTrustMappings(),
        )
    """
    logger.info(
        "ldap_authenticator_created",
        server=config.url,
        base_dn=config.base_dn,
        enabled=config.enabled,
    )
    return DirectoryAuthenticator(
        directory=LdapDirectoryClient(config),
        trust_resolver=TrustResolver(trust_mappings),
        accounts=accounts,
        synchronizer=AccountSynchronizer(service),
    )
