"""
DirAuth LDAP Directory Client

ldap3-backed implementation of the DirectoryClient contract.

Lookups:
- Service bind with the configured account, then a subtree search for
  exactly one user entry matching the login name
- GROUP trust mappings restrict the search to members of the bound group
- OU trust mappings use the bound OU as search base

Verification:
- Simple bind as the principal's DN with the presented password

Errors:
- Transport failures and timeouts raise DirectoryUnavailable
- Other LDAP failures raise DirectoryError
- "No such user" and "invalid credentials" are ordinary results
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

import attrs
import structlog
from ldap3 import NONE, SUBTREE, Connection, Server
from ldap3.core.exceptions import (
    LDAPCommunicationError,
    LDAPException,
    LDAPResponseTimeoutError,
)
from ldap3.utils.conv import escape_filter_chars

from dirauth.core.exceptions import DirectoryError, DirectoryUnavailable
from dirauth.core.types import BindingType, DirectoryPrincipal, TrustMapping
from dirauth.directory.base import DirectoryClient
from dirauth.directory.config import LdapConfig

logger = structlog.get_logger()


# userAccountControl ACCOUNTDISABLE flag (MS-ADTS 2.2.16)
ACCOUNTDISABLE = 0x0002

# Bind result codes meaning "these credentials are not accepted"
RESULT_NO_SUCH_OBJECT = 32
RESULT_INAPPROPRIATE_AUTHENTICATION = 48
RESULT_INVALID_CREDENTIALS = 49
RESULT_INSUFFICIENT_ACCESS_RIGHTS = 50
RESULT_UNWILLING_TO_PERFORM = 53

_BIND_REJECTED = frozenset({
    RESULT_NO_SUCH_OBJECT,
    RESULT_INAPPROPRIATE_AUTHENTICATION,
    RESULT_INVALID_CREDENTIALS,
    RESULT_INSUFFICIENT_ACCESS_RIGHTS,
    RESULT_UNWILLING_TO_PERFORM,
})

# (server, user, password, receive_timeout) -> unbound Connection
# receive_timeout is whole seconds: ldap3 packs it into SO_RCVTIMEO as an integer
ConnectionFactory = Callable[[Server, Optional[str], Optional[str], int], Connection]


def default_connection_factory(
    server: Server,
    user: Optional[str],
    password: Optional[str],
    receive_timeout: int,
) -> Connection:
    return Connection(
        server,
        user=user,
        password=password,
        auto_bind=False,
        receive_timeout=receive_timeout,
    )


def build_user_filter(config: LdapConfig, username: str, scope: Optional[TrustMapping] = None) -> str:
    """
    Build the search filter for a login name.

    Example:
        (&(objectClass=user)(sAMAccountName=jdoe)(memberOf=CN=devs,DC=example,DC=com))
    """
    clauses = [
        f"(objectClass={escape_filter_chars(config.user_object_class)})",
        f"({config.username_attribute}={escape_filter_chars(username)})",
    ]
    if scope is not None and scope.binding_type is BindingType.GROUP:
        clauses.append(
            f"({config.group_membership_attribute}={escape_filter_chars(scope.bound_name)})"
        )
    return "(&" + "".join(clauses) + ")"


def search_base_for(config: LdapConfig, scope: Optional[TrustMapping] = None) -> str:
    if scope is not None and scope.binding_type is BindingType.OU:
        return scope.bound_name
    return config.base_dn


@attrs.define
class LdapDirectoryClient(DirectoryClient):
    """
    Directory client for LDAP / Active Directory.

    Example:
        config = LdapConfig(
            host="dc.example.com",
            base_dn="DC=example,DC=com",
            bind_dn="CN=svc-auth,OU=service,DC=example,DC=com",
            bind_password="...",
        )
        directory = LdapDirectoryClient(config)
        principal = directory.resolve_principal("jdoe")
        if principal and directory.verify(principal, "secret"):
            ...
    """

    config: LdapConfig
    # fixed server for every call; None builds one per call so the
    # connect timeout can follow the caller's remaining time
    server: Optional[Server] = None
    connection_factory: ConnectionFactory = default_connection_factory
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def is_enabled(self) -> bool:
        return self.config.enabled

    def resolve_principal(
        self,
        username: str,
        scope: Optional[TrustMapping] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[DirectoryPrincipal]:
        search_base = search_base_for(self.config, scope)
        search_filter = build_user_filter(self.config, username, scope)
        attributes = self._user_attributes()

        self._logger.debug(
            "ldap_search_user",
            username=username,
            search_base=search_base,
            scope=scope.describe() if scope else None,
        )

        with self._connection(
            self.config.bind_dn,
            self.config.bind_password,
            timeout,
            "search",
        ) as conn:
            if not conn.bind():
                raise DirectoryError(
                    f"Service bind rejected by {self.config.url}: {self._describe(conn)}",
                    code=self._result_code(conn),
                )
            conn.search(
                search_base=search_base,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=attributes,
                size_limit=2,
            )
            code = self._result_code(conn)
            description = self._describe(conn)
            entries = self._entries(conn)

        if not entries:
            if code not in (None, 0, RESULT_NO_SUCH_OBJECT):
                raise DirectoryError(f"User search failed: {description}", code=code)
            self._logger.debug("ldap_user_not_found", username=username, search_base=search_base)
            return None

        if len(entries) > 1:
            raise DirectoryError(
                f"Username '{username}' matches more than one directory entry"
            )

        return self._to_principal(entries[0], username)

    def verify(
        self,
        principal: DirectoryPrincipal,
        password: str,
        *,
        timeout: Optional[float] = None,
    ) -> bool:
        # an empty password would be an unauthenticated bind and succeed
        if not password:
            return False

        with self._connection(
            principal.distinguished_name,
            password,
            timeout,
            "bind",
        ) as conn:
            ok = bool(conn.bind())
            code = self._result_code(conn)
            description = self._describe(conn)

        if ok:
            self._logger.debug("ldap_bind_success", principal=principal.distinguished_name)
            return True
        if code is None or code in _BIND_REJECTED:
            self._logger.debug(
                "ldap_bind_rejected",
                principal=principal.distinguished_name,
                result=code,
            )
            return False
        raise DirectoryError(
            f"Bind for {principal.distinguished_name} failed: {description}",
            code=code,
        )

    # -------------------------------------------------------------------------
    # helpers
    # -------------------------------------------------------------------------

    def _effective_timeout(self, timeout: Optional[float]) -> float:
        if timeout is None:
            return self.config.receive_timeout
        if timeout <= 0:
            raise DirectoryUnavailable("Directory call deadline already exceeded")
        return min(self.config.receive_timeout, timeout)

    def _effective_connect_timeout(self, timeout: Optional[float]) -> float:
        if timeout is None:
            return self.config.connect_timeout
        return min(self.config.connect_timeout, timeout)

    def _server_for(self, timeout: Optional[float]) -> Server:
        if self.server is not None:
            return self.server
        return Server(
            self.config.host,
            port=self.config.port,
            use_ssl=self.config.use_ssl,
            get_info=NONE,
            connect_timeout=self._effective_connect_timeout(timeout),
        )

    @contextmanager
    def _connection(
        self,
        user: Optional[str],
        password: Optional[str],
        timeout: Optional[float],
        operation: str,
    ) -> Iterator[Connection]:
        budget = self._effective_timeout(timeout)
        receive_timeout = max(1, math.ceil(budget))
        conn = None
        try:
            server = self._server_for(timeout)
            conn = self.connection_factory(server, user, password, receive_timeout)
            yield conn
        except (LDAPCommunicationError, LDAPResponseTimeoutError) as e:
            self._logger.error(
                "ldap_unavailable",
                operation=operation,
                server=self.config.url,
                error=str(e),
            )
            raise DirectoryUnavailable(
                f"Directory {self.config.url} unavailable during {operation}: {e}"
            ) from e
        except LDAPException as e:
            self._logger.error(
                "ldap_error",
                operation=operation,
                server=self.config.url,
                error=str(e),
            )
            raise DirectoryError(f"LDAP {operation} failed: {e}") from e
        finally:
            if conn is not None and not conn.closed:
                try:
                    conn.unbind()
                except LDAPException as e:
                    self._logger.debug("ldap_unbind_failed", error=str(e))

    def _user_attributes(self) -> List[str]:
        cfg = self.config
        return [
            cfg.username_attribute,
            cfg.first_name_attribute,
            cfg.last_name_attribute,
            cfg.email_attribute,
            cfg.account_control_attribute,
        ]

    @staticmethod
    def _entries(conn: Connection) -> List[Dict[str, Any]]:
        return [
            r for r in (conn.response or [])
            if r.get("dn") and r.get("type", "searchResEntry") == "searchResEntry"
        ]

    @staticmethod
    def _result_code(conn: Connection) -> Optional[int]:
        result = conn.result or {}
        return result.get("result")

    @staticmethod
    def _describe(conn: Connection) -> str:
        result = conn.result or {}
        return f"{result.get('description', 'unknown')} ({result.get('message', '')})"

    def _to_principal(self, entry: Dict[str, Any], username: str) -> DirectoryPrincipal:
        cfg = self.config
        attributes = entry.get("attributes") or {}
        return DirectoryPrincipal(
            distinguished_name=entry["dn"],
            username=_attribute(attributes, cfg.username_attribute) or username,
            first_name=_attribute(attributes, cfg.first_name_attribute),
            last_name=_attribute(attributes, cfg.last_name_attribute),
            email=_attribute(attributes, cfg.email_attribute),
            disabled=is_account_disabled(_attribute(attributes, cfg.account_control_attribute)),
        )


def is_account_disabled(account_control: Any) -> bool:
    """Check the ACCOUNTDISABLE bit of a userAccountControl value."""
    if account_control in (None, ""):
        return False
    try:
        return bool(int(account_control) & ACCOUNTDISABLE)
    except (TypeError, ValueError):
        logger.debug("account_control_unparseable", value=repr(account_control))
        return False


def _attribute(attributes: Dict[str, Any], name: str) -> str:
    """Single string value of an attribute, looked up case-insensitively."""
    value = attributes.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in attributes.items():
            if key.lower() == lowered:
                value = candidate
                break
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
