"""
LDAP directory configuration.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import attrs
from attrs import field, validators


def _positive(instance: Any, attribute: attrs.Attribute, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{attribute.name} must be positive, got {value}")


@attrs.define(frozen=True)
class LdapConfig:
    """
    Directory connection settings.

    Attributes:
        host: Directory server hostname
        port: LDAP port (default 389, 636 for LDAPS)
        use_ssl: Connect with LDAPS
        bind_dn: Service account used for searches
        bind_password: Service account password
        base_dn: Search base for unscoped lookups
        enabled: Administrative switch for directory authentication
        user_object_class: objectClass of user entries
        username_attribute: Attribute holding the login name
        connect_timeout: Seconds to wait for the TCP connection
        receive_timeout: Seconds to wait for each response
    """

    host: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    base_dn: str = field(default="", validator=validators.instance_of(str))
    port: int = field(default=389, validator=[validators.instance_of(int), validators.gt(0)])
    use_ssl: bool = False
    bind_dn: Optional[str] = None
    bind_password: Optional[str] = field(default=None, repr=False)
    enabled: bool = True
    user_object_class: str = "user"
    username_attribute: str = "sAMAccountName"
    email_attribute: str = "mail"
    first_name_attribute: str = "givenName"
    last_name_attribute: str = "sn"
    group_membership_attribute: str = "memberOf"
    account_control_attribute: str = "userAccountControl"
    connect_timeout: float = field(default=10.0, converter=float, validator=_positive)
    receive_timeout: float = field(default=10.0, converter=float, validator=_positive)

    @property
    def url(self) -> str:
        scheme = "ldaps" if self.use_ssl else "ldap"
        return f"{scheme}://{self.host}:{self.port}"

    @classmethod
    def from_domain(cls, domain: str, **overrides: Any) -> "LdapConfig":
        """
        Create config from a DNS domain name.

        The base DN is derived from the domain (example.com -> DC=example,DC=com).
        """
        base_dn = ",".join(f"DC={part}" for part in domain.strip(".").split(".") if part)
        overrides.setdefault("base_dn", base_dn)
        return cls(host=domain, **overrides)

    @classmethod
    def from_mapping(cls, settings: Mapping[str, Any]) -> "LdapConfig":
        """Build a config from plain settings; unknown keys are ignored."""
        known = {a.name for a in attrs.fields(cls)}
        return cls(**{k: v for k, v in settings.items() if k in known})
