"""
Unit tests for dirauth.directory.ldap_client and dirauth.directory.config.

Directory round-trips use ldap3's MOCK_SYNC strategy; every connection
made against the same Server object shares one in-memory DIT.
"""

import socket
import time

import attrs
import pytest
from ldap3 import MOCK_SYNC, NONE, Connection, Server
from ldap3.core.exceptions import LDAPSocketOpenError

from dirauth.core.exceptions import DirectoryError, DirectoryUnavailable
from dirauth.core.types import BindingType, DirectoryPrincipal, TrustMapping
from dirauth.directory.config import LdapConfig
from dirauth.directory.ldap_client import (
    LdapDirectoryClient,
    build_user_filter,
    is_account_disabled,
    search_base_for,
)


BASE_DN = "DC=example,DC=com"
SERVICE_DN = "CN=svc-auth,OU=service,DC=example,DC=com"
SERVICE_PASSWORD = "svc-secret"
JDOE_DN = "CN=John Doe,OU=staff,DC=example,DC=com"
JDOE_PASSWORD = "s3cret!"


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def ldap_config() -> LdapConfig:
    return LdapConfig(
        host="dc.example.com",
        base_dn=BASE_DN,
        bind_dn=SERVICE_DN,
        bind_password=SERVICE_PASSWORD,
        receive_timeout=8.0,
    )


@pytest.fixture
def mock_server() -> Server:
    """Server whose mock DIT holds one enabled and one disabled user."""
    server = Server("dc.example.com", get_info=NONE)
    seed = Connection(server, user=SERVICE_DN, password=SERVICE_PASSWORD, client_strategy=MOCK_SYNC)
    seed.strategy.add_entry(BASE_DN, {"objectClass": "domain", "dc": "example"})
    seed.strategy.add_entry("OU=staff,DC=example,DC=com", {"objectClass": "organizationalUnit", "ou": "staff"})
    seed.strategy.add_entry("OU=service,DC=example,DC=com", {"objectClass": "organizationalUnit", "ou": "service"})
    seed.strategy.add_entry(SERVICE_DN, {
        "objectClass": "user",
        "sAMAccountName": "svc-auth",
        "userPassword": SERVICE_PASSWORD,
    })
    seed.strategy.add_entry(JDOE_DN, {
        "objectClass": "user",
        "sAMAccountName": "jdoe",
        "givenName": "John",
        "sn": "Doe",
        "mail": "jdoe@example.com",
        "userAccountControl": "512",
        "userPassword": JDOE_PASSWORD,
    })
    seed.strategy.add_entry("CN=Old Timer,OU=staff,DC=example,DC=com", {
        "objectClass": "user",
        "sAMAccountName": "oldtimer",
        "userAccountControl": "514",
        "userPassword": "whatever",
    })
    return server


class RecordingFactory:
    """Connection factory producing mock connections and recording arguments."""

    def __init__(self) -> None:
        self.calls = []

    def __call__(self, server, user, password, receive_timeout):
        self.calls.append((user, receive_timeout))
        return Connection(server, user=user, password=password, client_strategy=MOCK_SYNC)


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def ldap_directory(ldap_config, mock_server, factory) -> LdapDirectoryClient:
    return LdapDirectoryClient(ldap_config, server=mock_server, connection_factory=factory)


# =============================================================================
# CONFIG
# =============================================================================


class TestLdapConfig:
    """Tests for LdapConfig."""

    def test_from_domain(self):
        """Test base DN is derived from the domain."""
        config = LdapConfig.from_domain("example.com")
        assert config.host == "example.com"
        assert config.base_dn == "DC=example,DC=com"
        assert config.url == "ldap://example.com:389"

    def test_from_mapping_ignores_unknown_keys(self):
        """Test plain settings build a config."""
        config = LdapConfig.from_mapping({
            "host": "dc1",
            "port": 636,
            "use_ssl": True,
            "connect_timeout": "3",
            "theme": "dark",
        })
        assert config.url == "ldaps://dc1:636"
        assert config.connect_timeout == 3.0

    def test_invalid_timeout(self):
        """Test timeouts must be positive."""
        with pytest.raises(ValueError):
            LdapConfig(host="dc1", receive_timeout=0)

    def test_password_not_in_repr(self):
        """Test the bind password is hidden from repr."""
        config = LdapConfig(host="dc1", bind_password="hunter2")
        assert "hunter2" not in repr(config)


# =============================================================================
# FILTERS
# =============================================================================


class TestFilters:
    """Tests for search filter and base construction."""

    def test_unscoped_filter(self, ldap_config):
        """Test the filter for a global lookup."""
        assert build_user_filter(ldap_config, "jdoe") == "(&(objectClass=user)(sAMAccountName=jdoe))"

    def test_group_scope_filter(self, ldap_config):
        """Test GROUP scope adds a membership clause."""
        mapping = TrustMapping(domain_id=1, bound_name="CN=devs,OU=groups,DC=example,DC=com")
        assert build_user_filter(ldap_config, "jdoe", mapping) == (
            "(&(objectClass=user)(sAMAccountName=jdoe)"
            "(memberOf=CN=devs,OU=groups,DC=example,DC=com))"
        )
        assert search_base_for(ldap_config, mapping) == BASE_DN

    def test_ou_scope_uses_search_base(self, ldap_config):
        """Test OU scope narrows the search base instead of the filter."""
        mapping = TrustMapping(
            domain_id=1,
            bound_name="OU=staff,DC=example,DC=com",
            binding_type=BindingType.OU,
        )
        assert "memberOf" not in build_user_filter(ldap_config, "jdoe", mapping)
        assert search_base_for(ldap_config, mapping) == "OU=staff,DC=example,DC=com"

    def test_username_is_escaped(self, ldap_config):
        """Test filter metacharacters in the username are escaped."""
        flt = build_user_filter(ldap_config, "*)(objectClass=*")
        assert flt == "(&(objectClass=user)(sAMAccountName=\\2a\\29\\28objectClass=\\2a))"

    @pytest.mark.parametrize("value,expected", [
        ("512", False),
        ("514", True),
        (66050, True),
        (66048, False),
        (None, False),
        ("", False),
        ("garbage", False),
    ])
    def test_is_account_disabled(self, value, expected):
        """Test the ACCOUNTDISABLE bit is read from userAccountControl."""
        assert is_account_disabled(value) is expected


# =============================================================================
# DIRECTORY ROUND-TRIPS
# =============================================================================


class TestResolvePrincipal:
    """Tests for principal lookup against the mock directory."""

    def test_found(self, ldap_directory):
        """Test an existing user is returned with its profile."""
        principal = ldap_directory.resolve_principal("jdoe")

        assert principal is not None
        assert principal.distinguished_name.lower() == JDOE_DN.lower()
        assert principal.username == "jdoe"
        assert principal.first_name == "John"
        assert principal.last_name == "Doe"
        assert principal.email == "jdoe@example.com"
        assert not principal.disabled

    def test_disabled_user(self, ldap_directory):
        """Test userAccountControl marks the principal disabled."""
        principal = ldap_directory.resolve_principal("oldtimer")
        assert principal is not None
        assert principal.disabled

    def test_not_found(self, ldap_directory):
        """Test an unknown username yields None."""
        assert ldap_directory.resolve_principal("nobody") is None

    def test_ou_scope(self, ldap_directory):
        """Test OU scoping finds users under the bound OU only."""
        staff = TrustMapping(
            domain_id=1,
            bound_name="OU=staff,DC=example,DC=com",
            binding_type=BindingType.OU,
        )
        service = TrustMapping(
            domain_id=2,
            bound_name="OU=service,DC=example,DC=com",
            binding_type=BindingType.OU,
        )
        assert ldap_directory.resolve_principal("jdoe", staff) is not None
        assert ldap_directory.resolve_principal("jdoe", service) is None

    def test_service_bind_rejected(self, ldap_config, mock_server, factory):
        """Test a wrong service password is a directory error, not a miss."""
        config = attrs.evolve(ldap_config, bind_password="wrong")
        client = LdapDirectoryClient(config, server=mock_server, connection_factory=factory)
        with pytest.raises(DirectoryError):
            client.resolve_principal("jdoe")


class TestVerify:
    """Tests for password verification by bind."""

    def _jdoe(self) -> DirectoryPrincipal:
        return DirectoryPrincipal(distinguished_name=JDOE_DN, username="jdoe")

    def test_correct_password(self, ldap_directory):
        """Test the right password binds."""
        assert ldap_directory.verify(self._jdoe(), JDOE_PASSWORD) is True

    def test_wrong_password(self, ldap_directory):
        """Test a wrong password is False, not an error."""
        assert ldap_directory.verify(self._jdoe(), "nope") is False

    def test_empty_password_never_binds(self, ldap_directory, factory):
        """Test empty passwords are rejected before any connection."""
        assert ldap_directory.verify(self._jdoe(), "") is False
        assert factory.calls == []


class TestTimeoutsAndErrors:
    """Tests for timeout handling and error translation."""

    def test_timeout_is_capped_by_config(self, ldap_directory, factory):
        """Test the caller's timeout cannot exceed the configured one."""
        ldap_directory.resolve_principal("jdoe", timeout=30.0)
        ldap_directory.resolve_principal("jdoe", timeout=2.5)
        ldap_directory.resolve_principal("jdoe")

        timeouts = [t for _, t in factory.calls]
        assert timeouts == [8, 3, 8]
        assert all(isinstance(t, int) for t in timeouts)

    def test_sub_second_budget_rounds_up(self, ldap_directory, factory):
        """Test a fractional budget still yields a whole-second receive timeout."""
        ldap_directory.verify(DirectoryPrincipal(distinguished_name=JDOE_DN, username="jdoe"), "x", timeout=0.3)
        assert factory.calls == [(JDOE_DN, 1)]

    def test_connect_timeout_follows_budget(self, ldap_config):
        """Test servers built per call cap the connect timeout at the caller's budget."""
        seen = []

        def unreachable(server, user, password, receive_timeout):
            seen.append(server.connect_timeout)
            raise LDAPSocketOpenError("timed out")

        config = attrs.evolve(ldap_config, connect_timeout=10.0)
        client = LdapDirectoryClient(config, connection_factory=unreachable)
        for timeout in (0.5, None, 30.0):
            with pytest.raises(DirectoryUnavailable):
                client.resolve_principal("jdoe", timeout=timeout)

        assert seen == [0.5, 10.0, 10.0]

    def test_exhausted_timeout(self, ldap_directory, factory):
        """Test a zero budget fails without connecting."""
        with pytest.raises(DirectoryUnavailable):
            ldap_directory.resolve_principal("jdoe", timeout=0)
        assert factory.calls == []

    def test_connection_failure(self, ldap_config, mock_server):
        """Test socket failures surface as DirectoryUnavailable."""

        def refusing_factory(server, user, password, receive_timeout):
            raise LDAPSocketOpenError("connection refused")

        client = LdapDirectoryClient(ldap_config, server=mock_server, connection_factory=refusing_factory)
        with pytest.raises(DirectoryUnavailable):
            client.resolve_principal("jdoe")
        with pytest.raises(DirectoryUnavailable):
            client.verify(DirectoryPrincipal(distinguished_name=JDOE_DN, username="jdoe"), "pw")

    def test_is_enabled_follows_config(self, ldap_config, mock_server):
        """Test the administrative switch comes from config."""
        disabled = attrs.evolve(ldap_config, enabled=False)
        assert LdapDirectoryClient(ldap_config, server=mock_server).is_enabled()
        assert not LdapDirectoryClient(disabled, server=mock_server).is_enabled()


# =============================================================================
# REAL SOCKETS
# =============================================================================


@pytest.fixture
def silent_listener():
    """TCP listener that accepts connections and never answers."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(8)
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()


@pytest.mark.slow
class TestSocketConnections:
    """Tests that go through ldap3's default synchronous strategy."""

    def _client(self, port: int) -> LdapDirectoryClient:
        return LdapDirectoryClient(LdapConfig(
            host="127.0.0.1",
            port=port,
            base_dn=BASE_DN,
            bind_dn=SERVICE_DN,
            bind_password=SERVICE_PASSWORD,
            receive_timeout=5.0,
        ))

    def test_silent_server_search(self, silent_listener):
        """Test an unresponsive server is unavailable, within the caller's budget."""
        client = self._client(silent_listener)

        started = time.monotonic()
        with pytest.raises(DirectoryUnavailable):
            client.resolve_principal("jdoe", timeout=0.5)
        assert time.monotonic() - started < 4.0

    def test_silent_server_bind(self, silent_listener):
        """Test a user bind against an unresponsive server is unavailable."""
        client = self._client(silent_listener)
        with pytest.raises(DirectoryUnavailable):
            client.verify(DirectoryPrincipal(distinguished_name=JDOE_DN, username="jdoe"), "pw", timeout=1.0)

    def test_refused_connection(self):
        """Test a closed port is unavailable, not a raw socket error."""
        placeholder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        placeholder.bind(("127.0.0.1", 0))
        port = placeholder.getsockname()[1]
        placeholder.close()

        with pytest.raises(DirectoryUnavailable):
            self._client(port).resolve_principal("jdoe", timeout=1.0)
