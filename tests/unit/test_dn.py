"""
Unit tests for dirauth.core.dn module.
"""

import pytest
from returns.result import Failure, Success

from dirauth.core.dn import is_valid_dn, leaf_name, parse_leaf_name
from dirauth.core.exceptions import InvalidDistinguishedName


class TestLeafName:
    """Tests for leaf RDN extraction."""

    def test_group_dn(self):
        """Test leaf of a group DN is its CN."""
        assert leaf_name("CN=devs,OU=groups,DC=example,DC=com") == "devs"

    def test_ou_dn(self):
        """Test leaf of an OU DN is the OU name."""
        assert leaf_name("OU=staff,DC=example,DC=com") == "staff"

    def test_single_component(self):
        """Test a single-RDN DN."""
        assert leaf_name("cn=admins") == "admins"

    def test_value_with_spaces(self):
        """Test inner spaces are part of the value and outer whitespace is ignored."""
        assert leaf_name("  CN=Domain Admins,DC=example,DC=com ") == "Domain Admins"

    def test_escaped_comma(self):
        """Test escaped separators stay in the value."""
        assert leaf_name(r"CN=Doe\, John,OU=staff,DC=example,DC=com") == "Doe, John"

    def test_hex_escape(self):
        """Test hex-pair escapes are decoded."""
        assert leaf_name(r"CN=a\2Bb,DC=example,DC=com") == "a+b"

    def test_utf8_hex_escape(self):
        """Test multi-byte hex escapes decode as UTF-8."""
        assert leaf_name(r"CN=\C3\A9quipe,OU=groups,DC=example,DC=com") == "équipe"
        assert leaf_name(r"CN=caf\C3\A9\2C bar,DC=example,DC=com") == "café, bar"

    def test_parse_returns_success(self):
        """Test parse_leaf_name wraps the value in Success."""
        result = parse_leaf_name("CN=devs,DC=example,DC=com")
        assert isinstance(result, Success)
        assert result.unwrap() == "devs"


class TestInvalidNames:
    """Tests for names that are not distinguished names."""

    @pytest.mark.parametrize("dn", ["", "   ", "devs", None])
    def test_failure(self, dn):
        """Test invalid input yields Failure."""
        result = parse_leaf_name(dn)
        assert isinstance(result, Failure)
        assert not is_valid_dn(dn)

    def test_leaf_name_raises(self):
        """Test leaf_name raises a ValueError subclass."""
        with pytest.raises(InvalidDistinguishedName):
            leaf_name("not a dn")
        with pytest.raises(ValueError):
            leaf_name("")
