"""
Distinguished name helpers.

The leaf of a DN is its deepest RDN, which is the left-most component of
the string form: CN=devs,OU=groups,DC=example,DC=com -> "devs".
"""

from __future__ import annotations

from returns.result import Failure, Result, Success
from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import parse_dn

from dirauth.core.exceptions import InvalidDistinguishedName


def parse_leaf_name(dn: str) -> Result[str, str]:
    """
    Return the value of the leaf RDN of a distinguished name.

    Returns:
        Success(value) or Failure(error_message)
    """
    text = (dn or "").strip()
    if not text:
        return Failure("Distinguished name is empty")
    if "=" not in text:
        return Failure(f"{text} is not a valid distinguished name")

    try:
        components = parse_dn(text, escape=False, strip=True)
    except LDAPInvalidDnError as e:
        return Failure(f"Unable to parse distinguished name {text}: {e}")

    if not components:
        return Failure(f"Unable to get leaf name from {text}")

    _attr, value, _sep = components[0]
    value = _unescape(value).strip()
    if not value:
        return Failure(f"Leaf component of {text} has no value")
    return Success(value)


def leaf_name(dn: str) -> str:
    """Like parse_leaf_name, but raises InvalidDistinguishedName."""
    result = parse_leaf_name(dn)
    if isinstance(result, Failure):
        raise InvalidDistinguishedName(result.failure())
    return result.unwrap()


def is_valid_dn(dn: str) -> bool:
    return isinstance(parse_leaf_name(dn), Success)


_HEX = "0123456789abcdefABCDEF"


def _unescape(value: str) -> str:
    # RFC 4514: "\," style escapes, and "\C3\A9" style hex pairs holding UTF-8 bytes
    out = []
    pending = bytearray()
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\":
            pair = value[i + 1:i + 3]
            if len(pair) == 2 and pair[0] in _HEX and pair[1] in _HEX:
                pending.append(int(pair, 16))
                i += 3
                continue
        if pending:
            out.append(pending.decode("utf-8", errors="replace"))
            pending.clear()
        if ch == "\\" and i + 1 < len(value):
            out.append(value[i + 1])
            i += 2
        else:
            out.append(ch)
            i += 1
    if pending:
        out.append(pending.decode("utf-8", errors="replace"))
    return "".join(out)
