"""Registry of PHP runtime functions that can throw exceptions.

json_encode and json_decode only throw when called with JSON_THROW_ON_ERROR,
so their call sites are inspected and classified with a ThrowVerdict.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

from phpthrows.parsing.php import node_text

_JSON = ("JsonException",)
_DATE = ("DateMalformedStringException",)
_VALUE = ("ValueError",)
_RANDOM = ("Random\\RandomException",)
_INTL = ("IntlException",)
_PDO = ("PDOException",)
_SOCKET = ("SocketException",)

FUNCTION_THROWS: dict[str, tuple[str, ...]] = {
    # JSON functions
    "json_encode": _JSON,
    "json_decode": _JSON,
    # Date/Time functions
    "date_create": _DATE,
    "date_create_immutable": _DATE,
    "date_create_from_format": _DATE,
    "date_create_immutable_from_format": _DATE,
    "date_parse": _DATE,
    "date_parse_from_format": _DATE,
    # Multibyte string functions
    **{
        name: _VALUE
        for name in (
            "mb_check_encoding",
            "mb_chr",
            "mb_convert_case",
            "mb_convert_encoding",
            "mb_convert_kana",
            "mb_decode_numericentity",
            "mb_encode_numericentity",
            "mb_ord",
            "mb_scrub",
            "mb_strcut",
            "mb_strimwidth",
            "mb_stripos",
            "mb_stristr",
            "mb_strlen",
            "mb_strpos",
            "mb_strrchr",
            "mb_strrichr",
            "mb_strripos",
            "mb_strrpos",
            "mb_strstr",
            "mb_strtolower",
            "mb_strtoupper",
            "mb_strwidth",
            "mb_substr",
            "mb_substr_count",
        )
    },
    # Array functions
    "array_rand": _VALUE,
    "array_multisort": _VALUE,
    # Random functions
    "random_int": _RANDOM,
    "random_bytes": _RANDOM,
    # Intl functions
    **{
        name: _INTL
        for name in (
            "intlcal_create_instance",
            "intlcal_from_date_time",
            "intlcal_get_keyword_values_for_locale",
            "intlgregcal_create_instance",
            "intltz_create_default",
            "intltz_create_enumeration",
            "intltz_create_time_zone",
            "intltz_from_date_time_zone",
            "intltz_get_canonical_id",
            "intltz_get_id_for_windows_id",
            "intltz_get_region",
            "intltz_get_tz_data_version",
            "intltz_get_windows_id",
        )
    },
    # PDO functions
    "pdo_drivers": _PDO,
    # Socket functions
    **{
        name: _SOCKET
        for name in (
            "socket_create",
            "socket_create_listen",
            "socket_create_pair",
            "socket_accept",
            "socket_addrinfo_bind",
            "socket_addrinfo_connect",
            "socket_addrinfo_explain",
            "socket_addrinfo_lookup",
            "socket_bind",
            "socket_connect",
            "socket_export_stream",
            "socket_get_option",
            "socket_getpeername",
            "socket_getsockname",
            "socket_import_stream",
            "socket_listen",
            "socket_read",
            "socket_recv",
            "socket_recvfrom",
            "socket_recvmsg",
            "socket_send",
            "socket_sendmsg",
            "socket_sendto",
            "socket_set_block",
            "socket_set_nonblock",
            "socket_set_option",
            "socket_shutdown",
            "socket_write",
        )
    },
}

JSON_THROW_ON_ERROR_NAME = "JSON_THROW_ON_ERROR"
JSON_THROW_ON_ERROR = 1 << 22

# function -> (0-based position of the flags argument, its parameter name)
_CONDITIONAL_FLAGS: dict[str, tuple[int, str]] = {
    "json_encode": (1, "flags"),
    "json_decode": (3, "flags"),
}


class ThrowVerdict(Enum):
    DEFINITELY_THROWS = "definitely_throws"
    DEFINITELY_DOES_NOT = "definitely_does_not"
    INDETERMINATE = "indeterminate"

    @property
    def may_throw(self) -> bool:
        """Indeterminate call sites are treated as throwing."""
        return self is not ThrowVerdict.DEFINITELY_DOES_NOT


def get_throws(function_name: str) -> tuple[str, ...] | None:
    return FUNCTION_THROWS.get(function_name.lower())


def can_throw(function_name: str) -> bool:
    return function_name.lower() in FUNCTION_THROWS


def all_functions() -> list[str]:
    return list(FUNCTION_THROWS)


def has_conditional_throw(function_name: str) -> bool:
    return function_name.lower() in _CONDITIONAL_FLAGS


def call_verdict(function_name: str, arguments: Sequence[Any]) -> ThrowVerdict:
    """Classify a call to a registered function.

    Args:
        function_name: Unqualified function name.
        arguments: tree-sitter ``argument`` nodes of the call, in order.
    """
    name = function_name.lower()
    if name not in FUNCTION_THROWS:
        return ThrowVerdict.DEFINITELY_DOES_NOT
    if name not in _CONDITIONAL_FLAGS:
        return ThrowVerdict.DEFINITELY_THROWS

    position, param_name = _CONDITIONAL_FLAGS[name]
    flag_arg = _find_argument(arguments, position, param_name)
    if flag_arg is _UNKNOWN:
        return ThrowVerdict.INDETERMINATE
    if flag_arg is None:
        return ThrowVerdict.DEFINITELY_DOES_NOT
    return _flag_verdict(flag_arg)


_UNKNOWN = object()


def _find_argument(arguments: Sequence[Any], position: int, param_name: str) -> Any:
    """Return the value expression bound to a parameter, None if absent, _UNKNOWN if unpacked."""
    positional = 0
    for arg in arguments:
        if arg.type == "variadic_unpacking":
            return _UNKNOWN
        if any(child.type == "variadic_unpacking" for child in arg.named_children):
            return _UNKNOWN
        if node_text(arg).lstrip().startswith("..."):
            return _UNKNOWN

        name_node = arg.child_by_field_name("name")
        value = arg.named_children[-1] if arg.named_children else None
        if name_node is not None:
            if node_text(name_node) == param_name:
                return value
            continue
        if positional == position:
            return value
        positional += 1
    return None


def _flag_verdict(expr: Any) -> ThrowVerdict:
    if expr is None:
        return ThrowVerdict.INDETERMINATE

    if expr.type == "parenthesized_expression":
        inner = expr.named_children
        return _flag_verdict(inner[0] if inner else None)

    if expr.type in ("name", "qualified_name"):
        constant = node_text(expr).lstrip("\\")
        if constant == JSON_THROW_ON_ERROR_NAME:
            return ThrowVerdict.DEFINITELY_THROWS
        if constant.startswith("JSON_"):
            return ThrowVerdict.DEFINITELY_DOES_NOT
        return ThrowVerdict.INDETERMINATE

    if expr.type == "integer":
        value = _php_int(node_text(expr))
        if value is None:
            return ThrowVerdict.INDETERMINATE
        if value & JSON_THROW_ON_ERROR:
            return ThrowVerdict.DEFINITELY_THROWS
        return ThrowVerdict.DEFINITELY_DOES_NOT

    if expr.type == "binary_expression":
        operator = expr.child_by_field_name("operator")
        if operator is None or operator.type != "|":
            return ThrowVerdict.INDETERMINATE
        sides = (
            _flag_verdict(expr.child_by_field_name("left")),
            _flag_verdict(expr.child_by_field_name("right")),
        )
        if ThrowVerdict.DEFINITELY_THROWS in sides:
            return ThrowVerdict.DEFINITELY_THROWS
        if ThrowVerdict.INDETERMINATE in sides:
            return ThrowVerdict.INDETERMINATE
        return ThrowVerdict.DEFINITELY_DOES_NOT

    return ThrowVerdict.INDETERMINATE


def _php_int(literal: str) -> int | None:
    """Parse a PHP integer literal (decimal, hex, octal, binary, with separators)."""
    text = literal.replace("_", "").lower()
    try:
        if text.startswith("0x"):
            return int(text[2:], 16)
        if text.startswith("0b"):
            return int(text[2:], 2)
        if text.startswith("0o"):
            return int(text[2:], 8)
        if len(text) > 1 and text.startswith("0"):
            return int(text[1:], 8)
        return int(text)
    except ValueError:
        return None
