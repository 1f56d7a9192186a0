"""Constant-time byte comparison."""

from __future__ import annotations

from collections.abc import Callable


def _as_bytes(value: str | bytes) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def constant_time_equals(
    a: str | bytes | None,
    b: str | bytes | None,
    trace: Callable[[int], None] | None = None,
) -> bool:
    """
    Compare two values without an early exit on the first differing byte.

    Strings are compared as their UTF-8 encoding. A length mismatch returns
    False straight away: that check is not timing-safe, which is accepted
    here because the compared values are fixed-format header values whose
    length is not secret.

    Args:
        a: First value
        b: Second value
        trace: Optional callable receiving every loop index, for tests

    Returns:
        True if both values are byte-for-byte equal
    """
    if a is None or b is None:
        return False

    try:
        left = _as_bytes(a)
        right = _as_bytes(b)
    except UnicodeEncodeError:
        return False

    if len(left) != len(right):
        return False

    result = 0
    for i in range(len(left)):
        if trace is not None:
            trace(i)
        result |= left[i] ^ right[i]

    return result == 0
