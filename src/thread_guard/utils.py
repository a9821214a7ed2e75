"""Miscellaneous helpers."""

from __future__ import annotations

from typing import Any

_TRUTHY_VALUES = ("on", "1", "true")
_FALSY_VALUES = ("off", "0", "false", "null")


def parse_bool(value: Any) -> bool | None:
    """Parse a boolean configuration value.

    Real booleans are returned unchanged. Strings must be one of the truthy
    values ``on``, ``1``, ``true`` or the falsy values ``off``, ``0``,
    ``false``, ``null`` (exact match). Any other value returns ``None`` so the
    caller can keep its previous setting instead of assuming ``False``.
    """

    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return None
    if value in _TRUTHY_VALUES:
        return True
    if value in _FALSY_VALUES:
        return False
    return None


def parse_timeout_setting(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        stripped = str(value).strip()
        if not stripped:
            return default
        try:
            parsed = float(stripped)
        except ValueError:
            return default
    if parsed <= 0 or parsed != parsed:
        return default
    return parsed


def is_list_setting(value: Any, *, allow_int: bool = False) -> bool:
    """Return whether ``value`` has a shape a list setting accepts."""

    if value is None or isinstance(value, (str, list, tuple)):
        return True
    return allow_int and isinstance(value, int) and not isinstance(value, bool)


def normalize_prefixes(values: Any) -> tuple[str, ...]:
    """Return configured prefixes in order, without blank entries."""

    if values is None or not is_list_setting(values):
        return ()
    if isinstance(values, str):
        values = [values]
    prefixes: list[str] = []
    for entry in values:
        if entry is None:
            continue
        text = entry if isinstance(entry, str) else str(entry)
        if text.strip():
            prefixes.append(text)
    return tuple(prefixes)


def normalize_server_ids(values: Any) -> tuple[str, ...]:
    """Return unique, stripped server identifiers in configuration order."""

    if values is None or not is_list_setting(values, allow_int=True):
        return ()
    if isinstance(values, (str, int)):
        values = str(values).split(",")
    seen: dict[str, None] = {}
    for entry in values:
        if entry is None or isinstance(entry, bool):
            continue
        text = str(entry).strip()
        if text and text not in seen:
            seen[text] = None
    return tuple(seen)
