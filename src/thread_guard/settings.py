"""Plugin settings: defaults, override normalization and the frozen typed view."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .models import Diagnostic, EngineFeatures
from .utils import (
    is_list_setting,
    normalize_prefixes,
    normalize_server_ids,
    parse_bool,
    parse_timeout_setting,
)

PLUGIN_KEY = "pec"

IGNORED_STARTS_WITH = "ignoredStartsWith"
CASE_SENSITIVE = "caseSensitive"
DEBUG = "debug"
REQUIRED_SERVER_IDS = "requiredServerIds"
MEMBERSHIP_CHECK_ENABLED = "membershipCheckEnabled"
FAIL_OPEN_ENABLED = "failOpenEnabled"
THREAD_HOOK_ENABLED = "threadHookEnabled"
MESSAGE_HOOK_ENABLED = "messageHookEnabled"
MEMBERSHIP_TIMEOUT = "membershipTimeout"

DEFAULT_MEMBERSHIP_TIMEOUT = 5.0

DEFAULT_SETTINGS: Mapping[str, Any] = MappingProxyType(
    {
        IGNORED_STARTS_WITH: (),
        CASE_SENSITIVE: False,
        DEBUG: False,
        REQUIRED_SERVER_IDS: (),
        MEMBERSHIP_CHECK_ENABLED: True,
        FAIL_OPEN_ENABLED: False,
        THREAD_HOOK_ENABLED: True,
        MESSAGE_HOOK_ENABLED: False,
        MEMBERSHIP_TIMEOUT: DEFAULT_MEMBERSHIP_TIMEOUT,
    }
)


def is_boolean_setting(name: str) -> bool:
    return "enabled" in name.lower()


def normalize(
    defaults: Mapping[str, Any],
    overrides: Mapping[str, Any] | None,
) -> tuple[Mapping[str, Any], list[Diagnostic]]:
    """Apply ``overrides`` on top of ``defaults``.

    Unknown keys and unparseable booleans are reported as diagnostics and
    otherwise ignored; they never raise. Overrides are visited in insertion
    order, so diagnostics come out in the same order as the configuration.
    """

    settings = dict(defaults)
    diagnostics: list[Diagnostic] = []

    for name, override in (overrides or {}).items():
        if name not in settings:
            diagnostics.append(
                Diagnostic("unknown_setting", f"Setting {name} is not a valid setting")
            )
            continue

        if is_boolean_setting(name):
            parsed = parse_bool(override)
            if parsed is None:
                diagnostics.append(
                    Diagnostic(
                        "invalid_boolean",
                        f"Value {override!r} of {name} is not a valid truthy or falsy value",
                    )
                )
                continue
            settings[name] = parsed
        else:
            settings[name] = override

    return MappingProxyType(settings), diagnostics


@dataclass(frozen=True, slots=True)
class PluginSettings:
    """Typed, immutable view of the normalized settings."""

    ignored_starts_with: tuple[str, ...] = ()
    case_sensitive: bool = False
    debug: bool = False
    required_server_ids: tuple[str, ...] = ()
    membership_check_enabled: bool = True
    fail_open: bool = False
    thread_hook_enabled: bool = True
    message_hook_enabled: bool = False
    membership_timeout: float = DEFAULT_MEMBERSHIP_TIMEOUT

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PluginSettings":
        return cls(
            ignored_starts_with=normalize_prefixes(values.get(IGNORED_STARTS_WITH)),
            case_sensitive=bool(values.get(CASE_SENSITIVE)),
            debug=bool(values.get(DEBUG)),
            required_server_ids=normalize_server_ids(values.get(REQUIRED_SERVER_IDS)),
            membership_check_enabled=bool(values.get(MEMBERSHIP_CHECK_ENABLED, True)),
            fail_open=bool(values.get(FAIL_OPEN_ENABLED)),
            thread_hook_enabled=bool(values.get(THREAD_HOOK_ENABLED, True)),
            message_hook_enabled=bool(values.get(MESSAGE_HOOK_ENABLED)),
            membership_timeout=parse_timeout_setting(
                values.get(MEMBERSHIP_TIMEOUT), DEFAULT_MEMBERSHIP_TIMEOUT
            ),
        )

    @property
    def features(self) -> EngineFeatures:
        return EngineFeatures(
            debug=self.debug,
            membership_check_enabled=(
                self.membership_check_enabled and bool(self.required_server_ids)
            ),
        )


def load_settings(
    config: Mapping[str, Any] | None,
    key: str = PLUGIN_KEY,
) -> tuple[PluginSettings, list[Diagnostic]]:
    """Read the plugin section of the host configuration.

    Returns the frozen settings and every diagnostic produced on the way.
    Logging them is left to the caller.
    """

    section = (config or {}).get(key)
    diagnostics: list[Diagnostic] = []
    if section is not None and not isinstance(section, Mapping):
        diagnostics.append(
            Diagnostic(
                "invalid_section",
                f"Configuration section {key} must be a mapping, got {type(section).__name__}",
            )
        )
        section = None

    values, normalize_diagnostics = normalize(DEFAULT_SETTINGS, section)
    diagnostics.extend(normalize_diagnostics)
    for name, allow_int in ((IGNORED_STARTS_WITH, False), (REQUIRED_SERVER_IDS, True)):
        value = values[name]
        if not is_list_setting(value, allow_int=allow_int):
            diagnostics.append(
                Diagnostic(
                    "invalid_setting",
                    f"Value {value!r} of {name} is not a list of strings, ignoring it",
                )
            )
    return PluginSettings.from_mapping(values), diagnostics
