"""Plugin entry point wiring the filter engine into the host's hooks."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .filters import FilterEngine
from .membership import MembershipChecker
from .models import Diagnostic, FilterDecision, HookEvent
from .settings import PLUGIN_KEY, load_settings

BEFORE_NEW_THREAD = "beforeNewThread"
BEFORE_NEW_MESSAGE_RECEIVED = "beforeNewMessageReceived"

HookCallback = Callable[[HookEvent], Awaitable[FilterDecision]]

logger = logging.getLogger(__name__)


class HookRegistrar(Protocol):
    def register(self, name: str, callback: HookCallback) -> None: ...


class HookRegistry:
    """In-process hook table with the same surface the host exposes."""

    def __init__(self) -> None:
        self._callbacks: dict[str, HookCallback] = {}

    def register(self, name: str, callback: HookCallback) -> None:
        self._callbacks[name] = callback

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._callbacks)

    async def dispatch(self, name: str, event: HookEvent) -> FilterDecision | None:
        callback = self._callbacks.get(name)
        if callback is None:
            return None
        return await callback(event)


@dataclass(slots=True)
class SetupResult:
    """Outcome of plugin initialization."""

    engaged: bool
    hooks: tuple[str, ...] = ()
    diagnostics: list[Diagnostic] = field(default_factory=list)
    engine: FilterEngine | None = None


def make_hook(engine: FilterEngine) -> HookCallback:
    """Wrap ``engine`` in a host callback that cancels rejected events."""

    async def hook(event: HookEvent) -> FilterDecision:
        message = event.message
        user_id = event.user
        if user_id is None and message is not None:
            user_id = message.author_id
        decision = await engine.evaluate(message, user_id)
        if not decision.allowed:
            event.cancel()
        return decision

    return hook


def setup(
    config: Mapping[str, Any] | None,
    hooks: HookRegistrar,
    *,
    membership: MembershipChecker | None = None,
) -> SetupResult:
    settings, diagnostics = load_settings(config, PLUGIN_KEY)
    for diagnostic in diagnostics:
        logger.warning("%s", diagnostic.message)

    engine = FilterEngine(settings, membership=membership)

    if not engine.has_rules:
        notice = Diagnostic(
            "disengaged",
            "Prevent Thread Creation plugin disengaged, no configuration provided.",
        )
        logger.info("%s", notice.message)
        diagnostics.append(notice)
        return SetupResult(False, diagnostics=diagnostics, engine=engine)

    names: list[str] = []
    if settings.thread_hook_enabled:
        names.append(BEFORE_NEW_THREAD)
    if settings.message_hook_enabled:
        names.append(BEFORE_NEW_MESSAGE_RECEIVED)

    if not names:
        notice = Diagnostic(
            "no_hooks",
            "Prevent Thread Creation plugin disengaged, every hook is disabled.",
        )
        logger.warning("%s", notice.message)
        diagnostics.append(notice)
        return SetupResult(False, diagnostics=diagnostics, engine=engine)

    callback = make_hook(engine)
    for name in names:
        hooks.register(name, callback)

    logger.info(
        "Prevent Thread Creation plugin engaged on %s. Configured strings:\n%s",
        ", ".join(names),
        "\n".join(settings.ignored_starts_with),
    )
    if settings.features.membership_check_enabled:
        logger.info(
            "Required servers: %s", ", ".join(settings.required_server_ids)
        )
    return SetupResult(True, tuple(names), diagnostics, engine)
