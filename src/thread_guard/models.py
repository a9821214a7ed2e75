"""Data models shared by the settings loader, the filter engine and the plugin."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .membership import ServerDirectory


class Verdict(str, Enum):
    """Outcome of evaluating one event."""

    ALLOW = "allow"
    CANCEL = "cancel"


@dataclass(frozen=True, slots=True)
class FilterDecision:
    """Result of evaluating filters."""

    allowed: bool
    reason: str | None = None
    matched_prefix: str | None = None

    @property
    def verdict(self) -> Verdict:
        return Verdict.ALLOW if self.allowed else Verdict.CANCEL


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Non-fatal note about configuration or startup."""

    code: str
    message: str


@dataclass(frozen=True, slots=True)
class EngineFeatures:
    """Feature switches the filter engine consults on every event."""

    debug: bool = False
    membership_check_enabled: bool = False


@dataclass(slots=True)
class InboundMessage:
    """Subset of the host message object used by the filters."""

    content: str
    client: ServerDirectory | None = None
    author_id: str | None = None


@dataclass(slots=True)
class HookEvent:
    """Payload passed by the host to ``beforeNewThread``/``beforeNewMessageReceived``.

    ``user`` is the id of the acting user, when the host knows it.
    """

    message: InboundMessage | None
    cancel: Callable[[], None]
    user: str | None = None
