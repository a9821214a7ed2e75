"""Filtering rules applied before a thread or message reaches the host."""

from __future__ import annotations

import logging

from .membership import MembershipChecker
from .models import FilterDecision, InboundMessage
from .settings import PluginSettings

logger = logging.getLogger(__name__)


class FilterEngine:
    """Decide whether an inbound message may open a thread or be delivered.

    Rules run in a fixed order and the first one that matches cancels the
    event: the empty-message guard, the server membership check and finally
    the ignored prefixes.
    """

    def __init__(
        self,
        settings: PluginSettings,
        *,
        membership: MembershipChecker | None = None,
    ):
        self._settings = settings
        self._features = settings.features
        self._case_sensitive = settings.case_sensitive
        self._prefixes = tuple(
            (prefix, self._normalise(prefix)) for prefix in settings.ignored_starts_with
        )
        self._membership = membership or MembershipChecker(
            settings.membership_timeout, fail_open=settings.fail_open
        )

    @property
    def settings(self) -> PluginSettings:
        return self._settings

    @property
    def has_rules(self) -> bool:
        return bool(self._prefixes) or self._features.membership_check_enabled

    async def evaluate(
        self,
        message: InboundMessage | None,
        user_id: str | None = None,
    ) -> FilterDecision:
        if message is None or not (message.content or "").strip():
            return FilterDecision(True, "empty_message")

        if self._features.membership_check_enabled:
            if user_id is None:
                logger.debug("No user attached to the event, skipping membership check")
            elif not await self._membership.is_present(
                message.client, self._settings.required_server_ids, user_id
            ):
                logger.info(
                    "User %s is not a member of any required server, preventing", user_id
                )
                return FilterDecision(False, "not_member")

        matched = self.match_prefix(message.content)
        if matched is not None:
            return FilterDecision(False, "prefix_match", matched)

        return FilterDecision(True)

    def match_prefix(self, content: str) -> str | None:
        """Return the first configured prefix ``content`` starts with."""

        normalised = self._normalise(content)
        for prefix, occurrence in self._prefixes:
            matched = normalised.startswith(occurrence)
            if self._features.debug:
                logger.info(
                    "%s event (prefix %r)",
                    "Preventing" if matched else "Not preventing",
                    prefix,
                )
            if matched:
                return prefix
        return None

    def _normalise(self, text: str) -> str:
        return text if self._case_sensitive else text.lower()
