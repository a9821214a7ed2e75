"""Discord REST backend for membership lookups."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import aiohttp

from .membership import MembershipLookupError

_API_BASE = "https://discord.com/api/v10"
_DEFAULT_USER_AGENT = "DiscordBot (https://github.com, 1.0)"


logger = logging.getLogger(__name__)


class DiscordGuild:
    """Member lookups for a single guild."""

    def __init__(self, directory: "DiscordMemberDirectory", guild_id: str):
        self._directory = directory
        self.id = guild_id

    async def fetch_members(self, user_ids: Sequence[str]) -> Sequence[Mapping[str, Any]]:
        members: list[Mapping[str, Any]] = []
        for user_id in user_ids:
            member = await self._directory.fetch_member(self.id, user_id)
            if member is not None:
                members.append(member)
        return members


class DiscordMemberDirectory:
    """Thin asynchronous wrapper around the Discord guild member endpoint."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        token: str | None = None,
        *,
        user_agent: str | None = None,
    ):
        self._session = session
        self._token: str | None = None
        self._user_agent = user_agent or _DEFAULT_USER_AGENT
        self.set_token(token)

    def set_token(self, token: str | None) -> None:
        self._token = token.strip() if token else None

    def get_server(self, server_id: str) -> DiscordGuild:
        if not self._token:
            raise MembershipLookupError("No Discord token configured")
        return DiscordGuild(self, server_id)

    async def fetch_member(self, guild_id: str, user_id: str) -> Mapping[str, Any] | None:
        """Return the member payload, or ``None`` when the user is not in the guild."""

        if not self._token:
            raise MembershipLookupError("No Discord token configured")

        headers = {
            "Authorization": self._token,
            "User-Agent": self._user_agent,
            "Accept": "application/json",
        }
        url = f"{_API_BASE}/guilds/{guild_id}/members/{user_id}"

        try:
            timeout_cfg = aiohttp.ClientTimeout(total=15)
            async with self._session.get(url, headers=headers, timeout=timeout_cfg) as resp:
                status = resp.status
                if status == 404:
                    await resp.read()
                    return None
                if status >= 400:
                    logger.warning(
                        "Discord answered %s when looking up member %s of guild %s",
                        status,
                        user_id,
                        guild_id,
                    )
                    raise MembershipLookupError(f"Discord answered {status}")
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning(
                "Could not look up member %s of Discord guild %s: %s",
                user_id,
                guild_id,
                exc,
            )
            raise MembershipLookupError(str(exc)) from exc

        if not isinstance(data, Mapping):
            return None
        return data
