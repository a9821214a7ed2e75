"""Concurrent server-membership lookups."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class MembershipLookupError(RuntimeError):
    """Raised by a member source when a lookup could not be completed."""


class MemberSource(Protocol):
    async def fetch_members(self, user_ids: Sequence[str]) -> Sequence[Any]: ...


class ServerDirectory(Protocol):
    def get_server(self, server_id: str) -> MemberSource | None: ...


class MembershipChecker:
    """Check whether a user belongs to at least one of the given servers.

    Every server is queried concurrently and the checker waits for all of
    them. A lookup that raises or exceeds ``timeout`` seconds counts as
    absent, or as present when ``fail_open`` is set.
    """

    def __init__(self, timeout: float, *, fail_open: bool = False):
        self._timeout = timeout
        self._fail_open = fail_open

    async def is_present(
        self,
        client: ServerDirectory | None,
        server_ids: Sequence[str],
        user_id: str,
    ) -> bool:
        if not server_ids:
            return True

        results = await asyncio.gather(
            *(self._lookup(client, server_id, user_id) for server_id in server_ids)
        )
        return any(results)

    async def _lookup(
        self,
        client: ServerDirectory | None,
        server_id: str,
        user_id: str,
    ) -> bool:
        if client is None:
            logger.warning(
                "No server client available to look up user %s in server %s", user_id, server_id
            )
            return self._fail_open

        try:
            server = client.get_server(server_id)
            if server is None:
                logger.warning(
                    "Server %s is not known to the client, treating user %s as absent",
                    server_id,
                    user_id,
                )
                return False
            members = await asyncio.wait_for(
                server.fetch_members([user_id]), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Membership lookup for user %s in server %s timed out after %.1fs",
                user_id,
                server_id,
                self._timeout,
            )
            return self._fail_open
        except Exception as exc:
            logger.warning(
                "Membership lookup for user %s in server %s failed: %s", user_id, server_id, exc
            )
            return self._fail_open

        return bool(members)
