from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import pytest

from thread_guard.filters import FilterEngine
from thread_guard.models import InboundMessage, Verdict
from thread_guard.settings import PluginSettings


class DummyServer:
    def __init__(self, members: set[str]) -> None:
        self.members = members
        self.calls: list[list[str]] = []

    async def fetch_members(self, user_ids: Sequence[str]) -> list[dict[str, Any]]:
        self.calls.append(list(user_ids))
        return [{"user": {"id": uid}} for uid in user_ids if uid in self.members]


class DummyDirectory:
    def __init__(self, servers: dict[str, DummyServer]) -> None:
        self.servers = servers

    def get_server(self, server_id: str) -> DummyServer | None:
        return self.servers.get(server_id)


def make_message(content: str, client: DummyDirectory | None = None) -> InboundMessage:
    return InboundMessage(content=content, client=client)


def evaluate(engine: FilterEngine, message: InboundMessage | None, user_id: str | None = None):
    return asyncio.run(engine.evaluate(message, user_id))


def test_prefix_short_circuits_on_first_match(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="thread_guard.filters")
    engine = FilterEngine(
        PluginSettings(ignored_starts_with=("!mute", "!warn", "!ban"), debug=True)
    )

    decision = evaluate(engine, make_message("!warn user"))

    assert decision.allowed is False
    assert decision.verdict is Verdict.CANCEL
    assert decision.reason == "prefix_match"
    assert decision.matched_prefix == "!warn"
    traces = [record.getMessage() for record in caplog.records]
    assert len(traces) == 2
    assert traces[0].startswith("Not preventing") and "'!mute'" in traces[0]
    assert traces[1].startswith("Preventing") and "'!warn'" in traces[1]
    assert all("event" in trace and "thread" not in trace for trace in traces)


def test_prefix_traces_are_silent_without_debug(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="thread_guard.filters")
    engine = FilterEngine(PluginSettings(ignored_starts_with=("!mute", "!warn")))

    assert evaluate(engine, make_message("!warn user")).allowed is False
    assert caplog.records == []


def test_case_sensitivity() -> None:
    sensitive = FilterEngine(PluginSettings(ignored_starts_with=("STOP",), case_sensitive=True))
    insensitive = FilterEngine(PluginSettings(ignored_starts_with=("STOP",)))

    assert evaluate(sensitive, make_message("stop now")).allowed is True
    assert evaluate(sensitive, make_message("STOP now")).allowed is False
    assert evaluate(insensitive, make_message("stop now")).allowed is False


def test_prefix_must_be_at_start() -> None:
    engine = FilterEngine(PluginSettings(ignored_starts_with=("!close",)))

    decision = evaluate(engine, make_message("please !close"))

    assert decision.allowed is True
    assert decision.reason is None
    assert decision.verdict is Verdict.ALLOW


@pytest.mark.parametrize("content", ["", "   ", "\n\t "])
def test_blank_messages_are_always_allowed(content: str) -> None:
    engine = FilterEngine(PluginSettings(ignored_starts_with=(" ", "!")))

    decision = evaluate(engine, make_message(content))

    assert decision.allowed is True
    assert decision.reason == "empty_message"


def test_missing_message_is_allowed() -> None:
    engine = FilterEngine(PluginSettings(ignored_starts_with=("!",)))

    assert evaluate(engine, None).reason == "empty_message"


def test_evaluation_is_repeatable() -> None:
    engine = FilterEngine(PluginSettings(ignored_starts_with=("!mute",)))
    message = make_message("!MUTE them")

    first = evaluate(engine, message)
    second = evaluate(engine, message)

    assert first == second
    assert first.allowed is False


def test_member_of_one_server_falls_through_to_prefixes() -> None:
    server_a = DummyServer(set())
    server_b = DummyServer({"42"})
    client = DummyDirectory({"A": server_a, "B": server_b})
    engine = FilterEngine(
        PluginSettings(ignored_starts_with=("!ignore",), required_server_ids=("A", "B"))
    )

    allowed = evaluate(engine, make_message("hello", client), "42")
    prefixed = evaluate(engine, make_message("!ignore me", client), "42")

    assert allowed.allowed is True
    assert prefixed.allowed is False
    assert prefixed.reason == "prefix_match"
    assert server_a.calls == [["42"], ["42"]]
    assert server_b.calls == [["42"], ["42"]]


def test_non_member_is_cancelled_before_prefix_check() -> None:
    client = DummyDirectory({"A": DummyServer(set()), "B": DummyServer({"7"})})
    engine = FilterEngine(
        PluginSettings(ignored_starts_with=("!ignore",), required_server_ids=("A", "B"))
    )
    prefix_calls: list[str] = []

    def spy(content: str) -> str | None:
        prefix_calls.append(content)
        return None

    engine.match_prefix = spy  # type: ignore[method-assign]

    decision = evaluate(engine, make_message("!ignore me", client), "42")

    assert decision.allowed is False
    assert decision.reason == "not_member"
    assert prefix_calls == []


def test_membership_check_disabled_ignores_servers() -> None:
    client = DummyDirectory({"A": DummyServer(set())})
    engine = FilterEngine(
        PluginSettings(required_server_ids=("A",), membership_check_enabled=False)
    )

    assert engine.has_rules is False
    assert evaluate(engine, make_message("hello", client), "42").allowed is True


def test_membership_skipped_without_user() -> None:
    server = DummyServer(set())
    engine = FilterEngine(PluginSettings(required_server_ids=("A",)))

    decision = evaluate(engine, make_message("hello", DummyDirectory({"A": server})))

    assert decision.allowed is True
    assert server.calls == []


def test_has_rules() -> None:
    assert FilterEngine(PluginSettings()).has_rules is False
    assert FilterEngine(PluginSettings(ignored_starts_with=("!",))).has_rules is True
    assert FilterEngine(PluginSettings(required_server_ids=("1",))).has_rules is True
