"""Tests for aiomccontrol.messages — call/push catalog and parsers."""

from __future__ import annotations

import pytest

from aiomccontrol.exceptions import McProtocolError
from aiomccontrol.messages import (
    BOOT_SERVER,
    CALLS,
    MC_SERVER_STATE,
    MC_SERVER_STATUS,
    PUSHES,
    SHUTDOWN_SERVER,
    Call,
    Push,
    parse_server_state,
    parse_server_status,
)
from aiomccontrol.models import ServerState, ServerStatus


class TestCatalog:
    def test_call_names(self) -> None:
        assert [c.name for c in CALLS] == [
            "mc_server_status",
            "boot_server",
            "shutdown_server",
        ]

    def test_push_names(self) -> None:
        assert [p.name for p in PUSHES] == ["mc_server_state"]

    def test_boot_and_shutdown_ignore_value(self) -> None:
        assert BOOT_SERVER.parse_result({"anything": 1}) is None
        assert SHUTDOWN_SERVER.parse_result(None) is None

    def test_default_parser_passes_through(self) -> None:
        assert Call("raw").parse_result([1, 2]) == [1, 2]
        assert Push("raw").parse_payload("x") == "x"

    def test_parser_errors_become_protocol_errors(self) -> None:
        lookup: Call[str] = Call("motd", lambda value: value["text"])
        with pytest.raises(McProtocolError, match="KeyError"):
            lookup.parse_result({})
        with pytest.raises(McProtocolError, match="TypeError"):
            Push("count", int).parse_payload(None)

    def test_status_call_and_push_share_parser(self) -> None:
        payload = {"state": 3}
        assert MC_SERVER_STATUS.parse_result(payload) == MC_SERVER_STATE.parse_payload(
            payload
        )


class TestParseServerState:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, ServerState.UNKNOWN),
            (1, ServerState.OFF),
            (2, ServerState.BOOTING),
            (3, ServerState.ON),
            (4, ServerState.SHUTDOWN),
            ("ON", ServerState.ON),
            ("booting", ServerState.BOOTING),
        ],
    )
    def test_valid(self, value: object, expected: ServerState) -> None:
        assert parse_server_state(value) is expected

    @pytest.mark.parametrize("value", [9, -1, "LAVA", True, None, 1.0, {}])
    def test_invalid(self, value: object) -> None:
        with pytest.raises(McProtocolError):
            parse_server_state(value)


class TestParseServerStatus:
    def test_state_field(self) -> None:
        assert parse_server_status({"state": "ON"}) == ServerStatus(ServerState.ON)

    def test_legacy_on_true(self) -> None:
        assert parse_server_status({"on": True}) == ServerStatus(ServerState.ON)

    def test_legacy_on_false(self) -> None:
        assert parse_server_status({"on": False}) == ServerStatus(ServerState.OFF)

    def test_state_wins_over_on(self) -> None:
        result = parse_server_status({"state": "BOOTING", "on": False})
        assert result.state is ServerState.BOOTING

    @pytest.mark.parametrize("value", [None, [], {}, {"on": "yes"}, "ON"])
    def test_invalid(self, value: object) -> None:
        with pytest.raises(McProtocolError):
            parse_server_status(value)
