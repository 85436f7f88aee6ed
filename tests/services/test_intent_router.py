"""Unit tests for handler-table resolution and dispatch."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from assistant_fulfillment.core.exceptions import (
    IntentHandlerError,
    IntentHandlerNotFoundError,
    InvalidHandlerError,
)
from assistant_fulfillment.core.intents import NO_STATE, Intent, StandardIntent, State
from assistant_fulfillment.services.intent_router import IntentRouter


class _App:  # pylint: disable=too-few-public-methods
    """Minimal stand-in exposing the attributes the router reads."""

    def __init__(self, state: Any = None) -> None:
        self.state = state
        self.calls: list[str] = []


def _recorder(label: str):
    def _handler(app: _App) -> str:
        app.calls.append(label)
        return label

    return _handler


def test_table_invokes_only_the_matching_handler():
    """Only the handler keyed by the incoming intent runs."""
    app = _App()
    table = {"intentA": _recorder("fnA"), "intentB": _recorder("fnB")}

    result = asyncio.run(IntentRouter().dispatch(table, "intentA", app))

    assert result == "fnA"
    assert app.calls == ["fnA"]


def test_nested_table_entered_only_in_matching_state():
    """A state table applies only while that state is active."""
    table = {State("S1"): {"intentA": _recorder("s1")}, "intentA": _recorder("top")}

    in_state = _App(state="S1")
    asyncio.run(IntentRouter().dispatch(table, "intentA", in_state))
    assert in_state.calls == ["s1"]

    other_state = _App(state="S2")
    asyncio.run(IntentRouter().dispatch(table, "intentA", other_state))
    assert other_state.calls == ["top"]


def test_no_state_table_handles_stateless_turns():
    """The no-state key selects the sub-table used before any state is set."""
    table = {NO_STATE: {Intent("intentA"): _recorder("fresh")}}
    app = _App()

    asyncio.run(IntentRouter().dispatch(table, "intentA", app))

    assert app.calls == ["fresh"]


def test_missing_state_table_raises_not_found():
    """With no state and no no-state table, resolution fails."""
    table = {State("S1"): {"intentA": _recorder("s1")}}

    with pytest.raises(IntentHandlerNotFoundError, match="intentA"):
        asyncio.run(IntentRouter().dispatch(table, "intentA", _App()))


def test_resolution_does_not_backtrack_out_of_state_table():
    """Once a state table is entered, top-level entries are not consulted."""
    table = {State("S1"): {"other": _recorder("s1")}, "intentA": _recorder("top")}

    with pytest.raises(IntentHandlerNotFoundError):
        asyncio.run(IntentRouter().dispatch(table, "intentA", _App(state="S1")))


def test_standard_intent_keys_match_wire_ids():
    """Built-in intent enums compare equal to the ids carried by requests."""
    table = {StandardIntent.MAIN: _recorder("main")}
    app = _App()

    asyncio.run(IntentRouter().dispatch(table, "actions.intent.MAIN", app))

    assert app.calls == ["main"]


def test_async_handlers_are_awaited():
    """Coroutine handlers complete before dispatch returns."""

    async def _handler(app: _App) -> str:
        await asyncio.sleep(0)
        app.calls.append("async")
        return "done"

    app = _App()
    assert asyncio.run(IntentRouter().dispatch(_handler, None, app)) == "done"
    assert app.calls == ["async"]


def test_handler_failures_are_wrapped():
    """Exceptions raised by handlers surface as IntentHandlerError with the message."""

    async def _broken(app: _App) -> None:
        raise RuntimeError("database unavailable")

    with pytest.raises(IntentHandlerError, match="database unavailable") as excinfo:
        asyncio.run(IntentRouter().dispatch(_broken, None, _App()))
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_non_callable_handler_is_rejected():
    """Values that are neither tables nor callables are invalid handlers."""
    with pytest.raises(InvalidHandlerError):
        asyncio.run(IntentRouter().dispatch(42, None, _App()))  # type: ignore[arg-type]


def test_resolve_returns_none_for_non_callable_entry():
    """A table entry that cannot be called does not resolve."""
    router = IntentRouter()
    assert router.resolve({"intentA": "not callable"}, "intentA", None) is None


def test_state_object_selects_nested_table():
    """An active state held as a State object matches its table key."""
    table = {State("S1"): {"intentA": _recorder("s1")}, "intentA": _recorder("top")}
    app = _App(state=State("S1"))

    asyncio.run(IntentRouter().dispatch(table, "intentA", app))

    assert app.calls == ["s1"]


def test_unsupported_key_type_is_an_invalid_handler():
    """Table keys other than intents, states and strings are rejected."""
    with pytest.raises(InvalidHandlerError):
        asyncio.run(IntentRouter().dispatch({42: _recorder("x")}, "intentA", _App()))
