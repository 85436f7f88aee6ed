"""Pytest configuration: ensure env vars, import path, and shared fixtures are set early.

This runs before any tests, so modules can import without local path hacks.
Also load .env before setting defaults so real settings are used when present.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Optional

import pytest
from dotenv import load_dotenv

# Ensure repository root is on sys.path for local package imports
sys.path.append(str(Path(__file__).resolve().parents[1]))

load_dotenv(override=False)

os.environ.setdefault("ASSISTANT_LOG_LEVEL", "debug")

from assistant_fulfillment.adapters.http import BufferedResponse, RequestAdapter  # noqa: E402
from assistant_fulfillment.services.actions_sdk import ActionsSdkApp  # noqa: E402
from assistant_fulfillment.services.dialogflow import DialogflowApp  # noqa: E402

V2_HEADERS = {"Google-Actions-API-Version": "2"}


def actions_sdk_body(
    intent: str = "actions.intent.MAIN",
    *,
    query: str = "talk to my test app",
    arguments: Optional[list[dict[str, Any]]] = None,
    token: Optional[str] = None,
    conversation_type: str = "ACTIVE",
) -> dict[str, Any]:
    """Return a Conversation API v2 request body."""

    conversation: dict[str, Any] = {"conversationId": "1494606917128", "type": conversation_type}
    if token is not None:
        conversation["conversationToken"] = token
    return {
        "user": {
            "userId": "11112226094657824893",
            "locale": "en-US",
            "profile": {"displayName": "John Smith", "givenName": "John", "familyName": "Smith"},
        },
        "conversation": conversation,
        "inputs": [
            {
                "intent": intent,
                "rawInputs": [{"inputType": "VOICE", "query": query}],
                "arguments": arguments or [],
            }
        ],
        "surface": {"capabilities": [{"name": "actions.capability.AUDIO_OUTPUT"}]},
        "isInSandbox": True,
    }


def dialogflow_body(
    action: str = "input.welcome",
    *,
    parameters: Optional[dict[str, Any]] = None,
    contexts: Optional[list[dict[str, Any]]] = None,
    data: Optional[dict[str, Any]] = None,
    version: Optional[str] = "2",
) -> dict[str, Any]:
    """Return a Dialogflow v1 webhook body wrapping an Actions-on-Google payload."""

    original_request: dict[str, Any] = {
        "source": "google",
        "data": data if data is not None else actions_sdk_body(query="hello"),
    }
    if version is not None:
        original_request["version"] = version
    return {
        "id": "ce7295cc-b042-42d8-8d72-14b83597ac1e",
        "result": {
            "source": "agent",
            "resolvedQuery": "hello",
            "action": action,
            "parameters": parameters or {},
            "contexts": contexts if contexts is not None else [],
            "fulfillment": {"speech": "", "messages": []},
        },
        "originalRequest": original_request,
    }


def make_actions_sdk_app(
    body: dict[str, Any], headers: Optional[dict[str, str]] = None, **kwargs: Any
) -> tuple[ActionsSdkApp, BufferedResponse]:
    response = BufferedResponse()
    app = ActionsSdkApp(RequestAdapter(body, V2_HEADERS if headers is None else headers), response, **kwargs)
    return app, response


def make_dialogflow_app(
    body: dict[str, Any], headers: Optional[dict[str, str]] = None, **kwargs: Any
) -> tuple[DialogflowApp, BufferedResponse]:
    response = BufferedResponse()
    app = DialogflowApp(RequestAdapter(body, headers or {}), response, **kwargs)
    return app, response


@pytest.fixture
def sdk_payload():
    """Factory for Actions SDK request bodies."""
    return actions_sdk_body


@pytest.fixture
def dialogflow_payload():
    """Factory for Dialogflow request bodies."""
    return dialogflow_body


@pytest.fixture
def sdk_app():
    """Factory returning an (ActionsSdkApp, BufferedResponse) pair."""
    return make_actions_sdk_app


@pytest.fixture
def dialogflow_app():
    """Factory returning a (DialogflowApp, BufferedResponse) pair."""
    return make_dialogflow_app
