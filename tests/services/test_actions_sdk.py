"""Tests for the Actions SDK conversation app."""

from __future__ import annotations

import asyncio
import json
from http import HTTPStatus

import pytest

from assistant_fulfillment.adapters.http import BufferedResponse, RequestAdapter
from assistant_fulfillment.core.exceptions import (
    IntentHandlerError,
    IntentHandlerNotFoundError,
    InvalidHandlerError,
)
from assistant_fulfillment.core.intents import StandardIntent, State, SupportedPermission
from assistant_fulfillment.core.models import DialogState
from assistant_fulfillment.services.actions_sdk import ActionsSdkApp
from assistant_fulfillment.services.conversation import AssistantApp
from assistant_fulfillment.services.response_builder import OptionItem, RichResponse


def _expected_intent(payload):
    return payload["expectedInputs"][0]["possibleIntents"][0]


def test_constructor_requires_request_and_response(sdk_payload):
    """Both ports are mandatory."""
    with pytest.raises(ValueError):
        ActionsSdkApp(None, BufferedResponse())  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        ActionsSdkApp(RequestAdapter(sdk_payload()), None)  # type: ignore[arg-type]


def test_accessors_read_v2_payload(sdk_app, sdk_payload):
    """Basic accessors expose the request fields."""
    app, _ = sdk_app(sdk_payload(query="order a pizza"))

    assert app.is_not_api_version_one()
    assert app.get_intent() == "actions.intent.MAIN"
    assert app.get_raw_input() == "order a pizza"
    assert app.get_conversation_id() == "1494606917128"
    assert app.get_user()["userId"] == "11112226094657824893"
    assert app.get_user_name() == {"displayName": "John Smith", "givenName": "John", "familyName": "Smith"}
    assert app.get_user_locale() == "en-US"
    assert app.get_input_type() == app.input_types.VOICE
    assert app.has_surface_capability("actions.capability.AUDIO_OUTPUT")
    assert not app.has_surface_capability("actions.capability.SCREEN_OUTPUT")
    assert app.is_in_sandbox()
    assert app.get_api_version() == "2"


def test_get_argument_returns_text_value_or_structure(sdk_app, sdk_payload):
    """Text values come back as strings; other arguments whole."""
    body = sdk_payload(
        arguments=[
            {"name": "topping", "textValue": "cheese", "rawText": "cheese"},
            {"name": "CONFIRMATION", "boolValue": True},
        ]
    )
    app, _ = sdk_app(body)

    assert app.get_argument("topping") == "cheese"
    assert app.get_argument("CONFIRMATION") == {"name": "CONFIRMATION", "boolValue": True}
    assert app.get_user_confirmation() is True
    assert app.get_argument("missing") is None


def test_system_intent_accessors(sdk_app, sdk_payload):
    """Built-in argument accessors read extension payloads."""
    body = sdk_payload(
        "actions.intent.DELIVERY_ADDRESS",
        arguments=[
            {
                "name": "DELIVERY_ADDRESS_VALUE",
                "extension": {
                    "userDecision": "ACCEPTED",
                    "location": {"postalAddress": {"locality": "Mountain View"}},
                },
            },
            {"name": "SIGN_IN", "extension": {"status": "OK"}},
            {"name": "DATETIME", "datetimeValue": {"date": {"year": 2017, "month": 8, "day": 1}}},
            {"name": "PLACE", "placeValue": {"formattedAddress": "1600 Amphitheatre Pkwy", "name": "Google"}},
            {"name": "IS_FINAL_REPROMPT", "boolValue": True},
            {"name": "REPROMPT_COUNT", "intValue": "2"},
        ],
    )
    app, _ = sdk_app(body)

    assert app.get_delivery_address() == {"postalAddress": {"locality": "Mountain View"}}
    assert app.get_sign_in_status() == "OK"
    assert app.get_date_time() == {"date": {"year": 2017, "month": 8, "day": 1}}
    assert app.get_place()["address"] == "1600 Amphitheatre Pkwy"
    assert app.is_final_reprompt() is True
    assert app.get_reprompt_count() == 2


def test_rejected_delivery_address_returns_none(sdk_app, sdk_payload):
    """A declined address is reported as absent."""
    body = sdk_payload(
        arguments=[{"name": "DELIVERY_ADDRESS_VALUE", "extension": {"userDecision": "REJECTED"}}]
    )
    app, _ = sdk_app(body)

    assert app.get_delivery_address() is None


def test_tell_ends_conversation(sdk_app, sdk_payload):
    """tell() writes a final response and closes the mic."""
    app, response = sdk_app(sdk_payload())

    result = app.tell("hello")

    assert result["expectUserResponse"] is False
    assert result["finalResponse"] == {"speechResponse": {"textToSpeech": "hello"}}
    assert response.sent
    assert response.status_code == HTTPStatus.OK
    assert response.headers["Content-Type"] == "application/json"


def test_tell_ssml_and_rich_response(sdk_app, sdk_payload):
    """SSML strings use the ssml field; rich responses pass through."""
    app, _ = sdk_app(sdk_payload())
    assert app.tell("<speak>bye</speak>")["finalResponse"] == {"speechResponse": {"ssml": "<speak>bye</speak>"}}

    app, _ = sdk_app(sdk_payload())
    rich = RichResponse().add_simple_response("bye").add_suggestions("Again")
    result = app.tell(rich)
    assert result["finalResponse"]["richResponse"]["items"] == [{"simpleResponse": {"textToSpeech": "bye"}}]


def test_tell_empty_writes_nothing(sdk_app, sdk_payload):
    """An empty prompt is rejected without sending a response."""
    app, response = sdk_app(sdk_payload())

    assert app.tell("") is None
    assert response.sent is False
    assert app.responded is False


def test_ask_token_round_trips(sdk_app, sdk_payload):
    """The token written by ask() restores state and data next turn."""
    app, _ = sdk_app(sdk_payload())
    app.data["count"] = 1

    result = app.ask("How many?", {"state": "counting", "data": app.data})

    assert result["expectUserResponse"] is True
    assert _expected_intent(result) == {"intent": "actions.intent.TEXT"}
    assert result["expectedInputs"][0]["inputPrompt"]["initialPrompts"] == [{"textToSpeech": "How many?"}]

    next_turn, _ = sdk_app(sdk_payload("actions.intent.TEXT", token=result["conversationToken"]))
    assert next_turn.state == "counting"
    assert next_turn.data == {"count": 1}
    assert next_turn.get_dialog_state() == {"state": "counting", "data": {"count": 1}}


def test_ask_defaults_to_current_state(sdk_app, sdk_payload):
    """Without an explicit dialog state the current state and data persist."""
    token = DialogState("S1", {"n": 3}).to_token()
    app, _ = sdk_app(sdk_payload(token=token))

    result = app.ask("Next?")

    assert json.loads(result["conversationToken"]) == {"state": "S1", "data": {"n": 3}}


def test_ask_with_no_inputs(sdk_app, sdk_payload):
    """Up to three no-input reprompts are accepted."""
    app, _ = sdk_app(sdk_payload())

    result = app.ask("Hello?", no_inputs=["Are you there?", "Hello?", "Bye"])

    assert result["expectedInputs"][0]["inputPrompt"]["noInputPrompts"] == [
        {"textToSpeech": "Are you there?"},
        {"textToSpeech": "Hello?"},
        {"textToSpeech": "Bye"},
    ]


def test_ask_with_too_many_no_inputs_is_rejected(sdk_app, sdk_payload):
    """Four reprompts produce a 400 and no ask payload."""
    app, response = sdk_app(sdk_payload())

    assert app.ask("Hello?", no_inputs=["a", "b", "c", "d"]) is None
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.body == "Action Error: Invalid number of no inputs"
    assert app.last_error_message == "Invalid number of no inputs"


def test_second_response_in_turn_is_dropped(sdk_app, sdk_payload):
    """Only the first response of a turn is written."""
    app, response = sdk_app(sdk_payload())

    first = app.tell("one")
    assert app.tell("two") is None
    assert response.body == first


def test_malformed_token_resets_data_and_reports(sdk_app, sdk_payload):
    """A token that is not JSON is treated as a local error."""
    app, response = sdk_app(sdk_payload(token="not json"))

    assert app.data == {}
    assert app.state is None
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_ask_with_list_requires_two_items(sdk_app, sdk_payload):
    """Lists with fewer than two items are rejected."""
    app, response = sdk_app(sdk_payload())
    option_list = app.build_list("Pick").add_items(OptionItem().set_key("one").set_title("One"))

    assert app.ask_with_list("Which?", option_list) is None
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_ask_with_list_builds_option_intent(sdk_app, sdk_payload):
    """A valid list is attached as option value data."""
    app, _ = sdk_app(sdk_payload())
    option_list = app.build_list("Pick").add_items(
        [OptionItem().set_key("one").set_title("One"), OptionItem().set_key("two").set_title("Two")]
    )

    result = app.ask_with_list("Which?", option_list)

    intent = _expected_intent(result)
    assert intent["intent"] == "actions.intent.OPTION"
    assert intent["inputValueData"]["@type"] == "type.googleapis.com/google.actions.v2.OptionValueSpec"
    assert [item["optionInfo"]["key"] for item in intent["inputValueData"]["listSelect"]["items"]] == [
        "one",
        "two",
    ]


def test_ask_for_permissions_builds_value_data(sdk_app, sdk_payload):
    """Permission requests carry the context and permission names."""
    app, _ = sdk_app(sdk_payload())

    result = app.ask_for_permissions(
        "To find a place near you",
        [SupportedPermission.NAME, "DEVICE_PRECISE_LOCATION"],
        {"state": "asked", "data": {}},
    )

    intent = _expected_intent(result)
    assert intent["intent"] == "actions.intent.PERMISSION"
    assert intent["inputValueData"] == {
        "@type": "type.googleapis.com/google.actions.v2.PermissionValueSpec",
        "optContext": "To find a place near you",
        "permissions": ["NAME", "DEVICE_PRECISE_LOCATION"],
    }
    assert result["expectedInputs"][0]["inputPrompt"]["initialPrompts"] == [
        {"textToSpeech": "PLACEHOLDER_FOR_PERMISSION"}
    ]
    assert json.loads(result["conversationToken"])["state"] == "asked"


def test_ask_for_permissions_rejects_update(sdk_app, sdk_payload):
    """UPDATE must go through ask_for_update_permission."""
    app, response = sdk_app(sdk_payload())

    assert app.ask_for_permission("context", SupportedPermission.UPDATE) is None
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_ask_for_sign_in_and_confirmation(sdk_app, sdk_payload):
    """Sign-in has no value spec; confirmation carries its prompt."""
    app, _ = sdk_app(sdk_payload())
    intent = _expected_intent(app.ask_for_sign_in())
    assert intent == {"intent": "actions.intent.SIGN_IN", "inputValueData": {}}

    app, _ = sdk_app(sdk_payload())
    intent = _expected_intent(app.ask_for_confirmation("Are you sure?"))
    assert intent["inputValueData"]["dialogSpec"] == {"requestConfirmationText": "Are you sure?"}


def test_ask_for_transaction_requirements_with_google_payment(sdk_app, sdk_payload):
    """Payment options are derived from the transaction config."""
    app, _ = sdk_app(sdk_payload())

    result = app.ask_for_transaction_requirements(
        {"cardNetworks": ["VISA"], "deliveryAddressRequired": True}
    )

    value = _expected_intent(result)["inputValueData"]
    assert value["orderOptions"] == {"requestDeliveryAddress": True}
    assert value["paymentOptions"]["googleProvidedOptions"]["supportedCardNetworks"] == ["VISA"]


def test_ask_to_register_daily_update(sdk_app, sdk_payload):
    """Daily updates are registered for the given intent."""
    app, _ = sdk_app(sdk_payload())

    value = _expected_intent(app.ask_to_register_daily_update("tell.tip"))["inputValueData"]

    assert value["intent"] == "tell.tip"
    assert value["triggerContext"] == {"timeContext": {"frequency": "DAILY"}}


def test_user_storage_is_written_back_when_changed(sdk_app, sdk_payload):
    """Mutated user storage is echoed in the response."""
    body = sdk_payload()
    body["user"]["userStorage"] = json.dumps({"data": {"visits": 1}})
    app, _ = sdk_app(body)

    assert app.user_storage == {"visits": 1}
    app.user_storage["visits"] = 2
    result = app.tell("see you")

    assert json.loads(result["userStorage"]) == {"data": {"visits": 2}}


def test_session_started_fires_for_new_conversations(sdk_app, sdk_payload):
    """The session callback runs only on the first turn."""
    started = []
    sdk_app(sdk_payload(conversation_type="NEW"), session_started=lambda: started.append(True))
    sdk_app(sdk_payload(conversation_type="ACTIVE"), session_started=lambda: started.append(True))

    assert started == [True]


def test_legacy_request_is_normalized_and_answered_in_snake_case(sdk_app):
    """API v1 snake_case payloads are read as camelCase and answered in snake_case."""
    body = {
        "user": {"user_id": "42"},
        "conversation": {"conversation_id": "c1", "type": 2},
        "inputs": [
            {
                "intent": "assistant.intent.action.MAIN",
                "raw_inputs": [{"input_type": 2, "query": "hello"}],
                "arguments": [],
            }
        ],
    }
    app, response = sdk_app(body, headers={})

    assert not app.is_not_api_version_one()
    assert app.standard_intent(StandardIntent.MAIN) == "assistant.intent.action.MAIN"
    assert app.get_raw_input() == "hello"
    assert app.get_input_type() == app.input_types.VOICE

    app.ask("What next?")

    assert response.body["expect_user_response"] is True
    assert response.body["expected_inputs"][0]["possible_intents"] == [
        {"intent": "assistant.intent.action.TEXT"}
    ]


def test_handle_request_dispatches_table(sdk_app, sdk_payload):
    """handle_request routes to the table entry for the current intent."""
    app, response = sdk_app(sdk_payload())

    async def main_intent(assistant):
        return assistant.tell("welcome")

    asyncio.run(app.handle_request({StandardIntent.MAIN: main_intent}))

    assert response.body["finalResponse"]["speechResponse"]["textToSpeech"] == "welcome"


def test_handle_request_without_match_tells_default_error(sdk_app, sdk_payload):
    """Unmatched intents answer with the default error message."""
    app, response = sdk_app(sdk_payload())

    with pytest.raises(IntentHandlerNotFoundError):
        asyncio.run(app.handle_request({"other.intent": lambda assistant: None}))

    assert response.status_code == HTTPStatus.OK
    assert response.body["expectUserResponse"] is False


def test_handle_request_handler_failure_tells_message(sdk_app, sdk_payload):
    """A failing handler's message is spoken back to the user."""
    app, response = sdk_app(sdk_payload())

    def broken(assistant):
        raise RuntimeError("Out of pizza")

    with pytest.raises(IntentHandlerError):
        asyncio.run(app.handle_request(broken))

    assert response.body["finalResponse"]["speechResponse"]["textToSpeech"] == "Out of pizza"


def test_handle_request_rejects_empty_handler(sdk_app, sdk_payload):
    """An empty handler is a local error answered with 400."""
    app, response = sdk_app(sdk_payload())

    with pytest.raises(InvalidHandlerError):
        asyncio.run(app.handle_request({}))

    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_assistant_app_is_abstract(sdk_payload):
    """Only the protocol-specific apps can be instantiated."""
    with pytest.raises(TypeError):
        AssistantApp(RequestAdapter(sdk_payload()), BufferedResponse())  # type: ignore[abstract]


def test_ask_accepts_state_object_in_dialog_state(sdk_app, sdk_payload):
    """A State object is written to the token by name."""
    app, response = sdk_app(sdk_payload())

    result = app.ask("Pick one", {"state": State("S1"), "data": {}})

    assert response.status_code == HTTPStatus.OK
    assert json.loads(result["conversationToken"]) == {"state": "S1", "data": {}}


def test_handler_setting_state_object_continues_conversation(sdk_app, sdk_payload):
    """A handler may set app.state to a State before asking; the next turn enters its table."""
    app, response = sdk_app(sdk_payload())

    def main_intent(assistant):
        assistant.state = State("S1")
        return assistant.ask("Pick one")

    asyncio.run(app.handle_request({StandardIntent.MAIN: main_intent}))

    assert response.status_code == HTTPStatus.OK
    assert response.body["expectUserResponse"] is True
    token = response.body["conversationToken"]
    assert json.loads(token)["state"] == "S1"

    next_turn, next_response = sdk_app(sdk_payload("actions.intent.TEXT", token=token))
    table = {
        State("S1"): {StandardIntent.TEXT: lambda assistant: assistant.tell("in S1")},
        StandardIntent.TEXT: lambda assistant: assistant.tell("top level"),
    }
    asyncio.run(next_turn.handle_request(table))

    assert next_response.body["finalResponse"]["speechResponse"]["textToSpeech"] == "in S1"


def test_handle_request_rejects_unsupported_table_keys(sdk_app, sdk_payload):
    """A table key of an unknown type is a local error answered with 400."""
    app, response = sdk_app(sdk_payload())

    with pytest.raises(InvalidHandlerError):
        asyncio.run(app.handle_request({42: lambda assistant: None}))

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.body == "Action Error: unsupported handler key type: int"
