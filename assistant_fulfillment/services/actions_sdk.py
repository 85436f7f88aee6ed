"""Conversation app for raw Actions SDK webhooks."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from assistant_fulfillment.core.exceptions import DialogStateError
from assistant_fulfillment.core.intents import BuiltInArgName, InputValueDataType, StandardIntent
from assistant_fulfillment.core.logging import get_logger
from assistant_fulfillment.core.models import DialogState
from assistant_fulfillment.services.conversation import (
    AssistantApp,
    DialogStateLike,
    Prompt,
    lookup,
)
from assistant_fulfillment.services.normalizer import to_snake_case_keys
from assistant_fulfillment.services.response_builder import RichResponse, is_ssml, serialize

AGENT_VERSION_HEADER = "Agent-Version-Label"

logger = get_logger(__name__)


class ActionsSdkApp(AssistantApp):
    """Fulfillment for Actions SDK requests, whose body is the Conversation API payload itself."""

    def request_data(self) -> Optional[dict[str, Any]]:
        return self._body

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    def get_api_version(self) -> Optional[str]:
        """Return the Assistant API version header, else the Actions API version."""
        return self.api_version or self.actions_api_version

    def get_raw_input(self) -> Optional[str]:
        input_ = self._top_input()
        if input_ is None:
            return None
        raw_inputs = input_.get("rawInputs") or []
        if not raw_inputs:
            self._handle_error("Missing user raw input")
            return None
        query = raw_inputs[0].get("query")
        if not query:
            self._handle_error("Missing query for user raw input")
            return None
        return query

    def get_dialog_state(self) -> dict[str, Any]:
        """Return the parsed conversation token, or an empty mapping without one."""

        token = lookup(self._body, "conversation", "conversationToken")
        if not token:
            return {}
        try:
            return DialogState.from_token(token).to_dict()
        except DialogStateError as exc:
            self._handle_error("Invalid conversation token: %s", exc)
            return {}

    def get_action_version_label(self) -> Optional[str]:
        return self._request.get(AGENT_VERSION_HEADER) or None

    def get_conversation_id(self) -> Optional[str]:
        conversation_id = lookup(self._body, "conversation", "conversationId")
        if not conversation_id:
            self._handle_error("No conversation ID")
            return None
        return conversation_id

    def get_intent(self) -> Optional[str]:
        input_ = self._top_input()
        if input_ is None:
            self._handle_error("Missing intent from request body")
            return None
        return input_.get("intent")

    def get_argument(self, arg_name: str) -> Any:
        """Return ``arg_name`` from the first input: its text value or the whole argument."""

        if not arg_name:
            self._handle_error("Invalid argument name")
            return None
        input_ = self._top_input()
        if input_ is None:
            return None
        for argument in input_.get("arguments") or []:
            if argument.get("name") == arg_name:
                if argument.get("textValue"):
                    return argument["textValue"]
                if not self.is_not_api_version_one():
                    return to_snake_case_keys(argument)
                return argument
        logger.debug("Failed to get argument value: %s", arg_name)
        return None

    def get_selected_option(self) -> Any:
        option = self.get_argument(BuiltInArgName.OPTION.value)
        if option:
            return option
        logger.debug("Failed to get selected option")
        return None

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------
    def ask(
        self,
        prompt: Prompt,
        dialog_state: DialogStateLike = None,
        no_inputs: Optional[Sequence[str]] = None,
    ) -> Any:
        """Speak ``prompt`` and keep the microphone open for a ``TEXT`` reply."""

        expected_intent = {"intent": self.standard_intent(StandardIntent.TEXT)}
        return self._build_ask(prompt, [expected_intent], dialog_state, no_inputs)

    def ask_with_list(
        self, prompt: Prompt, option_list: Any, dialog_state: DialogStateLike = None
    ) -> Any:
        payload = self._option_payload(option_list, "listSelect", "List")
        if payload is None:
            return None
        return self._build_ask(
            prompt, [self._option_intent("listSelect", payload)], dialog_state, None
        )

    def ask_with_carousel(
        self, prompt: Prompt, carousel: Any, dialog_state: DialogStateLike = None
    ) -> Any:
        payload = self._option_payload(carousel, "carouselSelect", "Carousel")
        if payload is None:
            return None
        return self._build_ask(
            prompt, [self._option_intent("carouselSelect", payload)], dialog_state, None
        )

    def tell(self, speech: Prompt) -> Any:
        """End the conversation after speaking ``speech``."""

        if not speech:
            self._reject_empty("Invalid speech response")
            return None
        if isinstance(speech, str):
            key = "ssml" if is_ssml(speech) else "textToSpeech"
            final_response: dict[str, Any] = {"speechResponse": {key: speech}}
        elif isinstance(speech, RichResponse) or (isinstance(speech, Mapping) and "items" in speech):
            final_response = {"richResponse": speech}
        elif isinstance(speech, Mapping) and speech.get("speech"):
            final_response = {"richResponse": RichResponse().add_simple_response(speech)}
        else:
            self._handle_error(
                "Invalid speech response. Must be string, RichResponse or SimpleResponse."
            )
            return None
        response = self._build_response(None, False, None, final_response)
        return self._do_response(response)

    def build_input_prompt(
        self, ssml: bool, initial_prompt: str, no_inputs: Optional[Sequence[str]] = None
    ) -> Optional[dict[str, Any]]:
        """Return an input prompt with up to three no-input reprompts."""

        reprompts = self._check_no_inputs(no_inputs)
        if reprompts is None:
            return None
        initials = [initial_prompt] if initial_prompt else []
        return {
            "initialPrompts": self._prompts(initials, ssml),
            "noInputPrompts": self._prompts(reprompts, ssml),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _extract_data(self) -> None:
        token = lookup(self._body, "conversation", "conversationToken")
        if not token:
            self.data = {}
            return
        try:
            dialog_state = DialogState.from_token(token)
        except DialogStateError as exc:
            self.data = {}
            self._handle_error("Invalid conversation token: %s", exc)
            return
        self.state = dialog_state.state
        self.data = dialog_state.data

    def _top_input(self) -> Optional[dict[str, Any]]:
        inputs = self._body.get("inputs") or []
        if not inputs:
            self._handle_error("Missing inputs from request body")
            return None
        return inputs[0]

    def _option_intent(self, kind: str, payload: dict[str, Any]) -> dict[str, Any]:
        expected_intent: dict[str, Any] = {"intent": self.standard_intent(StandardIntent.OPTION)}
        suffix, value = self._system_intent_payload(
            InputValueDataType.OPTION, {kind: payload}, "optionValueSpec"
        )
        expected_intent["inputValueData" if suffix == "data" else "inputValueSpec"] = value
        return expected_intent

    def _fulfill_system_intent(  # pylint: disable=too-many-arguments
        self,
        intent: StandardIntent,
        value_type: Optional[InputValueDataType],
        value_spec: Optional[Mapping[str, Any]],
        prompt: Prompt,
        dialog_state: DialogStateLike,
        legacy_spec_key: Optional[str] = None,
    ) -> Any:
        suffix, value = self._system_intent_payload(value_type, value_spec, legacy_spec_key)
        expected_intent = {
            "intent": self.standard_intent(intent),
            "inputValueData" if suffix == "data" else "inputValueSpec": value,
        }
        if isinstance(prompt, str):
            prompt = self.build_input_prompt(False, prompt)
        return self._build_ask(prompt, [expected_intent], dialog_state, None)

    def _build_ask(
        self,
        prompt: Any,
        possible_intents: list[dict[str, Any]],
        dialog_state: DialogStateLike,
        no_inputs: Optional[Sequence[str]],
    ) -> Any:
        if not prompt:
            self._reject_empty("Invalid input prompt")
            return None
        if isinstance(prompt, str):
            input_prompt = self.build_input_prompt(is_ssml(prompt), prompt, no_inputs)
            if input_prompt is None:
                return None
        elif isinstance(prompt, RichResponse) or (isinstance(prompt, Mapping) and "items" in prompt):
            input_prompt = {"richInitialPrompt": prompt}
        elif isinstance(prompt, Mapping) and prompt.get("speech"):
            input_prompt = {"richInitialPrompt": RichResponse().add_simple_response(prompt)}
        elif isinstance(prompt, Mapping):
            input_prompt = dict(prompt)
        else:
            self._handle_error("Invalid input prompt")
            return None
        if no_inputs and not isinstance(prompt, str):
            reprompts = self._check_no_inputs(no_inputs)
            if reprompts is None:
                return None
            input_prompt["noInputPrompts"] = self._prompts(reprompts, False)
        state = self._resolve_dialog_state(dialog_state)
        if state is None:
            return None
        expected_inputs = [{"inputPrompt": input_prompt, "possibleIntents": possible_intents}]
        response = self._build_response(state.to_token(), True, expected_inputs, None)
        return self._do_response(response)

    def _build_response(
        self,
        conversation_token: Optional[str],
        expect_user_response: bool,
        expected_inputs: Optional[list[dict[str, Any]]],
        final_response: Optional[dict[str, Any]],
    ) -> dict[str, Any]:
        response: dict[str, Any] = {}
        if conversation_token:
            response["conversationToken"] = conversation_token
        response["expectUserResponse"] = expect_user_response
        if expected_inputs:
            response["expectedInputs"] = serialize(expected_inputs)
        if not expect_user_response and final_response:
            response["finalResponse"] = serialize(final_response)
        user_storage = self._user_storage_update()
        if user_storage is not None:
            response["userStorage"] = user_storage
        return response


__all__ = ["ActionsSdkApp", "AGENT_VERSION_HEADER"]
