"""Conversation app for Dialogflow (API.AI v1) webhooks."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from assistant_fulfillment.core.intents import BuiltInArgName, InputValueDataType, StandardIntent
from assistant_fulfillment.core.logging import get_logger
from assistant_fulfillment.core.models import Context
from assistant_fulfillment.services.conversation import (
    AssistantApp,
    DialogStateLike,
    Prompt,
    lookup,
)
from assistant_fulfillment.services.response_builder import (
    Carousel,
    OptionList,
    RichResponse,
    is_ssml,
    serialize,
)

ACTIONS_DIALOGFLOW_CONTEXT = "_actions_on_google_"
MAX_LIFESPAN = 100
ORIGINAL_SUFFIX = ".original"
SELECT_EVENT = "actions_intent_option"

SIMPLE_RESPONSE = "simple_response"
BASIC_CARD = "basic_card"
LIST = "list_card"
CAROUSEL = "carousel_card"
SUGGESTIONS = "suggestion_chips"
LINK_OUT_SUGGESTION = "link_out_chip"
_MESSAGE_META_KEYS = ("type", "platform")

logger = get_logger(__name__)


def _strip_meta(message: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in message.items() if key not in _MESSAGE_META_KEYS}


class DialogflowApp(AssistantApp):
    """Fulfillment for Dialogflow requests wrapping an Actions-on-Google payload.

    Developer data survives between turns in the ``_actions_on_google_`` output
    context rather than the conversation token.
    """

    dialogflow_envelope = True

    def request_data(self) -> Optional[dict[str, Any]]:
        data = lookup(self._body, "originalRequest", "data")
        return data if isinstance(data, Mapping) else None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    def is_request_from_dialogflow(self, key: str, value: str) -> bool:
        """Return True when header ``key`` carries the shared secret ``value``."""

        if not key:
            self._handle_error("key must be specified.")
            return False
        if not value:
            self._handle_error("value must be specified.")
            return False
        return self._request.get(key) == value

    def get_intent(self) -> Optional[str]:
        result = self._body.get("result")
        if not isinstance(result, Mapping):
            self._handle_error("Missing result from request body")
            return None
        intent = result.get("action")
        if not intent:
            self._handle_error("Missing intent from request body")
            return None
        return intent

    def get_argument(self, arg_name: str) -> Any:
        """Return a Dialogflow parameter, falling back to the Assistant arguments."""

        if not arg_name:
            self._handle_error("Invalid argument name")
            return None
        parameters = lookup(self._body, "result", "parameters") or {}
        if parameters.get(arg_name):
            return parameters[arg_name]
        return self.get_argument_common(arg_name)

    def get_context_argument(self, context_name: str, arg_name: str) -> Optional[dict[str, Any]]:
        """Return ``{"value": ...}`` plus ``"original"`` when the raw utterance was kept."""

        if not context_name:
            self._handle_error("Invalid context name")
            return None
        if not arg_name:
            self._handle_error("Invalid argument name")
            return None
        contexts = self._request_contexts()
        if contexts is None:
            return None
        for context in contexts:
            parameters = context.get("parameters") or {}
            if context.get("name") == context_name and parameters.get(arg_name):
                argument = {"value": parameters[arg_name]}
                original = parameters.get(arg_name + ORIGINAL_SUFFIX)
                if original:
                    argument["original"] = original
                return argument
        logger.debug("Failed to get context argument value: %s", arg_name)
        return None

    def get_contexts(self) -> Optional[list[dict[str, Any]]]:
        contexts = self._request_contexts()
        if contexts is None:
            return None
        return [context for context in contexts if context.get("name") != ACTIONS_DIALOGFLOW_CONTEXT]

    def get_context(self, name: str) -> Optional[dict[str, Any]]:
        contexts = self._request_contexts()
        if contexts is None:
            return None
        for context in contexts:
            if context.get("name") == name:
                return context
        logger.debug("Failed to get context: %s", name)
        return None

    def get_raw_input(self) -> Optional[str]:
        query = lookup(self._body, "result", "resolvedQuery")
        if not query:
            self._handle_error("No raw input")
            return None
        return query

    def get_incoming_rich_response(self) -> RichResponse:
        """Rebuild the rich response configured in the Dialogflow console."""

        response = RichResponse()
        for message in self._fulfillment_messages():
            kind = message.get("type")
            if kind == SIMPLE_RESPONSE:
                response.items.append({"simpleResponse": _strip_meta(message)})
            elif kind == BASIC_CARD:
                response.items.append({"basicCard": _strip_meta(message)})
            elif kind == SUGGESTIONS:
                response.suggestions = list(message.get("suggestions") or [])
            elif kind == LINK_OUT_SUGGESTION:
                response.link_out_suggestion = _strip_meta(message)
        return response

    def get_incoming_list(self) -> OptionList:
        option_list = OptionList()
        for message in self._fulfillment_messages():
            if message.get("type") == LIST:
                option_list = OptionList.from_dict(_strip_meta(message))
        return option_list

    def get_incoming_carousel(self) -> Carousel:
        carousel = Carousel()
        for message in self._fulfillment_messages():
            if message.get("type") == CAROUSEL:
                carousel = Carousel.from_dict(_strip_meta(message))
        return carousel

    def get_selected_option(self) -> Any:
        argument = self.get_context_argument(SELECT_EVENT, BuiltInArgName.OPTION.value)
        if argument and argument.get("value"):
            return argument["value"]
        option = self.get_argument(BuiltInArgName.OPTION.value)
        if option:
            return option
        logger.debug("Failed to get selected option")
        return None

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------
    def ask(self, prompt: Prompt, no_inputs: Optional[Sequence[str]] = None) -> Any:
        """Speak ``prompt`` and wait for the user's reply."""

        if not prompt:
            self._reject_empty("Invalid input prompt")
            return None
        response = self._build_response(prompt, True, no_inputs)
        if response is None:
            logger.error("Error in building response")
            return None
        return self._do_response(response)

    def ask_with_list(self, prompt: Prompt, option_list: Any) -> Any:
        return self._ask_with_options(prompt, option_list, "listSelect", "List")

    def ask_with_carousel(self, prompt: Prompt, carousel: Any) -> Any:
        return self._ask_with_options(prompt, carousel, "carouselSelect", "Carousel")

    def tell(self, speech: Prompt) -> Any:
        """End the conversation after speaking ``speech``."""

        if not speech:
            self._reject_empty("Invalid speech response")
            return None
        response = self._build_response(speech, False)
        if response is None:
            return None
        return self._do_response(response)

    def set_context(
        self, name: str, lifespan: Optional[int] = 1, parameters: Optional[dict[str, Any]] = None
    ) -> Optional[Context]:
        """Attach an output context to this turn's response."""

        if not name:
            self._handle_error("Invalid context name")
            return None
        context = Context(name=name, lifespan=1 if lifespan is None else lifespan, parameters=parameters)
        self._contexts[name] = context.to_dict()
        return context

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _request_contexts(self) -> Optional[list[dict[str, Any]]]:
        contexts = lookup(self._body, "result", "contexts")
        if contexts is None:
            self._handle_error("No contexts included in request")
            return None
        return contexts

    def _fulfillment_messages(self) -> list[dict[str, Any]]:
        messages = lookup(self._body, "result", "fulfillment", "messages") or []
        return [message for message in messages if isinstance(message, Mapping) and message.get("type")]

    def _extract_data(self) -> None:
        self.data = {}
        for context in lookup(self._body, "result", "contexts") or []:
            if context.get("name") == ACTIONS_DIALOGFLOW_CONTEXT:
                self.data = dict(context.get("parameters") or {})
                break

    def _ask_with_options(self, prompt: Prompt, container: Any, kind: str, label: str) -> Any:
        if not prompt:
            self._reject_empty("Invalid input prompt")
            return None
        payload = self._option_payload(container, kind, label)
        if payload is None:
            return None
        response = self._build_response(prompt, True)
        if response is None:
            return None
        suffix, value = self._system_intent_payload(
            InputValueDataType.OPTION, {kind: payload}, "optionValueSpec"
        )
        response["data"]["google"]["systemIntent"] = {
            "intent": self.standard_intent(StandardIntent.OPTION),
            suffix: value,
        }
        return self._do_response(response)

    def _fulfill_system_intent(  # pylint: disable=too-many-arguments
        self,
        intent: StandardIntent,
        value_type: Optional[InputValueDataType],
        value_spec: Optional[Mapping[str, Any]],
        prompt: Prompt,
        dialog_state: DialogStateLike,
        legacy_spec_key: Optional[str] = None,
    ) -> Any:
        if dialog_state is not None:
            logger.debug("Dialogflow keeps data in contexts; ignoring explicit dialog state")
        response = self._build_response(prompt, True)
        if response is None:
            return None
        suffix, value = self._system_intent_payload(value_type, value_spec, legacy_spec_key)
        response["data"]["google"]["systemIntent"] = {
            "intent": self.standard_intent(intent),
            suffix: value,
        }
        return self._do_response(response)

    def _build_response(
        self,
        prompt: Prompt,
        expect_user_response: bool,
        no_inputs: Optional[Sequence[str]] = None,
    ) -> Optional[dict[str, Any]]:
        if not prompt:
            self._handle_error("Invalid text to speech")
            return None
        rich: Optional[RichResponse] = None
        if not isinstance(prompt, str):
            if isinstance(prompt, Mapping) and prompt.get("speech"):
                rich = RichResponse().add_simple_response(prompt)
            elif isinstance(prompt, RichResponse):
                rich = prompt
            elif isinstance(prompt, Mapping) and prompt.get("items"):
                rich = RichResponse.from_dict(prompt)
            if rich is None or rich.first_simple_response() is None:
                self._handle_error("Invalid RichResponse. First item must be SimpleResponse")
                return None

        reprompts = self._check_no_inputs(no_inputs)
        if reprompts is None:
            return None

        google: dict[str, Any] = {"expectUserResponse": expect_user_response}
        if rich is None:
            ssml = is_ssml(prompt)
            speech = prompt
            google["isSsml"] = ssml
            google["noInputPrompts"] = self._prompts(reprompts, ssml)
        else:
            simple = rich.first_simple_response() or {}
            speech = simple.get("textToSpeech") or simple.get("ssml")
            google["richResponse"] = serialize(rich)
        user_storage = self._user_storage_update()
        if user_storage is not None:
            google["userStorage"] = user_storage

        context_out: list[dict[str, Any]] = []
        if expect_user_response:
            context_out.append(
                Context(
                    name=ACTIONS_DIALOGFLOW_CONTEXT,
                    lifespan=MAX_LIFESPAN,
                    parameters=self.data,
                ).to_dict()
            )
        context_out.extend(self._contexts.values())
        return {"speech": speech, "contextOut": context_out, "data": {"google": google}}


__all__ = [
    "ACTIONS_DIALOGFLOW_CONTEXT",
    "DialogflowApp",
    "MAX_LIFESPAN",
    "ORIGINAL_SUFFIX",
    "SELECT_EVENT",
]
