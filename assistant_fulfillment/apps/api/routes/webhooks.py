"""Webhook routes for Actions SDK and Dialogflow fulfillment."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Optional, Type

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from assistant_fulfillment.adapters.http import BufferedResponse, RequestAdapter
from assistant_fulfillment.core.config import settings
from assistant_fulfillment.core.exceptions import FulfillmentError
from assistant_fulfillment.core.logging import conversation_id_context, get_logger
from assistant_fulfillment.services import FulfillmentHandler, FulfillmentHandlers
from assistant_fulfillment.services.actions_sdk import ActionsSdkApp
from assistant_fulfillment.services.conversation import AssistantApp, lookup
from assistant_fulfillment.services.dialogflow import DialogflowApp

router = APIRouter()
logger = get_logger(__name__)


def _get_handlers(request: Request) -> FulfillmentHandlers:
    handlers = getattr(request.app.state, "handlers", None)
    if not isinstance(handlers, FulfillmentHandlers):
        raise RuntimeError("Fulfillment handlers are not configured on app.state.")
    return handlers


async def _fulfill(
    request: Request,
    app_cls: Type[AssistantApp],
    handler: Optional[FulfillmentHandler],
    handlers: FulfillmentHandlers,
) -> Response:
    if handler is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"No {app_cls.__name__} handler registered",
        )
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("webhook received invalid JSON", extra={"path": request.url.path})
        return JSONResponse({"error": "Invalid JSON"}, status_code=HTTPStatus.BAD_REQUEST)

    buffered = BufferedResponse()
    assistant = app_cls(
        RequestAdapter(body, request.headers), buffered, router=handlers.intent_router
    )
    conversation_id = lookup(assistant.request_data(), "conversation", "conversationId")
    with conversation_id_context(conversation_id):
        try:
            await assistant.handle_request(handler)
        except FulfillmentError as exc:
            logger.warning(
                "turn ended with a fulfillment error",
                extra={"error_type": type(exc).__name__, "reason": str(exc)},
            )
        if not buffered.sent:
            logger.error("handler finished without sending a response")
            return JSONResponse(
                {"error": "Handler did not send a response"},
                status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            )
        logger.info("turn fulfilled", extra={"status_code": buffered.status_code})
    return buffered.to_response()


@router.post(settings.ACTIONS_SDK_WEBHOOK_PATH)
async def actions_sdk_webhook(request: Request) -> Response:
    """Fulfill one Actions SDK conversation turn."""
    handlers = _get_handlers(request)
    return await _fulfill(request, ActionsSdkApp, handlers.actions_sdk, handlers)


@router.post(settings.DIALOGFLOW_WEBHOOK_PATH)
async def dialogflow_webhook(request: Request) -> Response:
    """Fulfill one Dialogflow conversation turn."""
    handlers = _get_handlers(request)
    return await _fulfill(request, DialogflowApp, handlers.dialogflow, handlers)


__all__ = ["router"]
