import json
import logging
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from app.actions.dispatcher import ActionDispatcher
from app.actions.types import (
    CREATED_ACTION_KEYS,
    NON_WORKSPACE_ACTION_KEYS,
    PUBLIC_ACTION_KEYS,
    ActionContext,
    UserHints,
)
from app.core.config import settings
from app.core.errors import DomainError, UnauthorizedError, UnknownActionError
from app.core.rate_limit import limiter
from app.core.security import require_internal_service_auth
from app.schemas.actions import PAYLOAD_SCHEMAS, ActionRequest
from app.schemas.envelope import success_response, validation_error_response

logger = logging.getLogger(__name__)

router = APIRouter()

uuid_adapter = TypeAdapter(uuid.UUID)


def get_dispatcher(request: Request) -> ActionDispatcher:
    return request.app.state.dispatcher


async def read_json_body(request: Request, max_bytes: int) -> Any:
    """
    Read and parse the request body, enforcing the size limit while streaming.

    Raises:
        DomainError: PAYLOAD_TOO_LARGE (413) or INVALID_JSON (400)
    """
    too_large = DomainError(
        f"Request body exceeds {max_bytes} bytes", code="PAYLOAD_TOO_LARGE", status_code=413
    )
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        raise too_large

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise too_large

    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError):
        raise DomainError("Request body must be valid JSON", code="INVALID_JSON", status_code=400)


def _optional_header(request: Request, name: str) -> Optional[str]:
    value = request.headers.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _uuid_header(request: Request, name: str) -> Optional[str]:
    value = _optional_header(request, name)
    if value is None:
        return None
    try:
        return str(uuid_adapter.validate_python(value))
    except ValidationError:
        raise DomainError(f"{name} header must be a UUID", code="INVALID_HEADER", status_code=400)


def build_action_context(request: Request, action_key: str, request_id: str) -> ActionContext:
    """
    Build the per-request context from gateway headers.

    X-XS-User-Id is required unless the action is public; X-Workspace-Id is
    required unless the action is workspace-independent.
    """
    if action_key in PUBLIC_ACTION_KEYS:
        # Public actions ignore an unusable caller id instead of failing
        try:
            user_id = _uuid_header(request, "X-XS-User-Id")
        except DomainError:
            user_id = None
    else:
        user_id = _uuid_header(request, "X-XS-User-Id")
        if user_id is None:
            raise UnauthorizedError("X-XS-User-Id header is required")

    workspace_id = _uuid_header(request, "X-Workspace-Id")
    if workspace_id is None and action_key not in NON_WORKSPACE_ACTION_KEYS:
        raise DomainError(
            "X-Workspace-Id header is required", code="MISSING_HEADER", status_code=400
        )

    return ActionContext(
        workspace_id=workspace_id,
        user_id=user_id,
        request_id=request_id,
        user=UserHints(
            email=_optional_header(request, "X-XS-User-Email"),
            name=_optional_header(request, "X-XS-User-Name"),
            avatar_url=_optional_header(request, "X-XS-User-Avatar-Url"),
        ),
    )


@router.post("/accounts-actions")
@limiter.limit(settings.ACTIONS_RATE_LIMIT)
async def run_accounts_action(
    request: Request,
    _auth: None = Depends(require_internal_service_auth),
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
):
    """
    Single RPC entry point for accounts actions.

    Body: ``{"actionKey": str, "payload": object}``. Responds with the
    standard envelope; 201 for creating actions, 200 otherwise.
    """
    request_id = request.state.request_id
    body = await read_json_body(request, settings.MAX_JSON_BODY_BYTES)

    try:
        action = ActionRequest.model_validate(body)
    except ValidationError as exc:
        return JSONResponse(
            status_code=400,
            content=validation_error_response(exc, request_id, "Invalid request body"),
        )

    action_key = action.action_key
    ctx = build_action_context(request, action_key, request_id)

    schema = PAYLOAD_SCHEMAS.get(action_key)
    if schema is None or not dispatcher.has(action_key):
        raise UnknownActionError(action_key)

    try:
        payload = schema.model_validate(action.payload)
    except ValidationError as exc:
        return JSONResponse(status_code=400, content=validation_error_response(exc, request_id))

    logger.info(
        "Dispatching %s (request_id=%s workspace_id=%s user_id=%s)",
        action_key,
        request_id,
        ctx.workspace_id,
        ctx.user_id,
    )
    result = await run_in_threadpool(dispatcher.dispatch, action_key, payload, ctx)

    status_code = 201 if action_key in CREATED_ACTION_KEYS else 200
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(success_response(result, request_id)),
    )
