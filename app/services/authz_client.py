"""
Client for the authorization service.

All calls go to a single RPC endpoint (``POST /internal/authz-actions``) with
an ``{actionKey, payload}`` body and the internal service token header. Every
call is a live round trip bounded by the configured timeout; nothing is cached.
"""
import logging
from typing import List, NamedTuple, Optional

import httpx

from app.core.config import Settings, settings as default_settings
from app.core.errors import BadGatewayError, GatewayTimeoutError, InternalError

logger = logging.getLogger(__name__)

AUTHZ_ACTIONS_PATH = "/internal/authz-actions"
DEFAULT_TIMEOUT_MS = 5000


class RoleAssignment(NamedTuple):
    user_id: str
    role_key: str


def _resolve_timeout_ms(value) -> int:
    try:
        timeout_ms = float(value)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT_MS
    if timeout_ms != timeout_ms or timeout_ms <= 0 or timeout_ms == float("inf"):
        return DEFAULT_TIMEOUT_MS
    return int(timeout_ms)


class AuthzClient:
    """Typed RPC client for role assignment and permission checks."""

    def __init__(
        self,
        base_url: str,
        internal_service_token: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        http_client: Optional[httpx.Client] = None,
    ):
        if not base_url:
            raise InternalError("AUTHZ_SERVICE_URL is not set")
        if not internal_service_token:
            raise InternalError("INTERNAL_SERVICE_TOKEN is not set")

        try:
            url = httpx.URL(base_url)
        except (httpx.InvalidURL, TypeError) as exc:
            raise InternalError("AUTHZ_SERVICE_URL is invalid") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise InternalError("AUTHZ_SERVICE_URL is invalid")

        self.endpoint = str(url.join(AUTHZ_ACTIONS_PATH))
        self.timeout_ms = _resolve_timeout_ms(timeout_ms)
        self._token = internal_service_token
        self._client = http_client or httpx.Client(timeout=self.timeout_ms / 1000)

    def close(self) -> None:
        self._client.close()

    def _post(self, action_key: str, payload: dict) -> httpx.Response:
        """
        Send one RPC call.

        Raises:
            GatewayTimeoutError: If the call exceeds the timeout budget
            BadGatewayError: On any transport failure
        """
        try:
            return self._client.post(
                self.endpoint,
                json={"actionKey": action_key, "payload": payload},
                headers={"X-Internal-Service-Token": self._token},
                timeout=self.timeout_ms / 1000,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Authz call %s timed out after %sms", action_key, self.timeout_ms)
            raise GatewayTimeoutError("Authz service request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Authz call %s failed: %s", action_key, exc.__class__.__name__)
            raise BadGatewayError("Failed to reach authz service") from exc

    def assign_role(self, user_id: str, workspace_id: str, role_key: str) -> None:
        response = self._post(
            "authz.assignRole",
            {"userId": user_id, "workspaceId": workspace_id, "roleKey": role_key},
        )
        if not response.is_success:
            # Response bodies are not surfaced to callers
            logger.warning("Authz assignRole returned HTTP %s", response.status_code)
            raise BadGatewayError("Failed to assign role via authz service")

    def check_permission(self, user_id: str, workspace_id: str, action_key: str) -> bool:
        """
        Ask whether the user may perform ``action_key`` in the workspace.

        Fails closed: timeouts, transport errors, non-2xx responses and
        malformed bodies all return False.
        """
        try:
            response = self._post(
                "authz.checkPermission",
                {"userId": user_id, "workspaceId": workspace_id, "actionKey": action_key},
            )
        except (GatewayTimeoutError, BadGatewayError):
            return False

        if not response.is_success:
            logger.warning("Authz checkPermission returned HTTP %s", response.status_code)
            return False

        try:
            body = response.json()
        except ValueError:
            logger.warning("Authz checkPermission returned a non-JSON body")
            return False

        data = body.get("data") if isinstance(body, dict) else None
        return isinstance(data, dict) and data.get("allowed") is True

    def list_roles_for_workspace(self, workspace_id: str, user_ids: List[str]) -> List[RoleAssignment]:
        """
        List role assignments of the given users in a workspace.

        Errors propagate; callers choose their own fallback policy.

        Raises:
            GatewayTimeoutError: On timeout
            BadGatewayError: On transport errors, non-2xx or malformed responses
        """
        if not user_ids:
            return []

        response = self._post(
            "authz.listRolesForWorkspace",
            {"workspaceId": workspace_id, "userIds": list(user_ids)},
        )
        if not response.is_success:
            logger.warning("Authz listRolesForWorkspace returned HTTP %s", response.status_code)
            raise BadGatewayError("Failed to list roles via authz service")

        try:
            body = response.json()
        except ValueError as exc:
            raise BadGatewayError("Malformed response from authz service") from exc

        data = body.get("data") if isinstance(body, dict) else None
        assignments = data.get("assignments") if isinstance(data, dict) else None
        if not isinstance(assignments, list):
            raise BadGatewayError("Malformed response from authz service")

        result = []
        for item in assignments:
            if not isinstance(item, dict):
                raise BadGatewayError("Malformed response from authz service")
            user_id = item.get("userId")
            role_key = item.get("roleKey")
            if not isinstance(user_id, str) or not isinstance(role_key, str):
                raise BadGatewayError("Malformed response from authz service")
            result.append(RoleAssignment(user_id=user_id, role_key=role_key))
        return result


def create_authz_client(config: Optional[Settings] = None) -> AuthzClient:
    """Build an AuthzClient from settings."""
    config = config or default_settings
    return AuthzClient(
        base_url=config.AUTHZ_SERVICE_URL,
        internal_service_token=config.INTERNAL_SERVICE_TOKEN,
        timeout_ms=config.AUTHZ_CLIENT_TIMEOUT_MS,
    )
