"""
Tests for the internal accounts actions endpoint.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.actions.dispatcher import ActionRegistry
from app.actions.types import ActionKey
from app.core.config import settings
from app.core.errors import BadGatewayError
from app.core.security import create_internal_token
from app.main import create_app
from app.models import User, Workspace, WorkspaceInvite, WorkspaceMember

from conftest import JWT_SIGNING_KEY, action_headers, new_id

ACTIONS_URL = "/internal/accounts-actions"


def call(client, action_key, payload=None, headers=None):
    body = {"actionKey": action_key}
    if payload is not None:
        body["payload"] = payload
    return client.post(ACTIONS_URL, json=body, headers=headers or {})


class TestInternalAuth:
    """Test the internal service token guard."""

    def test_missing_token(self, client: TestClient):
        response = client.post(ACTIONS_URL, json={"actionKey": ActionKey.PING, "payload": {}})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_wrong_token(self, client: TestClient):
        headers = action_headers(new_id(), new_id(), token="wrong-token")
        response = call(client, ActionKey.PING, {}, headers)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_internal_jwt_accepted(self, client: TestClient):
        token = create_internal_token(JWT_SIGNING_KEY, settings.SERVICE_NAME, "req-jwt")
        response = call(client, ActionKey.PING, {}, action_headers(new_id(), new_id(), token=token))
        assert response.status_code == 200

    def test_internal_jwt_for_other_service_rejected(self, client: TestClient):
        token = create_internal_token(JWT_SIGNING_KEY, "billing-service", "req-jwt")
        response = call(client, ActionKey.PING, {}, action_headers(new_id(), new_id(), token=token))
        assert response.status_code == 403


class TestEnvelope:
    """Test request parsing and the response envelope."""

    def test_ping_success_envelope(self, client: TestClient):
        headers = action_headers(new_id(), new_id(), **{"X-Request-Id": "req-123"})
        response = call(client, ActionKey.PING, {}, headers)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "data": {"pong": True}, "meta": {"requestId": "req-123"}}
        assert response.headers["X-Request-Id"] == "req-123"

    def test_request_id_generated_when_absent(self, client: TestClient):
        response = call(client, ActionKey.PING, {}, action_headers(new_id(), new_id()))
        assert response.json()["meta"]["requestId"]

    def test_invalid_json(self, client: TestClient):
        headers = action_headers(new_id(), new_id(), **{"Content-Type": "application/json"})
        response = client.post(ACTIONS_URL, content=b"{not json", headers=headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_JSON"

    def test_body_too_large(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "MAX_JSON_BODY_BYTES", 32)
        response = call(client, ActionKey.PING, {"padding": "x" * 100}, action_headers(new_id(), new_id()))
        assert response.status_code == 413
        assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"

    def test_missing_action_key(self, client: TestClient):
        response = client.post(ACTIONS_URL, json={"payload": {}}, headers=action_headers(new_id(), new_id()))
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["message"] == "Invalid request body"

    def test_unknown_action(self, client: TestClient):
        response = call(client, "accounts.nope", {}, action_headers(new_id(), new_id()))
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "UNKNOWN_ACTION"
        assert error["message"] == "Unknown action: accounts.nope"

    def test_payload_validation_issues(self, client: TestClient):
        response = call(
            client,
            ActionKey.WORKSPACES_CREATE,
            {"name": "Bad", "slug": "-Bad Slug-"},
            action_headers(new_id()),
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["message"] == "Payload validation failed"
        assert error["details"]["issues"][0]["path"] == ["slug"]

    def test_unknown_payload_field_rejected(self, client: TestClient):
        response = call(client, ActionKey.PING, {"extra": 1}, action_headers(new_id(), new_id()))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_unhandled_error_is_internal_error(self):
        registry = ActionRegistry()

        def explode(payload, ctx):
            raise RuntimeError("database password is hunter2")

        registry.register(ActionKey.PING, explode)
        app = create_app(dispatcher=registry.freeze())

        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = call(test_client, ActionKey.PING, {}, action_headers(new_id(), new_id()))

        assert response.status_code == 500
        body = response.json()
        assert body["ok"] is False
        assert body["error"] == {"code": "INTERNAL_ERROR", "message": "Internal server error"}


class TestContextHeaders:
    """Test identity and tenancy headers."""

    def test_missing_user_id(self, client: TestClient):
        response = call(client, ActionKey.PING, {}, action_headers(workspace_id=new_id()))
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_malformed_user_id(self, client: TestClient):
        headers = action_headers(workspace_id=new_id(), **{"X-XS-User-Id": "not-a-uuid"})
        response = call(client, ActionKey.PING, {}, headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_HEADER"

    def test_missing_workspace_id(self, client: TestClient):
        response = call(client, ActionKey.PING, {}, action_headers(new_id()))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_HEADER"

    def test_malformed_workspace_id(self, client: TestClient):
        headers = action_headers(new_id(), **{"X-Workspace-Id": "12345"})
        response = call(client, ActionKey.PING, {}, headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_HEADER"

    def test_user_id_is_normalized(self, client: TestClient):
        user_id = new_id()
        headers = action_headers(user_id.upper(), **{"X-XS-User-Email": "me@example.com"})
        response = call(client, ActionKey.ME_GET_OR_CREATE, {}, headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == user_id

    def test_public_action_ignores_malformed_user_id(
        self, client: TestClient, test_user: User, test_workspace
    ):
        response = call(
            client,
            ActionKey.INVITES_CREATE,
            {"email": "guest@test.com", "roleKey": "workspace_member"},
            action_headers(test_user.id, test_workspace.id),
        )
        token = response.json()["data"]["token"]

        headers = action_headers(**{"X-XS-User-Id": "not-a-uuid"})
        response = call(client, ActionKey.INVITES_RESOLVE, {"token": token}, headers)
        assert response.status_code == 200
        assert response.json()["data"]["inviteeEmail"] == "guest@test.com"

    def test_workspace_independent_action_without_workspace(self, client: TestClient):
        headers = action_headers(new_id(), **{"X-XS-User-Email": "me@example.com"})
        response = call(client, ActionKey.ME_GET_OR_CREATE, {}, headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "me@example.com"


class TestActionFlows:
    """End-to-end flows through the endpoint."""

    def test_create_workspace_then_list(self, client: TestClient, authz, test_user: User):
        response = call(
            client,
            ActionKey.WORKSPACES_CREATE,
            {"name": "  Rocket Labs ", "slug": "rocket-labs"},
            action_headers(test_user.id),
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Rocket Labs"
        assert authz.assign_calls == [(test_user.id, data["id"], "workspace_owner")]

        response = call(client, ActionKey.WORKSPACES_LIST_FOR_USER, {}, action_headers(test_user.id))
        assert response.status_code == 200
        assert [w["slug"] for w in response.json()["data"]["workspaces"]] == ["rocket-labs"]

    def test_create_workspace_role_failure_is_bad_gateway(self, client: TestClient, authz, db: Session, test_user: User):
        authz.assign_error = BadGatewayError("authz down")
        response = call(
            client,
            ActionKey.WORKSPACES_CREATE,
            {"name": "Rocket Labs", "slug": "rocket-labs"},
            action_headers(test_user.id),
        )
        assert response.status_code == 502
        assert response.json()["error"]["message"] == "Failed to assign workspace_owner role"
        db.expire_all()
        assert db.query(Workspace).count() == 0

    def test_ensure_member_is_created(self, client: TestClient, test_user: User, test_invitee: User, test_workspace):
        headers = action_headers(test_invitee.id, test_workspace.id)
        response = call(client, ActionKey.WORKSPACE_MEMBER_ENSURE, {}, headers)
        assert response.status_code == 201
        assert response.json()["data"] == {"created": True, "status": "active"}

    def test_invite_lifecycle(
        self, client: TestClient, authz, db: Session, test_user: User, test_invitee: User, test_workspace
    ):
        response = call(
            client,
            ActionKey.INVITES_CREATE,
            {"email": test_invitee.email, "roleKey": "workspace_member"},
            action_headers(test_user.id, test_workspace.id),
        )
        assert response.status_code == 201
        token = response.json()["data"]["token"]

        # Resolve is public: no user header
        response = call(client, ActionKey.INVITES_RESOLVE, {"token": token}, action_headers())
        assert response.status_code == 200
        assert response.json()["data"]["workspaceName"] == "Acme"
        assert response.json()["data"]["inviterName"] == "Owner"

        response = call(client, ActionKey.INVITES_ACCEPT, {"token": token}, action_headers(test_invitee.id))
        assert response.status_code == 201
        assert response.json()["data"]["workspaceMemberCreated"] is True

        response = call(client, ActionKey.INVITES_ACCEPT, {"token": token}, action_headers(test_invitee.id))
        assert response.status_code == 409

        db.expire_all()
        assert db.query(WorkspaceInvite).one().status == "accepted"
        assert db.query(WorkspaceMember).filter(WorkspaceMember.user_id == test_invitee.id).count() == 1

    @pytest.mark.parametrize("allowed,status", [(True, 200), (False, 403)])
    def test_list_members_permission(
        self, client: TestClient, authz, test_user: User, test_workspace, allowed, status
    ):
        authz.allowed = allowed
        headers = action_headers(test_user.id, test_workspace.id)
        response = call(client, ActionKey.WORKSPACE_MEMBERS_LIST, {}, headers)
        assert response.status_code == status

    def test_read_self_not_found(self, client: TestClient, test_workspace):
        response = call(client, ActionKey.USER_READ_SELF, {}, action_headers(new_id(), test_workspace.id))
        assert response.status_code == 404
        assert response.json()["error"] == {"code": "NOT_FOUND", "message": "User not found"}
