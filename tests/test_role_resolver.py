"""
Tests for effective workspace role resolution.
"""
import logging

import pytest

from app.core.errors import BadGatewayError, GatewayTimeoutError, InternalError
from app.services.role_resolver import (
    WorkspaceRole,
    highest_role,
    normalize_role,
    resolve_workspace_role,
)


class TestHighestRole:
    """Test role priority."""

    def test_owner_beats_admin_and_member(self):
        keys = ["workspace_member", "workspace_owner", "workspace_admin"]
        assert highest_role(keys) == WorkspaceRole.OWNER

    def test_admin_beats_member(self):
        assert highest_role(["workspace_member", "workspace_admin"]) == WorkspaceRole.ADMIN

    def test_no_roles_is_member(self):
        assert highest_role([]) == WorkspaceRole.MEMBER

    def test_unknown_keys_count_as_member(self):
        assert normalize_role("billing_viewer") == WorkspaceRole.MEMBER
        assert highest_role(["billing_viewer"]) == WorkspaceRole.MEMBER


class TestResolveWorkspaceRole:
    """Test resolution through the authz client."""

    def test_uses_assignments(self, authz):
        authz.roles[("ws-1", "u-1")] = ["workspace_admin"]
        assert resolve_workspace_role(authz, "ws-1", "u-1") == WorkspaceRole.ADMIN

    @pytest.mark.parametrize("error", [GatewayTimeoutError("slow"), BadGatewayError("down")])
    def test_transient_failure_falls_back_to_member(self, authz, caplog, error):
        authz.list_error = error
        with caplog.at_level(logging.WARNING):
            role = resolve_workspace_role(authz, "ws-1", "u-1")
        assert role == WorkspaceRole.MEMBER
        assert "using fallback role" in caplog.text

    def test_other_failures_propagate(self, authz):
        authz.list_error = InternalError("AUTHZ_SERVICE_URL is not set")
        with pytest.raises(InternalError):
            resolve_workspace_role(authz, "ws-1", "u-1")
