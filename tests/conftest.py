"""
Pytest configuration and fixtures for testing the accounts service.
"""
import sys
import os
import uuid
from typing import Dict, Generator, Optional

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["INTERNAL_SERVICE_TOKEN"] = "test-internal-token"
os.environ["INTERNAL_JWT_SIGNING_KEY"] = "test-jwt-signing-key"
os.environ["AUTHZ_SERVICE_URL"] = "http://authz.test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add the parent directory to the path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.actions.register import ActionDependencies, build_dispatcher
from app.actions.types import ActionContext, UserHints
from app.core.rate_limit import limiter
from app.db.session import Base
from app.main import create_app
from app.models import User, Workspace, WorkspaceMember
from app.services.authz_client import RoleAssignment

INTERNAL_TOKEN = "test-internal-token"
JWT_SIGNING_KEY = "test-jwt-signing-key"

# Create in-memory SQLite database for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeAuthzClient:
    """In-memory stand-in for AuthzClient that records every call."""

    def __init__(self):
        self.allowed = True
        self.assign_error: Optional[Exception] = None
        self.list_error: Optional[Exception] = None
        self.roles: Dict[tuple, list] = {}
        self.assign_calls = []
        self.permission_calls = []
        self.closed = False

    def assign_role(self, user_id, workspace_id, role_key):
        self.assign_calls.append((user_id, workspace_id, role_key))
        if self.assign_error is not None:
            raise self.assign_error
        self.roles.setdefault((workspace_id, user_id), []).append(role_key)

    def check_permission(self, user_id, workspace_id, action_key):
        self.permission_calls.append((user_id, workspace_id, action_key))
        return self.allowed

    def list_roles_for_workspace(self, workspace_id, user_ids):
        if self.list_error is not None:
            raise self.list_error
        return [
            RoleAssignment(user_id=user_id, role_key=role_key)
            for user_id in user_ids
            for role_key in self.roles.get((workspace_id, user_id), [])
        ]

    def close(self):
        self.closed = True


def new_id() -> str:
    return str(uuid.uuid4())


def make_ctx(
    user_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
    email: Optional[str] = None,
    name: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> ActionContext:
    return ActionContext(
        workspace_id=workspace_id,
        user_id=user_id,
        request_id="req-test",
        user=UserHints(email=email, name=name, avatar_url=avatar_url),
    )


def action_headers(
    user_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
    token: str = INTERNAL_TOKEN,
    **extra: str,
) -> Dict[str, str]:
    headers = {"X-Internal-Service-Token": token}
    if user_id:
        headers["X-XS-User-Id"] = user_id
    if workspace_id:
        headers["X-Workspace-Id"] = workspace_id
    headers.update(extra)
    return headers


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Create a fresh database for each test function.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def authz() -> FakeAuthzClient:
    return FakeAuthzClient()


@pytest.fixture
def deps(authz: FakeAuthzClient) -> ActionDependencies:
    return ActionDependencies(
        session_factory=TestingSessionLocal,
        authz_client_factory=lambda: authz,
    )


@pytest.fixture(scope="function")
def client(db: Session, deps: ActionDependencies) -> Generator[TestClient, None, None]:
    """
    Create a test client whose handlers use the test database and fake authz.
    """
    app = create_app(dispatcher=build_dispatcher(deps))

    # Reset rate limiter for each test to avoid rate limit issues in tests
    limiter.reset()

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def test_user(db: Session) -> User:
    """
    Create a user as the upstream identity provider would have.
    """
    user = User(id=new_id(), email="owner@test.com", display_name="Owner")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_invitee(db: Session) -> User:
    user = User(id=new_id(), email="invitee@test.com", display_name="Invitee")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_workspace(db: Session, test_user: User) -> Workspace:
    """
    Create a workspace with the test user as its active member.
    """
    workspace = Workspace(id=new_id(), name="Acme", slug="acme", created_by=test_user.id)
    db.add(workspace)
    db.add(WorkspaceMember(workspace_id=workspace.id, user_id=test_user.id, status="active"))
    db.commit()
    db.refresh(workspace)
    return workspace
