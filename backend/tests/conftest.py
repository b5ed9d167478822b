import os
import tempfile
from datetime import datetime, timedelta, timezone

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="teamdo-logs-"))

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import (
    get_current_caller,
    get_current_user_id,
    get_supabase_request_client,
)
from app.main import app
from app.models.user import CallerIdentity
from tests.fake_supabase import FakeSupabase


class ApiClient:
    """TestClient that sends requests as whichever user was last selected."""

    def __init__(self, store: FakeSupabase):
        self.store = store
        self.http = TestClient(app)
        self.user_id = None

    def as_user(self, user_id):
        self.user_id = user_id
        return self

    def __getattr__(self, name):
        return getattr(self.http, name)


@pytest.fixture(name="store")
def store_fixture():
    return FakeSupabase()


@pytest.fixture(name="users")
def users_fixture(store: FakeSupabase):
    return {
        name: store.add_user(f"{name}@example.com")
        for name in ("alice", "bob", "carol", "dave")
    }


@pytest.fixture(name="client")
def client_fixture(store: FakeSupabase):
    api = ApiClient(store)

    def current_caller():
        return CallerIdentity(id=api.user_id, email=store.users.get(str(api.user_id)))

    app.dependency_overrides[get_supabase_request_client] = lambda: store
    app.dependency_overrides[get_current_caller] = current_caller
    app.dependency_overrides[get_current_user_id] = lambda: api.user_id
    yield api
    app.dependency_overrides.clear()


@pytest.fixture(name="make_team")
def make_team_fixture(client: ApiClient):
    def make_team(owner_id, name="Platform", max_members=10, invite_emails=()):
        response = client.as_user(owner_id).post(
            "/api/teams",
            json={
                "name": name,
                "max_members": max_members,
                "invite_emails": list(invite_emails),
            },
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return make_team


@pytest.fixture(name="make_todo")
def make_todo_fixture(client: ApiClient):
    def make_todo(owner_id, team_id=None, name="Write release notes", **fields):
        body = {
            "name": name,
            "description": fields.pop("description", "Summarise the sprint"),
            "due_date": fields.pop(
                "due_date",
                (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
            ),
            **fields,
        }
        if team_id:
            body["team_id"] = team_id
        response = client.as_user(owner_id).post("/api/todos", json=body)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return make_todo


def invite_and_accept(client: ApiClient, store: FakeSupabase, team_id, inviter, invitee):
    email = store.users[str(invitee)]
    response = client.as_user(inviter).post(
        f"/api/teams/{team_id}/invite", json={"email": email}
    )
    assert response.status_code == 200, response.text
    invitation_id = response.json()["data"]["id"]
    response = client.as_user(invitee).post(f"/api/invitations/{invitation_id}/accept")
    assert response.status_code == 200, response.text
    return invitation_id
