"""HTTP API tests against the mock-backed test profile."""

import json

import pytest
from fastapi.testclient import TestClient

from switchboard.api import create_app
from switchboard.config import Services, load_config
from switchboard.errors import ProviderError

SERVICE_KEY = "test-service-key"


def headers(user_id: str = "user_1", sensitivity: int = 2, **extra) -> dict:
    context = {"user_id": user_id, "role": "ANALYST", "data_sensitivity": sensitivity}
    return {
        "X-Service-Key": SERVICE_KEY,
        "X-User-Context": json.dumps(context),
        **extra,
    }


@pytest.fixture
def services():
    return Services(load_config("test"))


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services))


class TestStatus:
    def test_status_is_open(self, client):
        response = client.get("/status")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["tools"]["total"] == 16
        assert body["agents"]["bidding"]["tools"] == 10
        assert "together" in body["providers"]


class TestServiceKey:
    def test_missing_key(self, client):
        response = client.post("/query", json={"message": "hi"})
        assert response.status_code == 401
        assert "error" in response.json()

    def test_wrong_key(self, client):
        response = client.post(
            "/query", json={"message": "hi"}, headers=headers(**{"X-Service-Key": "nope"})
        )
        assert response.status_code == 401

    def test_unset_key_closes_routes(self, services):
        services.profile.api.service_key = None
        client = TestClient(create_app(services=services))
        response = client.get("/agents", headers=headers())
        assert response.status_code == 401


class TestQuery:
    def test_auto_classified_query(self, client):
        response = client.post(
            "/query", json={"message": "Who is the lead on the Acme deal?"}, headers=headers()
        )

        assert response.status_code == 200
        body = response.json()
        assert body["content"].startswith("[Mock together response to:")
        assert body["agent_info"]["type"] == "sales"
        assert body["agent_info"]["routing_strategy"] == "auto_classified"
        assert "agents_used" not in body["agent_info"]
        assert body["conversation_id"]

    def test_high_sensitivity_uses_anthropic(self, client):
        response = client.post(
            "/query", json={"message": "budget for the bid"}, headers=headers(sensitivity=6)
        )
        assert response.json()["content"].startswith("[Mock anthropic response to:")

    def test_missing_message(self, client):
        response = client.post("/query", json={}, headers=headers())
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required field: message"

    def test_agent_type_route(self, client):
        response = client.post(
            "/agents/talent/query",
            json={"message": "What's our pipeline?", "conversation_id": "conv_9"},
            headers=headers(),
        )
        body = response.json()
        assert body["agent_info"]["type"] == "talent"
        assert body["agent_info"]["routing_strategy"] == "direct"
        assert body["conversation_id"] == "conv_9"

    def test_anonymous_context(self, client):
        response = client.post(
            "/query",
            json={"message": "hi"},
            headers={"X-Service-Key": SERVICE_KEY, "X-User-Context": "not json"},
        )
        assert response.status_code == 200

    def test_invalid_sensitivity_rejected(self, client):
        response = client.post("/query", json={"message": "hi"}, headers=headers(sensitivity=9))
        assert response.status_code == 400

    def test_zero_sensitivity_rejected(self, client):
        response = client.post("/query", json={"message": "hi"}, headers=headers(sensitivity=0))
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid X-User-Context")

    def test_provider_failure_is_502(self, services):
        class Down:
            async def chat(self, *args, **kwargs):
                raise ProviderError("together", "service unavailable", status_code=503)

        services.router._providers[services.router.provider_for(1).backend] = Down()
        client = TestClient(create_app(services=services))

        response = client.post("/query", json={"message": "hi"}, headers=headers(sensitivity=1))

        assert response.status_code == 502
        assert response.json()["backend"] == "together"


class TestAgents:
    def create(self, client, **fields):
        payload = {"agent_name": "Bid Desk", "agent_type": "bidding", **fields}
        return client.post("/agents", json=payload, headers=headers())

    def test_create_and_list(self, client):
        created = self.create(client, tools_enabled=["get_dp_financial_breakdown"])

        assert created.status_code == 201
        agent = created.json()
        assert agent["user_id"] == "user_1"
        assert agent["is_active"] is True

        listed = client.get("/agents", headers=headers()).json()
        assert [a["id"] for a in listed] == [agent["id"]]
        assert client.get("/agents", headers=headers(user_id="other")).json() == []

    def test_unknown_tool_rejected(self, client):
        response = self.create(client, tools_enabled=["launch_rockets"])
        assert response.status_code == 400
        assert "launch_rockets" in response.json()["error"]

    def test_update_and_deactivate(self, client):
        agent = self.create(client).json()

        updated = client.patch(
            f"/agents/{agent['id']}", json={"temperature": 0.1}, headers=headers()
        )
        assert updated.status_code == 200
        assert updated.json()["temperature"] == 0.1
        assert updated.json()["agent_name"] == "Bid Desk"

        deleted = client.delete(f"/agents/{agent['id']}", headers=headers())
        assert deleted.status_code == 200
        assert deleted.json()["is_active"] is False
        assert client.get("/agents", headers=headers()).json() == []

    def test_other_users_agent_is_hidden(self, client):
        agent = self.create(client).json()
        response = client.patch(
            f"/agents/{agent['id']}", json={"temperature": 0.1}, headers=headers(user_id="other")
        )
        assert response.status_code == 404

    def test_query_user_agent_and_clear_session(self, client, services):
        agent = self.create(client).json()

        response = client.post(
            "/query",
            json={"message": "Break down the DP costs", "agent_id": agent["id"],
                  "conversation_id": "conv_1"},
            headers=headers(),
        )
        body = response.json()
        assert body["agent_info"]["routing_strategy"] == "user_agent"
        assert body["agent_info"]["primary_agent"] == "Bid Desk"
        assert body["agent_info"]["agents_used"] == []

        [session] = services.agent_store.sessions.values()
        assert len(session.state["messages"]) == 2

        cleared = client.delete(f"/sessions/{agent['id']}/conv_1", headers=headers())
        assert cleared.json()["cleared"] is True
        [session] = services.agent_store.sessions.values()
        assert session.state["messages"] == []

    def test_clear_unknown_session_creates_nothing(self, client, services):
        response = client.delete("/sessions/agent_x/conv_missing", headers=headers())

        assert response.status_code == 200
        assert response.json()["cleared"] is False
        assert services.agent_store.sessions == {}
