"""HTTP tests for the API routes, with the in-memory store installed via dependency overrides."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from fastapi import status

from willing_tree.api.deps import (
    create_access_token,
    decode_access_token,
    get_capability_gate,
    get_entity_store,
    to_http_exception,
)
from willing_tree.config import Settings
from willing_tree.main import app
from willing_tree.services.capability_gate import CapabilityGate
from willing_tree.workflow.errors import PhaseCacheDrift, StorageUnavailable

from conftest import InMemoryEntityStore, make_user

WISHES_A = {"items": [{"id": "coffee", "text": "Coffee in bed", "is_most_wanted": True}, {"id": "walks", "text": "Walks"}]}
WISHES_B = {"items": [{"id": "movies", "text": "Movie night"}]}


def week_url(innermost_id, week=1, suffix=""):
    return f"/innermosts/{innermost_id}/weeks/{week}{suffix}"


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "healthy"}


async def test_requires_authentication(client):
    response = await client.get("/innermosts/")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestAuth:
    async def test_me(self, client, act_as, alice):
        alice.created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
        act_as(alice)
        response = await client.get("/auth/me")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["email"] == "alice@example.com"
        assert response.json()["subscription_status"] == "free"

    async def test_logout_clears_cookie(self, client):
        response = await client.post("/auth/logout")
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert "access_token" in response.headers["set-cookie"]

    def test_token_round_trip(self):
        settings = Settings(jwt_secret_key="test-secret-key")
        user_id = uuid4()
        assert decode_access_token(create_access_token(user_id, settings), settings) == user_id
        assert decode_access_token("not-a-token", settings) is None


class TestInnermosts:
    async def test_invite_and_accept(self, client, act_as, alice, bob):
        act_as(alice)
        response = await client.post("/innermosts/", json={"partner_email": bob.email, "invite_message": "Hi"})
        assert response.status_code == status.HTTP_201_CREATED
        innermost = response.json()
        assert innermost["status"] == "pending"

        act_as(bob)
        listed = await client.get("/innermosts/")
        assert [i["id"] for i in listed.json()] == [innermost["id"]]

        response = await client.post(f"/innermosts/{innermost['id']}/accept")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "active"
        assert response.json()["partner_b_id"] == str(bob.id)

    async def test_invalid_email_is_rejected(self, client, act_as, alice):
        act_as(alice)
        response = await client.post("/innermosts/", json={"partner_email": "not-an-email"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_plan_limit_is_payment_required(self, client, act_as, pair, alice):
        app.dependency_overrides[get_capability_gate] = lambda: CapabilityGate(
            Settings(jwt_secret_key="test-secret-key", billing_enabled=True)
        )
        act_as(alice)
        response = await client.post("/innermosts/", json={"partner_email": "carol@example.com"})
        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED

    async def test_outsider_gets_not_found(self, client, act_as, pair):
        act_as(make_user("Eve", "eve@example.com"))
        response = await client.post(f"/innermosts/{pair.id}/archive")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestWeeks:
    async def test_full_week(self, client, act_as, pair, alice, bob):
        act_as(alice)
        response = await client.post(f"/innermosts/{pair.id}/weeks")
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["week_number"] == 1
        assert response.json()["my_role"] == "A"

        response = await client.put(week_url(pair.id, suffix="/wishes"), json=WISHES_A)
        assert response.json()["waiting_on"] == ["B"]

        act_as(bob)
        response = await client.put(week_url(pair.id, suffix="/wishes"), json=WISHES_B)
        body = response.json()
        assert body["phase"] == "selecting_willing"
        assert [w["id"] for w in body["partner_wish_list"]] == ["coffee", "walks"]

        await client.put(week_url(pair.id, suffix="/willing"), json={"items": [{"wish_id": "coffee", "priority": 1}]})
        act_as(alice)
        response = await client.put(
            week_url(pair.id, suffix="/willing"), json={"items": [{"wish_id": "movies", "priority": 1}]}
        )
        body = response.json()
        assert body["phase"] == "guessing"
        # Partner's picks stay hidden until the week is complete
        assert body["partner_willing_list"] is None

        await client.put(week_url(pair.id, suffix="/guesses"), json={"items": [{"wish_id": "coffee"}]})
        act_as(bob)
        response = await client.put(week_url(pair.id, suffix="/guesses"), json={"items": [{"wish_id": "movies"}]})
        body = response.json()
        assert body["phase"] == "complete"
        assert body["partner_willing_list"][0]["wish_id"] == "movies"
        assert body["partner_guesses"] == [{"wish_id": "coffee", "effort": None}]

        response = await client.get(week_url(pair.id, suffix="/score"))
        assert response.status_code == status.HTTP_200_OK
        # A guessed their most-wanted wish at priority 1
        assert response.json()["partner_a_score"] == 60
        assert response.json()["partner_b_score"] == 40

        response = await client.get(f"/innermosts/{pair.id}/scores")
        assert len(response.json()) == 1

        response = await client.get("/stats")
        stats = response.json()
        assert stats["total_leaves_grown"] == 1
        assert stats["total_score"] == 100
        assert stats["needs_action"] is False
        assert stats["needs_action_by_innermost"] == {str(pair.id): False}

    async def test_conflicts(self, client, act_as, pair, alice):
        act_as(alice)
        await client.post(f"/innermosts/{pair.id}/weeks")
        await client.put(week_url(pair.id, suffix="/wishes"), json=WISHES_A)

        response = await client.put(week_url(pair.id, suffix="/wishes"), json=WISHES_A)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert "already submitted" in response.json()["detail"]

        response = await client.put(
            week_url(pair.id, suffix="/guesses"), json={"items": [{"wish_id": "coffee"}]}
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert "Wait for your partner" in response.json()["detail"]

    async def test_revise(self, client, act_as, pair, alice):
        act_as(alice)
        await client.post(f"/innermosts/{pair.id}/weeks")
        await client.put(week_url(pair.id, suffix="/wishes"), json=WISHES_A)

        response = await client.patch(week_url(pair.id, suffix="/wishes"), json=WISHES_B)
        assert response.status_code == status.HTTP_200_OK
        assert [w["id"] for w in response.json()["my_wish_list"]] == ["movies"]

    async def test_payload_validation(self, client, act_as, pair, alice, bob):
        act_as(alice)
        await client.post(f"/innermosts/{pair.id}/weeks")

        response = await client.put(week_url(pair.id, suffix="/wishes"), json={"items": []})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        await client.put(week_url(pair.id, suffix="/wishes"), json=WISHES_A)
        act_as(bob)
        await client.put(week_url(pair.id, suffix="/wishes"), json=WISHES_B)
        # movies is bob's own wish, he must pick from alice's
        response = await client.put(
            week_url(pair.id, suffix="/willing"), json={"items": [{"wish_id": "movies", "priority": 1}]}
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_unknown_week(self, client, act_as, pair, alice):
        act_as(alice)
        response = await client.get(week_url(pair.id, week=4))
        assert response.status_code == status.HTTP_404_NOT_FOUND

        response = await client.get(week_url(pair.id, week=0))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestErrorTranslation:
    async def test_storage_outage_is_service_unavailable(self, client, act_as, alice):
        class DownStore(InMemoryEntityStore):
            async def list_innermosts_for_user(self, user):
                raise StorageUnavailable("Storage unavailable during list_innermosts_for_user")

        app.dependency_overrides[get_entity_store] = lambda: DownStore()
        act_as(alice)
        response = await client.get("/innermosts/")
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_integrity_errors_are_internal(self):
        exc = to_http_exception(PhaseCacheDrift("guessing", "planting_trees"))
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


@pytest.mark.parametrize("path", ["/stats", "/auth/me"])
async def test_protected_routes(client, path):
    response = await client.get(path)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
