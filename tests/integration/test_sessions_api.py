"""
Integration tests for session endpoints

Creation, lookup with the expiry gate, and admin-token deletion.
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from retroboard.core.schemas.session import SessionCreated
from retroboard.core.utils.time_helpers import utcnow
from retroboard.db.models import Card, RetroSession, Vote
from tests.utils.factories import CardFactory, SessionFactory
from tests.utils.helpers import add_card, assert_error, assert_response_structure, toggle_vote

pytestmark = pytest.mark.integration


class TestCreateSession:
    def test_create_returns_admin_token_once(self, client):
        response = client.post("/api/sessions", json={"name": "Sprint 1"})

        assert response.status_code == 201
        body = response.json()
        assert_response_structure(body, ["id", "name", "created_at", "expires_at", "admin_token"])
        assert body["name"] == "Sprint 1"
        assert uuid.UUID(body["id"])
        assert uuid.UUID(body["admin_token"])

        fetched = client.get(f"/api/sessions/{body['id']}").json()
        assert "admin_token" not in fetched

    def test_expires_thirty_days_out(self, client):
        body = client.post("/api/sessions", json={"name": "Sprint 2"}).json()

        session = SessionCreated.model_validate(body)
        assert session.expires_at - session.created_at == timedelta(days=30)

    def test_name_markup_is_stripped(self, client):
        body = client.post("/api/sessions", json={"name": "  <b>Team</b> retro "}).json()

        assert body["name"] == "Team retro"

    @pytest.mark.parametrize("payload,fragment", [
        ({}, "name: Field required"),
        ({"name": ""}, "name: "),
        ({"name": "<p></p>"}, "Name must not be empty after sanitization"),
        ({"name": "x" * 101}, "at most 100 characters"),
        ({"name": 42}, "name: "),
    ])
    def test_invalid_names(self, client, payload, fragment):
        response = client.post("/api/sessions", json=payload)

        assert_error(response, 400, "VALIDATION_ERROR", fragment)


class TestGetSession:
    def test_get_live_session(self, client, created_session):
        response = client.get(f"/api/sessions/{created_session['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == created_session["id"]
        assert response.headers["cache-control"] == "private, max-age=1, stale-while-revalidate=1"

    def test_uppercase_id_is_accepted(self, client, created_session):
        response = client.get(f"/api/sessions/{created_session['id'].upper()}")

        assert response.status_code == 200

    def test_malformed_id(self, client):
        assert_error(client.get("/api/sessions/not-a-uuid"), 400, "BAD_REQUEST", "Invalid session ID")

    def test_unknown_session(self, client):
        assert_error(client.get(f"/api/sessions/{uuid.uuid4()}"), 404, "NOT_FOUND")

    def test_expired_session_is_gone(self, client, expired_session):
        assert_error(client.get(f"/api/sessions/{expired_session.id}"), 410, "GONE", "Session expired")

    def test_never_expiring_session(self, client, db_session):
        session = SessionFactory.create(db_session, never_expires=True)

        response = client.get(f"/api/sessions/{session.id}")

        assert response.status_code == 200
        assert response.json()["expires_at"] is None


class TestDeleteSession:
    def test_delete_cascades_cards_and_votes(self, client, created_session, db_session):
        session_id = created_session["id"]
        card = add_card(client, session_id, "Deploys were smooth")
        toggle_vote(client, card["id"], session_id, str(uuid.uuid4()))

        response = client.delete(
            f"/api/sessions/{session_id}", params={"admin_token": created_session["admin_token"]}
        )

        assert response.status_code == 204
        assert_error(client.get(f"/api/sessions/{session_id}"), 404, "NOT_FOUND")
        db_session.expire_all()
        assert db_session.scalar(select(func.count()).select_from(Card)) == 0
        assert db_session.scalar(select(func.count()).select_from(Vote)) == 0

    def test_delete_with_bearer_token(self, client, created_session):
        response = client.delete(
            f"/api/sessions/{created_session['id']}",
            headers={"Authorization": f"Bearer {created_session['admin_token']}"},
        )

        assert response.status_code == 204

    @pytest.mark.security
    def test_other_sessions_token_is_forbidden(self, client, created_session, caplog):
        other = client.post("/api/sessions", json={"name": "Other"}).json()

        response = client.delete(
            f"/api/sessions/{created_session['id']}", params={"admin_token": other["admin_token"]}
        )

        assert_error(response, 403, "FORBIDDEN")
        assert client.get(f"/api/sessions/{created_session['id']}").status_code == 200
        security_records = [r for r in caplog.records if r.name == "security.events"]
        assert security_records
        assert all(other["admin_token"] not in r.getMessage() for r in security_records)

    def test_missing_token(self, client, created_session):
        response = client.delete(f"/api/sessions/{created_session['id']}")

        assert_error(response, 400, "VALIDATION_ERROR", "admin_token")

    def test_malformed_token(self, client, created_session):
        response = client.delete(
            f"/api/sessions/{created_session['id']}", params={"admin_token": "letmein"}
        )

        assert_error(response, 400, "VALIDATION_ERROR", "admin_token")

    def test_unknown_session(self, client):
        response = client.delete(f"/api/sessions/{uuid.uuid4()}", params={"admin_token": str(uuid.uuid4())})

        assert_error(response, 404, "NOT_FOUND")

    def test_expired_session_can_still_be_deleted(self, client, db_session):
        session = SessionFactory.create_expired(db_session)
        CardFactory.create(db_session, session)

        response = client.delete(f"/api/sessions/{session.id}", params={"admin_token": session.admin_token})

        assert response.status_code == 204


class TestExpiryTouch:
    def test_mutation_extends_expiry(self, client, db_session):
        session = SessionFactory.create(db_session, expires_at=utcnow() + timedelta(days=1))

        add_card(client, session.id, "Keep this board alive")

        db_session.expire_all()
        refreshed = db_session.get(RetroSession, session.id)
        assert refreshed.expires_at > utcnow() + timedelta(days=29)

    def test_vote_extends_expiry(self, client, db_session):
        session = SessionFactory.create(db_session, expires_at=utcnow() + timedelta(hours=1))
        card = CardFactory.create(db_session, session)

        response = toggle_vote(client, card.id, session.id, str(uuid.uuid4()))

        assert response.status_code == 201
        db_session.expire_all()
        assert db_session.get(RetroSession, session.id).expires_at > utcnow() + timedelta(days=29)

    def test_reads_do_not_extend_expiry(self, client, db_session):
        expires_at = utcnow() + timedelta(days=2)
        session = SessionFactory.create(db_session, expires_at=expires_at)

        client.get(f"/api/sessions/{session.id}")
        client.get(f"/api/sessions/{session.id}/cards")

        db_session.expire_all()
        assert db_session.get(RetroSession, session.id).expires_at < utcnow() + timedelta(days=3)
