"""
Integration tests for vote toggling

Covers the toggle round trip, the non-negative counter, per-voter vote
lookup, the expiry gate and the conflict path.
"""

import uuid

import pytest
from sqlalchemy import Delete, func, select
from sqlalchemy.exc import IntegrityError

from retroboard.client.positions import group_columns
from retroboard.core.errors import ApiError, ErrorCode
from retroboard.core.schemas.card import Card, ColumnType
from retroboard.db.models import Card as CardModel
from retroboard.db.models import Vote
from retroboard.services.votes import toggle_vote as toggle_vote_service
from tests.utils.factories import CardFactory, SessionFactory, VoteFactory
from tests.utils.helpers import add_card, assert_error, list_cards, toggle_vote

pytestmark = pytest.mark.integration


@pytest.fixture
def session_id(created_session):
    return created_session["id"]


class TestToggle:
    @pytest.mark.critical
    def test_sprint_one_scenario(self, client, session_id):
        voter = str(uuid.uuid4())
        card = add_card(client, session_id, "A")
        assert [(c["content"], c["votes"]) for c in list_cards(client, session_id)] == [("A", 0)]

        first = toggle_vote(client, card["id"], session_id, voter)
        assert first.status_code == 201
        assert first.json()["votes"] == 1
        assert first.json()["voted"] is True

        second = toggle_vote(client, card["id"], session_id, voter)
        assert second.status_code == 200
        assert second.json()["votes"] == 0
        assert second.json()["voted"] is False

    def test_voted_card_rises_to_the_top(self, client, session_id):
        cards = [add_card(client, session_id, name) for name in ["A", "B", "C"]]

        toggle_vote(client, cards[2]["id"], session_id, str(uuid.uuid4()))

        listed = [Card.model_validate(c) for c in list_cards(client, session_id)]
        glad = group_columns(listed)[ColumnType.GLAD]
        assert [(c.content, c.votes) for c in glad] == [("C", 1), ("A", 0), ("B", 0)]

    def test_many_voters_count_independently(self, client, session_id):
        card = add_card(client, session_id, "Popular")
        voters = [str(uuid.uuid4()) for _ in range(5)]

        for voter in voters:
            assert toggle_vote(client, card["id"], session_id, voter).status_code == 201
        for voter in voters[:2]:
            assert toggle_vote(client, card["id"], session_id, voter).status_code == 200

        assert list_cards(client, session_id)[0]["votes"] == 3

    def test_counter_never_goes_negative(self, client, db_session):
        session = SessionFactory.create(db_session)
        card = CardFactory.create(db_session, session)
        voter = str(uuid.uuid4())
        VoteFactory.create(db_session, card, voter)
        # counter out of step with the vote rows
        card.votes = 0
        db_session.commit()

        response = toggle_vote(client, card.id, session.id, voter)

        assert response.status_code == 200
        assert response.json()["votes"] == 0
        assert response.json()["voted"] is False

    def test_seeded_counts_without_rows(self, client, db_session):
        session = SessionFactory.create(db_session, never_expires=True)
        card = CardFactory.create(db_session, session, votes=5)
        voter = str(uuid.uuid4())

        assert toggle_vote(client, card.id, session.id, voter).json()["votes"] == 6
        assert toggle_vote(client, card.id, session.id, voter).json()["votes"] == 5

    def test_uppercase_voter_id_is_the_same_voter(self, client, session_id):
        card = add_card(client, session_id, "Case")
        voter = str(uuid.uuid4())

        toggle_vote(client, card["id"], session_id, voter)
        response = toggle_vote(client, card["id"], session_id, voter.upper())

        assert response.status_code == 200
        assert response.json()["votes"] == 0


class TestToggleErrors:
    def test_malformed_card_id(self, client, session_id):
        assert_error(toggle_vote(client, "xyz", session_id, str(uuid.uuid4())), 400, "BAD_REQUEST", "Invalid card ID")

    @pytest.mark.parametrize("payload,fragment", [
        ({}, "Field required"),
        ({"voter_id": "nope", "session_id": None}, "voter_id"),
    ])
    def test_invalid_body(self, client, session_id, payload, fragment):
        card = add_card(client, session_id, "x")

        response = client.patch(f"/api/cards/{card['id']}/vote", json=payload)

        assert_error(response, 400, "VALIDATION_ERROR", fragment)

    def test_unknown_card(self, client, session_id):
        response = toggle_vote(client, str(uuid.uuid4()), session_id, str(uuid.uuid4()))

        assert_error(response, 404, "NOT_FOUND")

    def test_card_from_another_session_is_not_found(self, client, session_id):
        card = add_card(client, session_id, "x")
        other = client.post("/api/sessions", json={"name": "Other"}).json()

        response = toggle_vote(client, card["id"], other["id"], str(uuid.uuid4()))

        assert_error(response, 404, "NOT_FOUND")

    def test_expired_session(self, client, db_session, expired_session):
        card = CardFactory.create(db_session, expired_session)

        response = toggle_vote(client, card.id, expired_session.id, str(uuid.uuid4()))

        assert_error(response, 410, "GONE")

    def test_lost_race_is_a_conflict_and_rolls_back(self, db_session, monkeypatch):
        session = SessionFactory.create(db_session)
        card = CardFactory.create(db_session, session, votes=2)

        def racing_flush(*args, **kwargs):
            raise IntegrityError("INSERT INTO votes", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(db_session, "flush", racing_flush)

        with pytest.raises(ApiError) as exc_info:
            toggle_vote_service(db_session, card.id, str(uuid.uuid4()), session.id)

        assert exc_info.value.code == ErrorCode.CONFLICT
        assert exc_info.value.status_code == 409
        monkeypatch.undo()
        db_session.expire_all()
        assert db_session.get(CardModel, card.id).votes == 2

    def test_vote_removed_concurrently_is_a_conflict(self, db_session, monkeypatch):
        session = SessionFactory.create(db_session)
        card = CardFactory.create(db_session, session)
        voter_id = str(uuid.uuid4())
        VoteFactory.create(db_session, card, voter_id)
        real_execute = db_session.execute

        def racing_execute(statement, *args, **kwargs):
            if isinstance(statement, Delete):
                # The competing toggle deletes the row first; ours matches nothing
                real_execute(statement, *args, **kwargs)
            return real_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db_session, "execute", racing_execute)

        with pytest.raises(ApiError) as exc_info:
            toggle_vote_service(db_session, card.id, voter_id, session.id)

        assert exc_info.value.code == ErrorCode.CONFLICT
        assert exc_info.value.status_code == 409
        monkeypatch.undo()
        db_session.expire_all()
        assert db_session.get(CardModel, card.id).votes == 1
        row_count = db_session.scalar(
            select(func.count()).select_from(Vote).where(Vote.card_id == card.id)
        )
        assert row_count == 1


class TestVotedCards:
    def test_lists_only_this_voters_cards(self, client, session_id):
        mine, theirs = add_card(client, session_id, "mine"), add_card(client, session_id, "theirs")
        me, them = str(uuid.uuid4()), str(uuid.uuid4())
        toggle_vote(client, mine["id"], session_id, me)
        toggle_vote(client, theirs["id"], session_id, them)

        response = client.get(f"/api/sessions/{session_id}/votes", params={"voter_id": me})

        assert response.status_code == 200
        assert response.json() == [mine["id"]]
        assert response.headers["cache-control"].startswith("private")

    def test_scoped_to_session(self, client, session_id):
        voter = str(uuid.uuid4())
        other = client.post("/api/sessions", json={"name": "Other"}).json()
        card = add_card(client, other["id"], "elsewhere")
        toggle_vote(client, card["id"], other["id"], voter)

        response = client.get(f"/api/sessions/{session_id}/votes", params={"voter_id": voter})

        assert response.json() == []

    def test_missing_voter_id(self, client, session_id):
        response = client.get(f"/api/sessions/{session_id}/votes")

        assert_error(response, 400, "VALIDATION_ERROR", "voter_id")

    def test_expired_session(self, client, expired_session):
        response = client.get(
            f"/api/sessions/{expired_session.id}/votes", params={"voter_id": str(uuid.uuid4())}
        )

        assert_error(response, 410, "GONE")
