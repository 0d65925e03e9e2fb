"""Integration tests for the seeded demo board"""

import pytest
from sqlalchemy import func, select

from retroboard.db.models import Card
from retroboard.db.seeds.demo_board import DEMO_CARDS, DEMO_SESSION_ID, create_demo_board
from tests.utils.helpers import list_cards

pytestmark = pytest.mark.integration


def test_seed_creates_board_and_cards(db_session):
    session = create_demo_board(db_session)

    assert session.id == DEMO_SESSION_ID
    assert session.expires_at is None
    assert db_session.scalar(select(func.count()).select_from(Card)) == len(DEMO_CARDS)


def test_seed_is_idempotent(db_session):
    create_demo_board(db_session)
    create_demo_board(db_session)

    assert db_session.scalar(select(func.count()).select_from(Card)) == len(DEMO_CARDS)


def test_demo_board_is_served(client, db_session):
    create_demo_board(db_session)

    response = client.get(f"/api/sessions/{DEMO_SESSION_ID}")
    cards = list_cards(client, DEMO_SESSION_ID)

    assert response.status_code == 200
    assert response.json()["expires_at"] is None
    assert sum(card["votes"] for card in cards) == sum(votes for _, _, votes in DEMO_CARDS)


def test_demo_cards_are_listed_in_seed_order(client, db_session):
    create_demo_board(db_session)

    cards = list_cards(client, DEMO_SESSION_ID)

    assert [card["content"] for card in cards] == [content for _, content, _ in DEMO_CARDS]
