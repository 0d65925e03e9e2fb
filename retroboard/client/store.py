"""
Client-side board state with optimistic updates and sequenced polling.
"""

import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from retroboard.client.api import ApiRequestError, RetroApiClient
from retroboard.client.debounce import Debouncer
from retroboard.client.poller import Poller
from retroboard.client.positions import PositionTracker, group_columns
from retroboard.core.schemas.card import Card, ColumnType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardState:
    """Snapshot handed to subscribers."""

    cards: Tuple[Card, ...] = ()
    voted_ids: FrozenSet[str] = field(default_factory=frozenset)

    def card(self, card_id: str) -> Optional[Card]:
        return next((card for card in self.cards if card.id == card_id), None)


Subscriber = Callable[[BoardState], None]


class BoardStore:
    """
    Cards and the local voter's votes for one session.

    Deletes and vote toggles are applied locally first and restored exactly
    if the server rejects them. Adds wait for the server. Edits are saved
    after a quiet period per card.

    Polls are ticketed: a poll response is applied only when its ticket is
    newer than the last applied poll and newer than the last local mutation,
    so a slow poll issued before a mutation cannot overwrite it.
    """

    def __init__(
        self,
        api: RetroApiClient,
        session_id: str,
        voter_id: str,
        autosave_delay: float = 0.3,
        animation_duration: float = 0.4,
    ):
        self.api = api
        self.session_id = session_id
        self.voter_id = voter_id
        self.positions = PositionTracker(duration=animation_duration)
        self.poller: Optional[Poller] = None

        self._lock = RLock()
        self._cards: List[Card] = []
        self._voted: FrozenSet[str] = frozenset()
        self._subscribers: List[Subscriber] = []
        self._tickets_issued = 0
        self._applied_ticket = 0
        self._mutation_barrier = 0
        self._saver = Debouncer(self._save_content, autosave_delay)

    # State and subscriptions
    @property
    def state(self) -> BoardState:
        with self._lock:
            return BoardState(tuple(self._cards), self._voted)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; the returned function unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            state = BoardState(tuple(self._cards), self._voted)
            subscribers = list(self._subscribers)
            self.positions.update(state.cards)
        for callback in subscribers:
            try:
                callback(state)
            except Exception:
                logger.exception("Board subscriber failed")

    def _mark_mutation(self) -> None:
        # Polls issued up to now are stale once local state changes
        self._mutation_barrier = self._tickets_issued

    def _replace_card(self, card: Card) -> None:
        self._cards = [card if c.id == card.id else c for c in self._cards]

    def columns(self) -> Dict[ColumnType, List[Card]]:
        return group_columns(self.state.cards)

    # Polling
    def next_poll_ticket(self) -> int:
        with self._lock:
            self._tickets_issued += 1
            return self._tickets_issued

    def apply_snapshot(self, ticket: int, cards: Iterable[Card], voted_ids: Iterable[str]) -> bool:
        """
        Adopt a server snapshot fetched under ``ticket``.

        Returns False when the snapshot is stale and was discarded.
        """
        cards = list(cards)
        voted = frozenset(voted_ids)
        with self._lock:
            if ticket <= self._applied_ticket or ticket <= self._mutation_barrier:
                logger.debug("Discarding stale poll %s", ticket)
                return False
            self._applied_ticket = ticket
            changed = cards != self._cards or voted != self._voted
            if changed:
                self._cards = cards
                self._voted = voted
        if changed:
            self._notify()
        return True

    def refresh(self) -> bool:
        ticket = self.next_poll_ticket()
        try:
            cards = self.api.list_cards(self.session_id)
            voted = self.api.voted_card_ids(self.session_id, self.voter_id)
        except ApiRequestError as e:
            logger.warning(f"Board refresh failed: {e}")
            return False
        return self.apply_snapshot(ticket, cards, voted)

    def load(self) -> BoardState:
        self.refresh()
        return self.state

    def start_polling(self, interval: float) -> Poller:
        if self.poller is None:
            self.poller = Poller(self.refresh, interval, name=f"retroboard-poller-{self.session_id[:8]}")
        self.poller.start()
        return self.poller

    def set_visible(self, visible: bool) -> None:
        if self.poller is not None:
            self.poller.set_visible(visible)

    # Mutations
    def add_card(self, column_type: ColumnType, content: str) -> Optional[Card]:
        try:
            card = self.api.add_card(self.session_id, column_type, content)
        except ApiRequestError as e:
            logger.warning(f"Failed to add card: {e}")
            return None
        with self._lock:
            if all(c.id != card.id for c in self._cards):
                self._cards = self._cards + [card]
            self._mark_mutation()
        self._notify()
        return card

    def delete_card(self, card_id: str) -> bool:
        with self._lock:
            snapshot = list(self._cards)
            self._cards = [c for c in self._cards if c.id != card_id]
            self._mark_mutation()
        self._saver.cancel(card_id)
        self._notify()

        try:
            self.api.delete_card(card_id, self.session_id)
        except ApiRequestError as e:
            logger.warning(f"Failed to delete card {card_id}, restoring: {e}")
            with self._lock:
                self._cards = snapshot
                self._mark_mutation()
            self._notify()
            return False

        # A poll issued while the delete was in flight may have restored it
        with self._lock:
            resurrected = any(c.id == card_id for c in self._cards)
            self._cards = [c for c in self._cards if c.id != card_id]
            self._mark_mutation()
        if resurrected:
            self._notify()
        return True

    def toggle_vote(self, card_id: str) -> Optional[bool]:
        """
        Flip the local voter's vote. Returns the confirmed state, or None if
        the card is unknown or the server rejected the toggle.
        """
        with self._lock:
            card = next((c for c in self._cards if c.id == card_id), None)
            if card is None:
                return None
            cards_snapshot = list(self._cards)
            voted_snapshot = self._voted
            if card_id in self._voted:
                self._voted = self._voted - {card_id}
                optimistic = card.model_copy(update={"votes": max(0, card.votes - 1)})
            else:
                self._voted = self._voted | {card_id}
                optimistic = card.model_copy(update={"votes": card.votes + 1})
            self._replace_card(optimistic)
            self._mark_mutation()
        self._notify()

        try:
            server_card, voted = self.api.toggle_vote(card_id, self.voter_id, self.session_id)
        except ApiRequestError as e:
            logger.warning(f"Failed to toggle vote on {card_id}, restoring: {e}")
            with self._lock:
                self._cards = cards_snapshot
                self._voted = voted_snapshot
                self._mark_mutation()
            self._notify()
            return None

        with self._lock:
            self._replace_card(server_card)
            self._voted = self._voted | {card_id} if voted else self._voted - {card_id}
            self._mark_mutation()
        self._notify()
        return voted

    def edit_card(self, card_id: str, content: str) -> None:
        """Show the new content now and save it once typing pauses."""
        with self._lock:
            card = next((c for c in self._cards if c.id == card_id), None)
            if card is None:
                return
            self._replace_card(card.model_copy(update={"content": content}))
            self._mark_mutation()
        self._notify()
        self._saver.submit(card_id, content)

    def _save_content(self, card_id: str, content: str) -> None:
        try:
            card = self.api.update_card(card_id, self.session_id, content=content)
        except ApiRequestError as e:
            logger.warning(f"Failed to save card {card_id}: {e}")
            return
        self._adopt_saved(card)

    def move_card(self, card_id: str, column_type: ColumnType) -> bool:
        column_type = ColumnType(column_type)
        with self._lock:
            card = next((c for c in self._cards if c.id == card_id), None)
            if card is None:
                return False
            self._replace_card(card.model_copy(update={"column_type": column_type}))
            self._mark_mutation()
        self._notify()

        try:
            saved = self.api.update_card(card_id, self.session_id, column_type=column_type)
        except ApiRequestError as e:
            logger.warning(f"Failed to move card {card_id}: {e}")
            return False
        self._adopt_saved(saved)
        return True

    def _adopt_saved(self, card: Card) -> None:
        # A newer local edit wins over the server's copy
        if self._saver.pending(card.id):
            return
        with self._lock:
            if all(c.id != card.id for c in self._cards):
                return
            self._replace_card(card)
            self._mark_mutation()
        self._notify()

    def flush(self) -> None:
        self._saver.flush()

    def close(self) -> None:
        self.flush()
        if self.poller is not None:
            self.poller.stop()
