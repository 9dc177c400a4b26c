"""
Deck Service - Per-player hand, main deck and discard pile operations.

Every random draw goes through the match RNG (MatchState.rng), seeded from
the match id plus a salt, so a match can be replayed exactly in tests.
"""

from __future__ import annotations
from typing import Any
import hashlib
import logging
import random

from .catalog import CardCatalog, CardKind
from .state import PlayerState

logger = logging.getLogger(__name__)


class DeckError(ValueError):
    """A submitted deck cannot be used."""


def seed_for(game_id: str, salt: str) -> int:
    """Stable per-match seed derived from the match id and a salt."""
    digest = hashlib.sha256(f"{salt}:{game_id}".encode("utf-8")).hexdigest()
    return int(digest[:16], 16)


def validate_decks(catalog: CardCatalog, decks: list[dict[str, Any]]) -> None:
    """
    Check that decks are well formed and share no card ids.

    Card ids identify physical cards, so the same id may not appear twice
    anywhere in a match.
    """
    seen: set[str] = set()
    for index, deck in enumerate(decks):
        leaders = list(deck.get("leaders") or [])
        cards = list(deck.get("cards") or [])
        if not leaders:
            raise DeckError(f"Deck {index} has no leaders")
        for card_id in leaders + cards:
            card = catalog.find(card_id)
            if card is None:
                raise DeckError(f"Deck {index} references unknown card {card_id!r}")
            if card_id in seen:
                raise DeckError(f"Card {card_id!r} appears more than once")
            seen.add(card_id)
        for card_id in leaders:
            if catalog.get(card_id).kind != CardKind.LEADER:
                raise DeckError(f"{card_id!r} is not a leader card")
        for card_id in cards:
            if catalog.get(card_id).kind == CardKind.LEADER:
                raise DeckError(f"Leader {card_id!r} listed among deck cards")


def build_player(player_id: str, deck: dict[str, Any], rng: random.Random) -> PlayerState:
    """Create a seat with a shuffled main deck; leaders keep their listed order."""
    main_deck = list(deck.get("cards") or [])
    rng.shuffle(main_deck)
    return PlayerState(
        player_id=player_id,
        main_deck=main_deck,
        leader_list=list(deck["leaders"]),
    )


def draw(player: PlayerState, count: int = 1) -> list[str]:
    """Move up to count cards from the top of the main deck to the hand."""
    drawn = player.main_deck[:count]
    del player.main_deck[:len(drawn)]
    player.hand.extend(drawn)
    if len(drawn) < count:
        logger.debug("%s main deck exhausted (%d/%d drawn)", player.player_id, len(drawn), count)
    return drawn


def redraw_hand(player: PlayerState, rng: random.Random, hand_size: int) -> list[str]:
    """Return the hand to the deck, reshuffle, and draw a fresh hand."""
    player.main_deck.extend(player.hand)
    player.hand.clear()
    rng.shuffle(player.main_deck)
    return draw(player, hand_size)


def return_to_bottom(player: PlayerState, card_ids: list[str]) -> None:
    """Move the given deck cards to the bottom, keeping their relative order."""
    for card_id in card_ids:
        if card_id in player.main_deck:
            player.main_deck.remove(card_id)
    player.main_deck.extend(card_ids)


def random_discard(player: PlayerState, count: int, rng: random.Random) -> list[str]:
    """Discard up to count random cards from the hand."""
    discarded = []
    for _ in range(min(count, len(player.hand))):
        index = rng.randrange(len(player.hand))
        card_id = player.hand.pop(index)
        player.discard_pile.append(card_id)
        discarded.append(card_id)
    return discarded


def card_count(player: PlayerState) -> int:
    """Cards a player owns outside the field (hand, deck, discard, leaders)."""
    return len(player.hand) + len(player.main_deck) + len(player.discard_pile) + len(player.leader_list)
