"""
Play Sequence - Append-only log of every state-mutating event.

The effect simulator replays this log from the start on every mutation,
so it must stay strictly ordered: sequence ids start at 1 and have no gaps.
"""

from __future__ import annotations
from typing import Any, Iterable

from .action import SequenceIntegrityError
from .state import MatchState, PlayRecord, RecordAction


def append(
    state: MatchState,
    player_id: str,
    action: RecordAction,
    *,
    now: int,
    card_id: str | None = None,
    zone: str | None = None,
    data: dict[str, Any] | None = None,
) -> PlayRecord:
    """Append a record stamped with the current turn, phase and leader round."""
    next_id = state.play_sequence[-1].sequence_id + 1 if state.play_sequence else 1
    record = PlayRecord(
        sequence_id=next_id,
        player_id=player_id,
        card_id=card_id,
        action=action,
        zone=zone,
        data=dict(data or {}),
        turn_number=state.current_turn,
        phase_when_played=state.phase.value,
        leader_round=state.leader_round,
        timestamp=now,
    )
    state.play_sequence.append(record)
    return record


def verify(records: Iterable[PlayRecord]) -> None:
    """Raise SequenceIntegrityError unless ids run 1..n without gaps."""
    expected = 1
    for record in records:
        if record.sequence_id != expected:
            raise SequenceIntegrityError(
                f"Play sequence broken at position {expected}: found id {record.sequence_id}"
            )
        expected += 1
