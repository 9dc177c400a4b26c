"""
Bot Policy - Interface for automated seats.

A BotPolicy looks at a match and returns the next action for its seat.
Only a forwarding stub ships: it replays a scripted list of actions, which
is enough to drive one seat from tests or a host-side script.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable
import logging

from ..engine_core.action import Action

if TYPE_CHECKING:
    from ..engine_core.action import ActionResult
    from ..engine_core.reducer import Reducer
    from ..engine_core.state import MatchState

logger = logging.getLogger(__name__)


@dataclass
class BotDecision:
    """The action a bot wants to submit, with a note for logs."""
    action: Action
    explanation: str = ""


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    A policy defines how a seat picks its next action.
    """

    def __init__(self, player_id: str):
        self.player_id = player_id

    @abstractmethod
    def select_action(self, state: MatchState) -> BotDecision | None:
        """
        Pick the next action for this seat.

        Returns None when the bot has nothing to submit.
        """
        pass

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


@dataclass
class ForwardingBot(BotPolicy):
    """
    Forwarding policy - submits queued actions in order.

    Used for:
    - Driving one seat through a scripted line in tests
    - Hosts that receive a seat's moves from elsewhere
    """
    player_id: str
    queue: deque[Action] = field(default_factory=deque)

    def push(self, *actions: Action) -> None:
        for action in actions:
            if action.player_id != self.player_id:
                raise ValueError(f"Action for {action.player_id} queued on {self.player_id}'s bot")
            self.queue.append(action)

    def extend(self, actions: Iterable[Action]) -> None:
        self.push(*actions)

    def select_action(self, state: MatchState) -> BotDecision | None:
        if not self.queue:
            return None
        return BotDecision(action=self.queue.popleft(), explanation="forwarded")

    def run(self, reducer: Reducer, state: MatchState) -> tuple[MatchState, list[ActionResult]]:
        """
        Apply queued actions until the queue empties or one is rejected.

        A rejected action is dropped; the rest of the queue stays for the
        caller to inspect.
        """
        results: list[ActionResult] = []
        while True:
            decision = self.select_action(state)
            if decision is None:
                break
            result = reducer.apply(state, decision.action)
            results.append(result)
            state = result.new_state
            if not result.success:
                logger.info("%s: forwarded %s rejected (%s)", self.player_id,
                            decision.action.action_type.value, result.error_code)
                break
        return state, results
