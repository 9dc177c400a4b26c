"""
Bots module - Automated seats.

Provides:
- BotPolicy: Interface for picking a seat's next action
- ForwardingBot: Replays queued actions for one seat
"""

from .policy import BotPolicy, BotDecision, ForwardingBot

__all__ = [
    "BotPolicy",
    "BotDecision",
    "ForwardingBot",
]
