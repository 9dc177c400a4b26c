"""
Rebellion - Rules engine for the Revolution and Rebellion card duel

A deterministic, replay-based engine for a two-player collectible card game.
It provides:
- Match state management
- Action validation and dispatch
- Replay-based effect simulation
- Selections, leader battles and victory points
- A JSON API for the game client
"""

__version__ = "0.1.0"
