"""
Rebellion CLI - Command-line interface for the engine.

Usage:
    rebellion serve [--host H] [--port P]   Run the HTTP API with uvicorn
    rebellion cards [--kind K]              List the card catalog
    rebellion simulate <state.json>         Reload a saved match and re-simulate it
"""

import argparse
import json
import sys

from .config import configure_logging, load_settings


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Rebellion - Revolution and Rebellion card duel engine",
        prog="rebellion",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Cards command
    cards_parser = subparsers.add_parser("cards", help="List the card catalog")
    cards_parser.add_argument("--kind", choices=["leader", "character", "help", "sp"], help="Only this kind")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Re-simulate a saved match")
    simulate_parser.add_argument("state_file", help="Path to a MatchState JSON document")
    simulate_parser.add_argument("--player", help="Print only this player's field effects")

    args = parser.parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "cards":
        cmd_cards(args, settings)
    elif args.command == "simulate":
        cmd_simulate(args, settings)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the API under uvicorn."""
    import uvicorn

    uvicorn.run("rebellion.api.app:app", host=args.host, port=args.port, reload=args.reload)


def cmd_cards(args, settings):
    """Print one line per catalog card."""
    from .engine_core import default_catalog

    catalog = default_catalog(settings.card_data_dir)
    for card in sorted(catalog.all_cards(), key=lambda c: (c.kind.value, c.card_id)):
        if args.kind and card.kind.value != args.kind:
            continue
        effects = ", ".join(sorted({r.kind.kind for r in card.rules})) or "-"
        print(f"{card.card_id:<8} {card.kind.value:<10} {card.base_power:>4}  "
              f"{card.game_type or '-':<12} {card.name}  [{effects}]")


def cmd_simulate(args, settings):
    """Reload a persisted match, rebuild its field effects and print them."""
    from .engine_core import EffectSimulator, EngineError, MatchState, default_catalog

    try:
        with open(args.state_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {args.state_file}")
        sys.exit(1)

    catalog = default_catalog(settings.card_data_dir)
    state = MatchState.from_dict(data)
    simulator = EffectSimulator(catalog)
    try:
        simulator.simulate(state)
    except EngineError as e:
        print(f"Error: {e.kind.value}: {e}")
        sys.exit(1)

    output = {}
    for player in state.players:
        if args.player and player.player_id != args.player:
            continue
        output[player.player_id] = {
            "fieldEffects": player.field_effects.to_dict(),
            "points": simulator.points(state, player.player_id).to_dict(),
        }
    print(json.dumps(output, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
