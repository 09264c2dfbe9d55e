"""Command-line entry point.

Examples:
  dnd-solo serve                         # Run the HTTP API
  dnd-solo play                          # Play in the terminal
  dnd-solo play --new-game               # Reset the store first
  dnd-solo tools                         # Show the tool schema prompt
  dnd-solo lookup getSpellDetails fireball
"""

from __future__ import annotations

import argparse
import sys

from dnd_solo.core.config import get_settings
from dnd_solo.core.exceptions import DndSoloError
from dnd_solo.core.logging import configure_logging, get_logger, turn_context
from dnd_solo.models.messages import Notification


logger = get_logger(__name__)

QUIT_WORDS = frozenset({"quit", "exit", ":q"})


def print_banner() -> None:
    """Print the application banner."""
    banner = """
    ========================================
     dnd-solo
     A solo D&D adventure with an AI Dungeon Master
    ========================================
    """
    print(banner)


def print_notification(notification: Notification) -> None:
    print(f"\n  [{notification.tone}] {notification}")


# =============================================================================
# Commands
# =============================================================================


def cmd_serve(args: argparse.Namespace) -> int:
    from dnd_solo.api.server import main as serve

    serve()
    return 0


def cmd_play(args: argparse.Namespace) -> int:
    """Interactive loop over the turn orchestrator."""
    from dnd_solo.dm.orchestrator import ChatOrchestrator, TurnSummary
    from dnd_solo.llm.client import LLMClient
    from dnd_solo.storage.database import get_game_store
    from dnd_solo.tools import build_default_registry, get_reference_library

    settings = get_settings()
    store = get_game_store()
    if args.new_game:
        store.reset()
        print("[OK] Game state reset. Starting fresh!")

    registry = build_default_registry(reference=get_reference_library())
    orchestrator = ChatOrchestrator(
        store,
        LLMClient(settings.llm),
        registry,
        notify=print_notification,
        lookup_references=not args.no_references,
    )

    print_banner()
    character = store.load_character()
    classes = "/".join(character.classes) or "adventurer"
    print(f"Playing as {character.name or 'an unnamed hero'} (level {character.level} {character.species} {classes})")
    print("Type 'quit' to leave.\n")

    turn = 0
    while True:
        try:
            user_input = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not user_input:
            continue
        if user_input.lower() in QUIT_WORDS:
            break

        turn += 1
        with turn_context(turn=turn):
            for item in orchestrator.play_turn(user_input):
                if isinstance(item, TurnSummary):
                    continue
                print(item, end="", flush=True)
        print("\n")

    print("Farewell, adventurer.")
    return 0


def cmd_tools(args: argparse.Namespace) -> int:
    from dnd_solo.tools import get_registry

    print(get_registry().generate_tool_schema_prompt())
    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    from dnd_solo.tools import REFERENCE_TOOL_NAMES, get_reference_library
    from dnd_solo.tools.formatting import format_tool_result

    if args.tool not in REFERENCE_TOOL_NAMES:
        print(f"Unknown reference tool: {args.tool}", file=sys.stderr)
        print(f"Available: {', '.join(sorted(REFERENCE_TOOL_NAMES))}", file=sys.stderr)
        return 2

    result = get_reference_library().lookup(args.tool, " ".join(args.name))
    print(format_tool_result(args.tool, result))
    return 1 if result.get("error") else 0


# =============================================================================
# Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dnd-solo",
        description="Solo D&D adventure with an LLM Dungeon Master",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1],
    )
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.set_defaults(func=cmd_serve)

    play = sub.add_parser("play", help="Play in the terminal")
    play.add_argument("--new-game", action="store_true", help="Reset the game store before playing")
    play.add_argument("--no-references", action="store_true", help="Skip reference lookups after narration")
    play.set_defaults(func=cmd_play)

    tools = sub.add_parser("tools", help="Print the tool schema prompt")
    tools.set_defaults(func=cmd_tools)

    lookup = sub.add_parser("lookup", help="Run one reference lookup")
    lookup.add_argument("tool", help="Reference tool name, e.g. getSpellDetails")
    lookup.add_argument("name", nargs="+", help="Name to look up")
    lookup.set_defaults(func=cmd_lookup)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and dispatch to a subcommand."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(level=args.log_level or settings.log_level)

    try:
        return args.func(args)
    except DndSoloError as exc:
        logger.error("Command failed", command=args.command, error=str(exc))
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
