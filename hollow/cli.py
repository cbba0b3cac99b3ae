"""
Hollow CLI - Command-line interface for the engine.

Usage:
    hollow stories [--story-dir DIR]          List playable stories
    hollow validate <story_file>              Validate a JSON story
    hollow play [story_id] [--save-dir DIR]   Play a story in the terminal
    hollow serve [--host H] [--port P]        Run the HTTP API
"""

import argparse
import asyncio
import sys

from .config import HollowConfig, configure_logging
from .engine_core.results import FailureCode


def main(argv=None):
    """Main CLI entry point."""
    config = HollowConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Hollow - Branching Horror Narrative Engine",
        prog="hollow",
    )
    parser.add_argument("--log-level", default=config.log_level, help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Stories command
    stories_parser = subparsers.add_parser("stories", help="List playable stories")
    stories_parser.add_argument("--story-dir", default=config.story_dir, help="Extra JSON stories")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a JSON story")
    validate_parser.add_argument("story_file", help="Path to story file")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a story in the terminal")
    play_parser.add_argument("story_id", nargs="?", help="Story to play (default: first story)")
    play_parser.add_argument("--story-dir", default=config.story_dir, help="Extra JSON stories")
    play_parser.add_argument("--save-dir", default=config.save_dir, help="Directory for save files")
    play_parser.add_argument("--session", default="default", help="Save slot name")
    play_parser.add_argument("--resume", action="store_true", help="Resume the saved game")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "stories":
        return cmd_stories(args)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "play":
        return cmd_play(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def _load_repository(story_dir):
    from .stories import create_default_repository

    repository = create_default_repository()
    if story_dir:
        repository.load_directory(story_dir, strict=False)
    return repository


def cmd_stories(args):
    """List stories."""
    repository = _load_repository(args.story_dir)
    for story in repository.list_stories():
        print(f"{story.story_id}: {story.title} ({len(story.passages)} passages)")
    for story_id, errors in repository.rejected.items():
        print(f"{story_id}: INVALID ({len(errors)} errors)")


def cmd_validate(args):
    """Validate a JSON story."""
    from .story_schema import StoryValidationError, load_story_file, validate_story

    print(f"Validating: {args.story_file}")
    try:
        story = load_story_file(args.story_file)
    except FileNotFoundError:
        print(f"Error: File not found: {args.story_file}")
        sys.exit(1)
    except StoryValidationError as e:
        result_errors, result_warnings = e.errors, []
    else:
        result = validate_story(story)
        result_errors, result_warnings = result.errors, result.warnings

    if result_warnings:
        print("\nWarnings:")
        for w in result_warnings:
            print(f"  - {w}")

    if result_errors:
        print("\nErrors:")
        for e in result_errors:
            print(f"  - {e}")
        sys.exit(1)

    print("OK")


def cmd_play(args):
    """Play a story interactively."""
    from .engine_core import NarrativeController
    from .persistence import JsonFilePersistence

    repository = _load_repository(args.story_dir)
    persistence = JsonFilePersistence(args.save_dir) if args.save_dir else None
    controller = NarrativeController(
        repository,
        persistence=persistence,
        session_key=args.session,
    )

    if args.resume:
        result = asyncio.run(controller.restore())
        if not result.success:
            print(f"Could not resume: {result.error}")
            sys.exit(1)
    else:
        result = controller.start_new_game(args.story_id)
        if not result.success:
            print(f"Error: {result.error}")
            sys.exit(1)

    run_play(controller)


def run_play(controller, input_fn=input, out=print):
    """
    Interactive loop over a started controller.

    Commands: a choice number, b (back), s (save), q (quit).
    """
    while True:
        snapshot = controller.snapshot()
        _render(snapshot, out)
        if not controller.is_active:
            out("\n*** THE END ***")
            _flush(controller, out)
            return

        command = input_fn("> ").strip().lower()
        if command == "q":
            _flush(controller, out)
            return
        if command == "b":
            if not snapshot.can_go_back:
                out("Nowhere to go back to.")
                continue
            controller.go_back()
            _flush(controller, out)
            continue
        if command == "s":
            result = controller.save_game()
            if not result.success:
                out(f"Cannot save: {result.error}")
            elif _flush(controller, out):
                out("Saved.")
            continue
        if not command.isdigit() or not 1 <= int(command) <= len(snapshot.choices):
            out("Enter a choice number, b, s or q.")
            continue

        view = snapshot.choices[int(command) - 1]
        result = controller.make_choice(view.choice_id)
        if result.error_code == FailureCode.CONFIRMATION_REQUIRED:
            answer = input_fn("This cannot be undone. Are you sure? [y/N] ").strip().lower()
            if answer != "y":
                continue
            result = controller.make_choice(view.choice_id, confirmed=True)
        if not result.success:
            out(result.error)
            continue
        for change in result.state_changes:
            out(f"  ({change})")
        _flush(controller, out)


def _render(snapshot, out):
    out("")
    if snapshot.passage_title:
        out(snapshot.passage_title)
        out("=" * len(snapshot.passage_title))
    for paragraph in snapshot.paragraphs:
        out(paragraph)
        out("")
    out(f"Sanity: {snapshot.sanity} ({snapshot.sanity_status})")
    for i, view in enumerate(snapshot.choices, 1):
        marker = " [!]" if view.critical else ""
        if view.selectable:
            out(f"  {i}. {view.text}{marker}")
        else:
            out(f"  {i}. {view.text}{marker} [locked: {view.lock_label}]")


def _flush(controller, out) -> bool:
    if controller.persistence is None or controller.pending_saves == 0:
        return True
    ok = asyncio.run(controller.flush())
    if not ok:
        out("Warning: progress could not be saved.")
    return ok


def cmd_serve(args):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("hollow.api.app:create_app", factory=True, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
