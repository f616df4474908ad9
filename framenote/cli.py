"""Command-line interface for FrameNote video annotation."""

import argparse
import sys
from pathlib import Path

from . import __version__
from .logging import setup_logging, get_logger

logger = get_logger(__name__)


def resolve_video_id(value: str) -> str:
    """
    Resolve a video argument to its identity.

    The value can be either a path to a local video file (hashed on the fly)
    or an identity printed earlier by ``framenote hash``.
    """
    from .hashing import hash_file, is_video_identity

    path = Path(value)
    if path.is_file():
        return hash_file(path)
    if is_video_identity(value.lower()):
        return value.lower()
    logger.error("Not a video file or identity: %s", value)
    sys.exit(1)


def _controller(args, video: str = None):
    """Controller bound to the configured API, signed in, optionally on a video."""
    from .api_client import AnnotationApiClient
    from .controller import AppController, ConsoleNotifier

    client = AnnotationApiClient(base_url=args.api_url)
    controller = AppController(client, notifier=ConsoleNotifier(assume_yes=getattr(args, "yes", False)))
    if controller.start_session() is None and controller.needs_onboarding:
        logger.error("No user configured. Run: framenote user create NAME")
        sys.exit(1)
    if controller.current_user is None:
        sys.exit(1)
    if video:
        controller.load_video(resolve_video_id(video))
    return controller


def cmd_serve(args):
    """Run the Annotation API server."""
    from .config import check_dependencies
    from .server import run_server

    if not check_dependencies():
        logger.error("Dependencies not installed. Run: pip install framenote")
        sys.exit(1)

    logger.info("=== FrameNote Annotation API ===")
    run_server(host=args.host, port=args.port, db_path=Path(args.db) if args.db else None)


def cmd_hash(args):
    """Print the content identity of a video file."""
    from .errors import IntegrityError
    from .hashing import hash_file

    try:
        print(hash_file(Path(args.input)))
    except IntegrityError as e:
        logger.error("%s", e)
        sys.exit(1)


def cmd_annotations_list(args):
    """List annotations of a video, threaded."""
    from .geometry import format_range_label

    controller = _controller(args, args.video)
    threads = controller.store.threads()
    if not threads:
        logger.info("No annotations.")
        return

    for thread in threads:
        ann = thread.annotation
        marker = "[drawing] " if ann.has_drawing() else ""
        logger.info("%-15s %-12s %s%s", format_range_label(ann.start, ann.end), ann.author.name, marker, ann.text)
        for reply in thread.replies:
            logger.info("    > %-12s %s", reply.author.name, reply.text)


def cmd_annotations_export(args):
    """Export annotations of a video to JSON."""
    controller = _controller(args, args.video)
    output = controller.export_annotations(Path(args.output) if args.output else None)
    if output is None:
        sys.exit(1)
    logger.info("Exported to %s", output)


def cmd_annotations_import(args):
    """Import an export document into a video."""
    controller = _controller(args, args.video)
    imported = controller.import_annotations(Path(args.input))
    if imported is None:
        sys.exit(1)


def cmd_annotations_clear(args):
    """Delete every annotation of a video."""
    controller = _controller(args, args.video)
    if not controller.notifier.confirm(
        f"Delete all {len(controller.store)} annotations of this video?"
    ):
        return
    controller.clear_annotations()


def cmd_user_whoami(args):
    """Show the locally remembered user."""
    controller = _controller(args)
    logger.info("%s (%s)", controller.current_user.name, controller.current_user.id)


def cmd_user_create(args):
    """Create a user on the server and remember it locally."""
    from .api_client import AnnotationApiClient
    from .controller import AppController, ConsoleNotifier
    from .errors import ValidationError

    controller = AppController(AnnotationApiClient(base_url=args.api_url), notifier=ConsoleNotifier())
    try:
        user = controller.onboard(args.name)
    except ValidationError as e:
        logger.error("%s", e)
        sys.exit(1)
    if user is None:
        sys.exit(1)
    logger.info("Created user %s (%s)", user.name, user.id)


def cmd_suggest(args):
    """Suggest visuals for the captions inside a time range."""
    from .config import get_gemini_client, load_api_key
    from .suggestions import generate_suggestions
    from .transcript import TranscriptIndex

    if args.start > args.end:
        logger.error("--start must not be after --end")
        sys.exit(1)

    transcript = TranscriptIndex.from_file(Path(args.subtitles))
    selection = transcript.text_for_range(args.start, args.end)
    if not selection:
        logger.error("No captions between %.1fs and %.1fs", args.start, args.end)
        sys.exit(1)

    client = get_gemini_client(load_api_key())
    suggestions = generate_suggestions(transcript.full_text(), selection, args.start, args.end, client=client)

    logger.info("=== Visual Suggestions ===")
    for suggestion in suggestions:
        logger.info("[%s] %s", suggestion.category, suggestion.title)
        logger.info("  %s", suggestion.description)


def main():
    parser = argparse.ArgumentParser(
        prog="framenote",
        description="FrameNote - Collaborative Video Annotation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  framenote serve                              # Run the annotation API on port 3000
  framenote hash talk.mp4                      # Print the video identity
  framenote user create "Ada"                  # Create and remember a user
  framenote annotations list talk.mp4          # List annotations of a video
  framenote annotations export talk.mp4 -o notes.json
  framenote annotations import notes.json --video talk.mp4
  framenote suggest --subtitles talk.vtt --start 12 --end 20
        """,
    )
    parser.add_argument("--version", action="version", version=f"framenote {__version__}")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug output"
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Show only errors"
    )
    parser.add_argument(
        "--log-file", metavar="FILE", help="Write logs to file"
    )
    parser.add_argument(
        "--api-url", help="Annotation API base URL (default: $FRAMENOTE_API_URL)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the Annotation API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=3000, help="Port (default: 3000)")
    serve_parser.add_argument("--db", help="SQLite database file (default: $FRAMENOTE_DB_PATH)")

    # Hash command
    hash_parser = subparsers.add_parser("hash", help="Print the content identity of a video")
    hash_parser.add_argument("input", help="Path to video file")

    # Annotations command with subcommands
    annotations_parser = subparsers.add_parser("annotations", help="Manage annotations of a video")
    annotations_subparsers = annotations_parser.add_subparsers(dest="annotations_command")

    list_parser = annotations_subparsers.add_parser("list", help="List annotations")
    list_parser.add_argument("video", help="Video file or identity")

    export_parser = annotations_subparsers.add_parser("export", help="Export annotations to JSON")
    export_parser.add_argument("video", help="Video file or identity")
    export_parser.add_argument("--output", "-o", help="Output JSON file")

    import_parser = annotations_subparsers.add_parser("import", help="Import annotations from JSON")
    import_parser.add_argument("input", help="Exported JSON file")
    import_parser.add_argument("--video", required=True, help="Video file or identity to import into")
    import_parser.add_argument("--yes", "-y", action="store_true", help="Import even if the video differs")

    clear_parser = annotations_subparsers.add_parser("clear", help="Delete all annotations of a video")
    clear_parser.add_argument("video", help="Video file or identity")
    clear_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    # User command with subcommands
    user_parser = subparsers.add_parser("user", help="Manage the local user")
    user_subparsers = user_parser.add_subparsers(dest="user_command")
    user_subparsers.add_parser("whoami", help="Show the remembered user")
    create_parser = user_subparsers.add_parser("create", help="Create a user")
    create_parser.add_argument("name", help="Display name")

    # Suggest command
    suggest_parser = subparsers.add_parser("suggest", help="Suggest visuals for a caption range")
    suggest_parser.add_argument("--subtitles", "-s", required=True, help="Caption file (.vtt or .srt)")
    suggest_parser.add_argument("--start", type=float, required=True, help="Range start in seconds")
    suggest_parser.add_argument("--end", type=float, required=True, help="Range end in seconds")

    args = parser.parse_args()

    # Setup logging based on flags
    setup_logging(
        verbose=getattr(args, "verbose", False),
        quiet=getattr(args, "quiet", False),
        log_file=getattr(args, "log_file", None),
    )

    if args.command is None:
        parser.print_help()
        return

    commands = {
        "serve": cmd_serve,
        "hash": cmd_hash,
        "suggest": cmd_suggest,
    }
    nested = {
        "annotations": (annotations_parser, "annotations_command", {
            "list": cmd_annotations_list,
            "export": cmd_annotations_export,
            "import": cmd_annotations_import,
            "clear": cmd_annotations_clear,
        }),
        "user": (user_parser, "user_command", {
            "whoami": cmd_user_whoami,
            "create": cmd_user_create,
        }),
    }

    # Commands with subcommands
    if args.command in nested:
        sub_parser, dest, sub_commands = nested[args.command]
        sub_command = getattr(args, dest)
        if sub_command is None:
            sub_parser.print_help()
            return
        sub_commands[sub_command](args)
    else:
        commands[args.command](args)


if __name__ == "__main__":
    main()
