"""Command-line interface for storefront."""

import argparse
import json
import sys

from . import __version__
from .auth import SessionStore
from .config import DRAFT_KEY, Settings, configure_logging
from .draft_store import DraftStore
from .errors import StorefrontError
from .models import DraftRecord


def cmd_draft_show(args: argparse.Namespace, settings: Settings) -> int:
    """Show the saved order selection."""
    store = DraftStore(settings.data_dir)
    record = DraftRecord.from_dict(store.load(DRAFT_KEY))

    if args.json:
        print(json.dumps(record.to_dict() if record else None, indent=2))
        return 0

    if record is None:
        print("No saved order selection.")
        return 0

    print(f"Product:  {record.product_name} ({record.product_id})")
    print(f"Size:     {record.size_id}")
    print(f"Quantity: {record.quantity}")
    return 0


def cmd_draft_clear(args: argparse.Namespace, settings: Settings) -> int:
    """Forget the saved order selection."""
    DraftStore(settings.data_dir).clear(DRAFT_KEY)
    print("Cleared saved order selection.")
    return 0


def cmd_auth_status(args: argparse.Namespace, settings: Settings) -> int:
    """Report whether a local session exists."""
    session = SessionStore(settings.session_file)
    if not session.is_authenticated:
        print("Not signed in.")
        return 0

    email = session.user.get("email") if isinstance(session.user, dict) else None
    print(f"Signed in{f' as {email}' if email else ''}.")
    return 0


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Start the API server."""
    try:
        import uvicorn

        print("Starting storefront API server...")
        print(f"Backend: {settings.api_url}")
        print(f"Data directory: {settings.data_dir}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "storefront.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=settings.log_level.lower(),
        )
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Storefront order draft and checkout service",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # draft (subcommand group)
    draft_parser = subparsers.add_parser("draft", help="Inspect the saved order selection")
    draft_subparsers = draft_parser.add_subparsers(dest="draft_command")

    draft_show_parser = draft_subparsers.add_parser("show", help="Show the saved selection")
    draft_show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    draft_subparsers.add_parser("clear", help="Clear the saved selection")

    # auth (subcommand group)
    auth_parser = subparsers.add_parser("auth", help="Inspect the local session")
    auth_subparsers = auth_parser.add_subparsers(dest="auth_command")
    auth_subparsers.add_parser("status", help="Show whether a session token is stored")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if not args.command:
        parser.print_help()
        return 0

    # Handle draft subcommands
    if args.command == "draft":
        if not getattr(args, "draft_command", None):
            parser.parse_args(["draft", "--help"])
            return 0
        if args.draft_command == "show":
            return cmd_draft_show(args, settings)
        elif args.draft_command == "clear":
            return cmd_draft_clear(args, settings)

    # Handle auth subcommands
    if args.command == "auth":
        if not getattr(args, "auth_command", None):
            parser.parse_args(["auth", "--help"])
            return 0
        if args.auth_command == "status":
            return cmd_auth_status(args, settings)

    if args.command == "serve":
        return cmd_serve(args, settings)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
