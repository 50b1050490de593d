"""TokenHub entry point.

Subcommands:
  serve            Run the HTTP API with uvicorn.
  user create      Create an owner account.
  app create       Register an application and print its credentials once.
  tokens prune     Delete long-expired (and optionally revoked) tokens.
  tokens stats     Show or export token statistics.
"""

import argparse
import logging
import sys

from rich.console import Console

from tokenhub import __version__
from tokenhub.errors import TokenHubError, ValidationError
from tokenhub.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be 1 or greater, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tokenhub",
        description="TokenHub - application credentials and bearer tokens",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tokenhub serve --port 8890
  tokenhub user create --name Ada --email ada@example.com --password s3cretpass
  tokenhub app create "My App" --user ada@example.com --scopes read,write
  tokenhub tokens prune --dry-run --days 30 --inactive
  tokenhub tokens stats --detailed --export csv --output stats.csv
""",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    commands = parser.add_subparsers(dest="command", required=True)

    # serve
    serve = commands.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=None, help="Bind address (default: from settings)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Port (default: 8890)")
    serve.add_argument("--dev", action="store_true", help="Development mode with auto-reload")

    # user create
    user = commands.add_parser("user", help="Manage users").add_subparsers(
        dest="user_command", required=True
    )
    user_create = user.add_parser("create", help="Create a user")
    user_create.add_argument("--name", required=True)
    user_create.add_argument("--email", required=True)
    user_create.add_argument("--password", default=None, help="At least 8 characters")

    # app create
    app = commands.add_parser("app", help="Manage applications").add_subparsers(
        dest="app_command", required=True
    )
    app_create = app.add_parser("create", help="Register an application")
    app_create.add_argument("name", help="Application name")
    app_create.add_argument("--user", required=True, help="Owner email or id")
    app_create.add_argument("--description", default=None)
    app_create.add_argument("--scopes", default="read", help="Comma-separated (default: read)")
    app_create.add_argument("--rate-limit", type=int, default=1000, help="Requests per hour")
    app_create.add_argument("--callback-urls", default=None, help="Comma-separated URLs")
    app_create.add_argument(
        "--save-credentials", metavar="PATH", default=None, help="Write credentials to a JSON file"
    )

    # tokens prune / stats
    tokens = commands.add_parser("tokens", help="Token maintenance").add_subparsers(
        dest="tokens_command", required=True
    )
    prune = tokens.add_parser("prune", help="Delete expired tokens")
    prune.add_argument("--dry-run", action="store_true", help="Only report what would be deleted")
    prune.add_argument(
        "--days", type=_non_negative_int, default=None, help="Retention in days (default: 30)"
    )
    prune.add_argument(
        "--inactive", action="store_true", help="Also delete revoked tokens older than --days"
    )
    prune.add_argument(
        "--batch-size", type=_positive_int, default=None, help="Tokens per batch"
    )
    prune.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    stats = tokens.add_parser("stats", help="Token statistics")
    stats.add_argument("--application", default=None, help="Application id")
    stats.add_argument("--user", default=None, help="User email or id")
    stats.add_argument("--detailed", action="store_true", help="Per-scope and per-app breakdown")
    stats.add_argument("--export", choices=["json", "csv"], default=None)
    stats.add_argument("--output", default=None, help="Export file (default: stdout)")

    return parser


def _dispatch(args: argparse.Namespace, console: Console) -> int:
    if args.command == "serve":
        from tokenhub.api.serve import run_api_server
        from tokenhub.config import get_settings

        settings = get_settings()
        run_api_server(
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            dev=args.dev,
        )
        return 0

    if args.command == "user":
        from tokenhub.commands.users import create_user

        return create_user(args, console)

    if args.command == "app":
        from tokenhub.commands.applications import create_application

        return create_application(args, console)

    from tokenhub.commands.tokens import prune_tokens, token_stats

    if args.tokens_command == "prune":
        return prune_tokens(args, console)
    return token_stats(args, console)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    from tokenhub.config import get_settings

    setup_logging(level=args.log_level or get_settings().log_level)
    console = Console()

    try:
        return _dispatch(args, console)
    except ValidationError as e:
        console.print(f"[red]{e.description}[/red]")
        for field, messages in e.errors.items():
            for message in messages:
                console.print(f"  {field}: {message}")
        return 1
    except TokenHubError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error:[/red] {e.description}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
