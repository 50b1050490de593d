# `tokenhub app create`: register an application and print its credentials.
# Created: 2026-10-12

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)


def _split(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def create_application(args: argparse.Namespace, console: Console) -> int:
    from tokenhub.registry import get_application_registry
    from tokenhub.users import get_user_service

    owner = get_user_service().resolve(args.user)
    if owner is None:
        console.print(f"[red]User not found:[/red] {args.user}")
        return 1

    application, secret = get_application_registry().create(
        owner,
        args.name,
        scopes=_split(args.scopes),
        rate_limit=args.rate_limit,
        callback_urls=_split(args.callback_urls),
        description=args.description,
    )

    table = Table(title="Application credentials", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Name", application.name)
    table.add_row("Owner", f"{owner.name} <{owner.email}>")
    table.add_row("Client ID", application.client_id)
    table.add_row("Client Secret", secret)
    table.add_row("Scopes", ", ".join(application.allowed_scopes))
    table.add_row("Rate limit", f"{application.rate_limit}/hour")
    if application.callback_urls:
        table.add_row("Callback URLs", "\n".join(application.callback_urls))
    console.print(table)
    console.print("[yellow]Store the client secret now; it will not be shown again.[/yellow]")

    if args.save_credentials:
        path = Path(args.save_credentials).expanduser()
        path.write_text(
            json.dumps(
                {
                    "name": application.name,
                    "client_id": application.client_id,
                    "client_secret": secret,
                    "allowed_scopes": application.allowed_scopes,
                    "callback_urls": application.callback_urls,
                    "rate_limit": application.rate_limit,
                },
                indent=2,
            )
        )
        try:
            path.chmod(0o600)
        except OSError:
            pass
        console.print(f"Credentials saved to {path}")
    return 0
