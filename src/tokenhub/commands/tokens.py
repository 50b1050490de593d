# `tokenhub tokens prune` and `tokenhub tokens stats`.
# Created: 2026-10-12

from __future__ import annotations

import argparse
import csv
import io
import json
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from tokenhub.tokens import TokenStatistics


def prune_tokens(args: argparse.Namespace, console: Console) -> int:
    from tokenhub.config import get_settings
    from tokenhub.tokens import get_token_service

    settings = get_settings()
    days = args.days if args.days is not None else settings.prune_retention_days
    batch_size = args.batch_size or settings.prune_batch_size
    service = get_token_service()

    preview = service.prune(days, include_inactive=args.inactive, dry_run=True)
    console.print(f"Expired more than {days} days ago: [bold]{preview.expired}[/bold]")
    if args.inactive:
        console.print(f"Inactive for more than {days} days: [bold]{preview.inactive}[/bold]")

    if args.dry_run:
        console.print(f"[cyan]Dry run:[/cyan] {preview.matched} tokens would be deleted.")
        return 0
    if not preview.matched:
        console.print("[green]Nothing to prune.[/green]")
        return 0
    if not args.yes and not Confirm.ask(f"Delete {preview.matched} tokens?", console=console):
        console.print("Aborted.")
        return 1

    result = service.prune(days, include_inactive=args.inactive, batch_size=batch_size)
    console.print(
        f"[green]Deleted {result.deleted} tokens[/green] in {result.batches} batch(es)."
    )
    return 0


def _rows(stats: TokenStatistics) -> list[tuple[str, int]]:
    rows = [(k, v) for k, v in stats.to_dict().items() if isinstance(v, int)]
    rows += [(f"scope:{scope}", count) for scope, count in stats.by_scope.items()]
    rows += [(f"application:{app_id}", count) for app_id, count in stats.by_application.items()]
    return rows


def _export(stats: TokenStatistics, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(stats.to_dict(), indent=2)
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["metric", "value"])
    writer.writerows(_rows(stats))
    return buffer.getvalue()


def token_stats(args: argparse.Namespace, console: Console) -> int:
    from tokenhub.registry import get_application_registry
    from tokenhub.tokens import get_token_service
    from tokenhub.users import get_user_service

    user_id = None
    if args.user:
        user = get_user_service().resolve(args.user)
        if user is None:
            console.print(f"[red]User not found:[/red] {args.user}")
            return 1
        user_id = user.id

    registry = get_application_registry()
    if args.application and registry.get(args.application) is None:
        console.print(f"[red]Application not found:[/red] {args.application}")
        return 1

    stats = get_token_service().statistics(user_id=user_id, application_id=args.application)

    if args.export:
        output = _export(stats, args.export)
        if args.output:
            Path(args.output).expanduser().write_text(output)
            console.print(f"Statistics exported to {args.output}")
        else:
            console.print(output, markup=False, highlight=False)
        return 0

    table = Table(title="Token statistics")
    table.add_column("Metric")
    table.add_column("Count", justify="right")
    table.add_row("Total", str(stats.total))
    table.add_row("Active", str(stats.active))
    table.add_row("Inactive (revoked)", str(stats.inactive))
    table.add_row("Expired", str(stats.expired))
    table.add_row("Never expires", str(stats.never_expires))
    table.add_row("Never used", str(stats.never_used))
    table.add_row("Used in the last 7 days", str(stats.recently_used))
    table.add_row("Expiring in the next 7 days", str(stats.expiring_soon))
    console.print(table)

    if args.detailed:
        scopes = Table(title="Tokens by scope")
        scopes.add_column("Scope")
        scopes.add_column("Tokens", justify="right")
        for scope, count in stats.by_scope.items():
            scopes.add_row(scope, str(count))
        console.print(scopes)

        apps = Table(title="Tokens by application")
        apps.add_column("Application")
        apps.add_column("Client ID")
        apps.add_column("Tokens", justify="right")
        for app_id, count in stats.by_application.items():
            application = registry.get(app_id)
            name = application.name if application else app_id
            client_id = application.client_id if application else "-"
            apps.add_row(name, client_id, str(count))
        console.print(apps)
    return 0
