# `tokenhub user create`
# Created: 2026-10-12

from __future__ import annotations

import argparse

from rich.console import Console


def create_user(args: argparse.Namespace, console: Console) -> int:
    from tokenhub.users import get_user_service

    user = get_user_service().create(args.name, args.email, args.password)
    console.print(f"[green]User created:[/green] {user.name} <{user.email}> (id: {user.id})")
    if args.password is None:
        console.print("[yellow]No password set; this user cannot log in to the API.[/yellow]")
    return 0
