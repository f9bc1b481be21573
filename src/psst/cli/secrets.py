"""Secret commands: list, get, share, delete."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import click

from ..directory import Directory
from ._common import (
    PsstContext,
    console,
    error_and_exit,
    handle_errors,
    pass_psst,
)


def share_targets(
    directory: Directory, members: Iterable[str], teams: Iterable[str],
) -> list[str]:
    """Resolve member and team names to canonical drop entities.

    Names are matched case-insensitively and duplicates collapse,
    keeping first-seen order.

    Raises:
        LookupError: If a member or team is not in the directory.
    """
    targets: dict[str, None] = {}

    for m in members:
        login = directory.is_member(m)
        if login is None:
            raise LookupError(f"member '{m}' does not exist in directory")
        targets[login] = None

    for t in teams:
        name = directory.is_team(t)
        if name is None:
            raise LookupError(f"team '{t}' does not exist in directory")
        targets[name] = None

    return list(targets)


def register_secret_commands(main: click.Group) -> None:
    """Register the secret drop commands."""

    @main.command("list")
    @pass_psst
    @handle_errors
    def list_cmd(ctx: PsstContext):
        """List the secrets in your drop and your teams' drops."""
        login = ctx.directory.whoami()

        shown = 0
        for entity in [login, *ctx.directory.active_member_teams()]:
            names = ctx.storage.list(entity)
            if not names:
                continue
            console.print(f"[bold cyan]{entity}[/]")
            console.print("=======")
            for n in names:
                console.print(f"  {n}")
            console.print()
            shown += 1

        if not shown:
            console.print("[dim]No secrets waiting for you.[/]")

    @main.command()
    @click.argument("name")
    @pass_psst
    @handle_errors
    def get(ctx: PsstContext, name: str):
        """Print a secret from your drop."""
        login = ctx.directory.whoami()
        path = ctx.storage.secret_path(login, name)
        click.echo(ctx.storage.get(path))

    @main.command()
    @click.option(
        "-f", "--filename", required=True,
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="File containing the secret.",
    )
    @click.option("-n", "--name", required=True, help="Name of the secret.")
    @click.option(
        "-m", "--member", "members", multiple=True,
        help="Member to share with (repeat for several).",
    )
    @click.option(
        "-t", "--team", "teams", multiple=True,
        help="Team to share with (repeat for several).",
    )
    @pass_psst
    @handle_errors
    def share(ctx: PsstContext, filename: Path, name: str, members, teams):
        """Drop a secret for one or more members and/or teams."""
        if not members and not teams:
            error_and_exit("you must provide either members and/or teams")

        try:
            targets = share_targets(ctx.directory, members, teams)
        except LookupError as exc:
            error_and_exit(str(exc))

        try:
            content = filename.read_text(encoding="utf-8")
        except OSError as exc:
            error_and_exit(f"unable to read file {filename}: {exc}")

        ctx.storage.write(content, name, targets)
        console.print(f"  [green]Shared[/] {name} with {', '.join(targets)}")

    @main.command()
    @click.argument("name")
    @click.option("-t", "--team", default=None, help="Team currently owning the secret.")
    @pass_psst
    @handle_errors
    def delete(ctx: PsstContext, name: str, team):
        """Delete a secret from your drop (or a team's drop)."""
        entity = ctx.directory.whoami()
        if team:
            entity = ctx.directory.is_team(team)
            if entity is None:
                error_and_exit(f"unable to find team '{team}'")

        ctx.storage.delete(ctx.storage.secret_path(entity, name))
        console.print(f"  [green]Deleted[/] {name} from {entity}")
