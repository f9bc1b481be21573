"""Directory commands: search, whoami, team, refresh."""

from __future__ import annotations

from typing import Sequence

import click
from rich.table import Table

from ..directory.snapshot import MATCH_ALL
from ..models import Matches
from ._common import PsstContext, console, error_and_exit, handle_errors, pass_psst


def search(ctx: PsstContext, terms: Sequence[str]) -> Matches:
    """Run a directory search for the space-joined terms."""
    lookup = " ".join(terms) if terms else MATCH_ALL
    return ctx.directory.get_matches(lookup)


def register_directory_commands(main: click.Group) -> None:
    """Register the directory lookup commands."""

    @main.command("search")
    @click.argument("terms", nargs=-1)
    @pass_psst
    @handle_errors
    def search_cmd(ctx: PsstContext, terms: tuple[str, ...]):
        """Search for a member or team in your organization.

        Leave the search blank to see every member and team.
        """
        matches = search(ctx, terms)

        if not matches.members and not matches.teams:
            console.print("[dim]No members or teams matched.[/]")
            return

        if matches.members:
            table = Table(title="Members", box=None, padding=(0, 2), title_justify="left")
            table.add_column("Login", style="cyan")
            table.add_column("Name")
            for m in matches.members:
                table.add_row(m.login, m.name)
            console.print(table)

        if matches.members and matches.teams:
            console.print()

        if matches.teams:
            table = Table(title="Teams", box=None, padding=(0, 2), title_justify="left")
            table.add_column("Team", style="magenta")
            table.add_column("Members", justify="right", style="dim")
            for t in matches.teams:
                table.add_row(t.name, str(len(t.members)))
            console.print(table)

    @main.command()
    @pass_psst
    @handle_errors
    def whoami(ctx: PsstContext):
        """Show the login psst is authenticated as."""
        console.print(ctx.directory.whoami())

    @main.command()
    @click.argument("name")
    @pass_psst
    @handle_errors
    def team(ctx: PsstContext, name: str):
        """List the members of a team."""
        canonical = ctx.directory.is_team(name)
        if canonical is None:
            error_and_exit(f"team '{name}' does not exist in directory")

        console.print(f"[bold magenta]{canonical}[/]")
        for login in ctx.directory.team_members(canonical):
            console.print(f"  {login}")

    @main.command()
    @pass_psst
    @handle_errors
    def refresh(ctx: PsstContext):
        """Refetch the directory and update the local cache."""
        ctx.update_cache = True
        directory = ctx.directory

        console.print(
            f"  [green]Directory refreshed:[/] "
            f"{len(directory.members())} member(s), {len(directory.teams())} team(s)"
        )
        teams = directory.active_member_teams()
        if teams:
            console.print(f"  [dim]Your teams: {', '.join(teams)}[/]")
