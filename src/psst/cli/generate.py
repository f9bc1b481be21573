"""Policy generation command: generate."""

from __future__ import annotations

from pathlib import Path

import click

from ._common import PsstContext, console, handle_errors, pass_psst


def register_generate_commands(main: click.Group) -> None:
    """Register the generate command."""

    @main.command()
    @click.option(
        "--policy-dir", required=True,
        type=click.Path(file_okay=False, path_type=Path),
        help="Directory for the generated policy files.",
    )
    @click.option(
        "--role-dir", required=True,
        type=click.Path(file_okay=False, path_type=Path),
        help="Directory for the generated roles.",
    )
    @click.option(
        "--default-team", default=None,
        help="Team containing every member of your organization.",
    )
    @pass_psst
    @handle_errors
    def generate(ctx: PsstContext, policy_dir: Path, role_dir: Path, default_team):
        """Generate policies and roles for new members and teams."""
        default_team = default_team or ctx.config.default_team
        backend = ctx.config.directory_backend

        logins = [m.login for m in ctx.directory.members()]
        ctx.storage.generate_policies_and_roles(
            backend, role_dir / "users", policy_dir, default_team, logins,
        )

        team_names = [t.name for t in ctx.directory.teams()]
        ctx.storage.generate_policies_and_roles(
            backend, role_dir / "teams", policy_dir, default_team, team_names,
        )

        console.print(
            f"  [green]Generated[/] policies for {len(logins)} member(s) "
            f"and {len(team_names)} team(s) in {policy_dir}"
        )
