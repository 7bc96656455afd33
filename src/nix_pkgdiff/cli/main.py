"""Root callback: global flags."""

import typer

from . import app
from ._common import console


@app.callback(invoke_without_command=True, no_args_is_help=False)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
    ),
) -> None:
    """
    Show which packages a NixOS system update changed.

    [bold cyan]Typical use:[/bold cyan]

      nix-pkgdiff save

      sudo nixos-rebuild switch --upgrade

      nix-pkgdiff diff
    """
    from .. import __version__

    if version:
        console.print(f"[bold cyan]nix-pkgdiff[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)
