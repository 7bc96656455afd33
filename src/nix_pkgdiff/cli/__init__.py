"""CLI entry point — registers all subcommands."""

import typer

app = typer.Typer(
    name="nix-pkgdiff",
    help="nix-pkgdiff - Show which packages a NixOS update changed",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .main import main as _main_callback  # noqa: F401, E402
from .save import save as _save  # noqa: F401, E402
from .diff import diff_cmd as _diff_cmd  # noqa: F401, E402
from .show import show as _show  # noqa: F401, E402
