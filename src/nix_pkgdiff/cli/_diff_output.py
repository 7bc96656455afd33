"""Rich terminal formatter for SystemDiff output.

Renders package updates (with the dependencies that changed under each
package) followed by shared dependency updates. Old versions are red, new
versions green with the characters that changed highlighted.
"""

import json
from typing import Any, Dict, Optional

from rich.console import Console
from rich.text import Text

from ..diff.models import PackageChange, StoreChange, SystemDiff


def format_version_change(change: StoreChange) -> Text:
    """``old -> new`` with the changed characters of ``new`` emphasised."""
    changed = set(change.changed_positions())
    new_version = Text()
    for idx, char in enumerate(change.new_version):
        style = "bold underline bright_green" if idx in changed else "green"
        new_version.append(char, style=style)

    return Text.assemble((change.old_version, "red"), " -> ", new_version)


class PackageDiffFormatter:
    """Render a SystemDiff to a Rich console.

    Usage::

        formatter = PackageDiffFormatter()
        formatter.render(diff)                # default: rich console
        formatter.render(diff, fmt="json")    # machine-readable JSON
    """

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    # ── Public API ───────────────────────────────────────────────────────

    def render(self, diff: SystemDiff, fmt: str = "rich") -> None:
        """Render the diff to the console.

        Args:
            diff: The SystemDiff to render, already in display order.
            fmt: Output format — ``"rich"`` for terminal, ``"json"`` for
                 machine-readable output.
        """
        if fmt == "json":
            self._render_json(diff)
        else:
            self._render_rich(diff)

    # ── JSON output ──────────────────────────────────────────────────────

    def _render_json(self, diff: SystemDiff) -> None:
        output = {
            "old_timestamp": diff.old_timestamp,
            "new_timestamp": diff.new_timestamp,
            "packages": [self._package_change_to_dict(pc) for pc in diff.package_changes],
            "shared": [self._change_to_dict(c) for c in diff.shared_changes],
        }
        print(json.dumps(output, indent=2))

    @staticmethod
    def _change_to_dict(change: StoreChange) -> Dict[str, Any]:
        return {
            "name": change.name,
            "suffix": change.suffix,
            "old_version": change.old_version,
            "new_version": change.new_version,
        }

    def _package_change_to_dict(self, change: PackageChange) -> Dict[str, Any]:
        return {
            "name": change.name,
            "suffix": change.suffix,
            "package": self._change_to_dict(change.package) if change.package else None,
            "dependencies": [self._change_to_dict(d) for d in change.dependencies],
        }

    # ── Rich output ──────────────────────────────────────────────────────

    def _render_rich(self, diff: SystemDiff) -> None:
        con = self._console

        con.print(Text.assemble((str(len(diff.package_changes)), "blue"), " package update(s)"))
        con.print()
        for change in diff.package_changes:
            self._render_package(change)

        con.print()
        con.print(
            Text.assemble((str(len(diff.shared_changes)), "blue"), " global dependency update(s)")
        )
        con.print()
        for change in diff.shared_changes:
            con.print(Text.assemble((change.identity, "blue"), ": ", format_version_change(change)))

    def _render_package(self, change: PackageChange) -> None:
        line = Text(change.identity, style="blue")
        if change.package is not None:
            line.append(": ")
            line.append_text(format_version_change(change.package))
        self._console.print(line)

        for dep in change.dependencies:
            self._console.print(
                Text.assemble(
                    ("^", "yellow"), " ", (dep.identity, "blue"), ": ", format_version_change(dep)
                )
            )
