"""
nix-pkgdiff - show which packages a NixOS system update changed.

Save the installed package state before an update, run the update, then
diff: every package whose version changed is listed with the dependencies
that changed under it, and dependencies shared system-wide are listed once.
"""

__version__ = "0.3.0"

from .diff import PackageChange, StoreChange, SystemDiff, diff_snapshots
from .store import Package, StoreRecord, SystemSnapshot, parse_store_path

__all__ = [
    "diff_snapshots",  # Main entry point
    "parse_store_path",
    "Package",
    "PackageChange",
    "StoreChange",
    "StoreRecord",
    "SystemDiff",
    "SystemSnapshot",
]
