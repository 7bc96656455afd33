"""Diff layer — version changes between two system snapshots."""

from .engine import (
    diff_package,
    diff_packages,
    diff_record,
    diff_records,
    diff_snapshots,
    sort_changes,
    sort_package_changes,
)
from .models import PackageChange, StoreChange, SystemDiff

__all__ = [
    "PackageChange",
    "StoreChange",
    "SystemDiff",
    "diff_package",
    "diff_packages",
    "diff_record",
    "diff_records",
    "diff_snapshots",
    "sort_changes",
    "sort_package_changes",
]
