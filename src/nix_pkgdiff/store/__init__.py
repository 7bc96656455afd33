"""Store layer: parse store paths, resolve duplicates, build and partition packages."""

from .builder import build_package, build_packages, build_snapshot
from .dedupe import deduplicate
from .models import Package, StoreRecord, SystemSnapshot, make_identity
from .parser import parse_store_name, parse_store_path, parse_store_paths, strip_store_prefix
from .partition import isolate_shared_dependencies, partition_snapshot

__all__ = [
    "Package",
    "StoreRecord",
    "SystemSnapshot",
    "build_package",
    "build_packages",
    "build_snapshot",
    "deduplicate",
    "isolate_shared_dependencies",
    "make_identity",
    "parse_store_name",
    "parse_store_path",
    "parse_store_paths",
    "partition_snapshot",
    "strip_store_prefix",
]
