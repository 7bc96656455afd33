"""Tests for shared dependency isolation."""

import copy

from nix_pkgdiff.store.models import Package, StoreRecord, SystemSnapshot
from nix_pkgdiff.store.partition import (
    isolate_shared_dependencies,
    partition_snapshot,
    scan_dependency_versions,
)


def _rec(name, version):
    return StoreRecord(name=name, version=version)


def _pkg(name, version, *deps):
    return Package(primary=_rec(name, version), dependencies={d.identity: d for d in deps})


def _assert_consistent(packages, shared):
    """No identity may be both shared and per-package."""
    for package in packages.values():
        assert not set(package.dependencies) & set(shared), package.identity


class TestScan:
    def test_flags_multiple_versions(self):
        packages = {
            "a": _pkg("a", "1", _rec("glibc", "2.27"), _rec("libx", "1.0")),
            "b": _pkg("b", "1", _rec("glibc", "2.27"), _rec("libx", "1.1")),
        }
        scans = scan_dependency_versions(packages)
        assert not scans["glibc"].has_multiple_versions
        assert scans["libx"].has_multiple_versions


class TestIsolateSharedDependencies:
    def test_one_conflicting_consumer_keeps_dependency_everywhere(self):
        packages = {
            "test1": _pkg("test1", "1.0", _rec("db", "4.8.30"), _rec("glibc", "2.27")),
            "test2": _pkg("test2", "1.0", _rec("db", "5.0.0"), _rec("glibc", "2.27")),
            "test3": _pkg("test3", "1.0", _rec("db", "4.8.30"), _rec("glibc", "2.27")),
        }
        shared = isolate_shared_dependencies(packages)

        assert shared == {"glibc": _rec("glibc", "2.27")}
        assert {k: p.dependencies["db"].version for k, p in packages.items()} == {
            "test1": "4.8.30",
            "test2": "5.0.0",
            "test3": "4.8.30",
        }
        _assert_consistent(packages, shared)

    def test_single_version_moves_to_shared(self):
        packages = {
            "firefox": _pkg("firefox", "61.0", _rec("glibc", "2.27"), _rec("gtk", "3.22")),
            "vlc": _pkg("vlc", "3.0.4", _rec("glibc", "2.27")),
        }
        shared = isolate_shared_dependencies(packages)

        assert set(shared) == {"glibc", "gtk"}
        assert packages["firefox"].dependencies == {}
        assert packages["vlc"].dependencies == {}

    def test_conflicting_versions_stay_per_package(self):
        packages = {
            "a": _pkg("a", "1", _rec("libx", "1.0"), _rec("glibc", "2.27")),
            "b": _pkg("b", "1", _rec("libx", "1.1"), _rec("glibc", "2.27")),
        }
        shared = isolate_shared_dependencies(packages)

        assert set(shared) == {"glibc"}
        assert packages["a"].dependencies["libx"].version == "1.0"
        assert packages["b"].dependencies["libx"].version == "1.1"
        _assert_consistent(packages, shared)

    def test_no_dependency_is_lost(self):
        packages = {
            "a": _pkg("a", "1", _rec("libx", "1.0"), _rec("glibc", "2.27")),
            "b": _pkg("b", "1", _rec("libx", "1.1"), _rec("zlib", "1.2")),
        }
        before = {
            (pkg_id, dep_id) for pkg_id, pkg in packages.items() for dep_id in pkg.dependencies
        }
        shared = isolate_shared_dependencies(packages)
        after = {
            (pkg_id, dep_id) for pkg_id, pkg in packages.items() for dep_id in pkg.dependencies
        }

        removed = {dep_id for _, dep_id in before - after}
        assert removed == set(shared)

    def test_parallel_matches_sequential(self):
        packages = {
            f"pkg{i}": _pkg(
                f"pkg{i}", "1", _rec("glibc", "2.27"), _rec("libx", "1.0" if i % 2 else "1.1")
            )
            for i in range(20)
        }
        parallel_packages = copy.deepcopy(packages)

        sequential = isolate_shared_dependencies(packages, workers=1)
        parallel = isolate_shared_dependencies(parallel_packages, workers=4)

        assert parallel == sequential
        assert parallel_packages == packages

    def test_empty(self):
        assert isolate_shared_dependencies({}) == {}


class TestPartitionSnapshot:
    def test_idempotent(self):
        snapshot = SystemSnapshot(
            packages={
                "a": _pkg("a", "1", _rec("libx", "1.0"), _rec("glibc", "2.27")),
                "b": _pkg("b", "1", _rec("libx", "1.1"), _rec("glibc", "2.27")),
            }
        )
        partition_snapshot(snapshot)
        first = copy.deepcopy(snapshot)
        partition_snapshot(snapshot)

        assert snapshot == first
        assert set(snapshot.shared_dependencies) == {"glibc"}
        _assert_consistent(snapshot.packages, snapshot.shared_dependencies)
