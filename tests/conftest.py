"""Shared test fixtures for nix-pkgdiff tests."""

import pytest


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real user config, saved state and env overrides."""
    import os

    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for key in list(os.environ):
        if key.startswith("NIX_PKGDIFF_"):
            monkeypatch.delenv(key)
    return tmp_path


@pytest.fixture
def nix_db(tmp_path):
    """Path to a small Nix-style SQLite database.

    Contents (id: path, registrationTime):
        1: firefox-61.0           -> refs glibc, itself
        2: glibc-2.27             -> refs gtk
        3: gtk-3.22.30
        4: firefox-61.0.drv (ca set, not a package)
        5: bash-4.4-completions (excluded by default pattern)
        6: vlc-3.0.4              -> refs glibc
    """
    import sqlite3

    path = tmp_path / "db.sqlite"
    conn = sqlite3.connect(str(path))
    conn.executescript(
        """
        CREATE TABLE ValidPaths (
            id               integer primary key autoincrement not null,
            path             text unique not null,
            hash             text not null,
            registrationTime integer not null,
            deriver          text,
            narSize          integer,
            ultimate         integer,
            sigs             text,
            ca               text
        );
        CREATE TABLE Refs (
            referrer  integer not null,
            reference integer not null,
            primary key (referrer, reference)
        );
        """
    )
    rows = [
        (1, "/nix/store/aaaa-firefox-61.0", 5000, None),
        (2, "/nix/store/bbbb-glibc-2.27", 1000, None),
        (3, "/nix/store/cccc-gtk-3.22.30", 900, None),
        (4, "/nix/store/dddd-firefox-61.0.drv", 4000, "text:sha256:xyz"),
        (5, "/nix/store/eeee-bash-4.4-completions", 800, None),
        (6, "/nix/store/ffff-vlc-3.0.4", 6000, None),
    ]
    conn.executemany(
        "INSERT INTO ValidPaths (id, path, hash, registrationTime, ca) VALUES (?, ?, 'h', ?, ?)",
        rows,
    )
    conn.executemany(
        "INSERT INTO Refs (referrer, reference) VALUES (?, ?)",
        [(1, 1), (1, 2), (2, 3), (6, 2)],
    )
    conn.commit()
    conn.close()
    return path
