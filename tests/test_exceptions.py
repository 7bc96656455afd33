"""Tests for the exception hierarchy."""

from pathlib import Path

from nix_pkgdiff.exceptions import (
    CommandError,
    ConfigurationError,
    DependencyLookupError,
    InvalidConfigError,
    MalformedOutputError,
    NixPkgDiffError,
    StateError,
    StateFileError,
    StateNotFoundError,
    StoreAccessError,
    StoreError,
)


class TestHierarchy:
    def test_store_errors(self):
        for exc_type in (StoreAccessError, DependencyLookupError, CommandError, MalformedOutputError):
            assert issubclass(exc_type, StoreError)
            assert issubclass(exc_type, NixPkgDiffError)

    def test_state_errors(self):
        assert issubclass(StateNotFoundError, StateError)
        assert issubclass(StateFileError, StateError)

    def test_config_errors(self):
        assert issubclass(InvalidConfigError, ConfigurationError)
        assert issubclass(ConfigurationError, NixPkgDiffError)


class TestFormatting:
    def test_message_without_details(self):
        assert str(NixPkgDiffError("boom")) == "boom"

    def test_details_appended(self):
        error = DependencyLookupError("firefox", "not in database")
        assert str(error) == (
            "Failed to look up dependencies of firefox (package=firefox, reason=not in database)"
        )

    def test_command_error(self):
        error = CommandError(["nix-store", "-qR", "/nix/store/x"], "exit", returncode=2)
        assert error.command == ["nix-store", "-qR", "/nix/store/x"]
        assert error.details["command"] == "nix-store -qR /nix/store/x"
        assert error.details["returncode"] == "2"

    def test_command_error_without_returncode(self):
        assert "returncode" not in CommandError(["nix-store"], "not found").details

    def test_state_not_found_mentions_save(self):
        error = StateNotFoundError(Path("/tmp/packages.json"))
        assert "nix-pkgdiff save" in error.message
        assert error.path == Path("/tmp/packages.json")
