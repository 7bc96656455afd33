"""Query installed packages by shelling out to the Nix command-line tools.

Slower than reading the database and without registration times, but it
only lists what ``environment.systemPackages`` declares rather than every
valid store path.
"""

import re
import subprocess
from typing import Callable, Iterator, List, Optional

from ..exceptions import CommandError, DependencyLookupError, MalformedOutputError
from ..logging_config import get_logger
from ..store.models import StoreRecord
from ..store.parser import parse_store_path, parse_store_paths

logger = get_logger(__name__)

SYSTEM_PACKAGES_COMMAND = ["nixos-option", "environment.systemPackages"]
QUERY_REQUISITES_COMMAND = ["nix-store", "--query", "--requisites"]

# nixos-option prints the value as a Nix list of quoted store paths
_QUOTED = re.compile(r'"(.+?)"')

CommandRunner = Callable[[List[str]], str]


def run_command(cmd: List[str], timeout: int = 60) -> str:
    """Run ``cmd`` and return its stdout.

    Raises:
        CommandError: The executable is missing, timed out, exited
            non-zero or wrote something that is not UTF-8.
    """
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise CommandError(cmd, f"{cmd[0]} not found")
    except subprocess.TimeoutExpired:
        raise CommandError(cmd, f"timed out after {timeout}s")

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise CommandError(cmd, stderr or "non-zero exit status", returncode=result.returncode)

    try:
        return result.stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CommandError(cmd, f"output is not valid UTF-8: {e}")


def extract_system_package_paths(output: str) -> List[str]:
    """Pull the quoted store paths out of ``nixos-option environment.systemPackages``.

    Raises:
        MalformedOutputError: The output does not contain a ``[ ... ]`` list.
    """
    start = output.find("[ ")
    end = output.find("]", start + 1) if start != -1 else -1
    if start == -1 or end == -1:
        raise MalformedOutputError(SYSTEM_PACKAGES_COMMAND, "no package list in output")

    body = output[start + 2:end]
    paths = []
    for token in body.split():
        match = _QUOTED.search(token)
        if match:
            paths.append(match.group(1))
    return paths


class NixCommandSource:
    """Package source backed by ``nixos-option`` and ``nix-store``."""

    name = "command"

    def __init__(self, timeout: int = 60, runner: Optional[CommandRunner] = None) -> None:
        self.timeout = timeout
        self._runner = runner or (lambda cmd: run_command(cmd, timeout=self.timeout))

    def system_records(self) -> Iterator[StoreRecord]:
        output = self._runner(list(SYSTEM_PACKAGES_COMMAND))
        paths = extract_system_package_paths(output)
        logger.debug("nixos-option listed %d store path(s)", len(paths))

        for path in paths:
            record = parse_store_path(path)
            if record is not None:
                yield record

    def dependency_records(self, record: StoreRecord) -> Iterator[StoreRecord]:
        """``nix-store -qR``: the full runtime closure, including ``record`` itself."""
        if not record.origin:
            raise DependencyLookupError(record.identity, "no store path to query")

        output = self._runner(QUERY_REQUISITES_COMMAND + [record.origin])
        return parse_store_paths(output.splitlines())
