"""Package sources: where the raw store paths come from."""

from contextlib import contextmanager
from typing import Iterable, Iterator, Protocol

from ..config import DiffConfig
from ..store.models import StoreRecord
from .command import NixCommandSource
from .database import NixDatabase


class StoreSource(Protocol):
    """What the snapshot builder needs from a package source."""

    name: str

    def system_records(self) -> Iterable[StoreRecord]:
        ...

    def dependency_records(self, record: StoreRecord) -> Iterable[StoreRecord]:
        ...


@contextmanager
def open_source(config: DiffConfig) -> Iterator[StoreSource]:
    """Open the source selected by ``config.source``."""
    if config.source == "command":
        yield NixCommandSource(timeout=config.command_timeout_seconds)
        return

    with NixDatabase(config.database_path, exclude_patterns=config.exclude_patterns) as db:
        yield db


__all__ = [
    "NixCommandSource",
    "NixDatabase",
    "StoreSource",
    "open_source",
]
