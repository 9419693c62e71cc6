"""Getter contract shared by every scheme handler."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from confgetter.client import Client

# "git::https://host/repo" forces the getter regardless of the URL scheme.
_FORCED_GETTER = re.compile(r"^([A-Za-z0-9]+)::(.+)$")


def split_forced_getter(source: str) -> tuple[str, str]:
    """Return ``(scheme, url)`` for a source, honouring ``getter::url``."""
    match = _FORCED_GETTER.match(source)
    if match:
        return match.group(1).lower(), match.group(2)
    return urlsplit(source).scheme.lower(), source


class ClientMode(str, Enum):
    """What kind of artifact a fetch produces."""

    ANY = "any"
    FILE = "file"
    DIR = "dir"


@runtime_checkable
class Getter(Protocol):
    """Fetches a source URL into a local destination path.

    Implementations are registered per URL scheme on a ``Client`` and
    bound to it through ``set_client`` before each fetch.
    """

    def set_client(self, client: Client) -> None: ...

    def client_mode(self, url: str) -> ClientMode: ...

    async def get(self, dst: str | Path, url: str) -> None: ...

    async def get_file(self, dst: str | Path, url: str) -> None: ...
