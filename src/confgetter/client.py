"""Multi-scheme fetch client.

A ``Client`` owns the getter registry, the fetch mode and the settings
getters consult while they run (umask, cancellation). One client
describes one fetch: set ``src`` and ``dst`` and await ``get()``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from confgetter.config import Config, GetterConfig
from confgetter.exceptions import NoGetterError
from confgetter.getters import (
    ClientMode,
    ConfigServerGetter,
    FileGetter,
    Getter,
    split_forced_getter,
)

logger = logging.getLogger(__name__)


def default_getters(config: GetterConfig | None = None) -> dict[str, Getter]:
    """Build the standard scheme registry."""
    http_getter = ConfigServerGetter.from_config(config or GetterConfig())
    return {
        "http": http_getter,
        "https": http_getter,
        "file": FileGetter(),
    }


@dataclass
class Client:
    src: str = ""
    dst: str | Path = ""
    mode: ClientMode = ClientMode.ANY
    getters: dict[str, Getter] | None = None
    umask: int = 0
    cancel_event: asyncio.Event | None = None
    pwd: Path | None = None

    def __post_init__(self) -> None:
        if self.getters is None:
            self.getters = default_getters()

    @classmethod
    def from_config(cls, config: Config, *, src: str = "", dst: str | Path = "") -> Client:
        return cls(
            src=src,
            dst=dst,
            mode=ClientMode(config.client.mode),
            getters=default_getters(config.http),
            umask=config.client.umask,
        )

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def cancel(self) -> None:
        if self.cancel_event is None:
            self.cancel_event = asyncio.Event()
        self.cancel_event.set()

    def file_mode(self, default: int = 0o666) -> int:
        """Apply the client umask to ``default`` permission bits."""
        return default & ~self.umask

    def resolve_source(self) -> tuple[str, str]:
        """Return ``(scheme, url)`` for ``src``; bare paths become file URLs."""
        source = self.src.strip()
        if not source:
            raise ValueError("client source is empty")
        scheme, url = split_forced_getter(source)
        if scheme and "://" in url:
            return scheme, url
        path = Path(url).expanduser()
        if not path.is_absolute():
            path = (self.pwd or Path.cwd()) / path
        return "file", path.resolve().as_uri()

    async def get(self) -> None:
        """Fetch ``src`` into ``dst`` with the getter registered for its scheme."""
        if not self.dst:
            raise ValueError("client destination is empty")
        scheme, url = self.resolve_source()
        getter = (self.getters or {}).get(scheme)
        if getter is None:
            raise NoGetterError(scheme, f"download not supported for scheme '{scheme}'")

        getter.set_client(self)
        mode = self.mode
        if mode == ClientMode.ANY:
            mode = getter.client_mode(url)
        logger.debug("Fetching %s (%s) into %s", scheme, mode.value, self.dst)

        if mode == ClientMode.FILE:
            await getter.get_file(self.dst, url)
        else:
            Path(self.dst).mkdir(parents=True, exist_ok=True)
            await getter.get(self.dst, url)
