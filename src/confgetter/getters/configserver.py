"""Config-server getter: HTTP download plus YAML fragment extraction.

Behaves exactly like ``HttpGetter`` for directory fetches. For single
files it understands four extra query parameters, stripped before the
request is sent:

``xpath``
    Path expression selecting the fragment to keep (``a.b``, ``a[*]``).
``format``
    Document format. Only ``yaml`` is supported; implied by ``xpath``.
``type``
    ``list`` allows the path to match several nodes.
``newkey``
    Re-key the fragment under this top-level name.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from confgetter.config import GetterConfig
from confgetter.exceptions import DestinationIOError, UnsupportedFormatError
from confgetter.extract import YAML_FORMAT, extract_yaml, split_extraction_params
from confgetter.getters.base import ClientMode
from confgetter.getters.http import HttpGetter

if TYPE_CHECKING:
    from confgetter.client import Client

logger = logging.getLogger(__name__)


class ConfigServerGetter:
    """Getter that post-processes downloaded YAML in place.

    Holds an ``HttpGetter`` as ``http_getter`` and forwards every
    transport concern to it.
    """

    def __init__(self, http_getter: HttpGetter | None = None) -> None:
        if http_getter is None:
            http_getter = HttpGetter(netrc=True, alternate_source_disabled=True)
        self.http_getter = http_getter

    @classmethod
    def from_config(cls, config: GetterConfig) -> ConfigServerGetter:
        return cls(HttpGetter.from_config(config))

    def set_client(self, client: Client) -> None:
        self.http_getter.set_client(client)

    def client_mode(self, url: str) -> ClientMode:
        return self.http_getter.client_mode(url)

    async def get(self, dst: str | Path, url: str) -> None:
        await self.http_getter.get(dst, url)

    async def get_file(self, dst: str | Path, url: str) -> None:
        """Download ``url`` to ``dst`` and apply any requested extraction."""
        request, stripped_url = split_extraction_params(url)
        await self.http_getter.get_file(dst, stripped_url)

        fmt = request.effective_format
        if not fmt:
            return
        if fmt != YAML_FORMAT:
            raise UnsupportedFormatError(fmt)

        logger.debug("Extracting %r from %s", request.xpath, dst)
        content = self._read(dst)
        fragment = extract_yaml(content, request, source=str(dst))
        self._save(dst, fragment)
        logger.info("Rewrote %s with extracted fragment (%d bytes)", dst, len(fragment))

    def _read(self, dst: str | Path) -> bytes:
        try:
            fd = os.open(dst, os.O_RDWR | os.O_CREAT, self.http_getter.file_mode())
        except OSError as e:
            raise DestinationIOError(dst, f"cannot open file ({dst}): {e}") from e
        try:
            with open(fd, "rb") as handle:
                return handle.read()
        except OSError as e:
            raise DestinationIOError(dst, f"cannot read all file ({dst}): {e}") from e

    def _save(self, dst: str | Path, data: bytes) -> None:
        try:
            fd = os.open(
                dst,
                os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
                self.http_getter.file_mode(),
            )
        except OSError as e:
            raise DestinationIOError(dst, f"cannot open file ({dst}): {e}") from e
        try:
            with open(fd, "wb") as handle:
                handle.write(data)
        except OSError as e:
            raise DestinationIOError(dst, f"error saving file {dst}: {e}") from e
