"""Getter for local ``file://`` sources."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlsplit

from confgetter.exceptions import DownloadError
from confgetter.getters.base import ClientMode

if TYPE_CHECKING:
    from confgetter.client import Client

logger = logging.getLogger(__name__)


def url_to_path(url: str) -> Path:
    parts = urlsplit(url)
    if parts.scheme and parts.scheme != "file":
        raise DownloadError(f"not a file URL: {url}")
    if parts.netloc and parts.netloc != "localhost":
        raise DownloadError(f"file URL with remote host is not supported: {url}")
    return Path(unquote(parts.path))


class FileGetter:
    """Copies files and directory trees from the local filesystem."""

    def __init__(self) -> None:
        self.owner: Client | None = None

    def set_client(self, client: Client) -> None:
        self.owner = client

    def client_mode(self, url: str) -> ClientMode:
        path = url_to_path(url)
        if not path.exists():
            raise DownloadError(f"source path does not exist: {path}")
        return ClientMode.DIR if path.is_dir() else ClientMode.FILE

    async def get(self, dst: str | Path, url: str) -> None:
        source = url_to_path(url)
        if not source.is_dir():
            raise DownloadError(f"source path must be a directory: {source}")
        dst_path = Path(dst)
        if dst_path.exists() and not dst_path.is_dir():
            raise DownloadError(f"destination exists and is not a directory: {dst_path}")
        shutil.copytree(source, dst_path, dirs_exist_ok=True)
        logger.info("Copied directory %s to %s", source, dst_path)

    async def get_file(self, dst: str | Path, url: str) -> None:
        source = url_to_path(url)
        if not source.is_file():
            raise DownloadError(f"source path must be a file: {source}")
        dst_path = Path(dst)
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dst_path)
        mode = self.owner.file_mode(0o666) if self.owner is not None else 0o666
        os.chmod(dst_path, mode)
        logger.info("Copied %s to %s", source, dst_path)
