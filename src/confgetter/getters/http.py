"""HTTP transport getter.

Downloads single files or directory-style sources over HTTP(S) with
httpx. Includes safety controls: bounded body size, optional HEAD request
with range resume, netrc credentials and a hop limit when following
alternate source locations announced by the server.
"""

from __future__ import annotations

import asyncio
import logging
import netrc as netrc_lib
import os
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urljoin, urlsplit

import httpx

from confgetter.config import DEFAULT_USER_AGENT, GetterConfig
from confgetter.exceptions import BadResponseError, DownloadError, NoGetterError
from confgetter.getters.base import ClientMode, split_forced_getter

if TYPE_CHECKING:
    from confgetter.client import Client

logger = logging.getLogger(__name__)

ALTERNATE_SOURCE_HEADER = "X-Terraform-Get"
ALTERNATE_SOURCE_QUERY = "terraform-get"
DEFAULT_TIMEOUT = 30.0
DEFAULT_ALTERNATE_SOURCE_LIMIT = 10
DEFAULT_FILE_MODE = 0o666

_META_SOURCE = re.compile(
    r"""<meta\s+name=["']terraform-get["']\s+content=["']([^"']*)["']""",
    re.IGNORECASE,
)

# Hops taken while following alternate sources in the current task.
_alternate_source_depth: ContextVar[int] = ContextVar(
    "alternate_source_depth", default=0,
)


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def _content_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("content-length")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _source_from_meta(body: str) -> str:
    """Find an alternate source advertised in an HTML meta tag."""
    match = _META_SOURCE.search(body or "")
    return match.group(1).strip() if match else ""


def _redact(url: httpx.URL) -> str:
    """Render a URL for logs and errors without its credentials."""
    text = str(url)
    userinfo = url.userinfo
    if not userinfo:
        return text
    return text.replace(userinfo.decode("ascii", errors="replace") + "@", "***@", 1)


@dataclass(eq=False)
class HttpGetter:
    """Getter for ``http`` and ``https`` sources.

    ``client`` may be set to an ``httpx.AsyncClient`` to control
    transport, proxies or TLS; otherwise a short-lived client is created
    per fetch. The injected client is never closed by the getter.
    """

    client: httpx.AsyncClient | None = None
    netrc: bool = False
    alternate_source_disabled: bool = False
    alternate_source_limit: int = DEFAULT_ALTERNATE_SOURCE_LIMIT
    max_bytes: int = 0  # 0 = unlimited
    check_head_first: bool = True
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    header: dict[str, str] = field(default_factory=dict)
    owner: Client | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_config(cls, config: GetterConfig) -> HttpGetter:
        return cls(
            netrc=config.netrc,
            alternate_source_disabled=config.alternate_source_disabled,
            alternate_source_limit=config.alternate_source_limit,
            max_bytes=config.max_bytes,
            check_head_first=config.check_head_first,
            timeout=config.timeout_seconds,
            user_agent=config.resolved_user_agent,
        )

    def set_client(self, client: Client) -> None:
        self.owner = client

    def client_mode(self, url: str) -> ClientMode:
        if urlsplit(url).path.endswith("/"):
            return ClientMode.DIR
        return ClientMode.FILE

    def file_mode(self, default: int = DEFAULT_FILE_MODE) -> int:
        """Permission bits for files this getter creates."""
        if self.owner is None:
            return default
        return self.owner.file_mode(default)

    async def get(self, dst: str | Path, url: str) -> None:
        """Fetch a directory-style source.

        The server is asked where the real source lives. Unless that
        lookup is disabled, the announced location is fetched into
        ``dst`` by the owning client's getter for its scheme.
        """
        self._raise_if_cancelled()
        target = httpx.URL(url).copy_add_param(ALTERNATE_SOURCE_QUERY, "1")
        async with self._session() as session:
            response = await session.get(
                target,
                headers=self._request_headers(),
                auth=self._request_auth(target),
            )
        if not _is_success(response.status_code):
            raise BadResponseError(response.status_code, _redact(target))

        if self.alternate_source_disabled:
            logger.debug("Alternate source lookup disabled for %s", _redact(target))
            return

        source = response.headers.get(ALTERNATE_SOURCE_HEADER, "").strip()
        if not source:
            source = _source_from_meta(response.text)
        if not source:
            raise DownloadError("no source URL was returned")

        await self._fetch_alternate_source(dst, urljoin(str(response.url), source))

    async def get_file(self, dst: str | Path, url: str) -> None:
        """Download a single file from ``url`` into ``dst``."""
        self._raise_if_cancelled()
        dst_path = Path(dst)
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        target = httpx.URL(url)
        headers = self._request_headers()
        auth = self._request_auth(target)

        async with self._session() as session:
            offset: int | None = 0
            if self.check_head_first:
                head = await session.head(target, headers=headers, auth=auth)
                if _is_success(head.status_code):
                    offset = self._resume_offset(dst_path, head)
                else:
                    logger.debug(
                        "HEAD %s returned %d, fetching without resume",
                        _redact(target), head.status_code,
                    )
                if offset is None:
                    logger.debug("%s already complete, skipping download", dst_path)
                    return
            if offset:
                headers = {**headers, "Range": f"bytes={offset}-"}

            self._raise_if_cancelled()
            async with session.stream(
                "GET", target, headers=headers, auth=auth,
            ) as response:
                if not _is_success(response.status_code):
                    raise BadResponseError(response.status_code, _redact(target))
                append = bool(offset) and response.status_code == 206
                written = await self._write_body(
                    dst_path, response, append=append, url=target,
                )

        logger.info("Downloaded %s to %s (%d bytes)", _redact(target), dst_path, written)

    def _resume_offset(self, dst_path: Path, head: httpx.Response) -> int | None:
        """Byte offset to resume from; None when ``dst`` is already complete."""
        if head.headers.get("accept-ranges", "").strip().lower() != "bytes":
            return 0
        try:
            current = dst_path.stat().st_size
        except OSError:
            return 0
        length = _content_length(head)
        if length is not None and current >= length:
            return None
        return current

    async def _write_body(
        self,
        dst_path: Path,
        response: httpx.Response,
        *,
        append: bool,
        url: httpx.URL,
    ) -> int:
        flags = os.O_WRONLY | os.O_CREAT | (os.O_APPEND if append else os.O_TRUNC)
        fd = os.open(dst_path, flags, self.file_mode())
        written = 0
        truncated = False
        with open(fd, "wb") as handle:
            async for chunk in response.aiter_bytes():
                self._raise_if_cancelled()
                if not chunk:
                    continue
                if self.max_bytes > 0:
                    remaining = self.max_bytes - written
                    if remaining <= 0:
                        truncated = True
                        break
                    if len(chunk) > remaining:
                        chunk = chunk[:remaining]
                        truncated = True
                handle.write(chunk)
                written += len(chunk)
                if truncated:
                    break
        if truncated:
            logger.warning(
                "Response from %s truncated to %d bytes", _redact(url), self.max_bytes,
            )
        return written

    async def _fetch_alternate_source(self, dst: str | Path, source: str) -> None:
        depth = _alternate_source_depth.get()
        if depth >= self.alternate_source_limit:
            raise DownloadError(
                f"too many {ALTERNATE_SOURCE_HEADER} redirects: {depth}"
            )

        scheme, source_url = split_forced_getter(source)
        getters = self.owner.getters if self.owner is not None else {}
        getter = (getters or {}).get(scheme)
        if getter is None or self.owner is None:
            raise NoGetterError(
                scheme,
                f"no getter available for {ALTERNATE_SOURCE_HEADER} "
                f"source protocol: {scheme}",
            )

        logger.info("Following %s to %s", ALTERNATE_SOURCE_HEADER, source_url)
        getter.set_client(self.owner)
        token = _alternate_source_depth.set(depth + 1)
        try:
            await getter.get(dst, source_url)
        finally:
            _alternate_source_depth.reset(token)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.client is not None:
            yield self.client
            return
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(self.timeout),
        ) as session:
            yield session

    def _request_headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent or DEFAULT_USER_AGENT}
        headers.update(self.header)
        return headers

    def _request_auth(self, url: httpx.URL):
        """Credentials from netrc unless the URL carries its own."""
        if not self.netrc or url.username:
            return httpx.USE_CLIENT_DEFAULT
        path = Path(os.environ.get("NETRC") or Path.home() / ".netrc")
        if not path.is_file():
            return httpx.USE_CLIENT_DEFAULT
        try:
            return httpx.NetRCAuth(str(path))
        except netrc_lib.NetrcParseError as e:
            raise DownloadError(f"error parsing netrc file {path}: {e}") from e

    def _raise_if_cancelled(self) -> None:
        if self.owner is not None and self.owner.cancelled:
            raise asyncio.CancelledError("fetch cancelled by owning client")
