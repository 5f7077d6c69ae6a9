from __future__ import annotations

"""
M3U8 rewriting.

`rewrite_playlist` walks a playlist line by line: `#` directives and blank
lines are copied byte-for-byte, every other line is a *reference* handed to a
`LineTransformer`. Terminators and line order are preserved; references are
transformed concurrently and reassembled in their original positions.

Two transformers cover the delivery strategies:

- `SignedUrlTransformer` → each reference becomes a presigned object-store URL
  (client fetches directly from the store).
- `ProxyTransformer`     → each reference becomes a same-origin gateway URL
  (gateway fetches and streams).
"""

import asyncio
import logging
import posixpath
from typing import Awaitable, Callable, List, Optional, Protocol, Tuple
from urllib.parse import quote, unquote, urlencode, urlsplit

from streamgate.core.config import settings
from streamgate.core.exceptions import GatewayError

logger = logging.getLogger(__name__)

# Every terminator `str.splitlines` recognises.
_LINE_TERMINATORS = "\r\n\x0b\x0c\x1c\x1d\x1e\x85\u2028\u2029"

UrlBuilder = Callable[[Optional[str], str], str]


class LineTransformer(Protocol):
    def __call__(self, reference: str) -> Awaitable[str]: ...


# ─────────────────────────────────────────────────────────────
# Rewriter
# ─────────────────────────────────────────────────────────────
def _split_terminator(line: str) -> Tuple[str, str]:
    content = line.rstrip(_LINE_TERMINATORS)
    return content, line[len(content):]


async def rewrite_playlist(text: str, transformer: LineTransformer) -> str:
    """Return `text` with every reference line replaced by `transformer(ref)`."""
    out: List[str] = []
    pending: List[Tuple[int, str, str]] = []  # (position, reference, terminator)

    for line in text.splitlines(keepends=True):
        content, terminator = _split_terminator(line)
        stripped = content.strip()
        if not stripped or stripped.startswith("#"):
            out.append(line)
            continue
        pending.append((len(out), stripped, terminator))
        out.append("")

    if pending:
        results = await asyncio.gather(*(transformer(ref) for _, ref, _ in pending))
        for (pos, _, terminator), new in zip(pending, results):
            out[pos] = new + terminator

    logger.debug("rewrote %d playlist references", len(pending))
    return "".join(out)


def _is_absolute(reference: str) -> bool:
    return reference.startswith("http://") or reference.startswith("https://")


def _path_parts(reference: str) -> List[str]:
    path = reference.split("?", 1)[0]
    parts = [p for p in path.split("/") if p and p != "."]
    if not parts or ".." in parts:
        raise GatewayError.upstream_integrity("Playlist contains an unsafe reference")
    return parts


# ─────────────────────────────────────────────────────────────
# Signed-URL mode
# ─────────────────────────────────────────────────────────────
class SignedUrlTransformer:
    """Resolve a reference against `base_prefix` and return a signed URL.

    Absolute `http(s)://` references are left as-is. A reference whose
    resolved key leaves `base_prefix` is an integrity failure, never signed.
    """

    def __init__(self, signer, base_prefix: str, ttl: Optional[int] = None) -> None:
        self.signer = signer
        self.base_prefix = base_prefix
        self.ttl = ttl

    def resolve_key(self, reference: str) -> str:
        path = reference.split("?", 1)[0]
        if path.startswith("/"):
            raise GatewayError.upstream_integrity("Playlist reference escapes its directory")
        key = posixpath.normpath(posixpath.join(self.base_prefix, path))
        if key.startswith("..") or (self.base_prefix and not key.startswith(self.base_prefix)) or ".." in key.split("/"):
            raise GatewayError.upstream_integrity("Playlist reference escapes its directory")
        return key

    async def __call__(self, reference: str) -> str:
        if _is_absolute(reference):
            return reference
        signed = await self.signer.sign(self.resolve_key(reference), self.ttl)
        return signed.url


# ─────────────────────────────────────────────────────────────
# Proxy mode
# ─────────────────────────────────────────────────────────────
class ProxyTransformer:
    """Map a reference onto a gateway URL via `url_builder(quality, name)`.

    In a variant playlist (`quality` given) a reference must be a bare name.
    In a master playlist it is either `quality/name` or a bare name, which is
    passed with `quality=None`. Deeper references cannot be expressed as a
    gateway URL and are integrity failures.
    """

    def __init__(self, url_builder: UrlBuilder, quality: Optional[str] = None) -> None:
        self.url_builder = url_builder
        self.quality = quality

    async def __call__(self, reference: str) -> str:
        if _is_absolute(reference):
            return reference
        parts = _path_parts(reference)
        if len(parts) == 1:
            return self.url_builder(self.quality, parts[0])
        if self.quality is None and len(parts) == 2:
            return self.url_builder(parts[0], parts[1])
        raise GatewayError.upstream_integrity("Playlist reference is nested too deeply to proxy")


def path_url_builder(
    prefix: str, video_id: str, *, base_url: Optional[str] = None, allow_bare: bool = True
) -> UrlBuilder:
    """`{base}{prefix}/{id}/{quality}/{name}`, or `.../{id}/segments/{name}`.

    With `allow_bare=False` a reference without a quality directory is an
    integrity failure (the route family has no `segments/` endpoint).
    """
    root = f"{settings.PROXY_BASE_URL if base_url is None else base_url}{prefix.rstrip('/')}/{quote(video_id, safe='')}"

    def build(quality: Optional[str], name: str) -> str:
        if quality is None:
            if not allow_bare:
                raise GatewayError.upstream_integrity("Master playlist reference has no quality directory")
            return f"{root}/segments/{quote(name, safe='')}"
        return f"{root}/{quote(quality, safe='')}/{quote(name, safe='')}"

    return build


def query_url_builder(endpoint: str, video_id: str, *, base_url: Optional[str] = None) -> UrlBuilder:
    """`{base}{endpoint}?videoId=..&resolution=..[&segment=..]`."""
    root = f"{settings.PROXY_BASE_URL if base_url is None else base_url}{endpoint}"

    def build(quality: Optional[str], name: str) -> str:
        if quality is None:
            raise GatewayError.upstream_integrity("Master playlist reference has no quality directory")
        params = {"videoId": video_id, "resolution": quality}
        if name.endswith(settings.SEGMENT_EXTENSION):
            params["segment"] = name
        return f"{root}?{urlencode(params)}"

    return build


def parse_proxy_path(url: str) -> Tuple[str, Optional[str], str]:
    """Split a path-style proxy URL into `(video_id, quality, name)`.

    `quality` is None for `.../{id}/segments/{name}` URLs.
    """
    parts = [unquote(p) for p in urlsplit(url).path.split("/") if p]
    if len(parts) < 3:
        raise ValueError(f"not a proxy URL: {url!r}")
    video_id, middle, name = parts[-3], parts[-2], parts[-1]
    return video_id, (None if middle == "segments" else middle), name


__all__ = [
    "LineTransformer",
    "UrlBuilder",
    "rewrite_playlist",
    "SignedUrlTransformer",
    "ProxyTransformer",
    "path_url_builder",
    "query_url_builder",
    "parse_proxy_path",
]
