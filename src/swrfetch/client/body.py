"""Request body normalisation for cache keys and replayable outbound bodies.

A request body can arrive in several shapes.  :func:`coerce_body` maps a
Python value onto one variant of a closed set, and each variant knows how
to normalise itself into a :class:`NormalizedBody`:

==============  ==========================================  =====================
Variant         Accepted values                             Hash chunk
==============  ==========================================  =====================
``NoBody``      ``None``                                    *(none)*
``RawBytes``    ``bytes``, ``bytearray``, ``memoryview``    UTF-8 text
``ByteStream``  iterator or async iterable of ``bytes``     UTF-8 text (drained)
``FormPairs``   ``dict``, ``httpx.QueryParams``, pair list  ``k=v`` joined by ``,``
``TypedBlob``   :class:`Blob`                               UTF-8 text
``Text``        ``str``                                     verbatim
``Opaque``      anything else                               compact JSON
==============  ==========================================  =====================

Normalising a ``ByteStream`` consumes it.  The returned
:attr:`NormalizedBody.content` is the replacement the caller must send
instead, and it can be replayed for background refreshes.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union
from urllib.parse import urlencode

import httpx

from swrfetch.exceptions import BodyReadError

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class Blob:
    """An in-memory binary payload with a declared media type."""

    data: bytes
    media_type: str = ""

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


@dataclass
class NormalizedBody:
    """Hash chunks plus the body to actually send.

    Attributes:
        chunks: Strings that enter the cache key.
        content: Replayable outbound body, or ``None`` for no body.
        content_type: Content type to send when the caller set none.
    """

    chunks: list[str] = field(default_factory=list)
    content: Optional[Union[bytes, str]] = None
    content_type: Optional[str] = None

    def request_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for :meth:`httpx.AsyncClient.request`."""
        if self.content is None:
            return {}
        return {"content": self.content}


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class NoBody:
    async def normalize(self) -> NormalizedBody:
        return NormalizedBody()


@dataclass(frozen=True)
class RawBytes:
    data: bytes

    async def normalize(self) -> NormalizedBody:
        return NormalizedBody(chunks=[_decode(self.data)], content=self.data)


@dataclass(frozen=True)
class ByteStream:
    """A single-use byte source; owned by the normaliser once wrapped."""

    source: Union[Iterator[bytes], AsyncIterable[bytes]]

    async def normalize(self) -> NormalizedBody:
        buffer = bytearray()
        try:
            if isinstance(self.source, AsyncIterable):
                async for chunk in self.source:
                    buffer.extend(chunk)
            else:
                for chunk in self.source:
                    buffer.extend(chunk)
        except Exception as exc:
            raise BodyReadError(f"Request body stream failed while reading: {exc}") from exc
        data = bytes(buffer)
        return NormalizedBody(chunks=[_decode(data)], content=data)


@dataclass(frozen=True)
class FormPairs:
    pairs: tuple[tuple[str, str], ...]

    @classmethod
    def from_value(cls, value: Any) -> FormPairs:
        if isinstance(value, httpx.QueryParams):
            items = value.multi_items()
        elif isinstance(value, Mapping):
            items = []
            for key, item in value.items():
                if isinstance(item, (list, tuple)):
                    items.extend((key, v) for v in item)
                else:
                    items.append((key, item))
        else:
            items = list(value)
        return cls(tuple((str(k), str(v)) for k, v in items))

    async def normalize(self) -> NormalizedBody:
        serialized = ",".join(f"{key}={value}" for key, value in self.pairs)
        return NormalizedBody(
            chunks=[serialized],
            content=urlencode(self.pairs).encode("ascii"),
            content_type=FORM_CONTENT_TYPE,
        )


@dataclass(frozen=True)
class TypedBlob:
    blob: Blob

    async def normalize(self) -> NormalizedBody:
        text = self.blob.text()
        replacement = Blob(text.encode("utf-8"), self.blob.media_type)
        return NormalizedBody(
            chunks=[text],
            content=replacement.data,
            content_type=replacement.media_type or None,
        )


@dataclass(frozen=True)
class Text:
    text: str

    async def normalize(self) -> NormalizedBody:
        return NormalizedBody(chunks=[self.text], content=self.text)


@dataclass(frozen=True)
class Opaque:
    value: Any

    async def normalize(self) -> NormalizedBody:
        serialized = json.dumps(self.value, separators=(",", ":"), ensure_ascii=False, default=str)
        return NormalizedBody(
            chunks=[serialized],
            content=serialized,
            content_type=JSON_CONTENT_TYPE,
        )


RequestBody = Union[NoBody, RawBytes, ByteStream, FormPairs, TypedBlob, Text, Opaque]

_VARIANTS = (NoBody, RawBytes, ByteStream, FormPairs, TypedBlob, Text, Opaque)


def _is_pair_list(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(
        isinstance(item, tuple) and len(item) == 2 for item in value
    )


def coerce_body(value: Any) -> RequestBody:
    """Map a Python value onto its :data:`RequestBody` variant."""
    if isinstance(value, _VARIANTS):
        return value
    if value is None:
        return NoBody()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return RawBytes(bytes(value))
    if isinstance(value, str):
        return Text(value) if value else NoBody()
    if isinstance(value, Blob):
        return TypedBlob(value)
    if isinstance(value, (Mapping, httpx.QueryParams)) or _is_pair_list(value):
        return FormPairs.from_value(value)
    if isinstance(value, (Iterator, AsyncIterable)):
        return ByteStream(value)
    return Opaque(value)


async def normalize_body(value: Any) -> NormalizedBody:
    """Normalise *value* for hashing and sending.

    May consume a single-use stream; always send the returned
    :attr:`NormalizedBody.content` rather than *value*.

    Raises:
        BodyReadError: If a streaming body fails while being drained.
    """
    return await coerce_body(value).normalize()
