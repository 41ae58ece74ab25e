"""Async client for the Moondream vision API."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

import httpx

DEFAULT_ENDPOINT = "https://api.moondream.ai/v1"
DEFAULT_TIMEOUT = 5.0
AUTH_HEADER = "X-Moondream-Auth"


class MoonDreamError(Exception):
    """Raised when a request fails or its response cannot be understood."""


class CaptionLength(str, Enum):
    """Length of the caption produced by the ``/caption`` endpoint."""

    SHORT = "short"
    NORMAL = "normal"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise MoonDreamError(f"{what}: expected an object, got {type(data).__name__}")
    return data


def _required(data: Mapping[str, Any], key: str, what: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise MoonDreamError(f"{what}: missing field `{key}`") from None


def _number(value: Any, key: str, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MoonDreamError(f"{what}: field `{key}` must be a number")
    return float(value)


def _string(value: Any, key: str, what: str) -> str:
    if not isinstance(value, str):
        raise MoonDreamError(f"{what}: field `{key}` must be a string")
    return value


def _optional_string(data: Mapping[str, Any], key: str, what: str) -> str | None:
    value = data.get(key)
    return None if value is None else _string(value, key, what)


def _list(value: Any, key: str, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise MoonDreamError(f"{what}: field `{key}` must be a list")
    return value


@dataclass(frozen=True, order=True)
class Point:
    """Centre of a detected object, normalised to the image size (0-1)."""

    x: float
    y: float

    @classmethod
    def from_dict(cls, data: Any) -> Point:
        data = _mapping(data, "Point")
        return cls(
            x=_number(_required(data, "x", "Point"), "x", "Point"),
            y=_number(_required(data, "y", "Point"), "y", "Point"),
        )


@dataclass(frozen=True, order=True)
class DetectionObject:
    """Bounding box of a detected object, normalised to the image size (0-1)."""

    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @classmethod
    def from_dict(cls, data: Any) -> DetectionObject:
        what = "DetectionObject"
        data = _mapping(data, what)
        return cls(
            **{
                key: _number(_required(data, key, what), key, what)
                for key in ("x_min", "y_min", "x_max", "y_max")
            }
        )


@dataclass(frozen=True)
class PointsResponse:
    """Response of the ``/point`` endpoint."""

    request_id: str | None
    points: list[Point]
    count: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> PointsResponse:
        what = "PointsResponse"
        data = _mapping(data, what)
        points = _list(_required(data, "points", what), "points", what)
        count = data.get("count")
        if count is not None and (
            isinstance(count, bool) or not isinstance(count, int) or count < 0
        ):
            raise MoonDreamError(f"{what}: field `count` must be a non-negative integer")
        return cls(
            request_id=_optional_string(data, "request_id", what),
            points=[Point.from_dict(item) for item in points],
            count=count,
        )


@dataclass(frozen=True)
class DetectResponse:
    """Response of the ``/detect`` endpoint."""

    request_id: str | None
    objects: list[DetectionObject]

    @classmethod
    def from_dict(cls, data: Any) -> DetectResponse:
        what = "DetectResponse"
        data = _mapping(data, what)
        objects = _list(_required(data, "objects", what), "objects", what)
        return cls(
            request_id=_optional_string(data, "request_id", what),
            objects=[DetectionObject.from_dict(item) for item in objects],
        )


@dataclass(frozen=True)
class QueryResponse:
    """Response of the ``/query`` endpoint (visual question answering)."""

    request_id: str | None
    answer: str

    @classmethod
    def from_dict(cls, data: Any) -> QueryResponse:
        what = "QueryResponse"
        data = _mapping(data, what)
        return cls(
            request_id=_optional_string(data, "request_id", what),
            answer=_string(_required(data, "answer", what), "answer", what),
        )


@dataclass(frozen=True)
class CaptionResponse:
    """Response of the ``/caption`` endpoint."""

    request_id: str | None
    caption: str

    @classmethod
    def from_dict(cls, data: Any) -> CaptionResponse:
        what = "CaptionResponse"
        data = _mapping(data, what)
        return cls(
            request_id=_optional_string(data, "request_id", what),
            caption=_string(_required(data, "caption", what), "caption", what),
        )


@dataclass(frozen=True)
class MoonDream:
    """Client for the Moondream ``/point``, ``/detect``, ``/caption`` and ``/query`` endpoints.

    Use :meth:`remote` with an API token for the hosted service or :meth:`local`
    for an unauthenticated deployment. Settings can be changed with
    :func:`dataclasses.replace`. ``timeout`` is in seconds.
    """

    token: str
    endpoint: str = DEFAULT_ENDPOINT
    headers: tuple[tuple[str, str], ...] = ()
    timeout: float = DEFAULT_TIMEOUT
    client: httpx.AsyncClient | None = field(default=None, compare=False, repr=False)

    @classmethod
    def local(cls, endpoint: str) -> MoonDream:
        """Client for a local service that needs no authentication."""
        return cls(token="", endpoint=endpoint)

    @classmethod
    def remote(cls, token: str) -> MoonDream:
        """Client for the hosted service, authenticated with ``token``."""
        return cls(token=token)

    async def points(self, image: str, object: str) -> PointsResponse:
        """Locate the centre of every ``object`` in ``image``."""
        data = await self._post("point", {"image_url": image, "object": object})
        return PointsResponse.from_dict(data)

    async def detect(self, image: str, object: str) -> DetectResponse:
        """Find bounding boxes of every ``object`` in ``image``."""
        data = await self._post("detect", {"image_url": image, "object": object})
        return DetectResponse.from_dict(data)

    async def caption(
        self, image: str, length: CaptionLength | str | None = None
    ) -> CaptionResponse:
        """Describe ``image``; the caption is of normal length unless told otherwise."""
        length = CaptionLength.NORMAL if length is None else CaptionLength(length)
        data = await self._post("caption", {"image_url": image, "length": length.value})
        return CaptionResponse.from_dict(data)

    async def query(self, image: str, question: str) -> QueryResponse:
        """Answer ``question`` about ``image``."""
        data = await self._post("query", {"image_url": image, "question": question})
        return QueryResponse.from_dict(data)

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self.endpoint}/{path}"
        headers = {**dict(self.headers), AUTH_HEADER: self.token}
        try:
            if self.client is None:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        url, json=payload, headers=headers, timeout=self.timeout
                    )
            else:
                response = await self.client.post(
                    url, json=payload, headers=headers, timeout=self.timeout
                )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as exc:
            raise MoonDreamError(f"MoonDream Error: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise MoonDreamError(f"MoonDream Error: invalid JSON response: {exc}") from exc