"""HTTP client for the comic site's JSON API."""

from __future__ import annotations

import logging

import requests

from .models import NotFoundError, ServiceError, XKCDInfo

log = logging.getLogger(__name__)


def _field(data: dict, key: str, kind: type):
    value = data.get(key)
    if value is None:
        return kind()
    if isinstance(value, bool) or not isinstance(value, kind):
        raise ValueError(f"field {key!r}: unexpected value {value!r}")
    return value


def _decode(response: requests.Response) -> dict:
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError("unexpected response body")
    return data


class XKCDClient:
    """Reads comic metadata from ``<url>/<id>/info.0.json``."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        if not url:
            raise ValueError("empty base url specified")
        if not url.startswith(("http://", "https://")):
            url = "https://" + url
        self._url = url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()

    def __enter__(self) -> XKCDClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying HTTP connections."""
        self._session.close()

    def get(self, comic_id: int) -> XKCDInfo:
        """Return the comic ``comic_id``; raise NotFoundError if it does not exist."""
        url = f"{self._url}/{comic_id}/info.0.json"
        with self._session.get(url, timeout=self._timeout) as response:
            if response.status_code == 200:
                data = _decode(response)
                return XKCDInfo(
                    id=_field(data, "num", int),
                    url=_field(data, "img", str),
                    title=_field(data, "title", str),
                    alt=_field(data, "alt", str),
                    description=_field(data, "transcript", str).strip(),
                )
            if response.status_code == 404:
                raise NotFoundError()
            raise ServiceError(f"xkcd {comic_id}: http {response.status_code}")

    def last_id(self) -> int:
        """Return the number of the newest comic."""
        url = f"{self._url}/info.0.json"
        with self._session.get(url, timeout=self._timeout) as response:
            if response.status_code != 200:
                raise ServiceError(f"xkcd latest: http {response.status_code}")
            num = _field(_decode(response), "num", int)
        if num <= 0:
            raise ServiceError(f"xkcd latest: invalid num {num}")
        return num