"""
Encoding between a job's data map and its HTTP dispatch settings.

The scheduler's HTTP job reads everything it needs from the job data map:
the reserved keys ``method``, ``url`` and ``body`` describe the request,
and every other key is an additional property (headers use a ``header.``
prefix). These functions are pure and never touch the network.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Optional, Tuple

METHOD_KEY = "method"
URL_KEY = "url"
BODY_KEY = "body"
RESERVED_KEYS = (METHOD_KEY, URL_KEY, BODY_KEY)

DEFAULT_METHOD = "GET"
HTTP_METHODS = ("GET", "POST", "PUT", "DELETE")
BODY_METHODS = ("POST", "PUT")

HEADER_PREFIX = "header."

Property = Tuple[str, str]


class ReservedKeyError(ValueError):
    """Raised when an additional property would overwrite a reserved key."""
    pass


@dataclass
class HttpDispatch:
    """Structured view of a job data map."""
    method: str = DEFAULT_METHOD
    url: str = ""
    body: str = ""
    additional_properties: List[Property] = field(default_factory=list)


def _to_str(value: Any) -> str:
    return "" if value is None else str(value)


def decode(data_map: Optional[Mapping[str, Any]]) -> HttpDispatch:
    """
    Split a job data map into HTTP settings and additional properties.

    Missing or empty ``method`` decodes as GET; missing ``url``/``body``
    decode as empty strings. Additional properties are sorted by key so
    the same map always renders the same way.

    Args:
        data_map: Wire-format job data map (values of any type)

    Returns:
        HttpDispatch with every value coerced to str
    """
    data_map = data_map or {}

    props = [
        (_to_str(key), _to_str(value))
        for key, value in data_map.items()
        if key not in RESERVED_KEYS
    ]
    props.sort(key=lambda p: p[0])

    return HttpDispatch(
        method=_to_str(data_map.get(METHOD_KEY)) or DEFAULT_METHOD,
        url=_to_str(data_map.get(URL_KEY)),
        body=_to_str(data_map.get(BODY_KEY)),
        additional_properties=props
    )


def reserved_collisions(additional_properties: Iterable[Property]) -> List[str]:
    """Return the trimmed property keys that clash with a reserved key."""
    return [
        key.strip() for key, _ in additional_properties
        if key.strip() in RESERVED_KEYS
    ]


def encode(
    method: str,
    url: str,
    body: str,
    additional_properties: Iterable[Property] = ()
) -> dict:
    """
    Build a job data map from HTTP settings and additional properties.

    The reserved keys are always present, even when empty. Properties with
    a blank key are dropped; other keys are trimmed, values are kept as-is,
    and a later duplicate key wins.

    Raises:
        ReservedKeyError: If a property key equals method, url or body
    """
    additional_properties = list(additional_properties)
    collisions = reserved_collisions(additional_properties)
    if collisions:
        raise ReservedKeyError(
            f"Additional properties cannot use reserved keys: {', '.join(collisions)}"
        )

    data_map = {
        METHOD_KEY: _to_str(method),
        URL_KEY: _to_str(url),
        BODY_KEY: _to_str(body),
    }

    for key, value in additional_properties:
        key = _to_str(key).strip()
        if key:
            data_map[key] = _to_str(value)

    return data_map


def header_properties(additional_properties: Iterable[Property]) -> List[Property]:
    """Properties the HTTP job sends as request headers, prefix stripped."""
    return [
        (key[len(HEADER_PREFIX):], value)
        for key, value in additional_properties
        if key.startswith(HEADER_PREFIX) and len(key) > len(HEADER_PREFIX)
    ]


class JobDataMap(Mapping):
    """
    Read-only wrapper around a wire-format job data map.

    Exposes the map's structured view through decode() and builds new maps
    through encode(); the reserved keys are never addressed directly.
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data = {_to_str(k): _to_str(v) for k, v in (data or {}).items()}

    @classmethod
    def encode(
        cls,
        method: str,
        url: str,
        body: str,
        additional_properties: Iterable[Property] = ()
    ) -> 'JobDataMap':
        return cls(encode(method, url, body, additional_properties))

    def decode(self) -> HttpDispatch:
        return decode(self._data)

    def to_dict(self) -> dict:
        return dict(self._data)

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self):
        return f"JobDataMap({self._data!r})"
