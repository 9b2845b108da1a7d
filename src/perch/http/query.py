"""Immutable query string parameters."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


class QueryParams(Mapping[str, str]):
    """Immutable query string parameters.

    ``__getitem__`` returns the first value for a key; ``get_list``
    returns them all.  Blank values are kept (``?_partial`` is ``""``).
    """

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        object.__setattr__(self, "_raw", query_string)
        parsed = parse_qs(query_string.decode("latin-1"), keep_blank_values=True)
        object.__setattr__(self, "_data", parsed)

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, []))

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Interpret a flag (``true``/``1``/``yes``/``on``; bare key counts as set)."""
        value = self.get(key)
        if value is None:
            return default
        return value == "" or value.lower() in _TRUE_VALUES

    def to_dict(self) -> dict[str, str]:
        """First value per key, as a plain dict (for templates)."""
        return {key: values[0] for key, values in self._data.items() if values}

    @property
    def raw(self) -> bytes:
        return self._raw
