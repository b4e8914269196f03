"""
=============================================================================
HTTP HEADERS
=============================================================================

An ordered, case-insensitive mapping of header name → value.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HEADER MAP SEMANTICS                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   LOOKUP is case-insensitive:                                        │
    │       headers["content-length"] is headers["Content-Length"]         │
    │                                                                      │
    │   ORDER is insertion order, used when serializing:                   │
    │       Content-Type: text/plain                                       │
    │       Content-Length: 5                                              │
    │       X-Server: httpwire                                             │
    │                                                                      │
    │   DUPLICATES are last-write-wins. The header keeps the position      │
    │   of its first insertion and takes the spelling of the last write.  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Values are stored trimmed of surrounding whitespace. Names must be
non-empty and must not contain CR or LF, otherwise MalformedHeader.

=============================================================================
"""

from typing import Dict, Iterator, Mapping, Optional, Tuple, Union

from .errors import MalformedHeader


HeaderSource = Union[Mapping[str, str], "Headers", None]


def _check_name(name: str) -> str:
    if not name or "\r" in name or "\n" in name or ":" in name:
        raise MalformedHeader(f"Invalid header name: {name!r}")
    return name


def _check_value(name: str, value) -> str:
    value = str(value).strip()
    if "\r" in value or "\n" in value:
        raise MalformedHeader(f"Invalid value for header {name}")
    return value


class Headers:
    """
    Ordered, case-insensitive header mapping.

    Internally keeps one dict keyed by the lowercased name, holding the
    (original name, value) pair. Python dicts preserve insertion order and
    keep a key's position when its value is replaced, which is exactly the
    last-write-wins rule we want.

    Usage:
        headers = Headers({"Content-Type": "text/plain"})
        headers["content-length"] = "5"
        headers.get("CONTENT-TYPE")          # 'text/plain'
        list(headers.items())                # [('Content-Type', ...), ...]
    """

    def __init__(self, initial: HeaderSource = None):
        self._items: Dict[str, Tuple[str, str]] = {}
        if initial:
            self.update(initial)

    # =========================================================================
    # MAPPING PROTOCOL
    # =========================================================================

    def __setitem__(self, name: str, value) -> None:
        name = _check_name(name)
        self._items[name.lower()] = (name, _check_value(name, value))

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __delitem__(self, name: str) -> None:
        del self._items[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._items.values())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self.lower_items() == other.lower_items()
        if isinstance(other, Mapping):
            return self == Headers(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value by case-insensitive name."""
        item = self._items.get(name.lower())
        return item[1] if item else default

    def setdefault(self, name: str, value) -> str:
        """Set a header only if it is not already present."""
        if name not in self:
            self[name] = value
        return self[name]

    def pop(self, name: str, default: Optional[str] = None) -> Optional[str]:
        item = self._items.pop(name.lower(), None)
        return item[1] if item else default

    def update(self, other: HeaderSource) -> None:
        """Merge headers from another mapping, last-write-wins."""
        if other is None:
            return
        for name, value in other.items():
            self[name] = value

    def items(self) -> Iterator[Tuple[str, str]]:
        """Yield (name, value) pairs in insertion order."""
        return iter(list(self._items.values()))

    def lower_items(self) -> list[Tuple[str, str]]:
        """(lowercased name, value) pairs, handy for comparisons."""
        return [(key, value) for key, (_, value) in self._items.items()]

    def copy(self) -> "Headers":
        return Headers(self)
