"""Request path normalization.

Turns a raw request path into a canonical :class:`RoutePath`.  Each
segment is percent-decoded on its own (after splitting) so an encoded
``%2F`` can never forge a directory boundary.
"""

from dataclasses import dataclass
from urllib.parse import unquote

from perch.errors import InvalidPath

# Characters that must never appear inside a decoded segment
_FORBIDDEN_CHARS = ("/", "\\", "\x00")


@dataclass(frozen=True, slots=True)
class RoutePath:
    """A canonical, percent-decoded request path.

    The root path is the empty tuple.  No segment is empty, ``.`` or ``..``.
    """

    segments: tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return not self.segments

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return "/" + "/".join(self.segments)


def normalize(raw_path: str) -> RoutePath:
    """Normalize *raw_path* into a :class:`RoutePath`.

    - query strings and fragments are dropped
    - duplicate and trailing slashes are insignificant
    - ``.`` is removed and ``..`` pops the previous segment

    Raises:
        InvalidPath: If a segment is not valid UTF-8 once decoded, decodes
            to a separator or NUL, or a ``..`` climbs above the root.

    Examples::

        normalize("/a/../b")   -> RoutePath(("b",))
        normalize("/a//b/")    -> RoutePath(("a", "b"))
        normalize("/caf%C3%A9") -> RoutePath(("café",))
    """
    path = raw_path.split("?", 1)[0].split("#", 1)[0]

    stack: list[str] = []
    for part in path.split("/"):
        if not part:
            continue
        try:
            segment = unquote(part, encoding="utf-8", errors="strict")
        except UnicodeDecodeError:
            raise InvalidPath(raw_path, "segment is not valid UTF-8") from None

        if any(ch in segment for ch in _FORBIDDEN_CHARS):
            raise InvalidPath(raw_path, "segment contains a separator or NUL")

        if segment == ".":
            continue
        if segment == "..":
            if not stack:
                raise InvalidPath(raw_path, "path escapes the page root")
            stack.pop()
            continue
        stack.append(segment)

    return RoutePath(tuple(stack))
