"""
=============================================================================
PATH RESOLUTION
=============================================================================

Turns a raw request target into a filesystem path that is guaranteed to sit
under the served root directory.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    ATTACK ATTEMPT:
    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../../etc/passwd HTTP/1.1                                  │
    │  GET /..%2f..%2fetc%2fpasswd HTTP/1.1     (encoded slashes)         │
    │                                                                      │
    │  Naive join:  /srv/www + /../../../etc/passwd                       │
    │               → /etc/passwd   (SECURITY BREACH!)                    │
    └─────────────────────────────────────────────────────────────────────┘

Our defense is a BOUNDED SEGMENT STACK. We never hand a raw ".." to the
operating system. Instead we walk the segments ourselves:

    target:   /a/b/../../../etc/passwd
    segments: a  b  ..  ..  ..  etc  passwd

    step   segment   stack
    ────   ───────   ──────────────
     1     a         [a]
     2     b         [a, b]
     3     ..        [a]
     4     ..        []
     5     ..        []            ← pop on empty stack is ignored
     6     etc       [etc]
     7     passwd    [etc, passwd]

    result: <root>/etc/passwd     ← still inside the root

Because ".." can only ever remove a segment that was pushed earlier, no
input can climb above the root. The guarantee is established before any
filesystem call happens.

=============================================================================
PERCENT-DECODING POLICY
=============================================================================

    %XY (two hex digits)  → the byte 0xXY
    %, %2, %zz            → kept literally (malformed escapes are not errors)
    +                     → kept literally (this is a path, not a form body)

Decoding happens BEFORE splitting, so "%2f" becomes a real "/" separator
and "%2e%2e" becomes a real ".." segment. Both then go through the stack
like any other segment.

=============================================================================
"""

import os
from pathlib import Path
from typing import Tuple, Union
from urllib.parse import unquote_to_bytes

from ..errors import PathError


def percent_decode(raw_target: str) -> str:
    """
    Percent-decode a request target byte-for-byte.

    The target comes off the wire as ISO-8859-1 text, so each character is
    exactly one byte. We go back to those bytes, decode the escapes, and
    convert the result to a filesystem string with os.fsdecode() so that
    arbitrary bytes (even invalid UTF-8) map onto real file names.

    Examples:
        >>> percent_decode("/hello%20world.txt")
        '/hello world.txt'
        >>> percent_decode("/a+b")
        '/a+b'
        >>> percent_decode("/100%")
        '/100%'

    Raises:
        PathError: If the target holds a character above U+00FF, which
                   cannot have come off the wire.
    """
    try:
        raw_bytes = raw_target.encode("iso-8859-1")
    except UnicodeEncodeError as e:
        raise PathError(f"Target is not ISO-8859-1 text: {raw_target!r}") from e
    # unquote_to_bytes leaves malformed escapes untouched and ignores '+'
    return os.fsdecode(unquote_to_bytes(raw_bytes))


def split_segments(decoded: str) -> Tuple[str, ...]:
    """
    Split a decoded target on "/", dropping empty and "." segments.

        >>> split_segments("/a//./b/")
        ('a', 'b')
    """
    return tuple(s for s in decoded.split("/") if s not in ("", "."))


def collapse_segments(segments: Tuple[str, ...]) -> Tuple[str, ...]:
    """
    Apply ".." segments with a bounded stack.

    A ".." pops the previous segment if there is one; on an empty stack it
    is ignored.

        >>> collapse_segments(("a", "..", "..", "b"))
        ('b',)
    """
    stack: list[str] = []
    for segment in segments:
        if segment == "..":
            if stack:
                stack.pop()
        else:
            stack.append(segment)
    return tuple(stack)


class PathResolver:
    """
    Resolves raw request targets to root-confined filesystem paths.

    =========================================================================
    FLOW
    =========================================================================

        "/css/../style.css"
              │
              ▼  percent_decode()
        "/css/../style.css"
              │
              ▼  split_segments()
        ("css", "..", "style.css")
              │
              ▼  collapse_segments()
        ("style.css",)
              │
              ▼  root / ...
        Path("/srv/www/style.css")

    =========================================================================
    USAGE
    =========================================================================

        resolver = PathResolver("/srv/www")
        resolver.resolve("/")                    # /srv/www/index.html
        resolver.resolve("/../../etc/passwd")    # /srv/www/etc/passwd

    =========================================================================
    """

    def __init__(
        self,
        root: Union[str, Path],
        index_file: str = "index.html",
        max_path_length: int = 1023,
    ):
        """
        Initialize the resolver.

        Args:
            root: Served root directory. Made absolute once, here, so every
                  resolved path shares the same prefix.
            index_file: File served for "/" and for targets that collapse
                        to nothing.
            max_path_length: Exclusive upper bound on the root-relative path
                             written as "./<segments>", in characters.
                             Longer targets raise PathError.
        """
        self.root = Path(os.path.abspath(root))
        self.index_file = index_file
        self.max_path_length = max_path_length

    def resolve(self, raw_target: str) -> Path:
        """
        Resolve a raw (still percent-encoded) target.

        Returns:
            A path of the form <root>/<segments> with no ".." left in it.

        Raises:
            PathError: If the path is too long or contains a NUL byte.
        """
        decoded = percent_decode(raw_target)

        # ─────────────────────────────────────────────────────────────────
        # ROOT REQUEST
        # ─────────────────────────────────────────────────────────────────
        if decoded in ("", "/"):
            return self.root / self.index_file

        segments = collapse_segments(split_segments(decoded))
        if not segments:
            segments = (self.index_file,)

        # ─────────────────────────────────────────────────────────────────
        # SANITY LIMITS
        # ─────────────────────────────────────────────────────────────────
        # NUL cannot be passed to open(); reject it here so the caller sees
        # a 400 rather than an exception from the filesystem layer.
        relative = "/".join(segments)
        if "\x00" in relative:
            raise PathError("Path contains a NUL byte")
        prefixed = "./" + relative
        if len(prefixed) >= self.max_path_length:
            raise PathError(f"Path too long: {len(prefixed)} characters")

        return self.root.joinpath(*segments)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# The resolver is pure: string in, Path out, no filesystem access.
#
# 1. percent_decode()     - %XY escapes, literal '+', literal bad escapes
# 2. split_segments()     - drop "" and "." segments
# 3. collapse_segments()  - bounded ".." stack, cannot climb above root
# 4. PathResolver.resolve - index default, NUL and length limits
#
# Symlinks inside the root are followed when the file is opened. Only
# lexical traversal is prevented here; keep untrusted symlinks out of the
# served directory.
# =============================================================================
