"""Immutable body part tree and its read-only queries.

What:
  Define :class:`BodyPart`, the node type of a reconstructed MIME tree, plus
  pre-order searches by media type, exact filename, and filename pattern.

Why:
  Consumers rarely want the whole tree; they want "every image", "the PDF
  called invoice.pdf", or "anything ending in .ics". Keeping the queries on the
  node type lets them run on any subtree, including a :class:`Message` root.

How:
  Nodes are frozen dataclasses built bottom-up by the multipart builder. Every
  query is a walk over :meth:`BodyPart.walk`, which yields the node itself
  before its children in document order.

Interfaces:
  :class:`BodyPart`, :data:`MULTIPART_PREFIX`.

Invariants & Safety:
  - A container (``multipart/*``) never carries ``body``; a leaf produced by
    the builder always does, even when it is empty.
  - Nodes hold no back references, so trees can be shared across threads
    without locking.
"""
from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union


MULTIPART_PREFIX = "multipart/"


def _segment_matches(pattern: str, value: str) -> bool:
    return pattern == "*" or pattern == value


@dataclass(frozen=True, kw_only=True)
class BodyPart:
    """Single node of a MIME body tree.

    Attributes:
      mime_type: Lowercased ``type/subtype``.
      filename: Decoded ``Content-Disposition`` filename, if advertised.
      inline: ``True`` when the disposition is ``inline``.
      children: Nested parts, only populated for ``multipart/*`` nodes.
      body: Decoded payload of a leaf node, ``None`` for containers.
    """

    mime_type: str
    filename: Optional[str] = None
    inline: bool = False
    children: Tuple["BodyPart", ...] = ()
    body: Optional[bytes] = None

    @property
    def is_multipart(self) -> bool:
        return self.mime_type.startswith(MULTIPART_PREFIX)

    def walk(self) -> Iterator["BodyPart"]:
        """Yield this node and all descendants in pre-order."""

        yield self
        for child in self.children:
            yield from child.walk()

    def find_by_mime_type(self, pattern: str) -> List["BodyPart"]:
        """Return every node whose media type matches ``pattern``.

        What:
          Collects matching nodes in document order, root first.

        Why:
          Callers look for content families (``image/*``) as often as for a
          concrete type, and occasionally need every node (``*``).

        How:
          The bare ``*`` pattern short-circuits and matches every node. Other
          patterns must contain exactly one ``/``; each side matches its
          segment literally or, when it is ``*``, matches anything within that
          segment only. Patterns without a separator match nothing.

        Args:
          pattern: ``type/subtype`` with optional per-segment wildcards, or
            ``*``.

        Returns:
          Matching nodes in pre-order.
        """

        if pattern == "*":
            return list(self.walk())
        want_major, sep, want_minor = pattern.lower().partition("/")
        if not sep:
            return []
        matches: List[BodyPart] = []
        for part in self.walk():
            major, part_sep, minor = part.mime_type.partition("/")
            if not part_sep:
                continue
            if _segment_matches(want_major, major) and _segment_matches(want_minor, minor):
                matches.append(part)
        return matches

    def find_by_filename(self, name: str) -> List["BodyPart"]:
        """Return nodes whose advertised filename equals ``name`` exactly."""

        return [part for part in self.walk() if part.filename is not None and part.filename == name]

    def find_by_filename_pattern(self, pattern: Union[str, re.Pattern[str]]) -> List["BodyPart"]:
        """Return nodes whose filename matches the regular expression ``pattern``.

        Nodes without a filename are tested as the empty string, so a pattern
        such as ``^$`` selects them.
        """

        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        return [part for part in self.walk() if compiled.search(part.filename or "")]

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the subtree using the JSON field names of the fetch output.

        Empty fields are omitted and ``body`` is base64 encoded.
        """

        payload: Dict[str, Any] = {}
        if self.mime_type:
            payload["mimeType"] = self.mime_type
        if self.filename:
            payload["filename"] = self.filename
        if self.inline:
            payload["inline"] = True
        if self.children:
            payload["children"] = [child.to_dict() for child in self.children]
        if self.body:
            payload["body"] = base64.b64encode(self.body).decode("ascii")
        return payload
