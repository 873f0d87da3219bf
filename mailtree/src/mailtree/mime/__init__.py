"""MIME reconstruction primitives.

What:
  Re-export the body tree model, the recursive tree builder, the transfer
  decoder, and the header helpers.

Why:
  Callers parsing stored ``.eml`` files or custom fetch results should not need
  to know which submodule implements which step.

How:
  Imports the public names from the submodules and lists them in ``__all__``.

Interfaces:
  ``BodyPart``, ``PartOutcome``, ``build_tree``, ``split_parts``,
  ``decode_body``, ``decode_encoded_words``, ``parse_headers``.
"""

from .headers import decode_encoded_words, parse_headers
from .multipart import PartOutcome, build_tree, split_parts
from .parts import BodyPart
from .transform import decode_body

__all__ = [
    "BodyPart",
    "PartOutcome",
    "build_tree",
    "split_parts",
    "decode_body",
    "decode_encoded_words",
    "parse_headers",
]
