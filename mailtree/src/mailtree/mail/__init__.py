"""Message level reconstruction: envelope extraction and assembly.

Interfaces:
  ``Address``, ``Envelope``, ``extract_envelope``, ``Message``,
  ``AssembleResult``, ``assemble``, ``parse_message``.
"""

from .envelope import Address, Envelope, extract_envelope
from .message import AssembleResult, Message, assemble, parse_message

__all__ = [
    "Address",
    "Envelope",
    "extract_envelope",
    "Message",
    "AssembleResult",
    "assemble",
    "parse_message",
]
