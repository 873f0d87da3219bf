"""Translate a text query and arrival cut-off into IMAP search criteria.

What:
  Build the raw criteria string sent with ``UID SEARCH``.

Why:
  The query term is free-form IMAP search syntax supplied by operators (for
  example ``UNSEEN`` or ``FROM "billing@example.com"``) and must reach the
  server untouched, while the date filter has a strict ``DD-Mon-YYYY`` format
  that must not depend on the process locale.

How:
  Joins the non-empty pieces with spaces; the date is rendered with
  ``imapclient``'s locale-independent criteria formatter. Both pieces absent
  means ``ALL``.

Interfaces:
  :func:`build_search`, :func:`format_since`.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Union

from imapclient.datetime_util import format_criteria_date


def format_since(since: Union[date, datetime]) -> str:
    """Render ``since`` as ``DD-Mon-YYYY`` (``02-Jan-2006``)."""

    return format_criteria_date(since).decode("ascii")


def build_search(query: str = "", since: Optional[Union[date, datetime]] = None) -> str:
    """Return the criteria string for ``query`` combined with ``SINCE since``.

    An empty ``query`` omits the text term, a ``None`` ``since`` omits the date
    filter. When both are present the server ANDs them.
    """

    criteria: List[str] = []
    query = query.strip()
    if query:
        criteria.append(query)
    if since is not None:
        criteria.append(f"SINCE {format_since(since)}")
    return " ".join(criteria) if criteria else "ALL"
