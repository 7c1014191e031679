"""Strip markup from source-provided free text."""

from __future__ import annotations

import re
import warnings

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from ..schemas.records import RawImportRecord

FREE_TEXT_FIELDS = ("title", "description", "address", "site_name", "material")

_TAG_HINT = re.compile(r"<[^>]+>|&[#a-zA-Z0-9]+;")
_INLINE_SPACE = re.compile(r"[ \t\f\v]+")
_BLANK_LINES = re.compile(r"\n{3,}")


def strip_markup(text: str) -> str:
    """Return ``text`` without HTML tags or entities, keeping paragraph breaks."""

    if not _TAG_HINT.search(text):
        return text
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(text, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    plain = soup.get_text()
    plain = _INLINE_SPACE.sub(" ", plain)
    plain = "\n".join(line.strip() for line in plain.splitlines())
    return _BLANK_LINES.sub("\n\n", plain).strip()


def sanitize_record(record: RawImportRecord) -> RawImportRecord:
    """Return a copy of ``record`` with markup removed from free-text fields.

    The title keeps its original value when stripping would leave it empty.
    """

    update: dict[str, object] = {}
    for name in FREE_TEXT_FIELDS:
        value = getattr(record, name)
        if not value:
            continue
        cleaned = strip_markup(value)
        if cleaned == value:
            continue
        if name == "title" and not cleaned:
            continue
        update[name] = cleaned or None
    artists = [strip_markup(artist) for artist in record.artists]
    if artists != record.artists:
        update["artists"] = [artist for artist in artists if artist]
    return record.model_copy(update=update) if update else record
