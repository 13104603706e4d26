"""Hidden form-field extraction for the federated login.

After the SAML assertion is accepted, the tenant answers with an
auto-submitting HTML form whose hidden inputs (``code``, ``state``,
``iss``) must be replayed to the sign-in endpoint. Parsing goes through
:class:`html.parser.HTMLParser`, which tolerates sloppy markup and unescapes
entity references in values.
"""

from __future__ import annotations

from html.parser import HTMLParser
from typing import Optional


class _HiddenInputParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.fields: dict[str, str] = {}

    def handle_starttag(self, tag: str, attrs: list[tuple[str, Optional[str]]]) -> None:
        if tag != "input":
            return
        attr_dict = {k.lower(): v for k, v in attrs}
        if (attr_dict.get("type") or "").lower() != "hidden":
            return
        name = attr_dict.get("name")
        if name and name not in self.fields:
            self.fields[name] = attr_dict.get("value") or ""

    handle_startendtag = handle_starttag


def extract_hidden_fields(html: str) -> dict[str, str]:
    """Return every hidden input's ``name -> value``; the first occurrence wins."""
    parser = _HiddenInputParser()
    parser.feed(html or "")
    parser.close()
    return parser.fields


def extract_hidden_field(html: str, name: str) -> Optional[str]:
    """Return the value of hidden input *name*, or ``None`` if absent or empty."""
    return extract_hidden_fields(html).get(name) or None
