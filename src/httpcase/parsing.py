from __future__ import annotations

from urllib.parse import SplitResult, urlsplit

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from .errors import FatalError


def parse_html(body: str | bytes) -> BeautifulSoup:
    try:
        return BeautifulSoup(body, features="html5lib")
    except (ParserRejectedMarkup, TypeError, ValueError) as exc:
        raise FatalError(f"couldn't parse HTML (error: {exc})\n body:\n\t{body!r}") from exc


def parse_url(href: str) -> SplitResult:
    try:
        url = urlsplit(href)
        # port is parsed lazily; touch it so a bad port fails here
        _ = url.port
    except ValueError as exc:
        raise FatalError(f"couldn't parse URL (error: {exc}): {href}") from exc
    return url
