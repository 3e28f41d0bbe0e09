from __future__ import annotations

import re
from typing import List

from .errors import ProxyParseError
from .models import Proxy


ROW_PATTERN = re.compile(r"<tr>.+?</tr>", re.DOTALL)
CELL_PATTERN = re.compile(r"<td>(?P<value>.+?)</td>", re.DOTALL)
PORT_PATTERN = re.compile(r"\s*[+-]?\d+\s*", re.ASCII)

ADDRESS_COLUMN = 0
PORT_COLUMN = 1
REGION_COLUMN = 2
# column 3 (anonymity) is not kept
SCHEME_COLUMN = 4


def extract_proxies(html: str) -> List[Proxy]:
    """Parse every table row of a listing page into a Proxy, in document order.

    Missing text cells come back as empty strings. The port cell is the one
    exception: anything that is not an integer raises ProxyParseError, which
    aborts the rest of the page.
    """
    proxies: List[Proxy] = []
    for row in ROW_PATTERN.finditer(html):
        block = row.group(0)
        proxies.append(
            Proxy(
                address=cell_value(block, ADDRESS_COLUMN),
                port=_parse_port(cell_value(block, PORT_COLUMN)),
                region=cell_value(block, REGION_COLUMN),
                scheme=cell_value(block, SCHEME_COLUMN),
            )
        )
    return proxies


def cell_value(row_html: str, index: int) -> str:
    """Return the text of the index-th <td> cell of a row, or "" if absent."""
    for position, match in enumerate(CELL_PATTERN.finditer(row_html)):
        if position == index:
            return match.group("value")
    return ""


def _parse_port(raw: str) -> int:
    # plain ASCII digits only; int() alone would take "8_080" or non-ASCII digits
    if not PORT_PATTERN.fullmatch(raw):
        raise ProxyParseError(raw)
    return int(raw)
