"""
Retrieval of the raw payloads: the Parlinfo person API and the Wikipedia
polling page.

This is the thin I/O boundary in front of the transformation code. It does a
robots.txt check, one GET per payload, and turns the response into plain
Python structures (a list of person dicts, a list of {header: cell} rows).
There is deliberately no retry, backoff, or pagination. Anything that makes
the payload unusable as a whole is fatal here, before any record is processed.
"""

import json
import re
from typing import Any, Dict, List
from urllib.parse import urljoin, urlparse
from urllib.robotparser import RobotFileParser

from bs4 import BeautifulSoup
from loguru import logger
import requests

from canadian_politics.config import USER_AGENT

JSON_ARRAY_PATTERN = re.compile(r"\[\{.+\}\]", re.DOTALL)


class SourceError(Exception):
    """Base exception for retrieval errors."""
    pass


class FetchError(SourceError):
    """Raised when a payload cannot be downloaded (or robots.txt forbids it)."""
    pass


class PayloadError(SourceError):
    """Raised when a downloaded payload does not contain the expected structure."""
    pass


def is_path_allowed(url: str, user_agent: str = USER_AGENT) -> bool:
    """
    Check robots.txt for *url*.

    An unreachable or unreadable robots.txt is logged and treated as allowing
    access.
    """
    parsed = urlparse(url)
    robots_url = urljoin(f"{parsed.scheme}://{parsed.netloc}", "/robots.txt")
    parser = RobotFileParser()
    try:
        response = requests.get(robots_url, headers={"User-Agent": user_agent}, timeout=30)
        if response.status_code >= 400:
            logger.info(f"No robots.txt at {robots_url} (HTTP {response.status_code})")
            return True
        parser.parse(response.text.splitlines())
    except requests.RequestException as e:
        logger.warning(f"Could not check robots.txt at {robots_url}: {e}")
        return True

    allowed = parser.can_fetch(user_agent, url)
    if allowed:
        logger.info(f"robots.txt allows {url}")
    else:
        logger.warning(f"robots.txt disallows {url}")
    return allowed


def fetch_text(url: str, timeout: int = 60) -> str:
    """
    Fetch a URL and return its body as text.

    Raises:
        FetchError: on transport errors or non-2xx status codes
    """
    try:
        response = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch {url}: {e}") from e
    response.encoding = response.encoding or "utf-8"
    logger.info(f"Fetched {len(response.text):,} characters from {url}")
    return response.text


def unwrap_jsonp(text: str) -> List[Dict[str, Any]]:
    """
    Pull the JSON array out of a jQuery callback envelope.

    The Parlinfo API answers with ``jQuery123_456([{...}, ...]);``; only the
    ``[{...}]`` part is JSON.

    Raises:
        PayloadError: if no JSON array is present or it does not decode
    """
    match = JSON_ARRAY_PATTERN.search(text or "")
    if not match:
        raise PayloadError("No JSON array found in response")
    try:
        records = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise PayloadError(f"JSON array in response does not decode: {e}") from e
    if not isinstance(records, list):
        raise PayloadError(f"Expected a JSON array, got {type(records).__name__}")
    logger.info(f"Decoded {len(records)} records from JSONP payload")
    return records


def _cell_text(cell: Any) -> str:
    # Pieces are joined without separators, so "Last date<br>of polling<sup>[a]</sup>"
    # reads "Last dateof polling[a]".
    return cell.get_text(strip=True)


def _unique_headers(headers: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    unique = []
    for header in headers:
        if header in seen:
            seen[header] += 1
            unique.append(f"{header}.{seen[header]}")
        else:
            seen[header] = 0
            unique.append(header)
    return unique


def _span(cell: Any, attribute: str) -> int:
    try:
        return max(1, int(cell.get(attribute, 1)))
    except (TypeError, ValueError):
        return 1


def _take_pending(pending: Dict[int, List[Any]], column: int) -> str:
    text, rows_left = pending[column]
    if rows_left <= 1:
        del pending[column]
    else:
        pending[column] = [text, rows_left - 1]
    return text


def _expand_row(row: Any, pending: Dict[int, List[Any]]) -> List[str]:
    """
    Lay out one <tr> as a list of cell texts, one per column.

    *pending* maps a column index to [text, rows left] for cells spanning down
    from earlier rows. It is consumed and refilled in place.
    """
    cells: List[str] = []
    for cell in row.find_all(["th", "td"], recursive=False):
        while len(cells) in pending:
            cells.append(_take_pending(pending, len(cells)))
        text = _cell_text(cell)
        rowspan = _span(cell, "rowspan")
        for _ in range(_span(cell, "colspan")):
            if rowspan > 1:
                pending[len(cells)] = [text, rowspan - 1]
            cells.append(text)

    # spanned cells after the row's last own cell
    for column in sorted(c for c in pending if c >= len(cells)):
        cells.extend([""] * (column - len(cells)))
        cells.append(_take_pending(pending, column))
    return cells


def extract_table_rows(html: str, table_index: int = 1) -> List[Dict[str, str]]:
    """
    Extract the n-th HTML table as a list of {header text: cell text} rows.

    The first row is the header. colspan cells are repeated across the columns
    they cover, rowspan cells are carried down into the rows they cover, and
    short rows are padded with empty strings, so every row has every header.
    Repeated header names get ".1", ".2" suffixes.

    Args:
        html: Page HTML
        table_index: 0-based index among the page's <table> elements

    Raises:
        PayloadError: if the table does not exist or has no header row
    """
    soup = BeautifulSoup(html, "html.parser")
    tables = soup.find_all("table")
    if table_index >= len(tables):
        raise PayloadError(f"Table {table_index} requested but page has {len(tables)} tables")

    table = tables[table_index]
    rows = [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]
    if not rows:
        raise PayloadError(f"Table {table_index} has no rows")

    pending: Dict[int, List[Any]] = {}
    headers = _unique_headers(_expand_row(rows[0], pending))
    records: List[Dict[str, str]] = []
    for tr in rows[1:]:
        cells = _expand_row(tr, pending)
        if not cells:
            continue
        cells = (cells + [""] * len(headers))[: len(headers)]
        records.append(dict(zip(headers, cells)))

    logger.info(f"Extracted {len(records)} rows x {len(headers)} columns from table {table_index}")
    return records


def _check_robots(url: str, check_robots: bool) -> None:
    if check_robots and not is_path_allowed(url):
        raise FetchError(f"robots.txt disallows {url}")


def fetch_person_records(url: str, check_robots: bool = True) -> List[Dict[str, Any]]:
    """Download and decode the Parlinfo person list."""
    _check_robots(url, check_robots)
    return unwrap_jsonp(fetch_text(url))


def fetch_poll_rows(url: str, table_index: int = 1, check_robots: bool = True) -> List[Dict[str, str]]:
    """Download the polling page and extract the poll table rows."""
    _check_robots(url, check_robots)
    return extract_table_rows(fetch_text(url), table_index=table_index)
