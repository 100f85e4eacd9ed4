"""
water.gov.ge outage scraper
===========================
Finds the service centers currently flagged with a water-supply problem and
extracts one outage record per center.

Sources:
  1. Map page — embeds every service center as a ``var markers = [...];``
     JSON array, with a ``problem`` flag on the affected ones.
  2. Problem page — one per flagged center; plain ``<div>`` blocks holding the
     outage start/end times, the number of disconnected customers and the
     affected street addresses.

The pages are rendered HTML, not an API. Any structural surprise fails the
whole fetch rather than returning a partial result.
"""

import json
import logging
import re
import threading
from datetime import datetime
from zoneinfo import ZoneInfo

import requests
from bs4 import BeautifulSoup

from outage_monitor.errors import CycleCancelled, FetchError, ParseError, ParseFailure
from outage_monitor.models import Location, MapMarker, OutageRecord
from outage_monitor.translit import normalize

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MAP_URL = "http://water.gov.ge/page/map"
PROBLEM_URL_TEMPLATE = "http://water.gov.ge/page/problem/{id}"

REQUEST_TIMEOUT = 10
SOURCE_ENCODING = "utf-8"
SOURCE_TIMEZONE = ZoneInfo("Asia/Tbilisi")
OUTAGE_DATETIME_FORMAT = "%d/%m/%Y %H:%M:%S"

# Map titles end with "service center"; the store keys on the bare city name.
TITLE_SUFFIX = " სერვის ცენტრი"

# Leading blocks of a problem page that are labels, not addresses.
HEADER_BLOCK_COUNT = 3

MAP_MARKERS_RE = re.compile(r"var markers = (\[.+\]);")
OUTAGE_START_RE = re.compile(r"წყალმომარაგების\s+შეწყვეტის\s+დრო:\s+([\d/\s:]+)")
OUTAGE_END_RE = re.compile(r"წყალმომარაგების\s+აღდგენის\s+დრო:\s+([\d/\s:]+)")
AFFECTED_CUSTOMERS_RE = re.compile(r"გამორთული\s+აბონენტების\s+რაოდენობა:\s+(\d+)")


def make_session() -> requests.Session:
    s = requests.Session()
    s.headers.update({
        "User-Agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/122.0.0.0 Safari/537.36"
        ),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "ka-GE,ka;q=0.9,en;q=0.8",
    })
    return s


# ---------------------------------------------------------------------------
# Map page
# ---------------------------------------------------------------------------

def parse_map_markers(html: str) -> list[MapMarker]:
    """Decode the ``markers`` array embedded in the map page."""
    m = MAP_MARKERS_RE.search(html)
    if not m:
        raise ParseError(ParseFailure.MAP_NOT_FOUND)
    try:
        raw_markers = json.loads(m.group(1))
    except json.JSONDecodeError as e:
        raise ParseError(ParseFailure.MAP_MALFORMED, str(e)) from e
    if not isinstance(raw_markers, list) or not all(isinstance(r, dict) for r in raw_markers):
        raise ParseError(ParseFailure.MAP_MALFORMED, "expected an array of objects")
    return [MapMarker.from_json(r) for r in raw_markers]


def location_from_marker(marker: MapMarker) -> Location:
    title = marker.title.strip()
    if title.endswith(TITLE_SUFFIX):
        title = title[:-len(TITLE_SUFFIX)]
    else:
        log.warning(f"No service center suffix in map title '{title}' (marker {marker.id})")
    return Location(
        id=marker.id.strip(),
        title_native=title,
        title_latin=normalize(title),
        lat=marker.lat.strip(),
        lng=marker.lng.strip(),
    )


# ---------------------------------------------------------------------------
# Problem page
# ---------------------------------------------------------------------------

def _is_text_block(tag) -> bool:
    # Bare <div> holding only text, as the problem page template renders them.
    return tag.name == "div" and not tag.attrs and tag.find(True) is None


def text_blocks(html: str) -> list[str]:
    """Return the text of every bare, tag-free ``<div>`` in document order."""
    soup = BeautifulSoup(html, "lxml")
    blocks = []
    for div in soup.find_all(_is_text_block):
        text = div.get_text()
        if text:
            blocks.append(text)
    return blocks


def _find_label(blocks: list[str], pattern: re.Pattern) -> str | None:
    for block in blocks:
        m = pattern.search(block)
        if m:
            return m.group(1).strip()
    return None


def parse_outage_datetime(raw: str) -> datetime:
    try:
        naive = datetime.strptime(raw, OUTAGE_DATETIME_FORMAT)
    except ValueError as e:
        raise ParseError(ParseFailure.BAD_TIMESTAMP, repr(raw)) from e
    return naive.replace(tzinfo=SOURCE_TIMEZONE)


def parse_problem(location: Location, html: str) -> OutageRecord:
    """
    Build an outage record from a problem page.

    Structure: a run of ``<div>`` blocks. The first three carry the
    "supply cut" time, the "supply restored" time and the disconnected
    customer count; every block after them is one street address.
    """
    blocks = text_blocks(html)

    raw_start = _find_label(blocks, OUTAGE_START_RE)
    if raw_start is None:
        raise ParseError(ParseFailure.NO_OUTAGE_START, f"location {location.id}")
    raw_end = _find_label(blocks, OUTAGE_END_RE)
    if raw_end is None:
        raise ParseError(ParseFailure.NO_OUTAGE_END, f"location {location.id}")
    start = parse_outage_datetime(raw_start)
    end = parse_outage_datetime(raw_end)

    raw_affected = _find_label(blocks, AFFECTED_CUSTOMERS_RE)
    if raw_affected is None:
        raise ParseError(ParseFailure.NO_AFFECTED_CUSTOMERS, f"location {location.id}")

    if len(blocks) <= HEADER_BLOCK_COUNT:
        raise ParseError(ParseFailure.NO_ADDRESSES, f"location {location.id}")
    addresses = [b.strip() for b in blocks[HEADER_BLOCK_COUNT:]]

    return OutageRecord(
        location=location,
        start=start,
        end=end,
        affected_customers=int(raw_affected),
        addresses_native=addresses,
    )


# ---------------------------------------------------------------------------
# Scraper
# ---------------------------------------------------------------------------

class Scraper:
    """Fetches the map and every flagged problem page over one HTTP session."""

    def __init__(
        self,
        session: requests.Session | None = None,
        map_url: str = MAP_URL,
        problem_url_template: str = PROBLEM_URL_TEMPLATE,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.session = session or make_session()
        self.map_url = map_url
        self.problem_url_template = problem_url_template
        self.timeout = timeout

    def fetch_html(self, url: str) -> str:
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FetchError(url, str(e)) from e
        if not resp.content:
            raise FetchError(url, "response body not found")
        # The site does not always declare a charset; requests would then
        # fall back to latin-1 and mangle the Georgian text.
        resp.encoding = SOURCE_ENCODING
        return resp.text

    def fetch_all(self, cancel: threading.Event | None = None) -> list[OutageRecord]:
        """
        Return one record per service center currently flagged with a problem,
        in map order. The first fetch or parse failure aborts the whole call.
        """
        _check_cancelled(cancel)
        markers = parse_map_markers(self.fetch_html(self.map_url))
        flagged = [m for m in markers if m.problem]
        log.info(f"Map lists {len(markers)} service centers, {len(flagged)} with problems")

        records = []
        for marker in flagged:
            _check_cancelled(cancel)
            html = self.fetch_html(self.problem_url_template.format(id=marker.id.strip()))
            location = location_from_marker(marker)
            record = parse_problem(location, html)
            log.debug(
                f"  {location.title_latin.strip()}: {record.start:%Y-%m-%d %H:%M} -> "
                f"{record.end:%Y-%m-%d %H:%M}, {record.affected_customers} customers, "
                f"{len(record.addresses_native)} addresses"
            )
            records.append(record)
        return records


def _check_cancelled(cancel: threading.Event | None):
    if cancel is not None and cancel.is_set():
        raise CycleCancelled("fetch cancelled")
