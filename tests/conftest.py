"""Shared fixtures: canned pages, a fake HTTP session and an in-memory table."""

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest
import requests

from outage_monitor.models import Location, OutageRecord
from outage_monitor.scraper import SOURCE_TIMEZONE

FIXTURES = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


# =============================================================================
# HTTP
# =============================================================================

class FakeResponse:
    def __init__(self, body: str = "", status_code: int = 200):
        self.content = body.encode("utf-8")
        self.status_code = status_code
        self.encoding = None

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "latin-1")

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Serves canned bodies by URL; an Exception value is raised instead."""

    def __init__(self, pages: dict):
        self.pages = pages
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append((url, timeout))
        page = self.pages.get(url)
        if page is None:
            return FakeResponse("", status_code=404)
        if isinstance(page, Exception):
            raise page
        if isinstance(page, FakeResponse):
            return page
        return FakeResponse(page)


# =============================================================================
# DynamoDB
# =============================================================================

def _matches(condition, item) -> bool:
    expr = condition.get_expression()
    op, values = expr["operator"], expr["values"]
    if op == "AND":
        return _matches(values[0], item) and _matches(values[1], item)
    key, value = values
    actual = item.get(key.name)
    if op == "=":
        return actual == value
    if op == ">":
        return actual is not None and actual > value
    raise NotImplementedError(op)


class _FakeBatch:
    def __init__(self, table):
        self.table = table

    def put_item(self, Item):
        stored = {}
        for k, v in Item.items():
            if isinstance(v, bool):
                stored[k] = v
            elif isinstance(v, int):
                stored[k] = Decimal(v)
            elif isinstance(v, set):
                stored[k] = set(v)
            else:
                stored[k] = v
        pkeys = self.table.key_names
        self.table.items[tuple(stored[k] for k in pkeys)] = stored


class FakeTable:
    """Just enough of a boto3 ``Table`` for the outage store."""

    key_names = ("locationTitle", "outageStart")

    def __init__(self, name: str = "water.gov.ge", page_size: int = 100):
        self.name = name
        self.page_size = page_size
        self.items = {}
        self.batch_writer_calls = []
        self.queries = []

    @contextmanager
    def batch_writer(self, overwrite_by_pkeys=None):
        self.batch_writer_calls.append(overwrite_by_pkeys)
        yield _FakeBatch(self)

    def query(self, KeyConditionExpression, ProjectionExpression=None, ExclusiveStartKey=None):
        self.queries.append(ExclusiveStartKey)
        matched = sorted(
            (i for i in self.items.values() if _matches(KeyConditionExpression, i)),
            key=lambda i: i["outageStart"],
        )
        if ExclusiveStartKey is not None:
            matched = [i for i in matched if i["outageStart"] > ExclusiveStartKey["outageStart"]]
        page = matched[:self.page_size]
        if ProjectionExpression:
            names = [n.strip() for n in ProjectionExpression.split(",")]
            page = [{k: v for k, v in i.items() if k in names} for i in page]
        resp = {"Items": page, "Count": len(page)}
        if len(matched) > self.page_size:
            last = page[-1]
            resp["LastEvaluatedKey"] = {k: last[k] for k in self.key_names}
        return resp


# =============================================================================
# Records
# =============================================================================

def make_record(
    title_latin="ozurgetis",
    start=datetime(2023, 9, 8, 19, 20, tzinfo=SOURCE_TIMEZONE),
    end=datetime(2023, 9, 11, 19, 20, tzinfo=SOURCE_TIMEZONE),
    affected=186,
    addresses=("ოზურგეთი ე.თაყაიშვილის I შეს.",),
) -> OutageRecord:
    return OutageRecord(
        location=Location(
            id="12",
            title_native="ოზურგეთის",
            title_latin=title_latin,
            lat="41.9243",
            lng="42.0060",
        ),
        start=start,
        end=end,
        affected_customers=affected,
        addresses_native=list(addresses),
    )


@pytest.fixture
def map_html():
    return load_fixture("map.html")


@pytest.fixture
def problem_html():
    return load_fixture("problem.html")


@pytest.fixture
def fake_table():
    return FakeTable()
