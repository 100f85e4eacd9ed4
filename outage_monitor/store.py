"""
DynamoDB persistence for outage records.

One table, partitioned by the latinized service-center title and sorted by
the outage start time rendered as ISO-8601 with the Tbilisi offset, so
"outages starting after T" is a plain string range on the sort key.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

import boto3
from boto3.dynamodb.conditions import Key
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from outage_monitor.errors import StoreError
from outage_monitor.models import Location, OutageRecord
from outage_monitor.scraper import SOURCE_TIMEZONE

log = logging.getLogger(__name__)

TABLE_NAME = "water.gov.ge"
PARTITION_KEY = "locationTitle"
SORT_KEY = "outageStart"

RETRY_MAX_ATTEMPTS = 32

PROJECTION = [
    PARTITION_KEY,
    SORT_KEY,
    "outageEnd",
    "titleNative",
    "affectedCustomers",
    "locationLat",
    "locationLng",
    "addressesNative",
    "locationId",
]


def sort_key(ts: datetime) -> str:
    """Fixed-width, lexicographically ordered form of a timestamp."""
    return ts.astimezone(SOURCE_TIMEZONE).isoformat(timespec="seconds")


def record_to_item(record: OutageRecord) -> dict:
    item = {
        PARTITION_KEY: record.location.title_latin,
        SORT_KEY: sort_key(record.start),
        "outageEnd": sort_key(record.end),
        "titleNative": record.location.title_native,
        "affectedCustomers": record.affected_customers,
        "locationLat": record.location.lat,
        "locationLng": record.location.lng,
        "locationId": record.location.id,
    }
    addresses = set(record.addresses_native)
    # DynamoDB rejects empty sets.
    if addresses:
        item["addressesNative"] = addresses
    return item


def item_to_record(item: dict) -> OutageRecord:
    affected = item.get("affectedCustomers", 0)
    if isinstance(affected, Decimal):
        affected = int(affected)
    return OutageRecord(
        location=Location(
            id=item.get("locationId", ""),
            title_native=item.get("titleNative", ""),
            title_latin=item[PARTITION_KEY],
            lat=item.get("locationLat", ""),
            lng=item.get("locationLng", ""),
        ),
        start=datetime.fromisoformat(item[SORT_KEY]),
        end=datetime.fromisoformat(item.get("outageEnd", item[SORT_KEY])),
        affected_customers=affected,
        addresses_native=sorted(item.get("addressesNative", set())),
    )


def make_table(
    region: str,
    access_key: str | None = None,
    secret_access_key: str | None = None,
    endpoint_url: str | None = None,
    table_name: str = TABLE_NAME,
):
    """Build a boto3 Table handle with adaptive retries."""
    cfg = BotoConfig(retries={"max_attempts": RETRY_MAX_ATTEMPTS, "mode": "adaptive"})
    session_args = {"region_name": region}
    if access_key and secret_access_key:
        session_args["aws_access_key_id"] = access_key
        session_args["aws_secret_access_key"] = secret_access_key
    session = boto3.session.Session(**session_args)
    dynamodb = session.resource("dynamodb", config=cfg, endpoint_url=endpoint_url)
    return dynamodb.Table(table_name)


class OutageStore:
    def __init__(self, table, now: Callable[[], datetime] | None = None):
        self.table = table
        self.now = now or (lambda: datetime.now(SOURCE_TIMEZONE))

    def create_table(self) -> bool:
        """Provision the table on demand. Returns False if it already exists."""
        client = self.table.meta.client
        try:
            client.create_table(
                TableName=self.table.name,
                AttributeDefinitions=[
                    {"AttributeName": PARTITION_KEY, "AttributeType": "S"},
                    {"AttributeName": SORT_KEY, "AttributeType": "S"},
                ],
                KeySchema=[
                    {"AttributeName": PARTITION_KEY, "KeyType": "HASH"},
                    {"AttributeName": SORT_KEY, "KeyType": "RANGE"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceInUseException":
                log.info(f"Table {self.table.name} already exists")
                return False
            raise StoreError(f"create table {self.table.name}: {e}") from e
        client.get_waiter("table_exists").wait(TableName=self.table.name)
        log.info(f"Created table {self.table.name}")
        return True

    def save_batch(self, records: list[OutageRecord]):
        """
        Upsert every record. A later record with the same partition and sort
        key replaces an earlier one, within the batch and across batches.
        """
        if not records:
            log.info("No outages to save")
            return
        try:
            with self.table.batch_writer(overwrite_by_pkeys=[PARTITION_KEY, SORT_KEY]) as batch:
                for record in records:
                    batch.put_item(Item=record_to_item(record))
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"save water outages: {e}") from e
        log.info(f"Saved {len(records)} outages to {self.table.name}")

    def query_upcoming(self, title_latin: str, now: datetime | None = None) -> list[OutageRecord]:
        """Outages for one location whose start is strictly after ``now``."""
        after = sort_key(now or self.now())
        kwargs = {
            "KeyConditionExpression": Key(PARTITION_KEY).eq(title_latin) & Key(SORT_KEY).gt(after),
            "ProjectionExpression": ", ".join(PROJECTION),
        }
        items = []
        try:
            while True:
                resp = self.table.query(**kwargs)
                items.extend(resp.get("Items", []))
                last_key = resp.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"get water outages: {e}") from e
        return [item_to_record(item) for item in items]
