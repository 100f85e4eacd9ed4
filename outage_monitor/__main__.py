"""
Entry point: ``python -m outage_monitor``.

Without flags, runs the service: the refresh loop on a background thread,
the Prometheus metrics endpoint and the Flask app. ``--once`` runs a single
fetch and prints what it found instead.
"""

import argparse
import json
import logging
import signal
import threading
from datetime import datetime

from prometheus_client import start_http_server

from outage_monitor.config import load_settings, setup_logging
from outage_monitor.models import OutageRecord
from outage_monitor.refresher import OutageRefresher
from outage_monitor.scraper import SOURCE_TIMEZONE, Scraper
from outage_monitor.store import OutageStore, make_table
from outage_monitor.web import create_app

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def write_json(records: list[OutageRecord], filepath: str):
    payload = {
        "last_updated": datetime.now(SOURCE_TIMEZONE).isoformat(),
        "total_outages": len(records),
        "outages": [r.to_dict() for r in records],
    }
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    log.info(f"JSON written: {filepath} ({len(records)} records)")


def print_summary(records: list[OutageRecord]):
    print("\n" + "=" * 72)
    print("  WATER.GOV.GE ACTIVE OUTAGES")
    print(f"  Scraped: {datetime.now(SOURCE_TIMEZONE).strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 72)

    if not records:
        print("\n  No active outages found.")
        print("=" * 72)
        return

    print(f"\n  Total active outages found: {len(records)}")
    for r in records:
        title = r.location.title_latin.strip()
        window = f"{r.start:%d/%m %H:%M} -> {r.end:%d/%m %H:%M}"
        print(f"    {title[:30]:<30} {window:<26} {r.affected_customers:>6} customers")
        print(f"    {'':30} {len(r.addresses_native)} addresses")

    total = sum(r.affected_customers for r in records)
    print(f"\n  Customers without water: {total}")
    print("\n" + "=" * 72)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def install_sigterm_handler(stop: threading.Event):
    """Treat SIGTERM like Ctrl-C: stop the refresher and unwind the web server."""
    def _terminate(signum, frame):
        log.info("Received SIGTERM, shutting down")
        stop.set()
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, _terminate)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="outage_monitor", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--once", action="store_true", help="run a single fetch and print a summary")
    parser.add_argument("--save", action="store_true", help="with --once, also write the records to the table")
    parser.add_argument("--output", metavar="PATH", help="with --once, write the records as JSON")
    parser.add_argument("--create-table", action="store_true", help="provision the DynamoDB table and exit")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = load_settings()
    setup_logging(settings.log_level)

    table = make_table(
        settings.dynamo_region,
        settings.dynamo_access_key,
        settings.dynamo_secret_access_key,
        settings.dynamo_endpoint_url,
        settings.table_name,
    )
    store = OutageStore(table)

    if args.create_table:
        store.create_table()
        return

    scraper = Scraper()

    if args.once:
        records = scraper.fetch_all()
        if args.save:
            store.save_batch(records)
        if args.output:
            write_json(records, args.output)
        print_summary(records)
        return

    log.info("Starting water.gov.ge outage monitor...")
    start_http_server(settings.metrics_port)
    log.info(f"Prometheus metrics server started on port {settings.metrics_port}")

    stop = threading.Event()
    install_sigterm_handler(stop)
    refresher = OutageRefresher(scraper, store, settings.refresh_interval, stop)
    refresher.start()
    app = create_app(store, refresher)
    try:
        app.run(host="0.0.0.0", port=settings.http_port)
    finally:
        refresher.stop(timeout=5)
        log.info("Good bye")


if __name__ == "__main__":
    main()
