"""HTTP surface: a water request acknowledgment and the upcoming-outage read path."""

import logging

from flask import Flask, jsonify

from outage_monitor.errors import StoreError

log = logging.getLogger(__name__)


def create_app(store, refresher=None) -> Flask:
    app = Flask(__name__)
    app.json.ensure_ascii = False

    @app.route("/water")
    def water():
        log.info("Handling a water request")
        return "", 200

    @app.route("/water/<title_latin>")
    def upcoming_outages(title_latin: str):
        try:
            records = store.query_upcoming(title_latin)
        except StoreError as e:
            log.error(f"Query upcoming outages for '{title_latin}': {e}")
            return jsonify({"error": "store unavailable"}), 503
        return jsonify([r.to_dict() for r in records])

    @app.route("/health")
    def health():
        state = refresher.state.value if refresher is not None else None
        return jsonify({"status": "ok", "refresher": state})

    return app
