#!/usr/bin/env python3
"""HTTP trigger for scheduled Pulse ingestion.

GET /api/cron/pulse-ingest runs one ingestion batch. When CRON_SECRET is set,
callers must send `Authorization: Bearer <CRON_SECRET>`.
"""

from __future__ import annotations

import hmac
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from vibepulse.config import Config
from vibepulse.errors import VibePulseError
from vibepulse.runtime import Runtime, build_runtime, configure_logging

logger = logging.getLogger("cron_app")


def _authorized(secret: str) -> bool:
    if not secret:
        return True
    header = request.headers.get("Authorization", "")
    return hmac.compare_digest(header, f"Bearer {secret}")


def create_app(
    config: Optional[Config] = None,
    runtime_factory: Callable[[Config], Runtime] = build_runtime,
) -> Flask:
    config = config or Config.from_env()
    app = Flask(__name__)
    # One runtime per process, built on first use.
    state: Dict[str, Runtime] = {}
    state_lock = threading.Lock()

    def get_runtime() -> Runtime:
        with state_lock:
            if "runtime" not in state:
                state["runtime"] = runtime_factory(config)
            return state["runtime"]

    @app.route("/api/health")
    def health_check():
        return jsonify({"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()})

    @app.route("/api/cron/pulse-ingest")
    def pulse_ingest():
        if not _authorized(config.cron_secret):
            return jsonify({"error": "Unauthorized"}), 401
        if not config.pg_dsn:
            return jsonify({"error": "PG_DSN not configured"}), 500
        if not config.anthropic_api_key:
            return jsonify({"error": "ANTHROPIC_API_KEY not configured"}), 500

        try:
            stats = get_runtime().ingestion.run_once()
        except VibePulseError as e:
            logger.error(f"Pulse ingestion failed: {e}")
            return jsonify({"error": "Ingestion failed", "message": str(e)}), 500

        # Background translations keep running on the app's dispatcher.
        return jsonify(
            {
                "success": True,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "stats": stats.as_dict(),
            }
        )

    return app


if __name__ == "__main__":
    load_dotenv()
    configure_logging()
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", "5055")))
