#!/usr/bin/env python3
"""
Yogik – Flask Web Interface
---------------------------
Responsibilities:
- Exposes the JSON API consumed by a front end (routes/practice_bp.py)
- All state is provided by the Registry (single source of truth)

Notes:
- This file does NOT start a server; use practice_main.py.
"""

import os
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify

from routes.practice_bp import practice_bp
from yogik.yk_registry import Registry
from yogik.yk_version import VERSION


def create_app(registry: Optional[Registry] = None) -> Flask:
    """Build the Flask app around a registry (a default one is created if omitted)."""
    app = Flask(__name__)
    app.config['YOGIK_REGISTRY'] = registry or Registry()
    app.config['YOGIK_STARTED_AT'] = datetime.now(timezone.utc).isoformat()
    app.register_blueprint(practice_bp)

    @app.get("/health")
    def health():
        """Health check endpoint - shows version and session status"""
        reg = app.config['YOGIK_REGISTRY']
        return jsonify({
            'service': 'yogik',
            'version': VERSION,
            'pid': os.getpid(),
            'started_at': app.config['YOGIK_STARTED_AT'],
            'sessions': {mode: s.lifecycle.value for mode, s in reg.sessions.items()},
            'status': 'healthy',
        })

    @app.get("/api/logs")
    def api_logs():
        reg = app.config['YOGIK_REGISTRY']
        return jsonify(list(reg.logs))

    return app
