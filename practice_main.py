#!/usr/bin/env python3
"""
Yogik – Main Application Launcher
---------------------------------
Starts the Flask JSON API around a Registry, or previews a practice session
on virtual time without audio.

Key characteristics:
- Single version source imported from yogik.yk_version
- Clean signal handling (Ctrl+C and SIGTERM)
- Graceful shutdown: running sessions are stopped and their outcome recorded
- CLI flags with environment fallbacks

CLI:
  python practice_main.py --host 127.0.0.1 --port 5050 --debug 0
  python practice_main.py --dry-run                  # prompts are logged, not spoken
  python practice_main.py --preview pranayama --config '{"breathInRatio": 4}' --seconds 40
ENV:
  YOGIK_HOST, YOGIK_PORT, YOGIK_DEBUG, YOGIK_DB_PATH
"""

import argparse
import json
import logging
import os
import signal
import sys

from yogik.yk_config import DB_PATH, HOST, PORT
from yogik.yk_version import VERSION

logger = logging.getLogger("yogik")

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def _signal_handler(signum, frame):
    """Turn SIGTERM into KeyboardInterrupt so the server loop unwinds through finally."""
    del signum, frame
    raise KeyboardInterrupt


def _parse_args(argv=None) -> argparse.Namespace:
    """Parse CLI args with environment-based defaults."""
    parser = argparse.ArgumentParser(description="Yogik - Practice Timer")
    default_debug = bool(int(os.getenv("YOGIK_DEBUG", "0")))
    parser.add_argument("--host", default=HOST, help="Web host (default env YOGIK_HOST)")
    parser.add_argument("--port", type=int, default=PORT, help="Web port (default env YOGIK_PORT)")
    parser.add_argument("--debug", type=lambda v: bool(int(v)), default=default_debug, help="Flask debug (0/1)")
    parser.add_argument("--db", default=DB_PATH, help="Database path (default env YOGIK_DB_PATH)")
    parser.add_argument("--dry-run", action="store_true", help="Log prompts instead of speaking them")
    parser.add_argument("--preview", choices=("yoga", "pranayama", "kriya", "custom"),
                        help="Print the prompt timeline of a session and exit")
    parser.add_argument("--config", default="{}", help="Session configuration as JSON (with --preview)")
    parser.add_argument("--seconds", type=float, default=60.0, help="Virtual seconds to preview")
    return parser.parse_args(argv)


def run_preview(mode: str, config: dict, seconds: float, out=None) -> int:
    """Run a session on a ManualClock and print every prompt, phase and pass."""
    from services.custom_sequence_service import CustomSequenceService
    from services.kriya_service import KriyaService
    from services.pranayama_service import PranayamaService
    from services.yoga_service import YogaService
    from yogik.yk_audio import RecordingPromptSink
    from yogik.yk_clock import ManualClock

    out = out or sys.stdout
    classes = {
        "yoga": YogaService,
        "pranayama": PranayamaService,
        "kriya": KriyaService,
        "custom": CustomSequenceService,
    }
    clock = ManualClock()
    session = classes[mode](RecordingPromptSink(), clock=clock)

    def show(event):
        detail = event.detail or {}
        kind = event.kind.value
        if kind == "tick":
            return
        if kind == "prompt":
            text = detail.get("text") or f"<{detail.get('tone')}>"
            line = f"say {text!r}"
        elif kind == "phase":
            line = f"phase {detail['label'] or detail['kind']} ({event.snapshot.duration:g}s)"
        elif kind == "pass":
            line = f"pass {detail['passes']} {detail['counters']}"
        elif kind == "lifecycle":
            line = f"{detail['from']} -> {detail['to']}"
        else:
            line = f"complete (outcome {detail.get('outcome')})"
        print(f"{clock.now:8.2f}s  {line}", file=out)

    session.subscribe(show)
    result = session.start(config)
    if not result["success"]:
        print(f"Cannot start {mode}: {result['error']}", file=out)
        return 2

    clock.advance(session.settings.prep_seconds + seconds)
    if session.lifecycle.value != "idle":
        session.stop()
    return 0


def main(argv=None) -> int:
    """Boot the web API (or a preview) and handle lifecycle cleanly."""
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO, format=LOG_FORMAT)

    if args.preview:
        try:
            config = json.loads(args.config)
        except ValueError as e:
            print(f"--config is not valid JSON: {e}", file=sys.stderr)
            return 2
        return run_preview(args.preview, config, args.seconds)

    # Signals: SIGINT (Ctrl+C) and SIGTERM (containers)
    try:
        signal.signal(signal.SIGTERM, _signal_handler)
    except Exception:
        # Windows may not support SIGTERM; ignore if unsupported.
        pass

    from practice_web import create_app
    from yogik.yk_registry import build_registry

    registry = build_registry(db_path=args.db, dry_run=args.dry_run)
    app = create_app(registry)

    print(f"=== Yogik {VERSION} – Practice Timer ===")
    print(f"Web: http://{args.host}:{args.port}  (debug={int(args.debug)}, dry-run={int(args.dry_run)})")
    print("Press Ctrl+C to stop")

    registry.log("Starting web interface…")
    try:
        # Important: use_reloader=False prevents duplicate processes when debug is enabled
        app.run(host=args.host, port=args.port, debug=args.debug, use_reloader=False)
    except KeyboardInterrupt:
        pass
    finally:
        registry.log("Shutting down Yogik…")
        registry.shutdown()
        print("System shutdown complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
