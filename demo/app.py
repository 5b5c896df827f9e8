#!/usr/bin/env python3
"""
Interactive Demo - Flask server hosting a trainer on a background thread.

Run with: python demo/app.py
Then drive it with JSON, e.g.:

    curl -X POST localhost:5001/api/command \
         -H 'Content-Type: application/json' \
         -d '{"type": "configure", "payload": {"agent": {"type": "dyna"}, "env": {"scenarioId": "windy"}}}'
    curl -X POST localhost:5001/api/command -d '{"type": "start"}' -H 'Content-Type: application/json'
    curl localhost:5001/api/events
"""

import os
import sys

from flask import Flask, jsonify, request

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gridrl.agents.factory import AGENT_TYPES  # noqa: E402
from gridrl.environment.scenarios import get_scenario_definitions  # noqa: E402
from gridrl.training.worker import ThreadedTrainerHost  # noqa: E402

# Keep only the newest events per poll so a slow client doesn't flood itself
MAX_EVENTS_PER_POLL = 500


def create_app(host: ThreadedTrainerHost = None) -> Flask:
    """
    Build the demo app around a trainer host.

    The host owns the trainer thread; every request only enqueues commands
    or drains events, so requests never touch trainer state directly.
    """
    app = Flask(__name__)
    app.config["TRAINER_HOST"] = host if host is not None else ThreadedTrainerHost()

    def trainer_host() -> ThreadedTrainerHost:
        return app.config["TRAINER_HOST"]

    @app.route("/api/scenarios")
    def scenarios():
        return jsonify({
            "scenarios": get_scenario_definitions(),
            "agents": sorted(AGENT_TYPES),
        })

    @app.route("/api/command", methods=["POST"])
    def command():
        message = request.get_json(silent=True)
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            return jsonify({"error": "expected {\"type\": ..., \"payload\": ...}"}), 400
        trainer_host().send(message["type"], message.get("payload"))
        return jsonify({"queued": message["type"]})

    @app.route("/api/events")
    def events():
        drained = trainer_host().drain_events()
        dropped = max(0, len(drained) - MAX_EVENTS_PER_POLL)
        return jsonify({"events": drained[dropped:], "dropped": dropped})

    return app


if __name__ == "__main__":
    app = create_app()
    app.config["TRAINER_HOST"].send("configure", {"agent": {"type": "rl"}, "env": {"scenarioId": "classic"}})
    print("\n" + "=" * 50)
    print("Demo running at http://localhost:5001")
    print("=" * 50 + "\n")
    try:
        app.run(host="0.0.0.0", port=5001, debug=False)
    finally:
        app.config["TRAINER_HOST"].close()
