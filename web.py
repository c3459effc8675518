#!/usr/bin/env python3
"""
River Scorer Web — Flask + WebSocket server for browser-based scoring.

Each WebSocket connection gets its own GameCoordinator and FrontendAdapter.
The client sends one JSON action per user input; the server answers every
action with a full JSON state snapshot. Rendering is left to the client.
"""
import json
import logging

logger = logging.getLogger(__name__)

from flask import Flask, jsonify, request
from flask_sock import Sock

from frontend_adapter import FrontendAdapter
from game_coordinator import GameCoordinator
from game_engine import InputMode
from settings import load_settings

app = Flask(__name__)
# File locations; None means the per-user defaults under the home directory
app.config.update(AUTOSAVE_PATH=None, SETTINGS_PATH=None, SCORES_PATH=None)
sock = Sock(app)


@app.route("/")
def index():
    """Landing data: whether a saved game exists, and the saved configuration."""
    return jsonify({
        "has_autosave": GameCoordinator.has_autosave(app.config["AUTOSAVE_PATH"]),
        "settings": load_settings(app.config["SETTINGS_PATH"]),
    })


@sock.route("/ws")
def websocket(ws):
    """WebSocket handler — one game per connection."""
    resume = request.args.get("resume", "false") == "true"
    autosave_path = app.config["AUTOSAVE_PATH"] or GameCoordinator.default_autosave_path()

    if resume:
        coordinator = GameCoordinator.load_state(autosave_path)
    else:
        coordinator = GameCoordinator(autosave_path=autosave_path)

    adapter = FrontendAdapter(coordinator,
                              settings_path=app.config["SETTINGS_PATH"],
                              scores_path=app.config["SCORES_PATH"])
    adapter.load_settings()
    ws.send(json.dumps(adapter.get_game_snapshot()))

    try:
        while True:
            data = ws.receive()
            if data is None:
                break
            try:
                action = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON from client: %s", data)
                continue
            if not isinstance(action, dict):
                logger.warning("Ignoring non-object action: %s", data)
                continue

            _handle_action(adapter, action)
            ws.send(json.dumps(adapter.get_game_snapshot()))
    except Exception:
        logger.error("WebSocket receive error", exc_info=True)


def _handle_action(adapter, action):
    """Dispatch a client action to the adapter. Returns True if it was accepted."""
    cmd = action.get("action", "")
    coord = adapter.coordinator

    if adapter.finished and cmd != "play_again":
        logger.info("Ignoring %r on the results screen", cmd)
        return False

    if cmd == "add_player":
        return adapter.add_player(action.get("name", ""))

    elif cmd == "remove_player":
        idx = action.get("index")
        return isinstance(idx, int) and adapter.remove_player(idx)

    elif cmd == "set_max_cards":
        return adapter.set_max_cards(action.get("value"))

    elif cmd == "set_bid_points":
        return adapter.set_bid_points(action.get("value"))

    elif cmd == "start_game":
        return adapter.start_game()

    elif cmd == "select_dealer":
        return coord.select_dealer(action.get("player_id"))

    elif cmd == "bid":
        accepted = coord.submit_bid(action.get("player_id"), action.get("value"))
        adapter.after_action()
        return accepted

    elif cmd == "taken":
        accepted = coord.submit_taken(action.get("player_id"), action.get("value"))
        adapter.after_action()
        return accepted

    elif cmd == "confirm_bids":
        return coord.confirm_bids()

    elif cmd == "next_round":
        return coord.advance_round()

    elif cmd == "finish_game":
        return adapter.finish_game()

    elif cmd == "edit":
        round_number = action.get("round")
        if round_number is not None and not isinstance(round_number, int):
            return False
        mode = _mode_by_name(action.get("mode")) if action.get("mode") else None
        if action.get("mode") and mode is None:
            return False
        return coord.enter_edit(round_number, mode)

    elif cmd == "begin_edit":
        return coord.set_active_edit(True)

    elif cmd == "review":
        return coord.set_active_edit(False)

    elif cmd == "keep":
        accepted = coord.keep_and_next()
        adapter.after_action()
        return accepted

    elif cmd == "cancel_edit":
        return coord.cancel_edit()

    elif cmd == "undo":
        return adapter.do_undo()

    elif cmd == "play_again":
        adapter.play_again()
        return True

    logger.info("Unknown action: %r", cmd)
    return False


def _mode_by_name(name):
    """Look up an InputMode by its name ("BIDDING" / "TAKING")."""
    for mode in InputMode:
        if mode.value == name:
            return mode
    return None


def main():
    """Entry point for the web server."""
    import argparse
    parser = argparse.ArgumentParser(description="River Scorer Web Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=5000, help="Port (default: 5000)")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    print(f"Starting River Scorer web server at http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
