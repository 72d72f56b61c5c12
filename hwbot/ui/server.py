from __future__ import annotations

import logging
import os
import traceback
from typing import Any, Dict, Optional

from flask import Flask, request, jsonify, Response, render_template

from hwbot.runtime.service import AutomationRuntime
from hwbot.ui.hotkeys import HotkeyManager
from hwbot.core.logging import init_logging
from hwbot.core.config import load_keys, load_profile, list_modes


def create_app(runtime: Optional[AutomationRuntime] = None, *, enable_hotkeys: bool = True) -> Flask:
    app = Flask(__name__, static_folder=None, template_folder='templates')
    logger = init_logging(level=os.environ.get("LOG_LEVEL", "INFO"))
    rt = runtime if runtime is not None else AutomationRuntime()
    app.config["RUNTIME"] = rt

    if enable_hotkeys:
        bindings = (load_keys() or {}).get("toggle") or None
        hk = HotkeyManager(on_toggle=lambda mode: _hotkey_toggle(rt, mode, logger), bindings=bindings)
        hk.start()
        app.config["HOTKEYS"] = hk

    def _mode_call(mode: str, action: str):
        try:
            if action == "start":
                changed = rt.start_mode(mode)
            elif action == "stop":
                changed = rt.stop_mode(mode)
            else:
                rt.toggle_mode(mode)
                changed = True
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 404
        except RuntimeError as exc:
            return jsonify({"error": str(exc)}), 409
        logger.info("api/%s/%s | changed=%s", mode, action, changed)
        return jsonify({"ok": True, "changed": changed, "status": rt.mode_status(mode)})

    @app.get("/")
    def index():
        return render_template('index.html', modes=rt.mode_names())

    @app.get("/api/status")
    def api_status():
        out: Dict[str, Any] = rt.snapshot()
        try:
            out["keys"] = load_keys()
            out["configured_modes"] = list_modes()
        except Exception:
            out["keys"] = {}
            out["configured_modes"] = []
        return jsonify(out)

    @app.post("/api/<mode>/start")
    def api_mode_start(mode: str):
        return _mode_call(mode, "start")

    @app.post("/api/<mode>/stop")
    def api_mode_stop(mode: str):
        return _mode_call(mode, "stop")

    @app.post("/api/<mode>/toggle")
    def api_mode_toggle(mode: str):
        return _mode_call(mode, "toggle")

    @app.get("/api/<mode>/status")
    def api_mode_status(mode: str):
        try:
            return jsonify(rt.mode_status(mode))
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 404

    @app.get("/api/timeline")
    def api_timeline():
        n = int(request.args.get("n", 50))
        mode = request.args.get("mode") or None
        return jsonify(rt.timeline.last(n, mode=mode))

    @app.get("/api/logs/tail")
    def api_logs_tail():
        n = int(request.args.get("n", 200))
        log_dir = os.environ.get("LOG_DIR", "logs")
        path = os.path.join(log_dir, "app.log")
        if not os.path.exists(path):
            return ("", 204)
        try:
            with open(path, "r", encoding="utf-8", errors="ignore") as f:
                lines = f.readlines()[-n:]
            return Response("".join(lines), mimetype="text/plain")
        except Exception:
            return Response(traceback.format_exc(), mimetype="text/plain", status=500)

    @app.get("/api/coords")
    def api_coords():
        return jsonify(rt.list_coord_records())

    @app.post("/api/coords/save")
    def api_coords_save():
        payload = request.get_json(force=True, silent=True) or {}
        mode = payload.get("mode")
        name = payload.get("name")
        coords = payload.get("coords")
        table = payload.get("table") or "buttons"
        index = payload.get("index")

        if not mode or not name or not isinstance(coords, (list, tuple)) or len(coords) != 2:
            return jsonify({"error": "mode, name and coords[2] required"}), 400
        try:
            fx = float(coords[0])
            fy = float(coords[1])
        except (TypeError, ValueError):
            return jsonify({"error": "coords must be numeric"}), 400
        if not (0.0 <= fx <= 1.0 and 0.0 <= fy <= 1.0):
            return jsonify({"error": "coords must lie in [0, 1]"}), 400
        if index is not None and (isinstance(index, bool) or not str(index).isdigit()):
            return jsonify({"error": "index must be a non-negative integer"}), 400

        try:
            data = rt.save_coords(
                str(mode),
                str(name),
                coords=(fx, fy),
                table=str(table),
                index=int(index) if index is not None else None,
            )
        except (ValueError, FileNotFoundError) as exc:
            return jsonify({"error": str(exc)}), 404
        except Exception as exc:
            logger.exception("coordinate save failed")
            return jsonify({"error": str(exc)}), 500

        return jsonify({"ok": True, "table": data.get(str(table))})

    return app


def _hotkey_toggle(rt: AutomationRuntime, mode: str, logger: logging.Logger) -> None:
    try:
        running = rt.toggle_mode(mode)
    except RuntimeError as exc:
        logger.warning("hotkey: %s ignored (%s)", mode, exc)
        return
    logger.info("hotkey: %s -> %s", mode, "running" if running else "stopped")


def main() -> None:
    profile = load_profile() or {}
    runtime = AutomationRuntime(profile)
    if not runtime.launch():
        runtime.logger.error("Browser session did not come up: %s", runtime.status.last_error)
    app = create_app(runtime)
    port = int(os.environ.get("PORT", profile.get("ui_port", 8083)))
    try:
        app.run(host="127.0.0.1", port=port, debug=False, threaded=True)
    finally:
        hk = app.config.get("HOTKEYS")
        if hk is not None:
            hk.stop()
        runtime.shutdown()


if __name__ == "__main__":
    main()
