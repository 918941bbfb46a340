# app.py — Slim Flask API over one SuggestionSession (painting, growth, commit, undo)
# deps: pip install flask numpy pillow

from __future__ import annotations
from typing import Any, Dict, Optional
import argparse
import io
import logging
import threading
import numpy as np
from flask import Flask, request, jsonify, make_response
from PIL import Image

from .config import DEFAULT_GRID_STEP, EngineConfig, SCORE_POWER_STEP
from .layer_files import load_layers
from .models import ContractViolation, Label, StrokeKind
from .session import SuggestionSession
from .synthetic import make_synthetic_scene

LOGGER = logging.getLogger(__name__)

SUGGESTION_RGBA = (0, 255, 255, 110)


def _stroke_kind(value) -> StrokeKind:
    if isinstance(value, str):
        return StrokeKind[value.upper()]
    return StrokeKind(int(value))


def _label(value) -> Label:
    if isinstance(value, str):
        return Label[value.upper()]
    return Label(int(value))


def _png(arr: np.ndarray):
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, "PNG")
    buf.seek(0)
    resp = make_response(buf.read())
    resp.headers["Content-Type"] = "image/png"
    return resp


def create_app(session: SuggestionSession) -> Flask:
    app = Flask(__name__)
    app.config["SESSION"] = session
    # interactive operations run one at a time, even under a threaded server
    lock = threading.Lock()

    def state(**extra) -> Dict[str, Any]:
        out = session.state()
        out.update(extra)
        return out

    # ======= CORS =======
    @app.after_request
    def _cors(resp):
        resp.headers["Access-Control-Allow-Origin"] = "*"
        resp.headers["Access-Control-Allow-Headers"] = "*"
        resp.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        return resp

    @app.errorhandler(ContractViolation)
    def _contract(e):
        return jsonify({"error": str(e)}), 409

    # ======= painting =======
    @app.route("/stroke", methods=["POST"])
    def stroke():
        """
        JSON body:
        {
          "points": [{"x":..,"y":..}, ...],   // or a single "x","y"
          "kind": "positive" | "negative" | "erase",  // default "positive"
          "radius": null                      // default: current brush
        }
        """
        data = request.get_json(force=True, silent=True) or {}
        try:
            pts = data.get("points") or [{"x": data["x"], "y": data["y"]}]
            pts = [(float(p["x"]), float(p["y"])) for p in pts]
            kind = _stroke_kind(data.get("kind", "positive"))
            radius = data.get("radius", None)
            radius = None if radius in (None, "", "null") else float(radius)
        except (KeyError, TypeError, ValueError) as e:
            return jsonify({"error": f"points (x, y) and a valid kind required: {e}"}), 400
        with lock:
            for x, y in pts:
                session.paint(x, y, kind, radius)
            return jsonify(state(painted=len(pts)))

    @app.route("/release", methods=["POST"])
    def release():
        with lock:
            live = session.release()
            return jsonify(state(live=live))

    # ======= suggestion navigation =======
    @app.route("/grow", methods=["POST"])
    def grow():
        with lock:
            return jsonify(state(changed=session.grow()))

    @app.route("/shrink", methods=["POST"])
    def shrink():
        with lock:
            return jsonify(state(changed=session.shrink()))

    @app.route("/commit", methods=["POST"])
    def commit():
        data = request.get_json(force=True, silent=True) or {}
        try:
            label = _label(data.get("label", int(Label.POSITIVE)))
        except (KeyError, TypeError, ValueError) as e:
            return jsonify({"error": f"unknown label: {e}"}), 400
        with lock:
            n = session.commit(label)
            return jsonify(state(committed=n, label=label.name))

    @app.route("/undo", methods=["POST"])
    def undo():
        with lock:
            return jsonify(state(undone=session.undo()))

    @app.route("/clear", methods=["POST"])
    def clear():
        with lock:
            session.clear()
            return jsonify(state())

    @app.route("/power", methods=["POST"])
    def power():
        data = request.get_json(force=True, silent=True) or {}
        try:
            delta = float(data.get("delta", SCORE_POWER_STEP))
        except (TypeError, ValueError):
            return jsonify({"error": "delta must be a number"}), 400
        with lock:
            session.adjust_score_power(delta)
            return jsonify(state())

    # ======= read-only views =======
    @app.route("/state", methods=["GET"])
    def get_state():
        with lock:
            return jsonify(state())

    @app.route("/suggestion.png", methods=["GET"])
    def suggestion_png():
        ring: Optional[str] = request.args.get("ring")
        with lock:
            if not session.has_suggestion:
                mask = np.zeros((session.layers.height, session.layers.width), dtype=bool)
            elif ring is None:
                mask = session.suggestion_mask()
            else:
                try:
                    mask = session.engine.enclosed_mask(int(ring))
                except ValueError:
                    return jsonify({"error": "ring must be an integer"}), 400
        rgba = np.zeros(mask.shape + (4,), dtype=np.uint8)
        rgba[mask] = SUGGESTION_RGBA
        return _png(rgba)

    @app.route("/probability.png", methods=["GET"])
    def probability_png():
        with lock:
            prob = session.probability_map()
        return _png((np.clip(prob, 0, 1) * 255).astype(np.uint8))

    return app


def main(argv=None):
    ap = argparse.ArgumentParser(description="HTTP host for a labeling session")
    ap.add_argument("files", nargs="*", help="*_RGB image, optional *_labels and auxiliary rasters")
    ap.add_argument("--synthetic", action="store_true", help="serve a generated scene instead of files")
    ap.add_argument("--grid-step", type=int, default=DEFAULT_GRID_STEP)
    ap.add_argument("--port", type=int, default=8081)
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.synthetic or not args.files:
        layers = make_synthetic_scene().layers
    else:
        layers = load_layers(args.files)
    session = SuggestionSession(layers, EngineConfig(grid_step=args.grid_step))
    create_app(session).run(host="0.0.0.0", port=args.port, threaded=True)


if __name__ == "__main__":
    main()
