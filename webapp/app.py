from __future__ import annotations

from flask import Flask, jsonify, make_response, request

from msaview.mpl_backend import configure_headless_matplotlib
from msaview.render import render_bytes
from msaview.service import (
    apply_action,
    compose_frame,
    frame_to_payload,
    get_session,
    resize_session,
    session_from_payload,
    session_info,
)

configure_headless_matplotlib()

app = Flask(__name__)


def _require_token(payload: dict) -> str:
    token = str(payload.get("token", "")).strip()
    if not token:
        raise ValueError("token is required")
    return token


@app.post("/api/load")
def api_load():
    payload = request.get_json(silent=True) or {}
    try:
        session = session_from_payload(payload)
        frame = frame_to_payload(compose_frame(session)) if session.viewport.is_sized else None
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify({"token": session.token, "info": session_info(session), "frame": frame})


@app.post("/api/action")
def api_action():
    payload = request.get_json(silent=True) or {}
    action = str(payload.get("action", "")).strip()
    try:
        session = get_session(_require_token(payload))
        if not action:
            raise ValueError("action is required")
        apply_action(session, action)
        frame = compose_frame(session)
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify(frame_to_payload(frame))


@app.post("/api/resize")
def api_resize():
    payload = request.get_json(silent=True) or {}
    try:
        session = get_session(_require_token(payload))
        resize_session(session, payload.get("height"), payload.get("width"))
        frame = compose_frame(session)
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify(frame_to_payload(frame))


@app.post("/api/frame")
def api_frame():
    payload = request.get_json(silent=True) or {}
    try:
        frame = compose_frame(get_session(_require_token(payload)))
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify(frame_to_payload(frame))


@app.post("/api/info")
def api_info():
    payload = request.get_json(silent=True) or {}
    try:
        info = session_info(get_session(_require_token(payload)))
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify(info)


@app.post("/api/plot")
def api_plot():
    payload = request.get_json(silent=True) or {}
    fmt = str(payload.get("format", "svg")).strip().lower()
    try:
        session = get_session(_require_token(payload))
        blob = render_bytes(session, fmt)
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400

    mime = "image/svg+xml" if fmt == "svg" else "image/png"
    response = make_response(blob)
    response.headers["Content-Type"] = mime
    response.headers["Content-Disposition"] = f"attachment; filename=msa_statistics.{fmt}"
    return response


if __name__ == "__main__":  # pragma: no cover - manual server entry point
    app.run(debug=False)
