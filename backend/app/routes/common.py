# Overview: shared helpers for route modules; service outcomes to HTTP responses, live query streams.

from __future__ import annotations

import json
import queue

from flask import Response, jsonify, stream_with_context

from ..services.results import KIND_NOT_FOUND, KIND_STORE, KIND_VALIDATION, ServiceResult

STATUS_BY_KIND = {
    KIND_VALIDATION: 400,
    KIND_NOT_FOUND: 404,
    KIND_STORE: 500,
}

# Seconds between SSE comments that keep idle proxies from closing the stream
KEEPALIVE_SECONDS = 15


def respond(result: ServiceResult, success_status: int = 200):
    """Map a ServiceResult to a JSON response."""
    if result.success:
        return jsonify({"data": result.data}), success_status
    return jsonify({"error": result.error}), STATUS_BY_KIND.get(result.error_kind, 400)


def internal_error():
    return jsonify({"error": "Internal server error"}), 500


def _sse(payload, event: str | None = None) -> str:
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(payload)}")
    return "\n".join(lines) + "\n\n"


def event_stream(subscribe):
    """
    Serve a live query as text/event-stream.

    subscribe(on_data, on_error) must return an unsubscribe callable; it is
    invoked when the client disconnects and the generator is closed.
    """
    events: queue.Queue = queue.Queue()
    unsubscribe = subscribe(
        lambda data: events.put(("data", data)),
        lambda message: events.put(("error", message)),
    )

    @stream_with_context
    def generate():
        try:
            while True:
                try:
                    kind, payload = events.get(timeout=KEEPALIVE_SECONDS)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                if kind == "error":
                    yield _sse({"error": payload}, event="error")
                else:
                    yield _sse(payload)
        finally:
            unsubscribe()

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
