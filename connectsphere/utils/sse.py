# connectsphere/utils/sse.py
"""
Server-sent events on top of a service subscription.

A subscribe_* call pushes full snapshots from a Firestore listener thread;
the response generator drains them from a queue and writes them as
'text/event-stream' frames until the client goes away.
"""
import json
import logging
import queue
from datetime import datetime
from typing import Any, Callable, Optional

from flask import Response, stream_with_context

from connectsphere.utils.datetime_utils import DateTimeUtils

KEEPALIVE_SECONDS = 15


def _default(value):
    if isinstance(value, datetime):
        return DateTimeUtils.to_iso_string(value)
    return str(value)


def format_sse(data: Any, event: Optional[str] = None) -> str:
    """One SSE frame. ``data`` is JSON-encoded; datetimes become ISO-8601 strings."""
    payload = json.dumps(data, default=_default)
    lines = [f"event: {event}"] if event else []
    lines.extend(f"data: {line}" for line in payload.splitlines())
    return "\n".join(lines) + "\n\n"


def snapshot_stream(subscribe: Callable[[Callable], Any], serialize: Callable[[Any], Any],
                    event: str = "snapshot", keepalive: float = KEEPALIVE_SECONDS):
    """
    Generator bridging a subscription to SSE frames.
    ``subscribe`` receives the callback and returns an object with unsubscribe().
    """
    snapshots = queue.Queue()
    subscription = subscribe(snapshots.put)
    try:
        while True:
            try:
                snapshot = snapshots.get(timeout=keepalive)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(serialize(snapshot), event=event)
    finally:
        subscription.unsubscribe()
        logging.info("SSE stream closed.")


def sse_response(generator) -> Response:
    return Response(
        stream_with_context(generator),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
    )
