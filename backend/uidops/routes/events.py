# Overview: Server-Sent Events stream of completion timestamps.

import json

from flask import Blueprint, Response, current_app, stream_with_context

from ..extensions import completion_bus
from ..services.event_bus import QueueListener, event_payload


events_bp = Blueprint("events", __name__, url_prefix="/events")


@events_bp.get("/scan")
def scan_events_route():
    bus = completion_bus()
    keepalive = current_app.config["EVENT_STREAM_KEEPALIVE_SECONDS"]
    listener = bus.subscribe(QueueListener(maxsize=current_app.config["EVENT_STREAM_QUEUE_SIZE"]))

    def stream():
        try:
            yield "\n"
            while True:
                ts = listener.next_event(timeout=keepalive)
                if ts is None:
                    if listener.closed:
                        # Dropped by the bus: end the response so the client reconnects
                        return
                    yield ": keepalive\n\n"
                    continue
                yield f"data: {json.dumps(event_payload(ts))}\n\n"
        finally:
            bus.unsubscribe(listener)

    headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    return Response(stream_with_context(stream()), mimetype="text/event-stream", headers=headers)
