"""HTTP server package: FastAPI app, stream events, and the request pipeline.

WHY: Cleaning a long transcript takes minutes. The server streams
progress and cleaned chunks as server-sent events so users see text as
soon as the first chunk is rewritten.

HOW: app.py validates requests and starts the pipeline, pipeline.py runs
the steps and sends events, events.py defines the event models and the
channel between the two.

RULES:
- Pre-stream failures are JSON errors; later failures are error events
- Each request owns its session, channel, and upstream clients
"""
