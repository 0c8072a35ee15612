"""WebSocket endpoint wiring for an external socket transport."""
