"""Feeder dashboard service: REST API and WebSocket stream."""
