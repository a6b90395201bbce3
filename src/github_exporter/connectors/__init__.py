"""Connectors to external issue trackers."""
