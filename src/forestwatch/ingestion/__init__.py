"""Ingestion layer.

This package contains the helpers that turn raw device payloads delivered
by a feed into typed, normalized snapshots.
"""

__all__: list[str] = []
