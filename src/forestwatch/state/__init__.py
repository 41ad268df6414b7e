"""State layer.

This package owns everything the monitor remembers between feed updates:
per-device alert latches and per-device metric history. The two are kept in
separate device-keyed maps and share nothing but the read-only snapshot.
"""
