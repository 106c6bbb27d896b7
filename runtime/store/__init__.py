"""
Storage abstractions for the URL Monitor runtime.

Includes:
- record_codec: one change event <-> one JSON line
- LogStore: append-only change log file with atomic whole-file rewrite
"""
