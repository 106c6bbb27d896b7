"""
Services used by the URL Monitor runtime.

- LogService: record / query / prune change events on top of LogStore
- retention: window cutoff arithmetic
- statistics: summary counts over a set of records
"""
