"""
Runtime package for the URL Monitor local server.

This package contains:
- API layer (FastAPI server + routes)
- Services (log service, retention window, statistics)
- Stores (change log file + record codec)
- Models (Pydantic / dataclasses for change events and HTTP schemas)
"""
