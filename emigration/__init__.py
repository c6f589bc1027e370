"""Core (UI-agnostic) emigration dashboard logic.

This package contains:
- dataset descriptors (collection name, categories, chart kind)
- document store adapters (SQLite, in-memory)
- CSV import (CSV -> pandas -> normalized records)
- aggregation into JSON-serializable page payloads
- the single-row edit session used by the records table
- chart helpers (Altair -> Vega-Lite spec dict)
"""
