"""Core (UI-agnostic) business dashboard logic.

This package contains:
- date-range presets in a fixed +5:30 frame
- backend reads and writes (Supabase / PostgREST)
- in-memory joins and aggregation (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- record entry, CSV export and the negative inventory warning
"""
