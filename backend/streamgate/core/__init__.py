"""Core Layer — pure request-processing and lifecycle logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (clocks and jitter are injected)

Design Decisions:
    - Functional core separated from the imperative shell: middleware and
      the bootstrap sequencer call into core/, never the reverse
"""
