"""API Layer — middleware chain, routing, route groups, and the error boundary.

Invariants:
    - Route groups registered explicitly by the bootstrap sequencer (no auto-discovery)
    - All endpoints return structured JSON responses, errors included

Design Decisions:
    - Thin routes read the StartupContext and delegate to services
"""
