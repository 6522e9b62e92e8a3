"""Route Groups — one module per group, each exposing a create_*_group() factory.

Invariants:
    - Each factory returns a fresh GatewayRouter; groups never share router state
    - Routes never contain business logic (delegate to services/context)

Design Decisions:
    - Explicit registration by the bootstrap sequencer over auto-discovery
"""
