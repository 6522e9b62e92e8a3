"""streamgate — HTTP/WebSocket gateway over a relational store and an upstream message stream.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
