"""Services Layer — background jobs, their supervisor, and the event hub.

Invariants:
    - Jobs are plain async callables; restart policy lives in the supervisor
    - Services never touch request/response objects
"""
