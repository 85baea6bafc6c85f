"""Service layer for booking rules.

Services hold the booking lifecycle, translator matching and notification
fan-out, keeping routes thin and focused on HTTP handling.

Layer hierarchy:
    Routes (HTTP) -> Services (Booking rules) -> Repositories (Database)

Services should:
- Enforce role, status and timing rules and raise domain exceptions
- Orchestrate calls to repositories
- Return dataclasses or ORM models (routes build the response schemas)

Services should NOT:
- Execute SQL directly (use repositories)
- Commit (the request session dependency owns the transaction)
- Know about HTTP status codes
"""
