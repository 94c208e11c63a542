"""Service layer for business logic.

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Repositories (Database)

Services should:
- Contain all business rules and validation
- Orchestrate calls to repositories
- Return dataclasses (not ORM models) where appropriate
- Raise their own exception types; routes map them to HTTP errors

Services should NOT:
- Directly execute SQL queries (use repositories)
- Know about HTTP request/response details
- Commit, except jobs that own their own sessions
"""
