"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input)
    - Ids arrive as strings; services convert them to ObjectId

Design Decisions:
    - Create/Update pairs share a Fields base; Update leaves every field optional
      and routes dump with exclude_unset
"""
