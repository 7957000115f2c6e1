"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure imports only errors and domain types from core/
    - Every external failure is mapped to a BackstageError subclass

Design Decisions:
    - MongoDB, Cloudinary and SMTP clients are exposed as FastAPI dependencies
      so tests override them
"""
