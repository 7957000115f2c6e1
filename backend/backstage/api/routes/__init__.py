"""Route Modules — one file per resource, or one factory per family of resources.

Invariants:
    - Each module defines its own APIRouter(s) with prefix and tags
    - Routes never touch file references directly (delegate to services)
"""
