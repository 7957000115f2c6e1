"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/ or infrastructure/
    - All functions are pure; the current time is always passed in

Design Decisions:
    - Functional core separated from imperative shell: services read and write
      MongoDB, core decides what to write
"""
