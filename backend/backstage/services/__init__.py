"""Services Layer — MongoDB reads and writes for every resource.

Invariants:
    - Services receive the database (and media host, mailer, settings) as arguments
    - Every write that adds or removes a file id goes through services/file_refs.py

Design Decisions:
    - Resource behaviour is declared with CatalogSpec/TrackSpec values instead
      of one service class per collection
"""
