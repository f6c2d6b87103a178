"""Infrastructure Layer: database, change feed, logging and the concrete backend provider.

Invariants:
    - Infrastructure implements core Protocols; core never imports infrastructure
    - All database failures mapped to DatabaseError before leaving this layer

Design Decisions:
    - Process-wide singletons (db_manager, change_feed) initialized by the FastAPI lifespan
"""
