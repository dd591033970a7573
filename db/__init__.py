"""
db/ - Database Layer
====================
Owns the PostgreSQL connection pool, the retrying query executor, error
classification, and idempotent schema evolution.
This layer is the lowest in the architecture and has no dependencies on other layers
apart from the table definitions' use of the attachment categories.
"""
