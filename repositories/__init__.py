"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all SQL queries for a specific table.
Repositories run their statements through an injected QueryExecutor and
return domain model objects.
"""
