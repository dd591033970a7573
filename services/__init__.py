"""
services/ - Business Logic Layer
================================
Folder derivation, document storage, document synchronization and the
attachment workflow built on top of the repositories.
"""
