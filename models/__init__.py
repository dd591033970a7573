"""
models/ - Domain Models
=======================
Plain dataclasses for competencies, attachments, folders and documents.
"""
