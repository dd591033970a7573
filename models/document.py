"""
models/document.py
------------------
Domain models for the generic document repository: folders and documents.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class FolderRecord:
    """
    A logical document folder (pastas_documentos).

    One top-level folder exists per competency period; category subfolders
    hang off it through `parent_id`.
    """
    title: str
    description: Optional[str] = None
    organization: Optional[str] = None
    parent_id: Optional[int] = None
    created_by: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class DocumentRecord:
    """
    A generic document (documentos) pointing at a physical file.

    Attributes:
        filename: Name shown to users.
        path: Absolute path of the stored file.
        size: Size in bytes.
        mimetype: MIME type reported at upload.
        organization: Owning organization.
        uploaded_by: User id of the uploader.
        folder_id: Owning pastas_documentos row.
    """
    filename: str
    path: str
    size: Optional[int] = None
    mimetype: Optional[str] = None
    organization: Optional[str] = None
    uploaded_by: Optional[int] = None
    folder_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
