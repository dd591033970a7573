"""
services/document_storage.py
----------------------------
Physical storage for synchronized documents.

Files live under a fixed uploads root, one subfolder per period and one
sub-subfolder per category. Stored names are prefixed with a timestamp, the
competency id and a random number so concurrent writers never collide.
"""

import os
import random
import time
from dataclasses import dataclass
from typing import Optional

from config import DOCUMENTS_UPLOAD_DIR
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class StoredFile:
    stored_name: str
    path: str
    relative_path: str
    size: int


class DocumentStorage:
    """Writes and removes document files under `root`."""

    def __init__(self, root: str = DOCUMENTS_UPLOAD_DIR):
        self.root = os.path.abspath(root)

    def resolve(self, relative_path: str) -> str:
        """
        Absolute path for a path relative to the uploads root.

        Raises:
            ValueError: If the path escapes the uploads root.
        """
        full = os.path.abspath(os.path.join(self.root, *relative_path.split("/")))
        if os.path.commonpath([self.root, full]) != self.root:
            raise ValueError(f"Path escapes the documents root: {relative_path}")
        return full

    def save(
        self, relative_dir: str, filename: str, payload: bytes, competency_id: Optional[int] = None
    ) -> StoredFile:
        """
        Write `payload` into `relative_dir`, creating folders as needed.

        Args:
            relative_dir: Folder relative to the root, e.g. "2024-01-01_2024-01-31/notas_fiscais".
            filename: Already sanitized original filename.
            payload: File contents.
            competency_id: Included in the stored name for traceability.
        """
        directory = self.resolve(relative_dir)
        if not os.path.isdir(directory):
            os.makedirs(directory, exist_ok=True)
            logger.info(f"Created category folder: {directory}")

        unique = f"{int(time.time() * 1000)}-{competency_id}-{random.randint(0, 10**9)}"
        stored_name = f"{unique}-{filename}"
        path = os.path.join(directory, stored_name)
        with open(path, "wb") as fh:
            fh.write(payload)
        return StoredFile(
            stored_name=stored_name,
            path=path,
            relative_path=f"{relative_dir}/{stored_name}",
            size=len(payload),
        )

    def remove(self, path: Optional[str]) -> bool:
        """
        Delete a stored file if it exists. Never raises.

        Returns:
            True if a file was deleted.
        """
        if not path:
            return False
        try:
            if os.path.exists(path):
                os.remove(path)
                return True
            logger.warning(f"Document file already missing: {path}")
        except OSError as e:
            logger.warning(f"Failed to remove document file {path}: {e}")
        return False
