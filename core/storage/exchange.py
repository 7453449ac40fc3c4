"""File exchange with the WMS.

The WMS and this system talk through plain directories: we drop order,
purchase order, item catalog and confirmation documents into outbound
directories, and the WMS drops return files into a results directory.
Writes go through a temporary file and a rename so the WMS never picks up a
half-written document.
"""

import hashlib
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

from pydantic import BaseModel, Field


class StoredDocument(BaseModel):
    """Reference to a document written to an exchange directory.

    Attributes:
        path: Absolute path of the written file
        content_hash: SHA256 hash of the content
        size_bytes: Size of the file in bytes
        stored_at: Timestamp when the file was written
    """
    path: str = Field(..., description="Absolute file path")
    content_hash: str = Field(..., description="SHA256 hash of content")
    size_bytes: int = Field(..., description="Size in bytes")
    stored_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Write timestamp")


def _compute_sha256(data: bytes) -> str:
    """Compute SHA256 hash of bytes."""
    return hashlib.sha256(data).hexdigest()


def write_document(data: bytes, path: Path, ensure_parent: bool = True) -> StoredDocument:
    """Atomically write a document and return a StoredDocument.

    Args:
        data: Serialized document
        path: Destination file path
        ensure_parent: Create parent directories if they don't exist

    Returns:
        StoredDocument describing the written file
    """
    path = Path(path)
    if ensure_parent:
        path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_bytes(data)
    os.replace(tmp_path, path)

    return StoredDocument(
        path=str(path.absolute()),
        content_hash=_compute_sha256(data),
        size_bytes=len(data),
        stored_at=datetime.now(timezone.utc),
    )


class ExchangeDirectory:
    """One WMS exchange directory.

    Usage:
        results = ExchangeDirectory(config.directories.results)
        for path in results.list_pending():
            data = results.read(path)
            ...
            results.delete(path)
    """

    def __init__(self, base_path: Union[str, Path], create: bool = True):
        self.base_path = Path(base_path)
        if create:
            self.base_path.mkdir(parents=True, exist_ok=True)

    def list_pending(self) -> List[Path]:
        """Files waiting in the directory, oldest name first.

        Hidden files (including our own in-flight temporaries) are ignored.
        """
        if not self.base_path.exists():
            return []
        return sorted(
            p for p in self.base_path.iterdir()
            if p.is_file() and not p.name.startswith(".")
        )

    def read(self, path: Path) -> bytes:
        return Path(path).read_bytes()

    def write(self, data: bytes, filename: str) -> StoredDocument:
        return write_document(data, self.base_path / filename)

    def delete(self, path: Path) -> None:
        """Remove a processed file. A file already gone is not an error."""
        Path(path).unlink(missing_ok=True)

    def resolve_path(self, filename: str) -> Path:
        return self.base_path / filename
