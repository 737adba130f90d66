"""
Document Storage Backends

Interface for the folder/file storage that receives applicant documents,
plus an in-memory implementation for development and tests. The Google
Drive implementation lives in drive.py.
"""

import itertools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class StoredFile:
    """Identifier and shareable view link of an uploaded file."""

    id: str
    link: str


@runtime_checkable
class StorageBackend(Protocol):
    """Folder and file operations needed to archive documents."""

    async def create_folder(self, name: str, parent_id: str) -> str:
        """Create a folder under `parent_id` and return its id."""
        ...

    async def upload(self, path: Path, mime_type: str, name: str, folder_id: str) -> StoredFile:
        """Upload a local file into a folder under the given name."""
        ...


@dataclass
class MemoryFolder:
    id: str
    name: str
    parent_id: str
    files: dict[str, "MemoryFile"] = field(default_factory=dict)


@dataclass
class MemoryFile:
    id: str
    name: str
    mime_type: str
    content: bytes
    link: str


class InMemoryStorageBackend:
    """Storage backend that keeps folders and file contents in memory."""

    def __init__(self, base_url: str = "memory://files"):
        self.base_url = base_url
        self.folders: dict[str, MemoryFolder] = {}
        self._ids = itertools.count(1)

    async def create_folder(self, name: str, parent_id: str) -> str:
        folder_id = f"folder-{next(self._ids)}"
        self.folders[folder_id] = MemoryFolder(id=folder_id, name=name, parent_id=parent_id)
        return folder_id

    async def upload(self, path: Path, mime_type: str, name: str, folder_id: str) -> StoredFile:
        folder = self.folders.get(folder_id)
        if folder is None:
            raise FileNotFoundError(f"Folder {folder_id} does not exist")

        file_id = f"file-{next(self._ids)}"
        link = f"{self.base_url}/{file_id}/view"
        folder.files[file_id] = MemoryFile(
            id=file_id,
            name=name,
            mime_type=mime_type,
            content=path.read_bytes(),
            link=link,
        )
        return StoredFile(id=file_id, link=link)

    @property
    def file_count(self) -> int:
        return sum(len(folder.files) for folder in self.folders.values())
