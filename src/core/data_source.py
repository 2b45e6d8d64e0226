"""
Data sources a pass can run against.

A data source is either an imaged filesystem (E01 or a mounted image root)
or a logical collection of local files. Both expose their contents as
``VirtualFileEntry`` records for the file index and stream entry bytes on
demand.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .enums import DataSourceKind
from .evidence_fs import EvidenceFS, MountedFS, PyEwfTskFS, find_ewf_segments
from .logging import get_logger

LOGGER = get_logger("core.data_source")

CHUNK_SIZE = 1024 * 1024


class ContentReadError(IOError):
    """Raised when the bytes of an entry cannot be read from the container."""


def name_extension(name: str) -> str:
    """
    Return the lowercase extension of ``name`` without the dot.

    Dotfiles (``.bashrc``), trailing dots and extensions containing
    whitespace yield an empty string.
    """
    index = name.rfind(".")
    if index <= 0 or index == len(name) - 1:
        return ""
    extension = name[index + 1:]
    if any(ch.isspace() for ch in extension):
        return ""
    return extension.lower()


def split_container_path(path: str) -> tuple[str, str]:
    """Split ``a/b/c.txt`` into (``/a/b/``, ``c.txt``)."""
    normalized = "/" + path.replace("\\", "/").strip("/")
    parent, _, name = normalized.rpartition("/")
    return f"{parent}/" if parent else "/", name


@dataclass(frozen=True, slots=True)
class VirtualFileEntry:
    """
    One indexed file or directory inside a data source.

    ``parent_path`` always starts and ends with ``/``. ``local_abs_path`` is
    only set when the entry is already a real file on local disk.
    """
    id: int
    name: str
    parent_path: str = "/"
    size: int = 0
    is_dir: bool = False
    is_virtual: bool = False
    local_abs_path: Optional[str] = None
    extension: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        parent_path: str = "/",
        *,
        entry_id: int = 0,
        size: int = 0,
        is_dir: bool = False,
        is_virtual: bool = False,
        local_abs_path: Optional[str] = None,
    ) -> "VirtualFileEntry":
        """Build an entry, deriving the extension from the name."""
        return cls(
            id=entry_id,
            name=name,
            parent_path=parent_path,
            size=size,
            is_dir=is_dir,
            is_virtual=is_virtual,
            local_abs_path=local_abs_path,
            extension="" if is_dir else name_extension(name),
        )

    @property
    def path(self) -> str:
        return f"{self.parent_path}{self.name}"


class DataSource(ABC):
    """Read-only handle to a forensic container."""

    def __init__(self, source_id: int, name: str) -> None:
        self.id = source_id
        self.name = name

    @property
    @abstractmethod
    def kind(self) -> DataSourceKind:
        """Return whether this is an imaged filesystem or a logical collection."""

    @property
    def is_logical(self) -> bool:
        return self.kind == DataSourceKind.LOGICAL

    @property
    def source_path(self) -> str:
        """Return a human-readable description of where the container lives."""
        return ""

    @abstractmethod
    def iter_entries(self) -> Iterator[VirtualFileEntry]:
        """Yield every entry (ids unassigned) for the file index."""

    @abstractmethod
    def _stream(self, entry: VirtualFileEntry, chunk_size: int) -> Iterator[bytes]:
        """Yield raw bytes of ``entry``."""

    def open_stream(self, entry: VirtualFileEntry, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """
        Yield the byte content of a file entry in chunks.

        Raises:
            ContentReadError: if the entry has no content or reading fails
        """
        if entry.is_dir or entry.is_virtual:
            raise ContentReadError(f"Entry {entry.path!r} (id={entry.id}) has no byte content")
        try:
            yield from self._stream(entry, chunk_size)
        except (OSError, ValueError) as exc:
            raise ContentReadError(f"Failed reading {entry.path!r} (id={entry.id}): {exc}") from exc

    def close(self) -> None:
        """Release underlying handles."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id}, name={self.name!r})"


class ImageDataSource(DataSource):
    """Imaged filesystem backed by an ``EvidenceFS``."""

    def __init__(self, source_id: int, fs: EvidenceFS, name: Optional[str] = None) -> None:
        super().__init__(source_id, name or fs.source_path.name)
        self.fs = fs

    @classmethod
    def open(cls, source_id: int, source: Path, partition_index: int = -1) -> "ImageDataSource":
        """Open an E01 image (first segment) or a mounted image directory."""
        if source.is_dir():
            fs: EvidenceFS = MountedFS(source)
        else:
            fs = PyEwfTskFS(find_ewf_segments(source), partition_index=partition_index)
        return cls(source_id, fs, name=source.name)

    @property
    def kind(self) -> DataSourceKind:
        return DataSourceKind.IMAGE

    @property
    def source_path(self) -> str:
        return str(self.fs.source_path)

    def iter_entries(self) -> Iterator[VirtualFileEntry]:
        for path, stat in self.fs.iter_entries():
            parent_path, name = split_container_path(path)
            yield VirtualFileEntry.create(
                name,
                parent_path,
                size=stat.size_bytes,
                is_dir=stat.is_dir,
            )

    def _stream(self, entry: VirtualFileEntry, chunk_size: int) -> Iterator[bytes]:
        yield from self.fs.open_for_stream(entry.path, chunk_size=chunk_size)

    def close(self) -> None:
        self.fs.close()


class LogicalFilesDataSource(DataSource):
    """
    Logical collection of local files and folders.

    Everything is placed under a virtual root directory named after the
    collection, the way logical file sets are usually presented.
    """

    def __init__(self, source_id: int, paths: Sequence[Path], name: str = "LogicalFileSet1") -> None:
        super().__init__(source_id, name)
        self.paths: List[Path] = [Path(p) for p in paths]

    @property
    def kind(self) -> DataSourceKind:
        return DataSourceKind.LOGICAL

    @property
    def source_path(self) -> str:
        return ";".join(str(p) for p in self.paths)

    def iter_entries(self) -> Iterator[VirtualFileEntry]:
        yield VirtualFileEntry.create(self.name, "/", is_dir=True, is_virtual=True)
        root = f"/{self.name}/"
        for path in self.paths:
            if path.is_dir():
                yield VirtualFileEntry.create(path.name, root, is_dir=True)
                yield from self._walk_local(path, f"{root}{path.name}/")
            elif path.is_file():
                yield self._file_entry(path, root)
            else:
                LOGGER.warning("Logical source path does not exist: %s", path)

    def _walk_local(self, directory: Path, parent_path: str) -> Iterator[VirtualFileEntry]:
        for root, dirs, files in os.walk(directory):
            dirs.sort()
            rel = Path(root).relative_to(directory).as_posix()
            current = parent_path if rel == "." else f"{parent_path}{rel}/"
            for name in dirs:
                yield VirtualFileEntry.create(name, current, is_dir=True)
            for name in sorted(files):
                yield self._file_entry(Path(root) / name, current)

    @staticmethod
    def _file_entry(path: Path, parent_path: str) -> VirtualFileEntry:
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return VirtualFileEntry.create(
            path.name,
            parent_path,
            size=size,
            local_abs_path=str(path.resolve()),
        )

    def _stream(self, entry: VirtualFileEntry, chunk_size: int) -> Iterator[bytes]:
        if not entry.local_abs_path:
            raise FileNotFoundError(f"Entry {entry.path!r} has no local path")
        with open(entry.local_abs_path, "rb") as handle:
            while True:
                chunk = handle.read(chunk_size)
                if not chunk:
                    break
                yield chunk
