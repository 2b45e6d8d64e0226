from __future__ import annotations

import os
import re
import stat as stat_module
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional

from .logging import get_logger

LOGGER = get_logger("core.evidence_fs")


@dataclass(frozen=True, slots=True)
class EvidenceFileStat:
    """Size and type of one entry in an evidence filesystem."""
    size_bytes: int
    is_file: bool
    is_dir: bool = False


def find_ewf_segments(first_segment: Path) -> List[Path]:
    """
    Given the first segment of an EWF image (image.E01 or image.e01),
    return it together with all following segments in the same directory.
    """
    if not first_segment.exists():
        raise FileNotFoundError(f"E01 segment not found: {first_segment}")

    if not re.fullmatch(r"\.[eE]\d{2}", first_segment.suffix):
        LOGGER.warning("Unexpected EWF extension: %s", first_segment.suffix)
        return [first_segment]

    letter = first_segment.suffix[1]
    segments = [first_segment]
    for i in range(2, 100):
        next_path = first_segment.with_suffix(f".{letter}{i:02d}")
        if not next_path.exists():
            break
        segments.append(next_path)

    LOGGER.info("Discovered %d EWF segment(s) for %s", len(segments), first_segment.name)
    return segments


class EvidenceFS(ABC):
    """Abstract read-only view over an evidence filesystem."""

    @abstractmethod
    def iter_entries(self) -> Iterator[tuple[str, EvidenceFileStat]]:
        """
        Yield every file and directory as ``(path, stat)``.

        Paths are forward-slash separated and relative to the filesystem root
        (no leading slash). Directory loops are walked once.
        """

    @abstractmethod
    def open_for_stream(self, path: str, chunk_size: int = 65536) -> Iterator[bytes]:
        """
        Yield file content in chunks without full buffering.

        Raises:
            FileNotFoundError: If path does not exist or is not a file
        """

    @property
    @abstractmethod
    def source_path(self) -> Path:
        """Return the evidence source (first E01 segment or mount root)."""

    def close(self) -> None:
        """Release any handles held by the filesystem."""


class PyEwfTskFS(EvidenceFS):
    """Evidence filesystem backed by pyewf + pytsk3."""

    def __init__(self, ewf_paths: List[Path], partition_index: int = -1) -> None:
        """
        Open an E01 image.

        Args:
            ewf_paths: E01 segment paths (image.E01, image.E02, ...)
            partition_index: -1 picks the largest readable partition, 0 opens
                the image as a direct filesystem, 1+ selects a partition
        """
        if not ewf_paths:
            raise ValueError("At least one EWF segment must be provided.")
        self.ewf_paths = ewf_paths
        try:
            import pyewf  # type: ignore
            import pytsk3  # type: ignore
        except ModuleNotFoundError as exc:  # pragma: no cover - dependency guard
            raise RuntimeError(
                "PyEwfTskFS requires pyewf and pytsk3 to be installed (pip install leappsifter[ewf])."
            ) from exc

        self._pytsk3 = pytsk3
        self._handle = pyewf.handle()
        self._handle.open([str(path) for path in ewf_paths])
        self._img_info = _PyEwfImgInfo(self._handle, pytsk3)
        self._partition_index = partition_index
        self._fs = self._open_filesystem(partition_index)
        LOGGER.debug("Initialized PyEwfTskFS with %s segments (partition: %s).",
                     len(ewf_paths), self._partition_index)

    def _open_filesystem(self, partition_index: int):
        if partition_index in (-1, 0):
            try:
                fs = self._pytsk3.FS_Info(self._img_info)
                self._partition_index = 0
                return fs
            except OSError as exc:
                LOGGER.debug("Direct filesystem access failed: %s", exc)
                if partition_index == 0:
                    raise RuntimeError(f"Unable to open E01 image as direct filesystem: {exc}") from exc

        try:
            volume = self._pytsk3.Volume_Info(self._img_info)
        except OSError as exc:
            raise RuntimeError(
                f"Unable to open E01 image: no filesystem or partition table found ({exc})"
            ) from exc

        block_size = volume.info.block_size
        partitions = [part for part in volume if part.flags == self._pytsk3.TSK_VS_PART_FLAG_ALLOC]
        if not partitions:
            raise RuntimeError("No allocated partitions found in the E01 image.")

        if partition_index == -1:
            candidates = sorted(partitions, key=lambda part: part.len, reverse=True)
        elif 0 < partition_index <= len(partitions):
            candidates = [partitions[partition_index - 1]]
        else:
            raise ValueError(
                f"Partition index {partition_index} out of range. Found {len(partitions)} partition(s)."
            )

        last_error: Optional[OSError] = None
        for part in candidates:
            offset = part.start * block_size
            try:
                fs = self._pytsk3.FS_Info(self._img_info, offset=offset)
            except OSError as exc:
                LOGGER.debug("Partition %d at offset %d not readable: %s", part.addr, offset, exc)
                last_error = exc
                continue
            self._partition_index = partitions.index(part) + 1
            LOGGER.info("Opened partition %d at offset %d (%s)", self._partition_index, offset,
                        part.desc.decode("utf-8", "ignore"))
            return fs

        raise RuntimeError(f"No readable filesystem found in the E01 image: {last_error}")

    @property
    def partition_index(self) -> int:
        return self._partition_index

    @property
    def source_path(self) -> Path:
        return self.ewf_paths[0]

    def iter_entries(self) -> Iterator[tuple[str, EvidenceFileStat]]:
        count = 0
        for path, meta in self._walk_entries("/"):
            if meta is None:
                continue
            count += 1
            if count % 10000 == 0:
                LOGGER.debug("iter_entries progress: %d entries", count)
            yield path.lstrip("/"), self._to_stat(meta)

    def open_for_stream(self, path: str, chunk_size: int = 65536) -> Iterator[bytes]:
        normalized = path if path.startswith("/") else f"/{path}"
        try:
            file_obj = self._fs.open(path=normalized)
        except IOError as exc:
            raise FileNotFoundError(f"Cannot open {path}: {exc}") from exc

        meta = file_obj.info.meta
        if meta is None or meta.size is None:
            raise FileNotFoundError(f"Unable to determine size for {path}")

        size = meta.size
        offset = 0
        while offset < size:
            chunk = file_obj.read_random(offset, min(chunk_size, size - offset))
            if not chunk:
                break
            yield chunk
            offset += len(chunk)

    def _to_stat(self, meta: Any) -> EvidenceFileStat:
        return EvidenceFileStat(
            size_bytes=meta.size or 0,
            is_file=meta.type == self._pytsk3.TSK_FS_META_TYPE_REG,
            is_dir=meta.type == self._pytsk3.TSK_FS_META_TYPE_DIR,
        )

    def _walk_entries(self, path: str) -> Iterator[tuple[str, Optional[Any]]]:
        visited_inodes: set[int] = set()
        queue = [path]

        while queue:
            current = queue.pop()
            try:
                directory = self._fs.open_dir(path=current)
            except IOError:
                continue

            for entry in directory:
                name = getattr(entry.info.name, "name", b"").decode("utf-8", "ignore")
                if name in {".", ".."}:
                    continue
                full_path = f"{current.rstrip('/')}/{name}"
                meta = entry.info.meta

                if meta and meta.type == self._pytsk3.TSK_FS_META_TYPE_DIR:
                    inode = getattr(meta, "addr", None)
                    if inode is not None and inode in visited_inodes:
                        LOGGER.debug("Directory loop at %s (inode %d), not descending", full_path, inode)
                    else:
                        if inode is not None:
                            visited_inodes.add(inode)
                        queue.append(full_path)

                yield full_path, meta

    def close(self) -> None:
        if getattr(self, "_handle", None) is not None:
            self._handle.close()
            self._handle = None


class MountedFS(EvidenceFS):
    """Evidence filesystem wrapper for a locally mounted read-only path."""

    def __init__(self, mount_point: Path) -> None:
        if not mount_point.is_dir():
            raise FileNotFoundError(f"Mount point {mount_point} does not exist.")
        self.mount_point = mount_point
        LOGGER.info("MountedFS bound to %s", mount_point)

    @property
    def source_path(self) -> Path:
        return self.mount_point

    def iter_entries(self) -> Iterator[tuple[str, EvidenceFileStat]]:
        for root, dirs, files in os.walk(self.mount_point):
            dirs.sort()
            for name in dirs + sorted(files):
                full_path = Path(root) / name
                try:
                    st = os.stat(full_path)
                except OSError as exc:
                    LOGGER.warning("Cannot stat %s: %s", full_path, exc)
                    continue
                rel_path = full_path.relative_to(self.mount_point).as_posix()
                yield rel_path, EvidenceFileStat(
                    size_bytes=st.st_size,
                    is_file=stat_module.S_ISREG(st.st_mode),
                    is_dir=stat_module.S_ISDIR(st.st_mode),
                )

    def open_for_stream(self, path: str, chunk_size: int = 65536) -> Iterator[bytes]:
        resolved = self._resolve_under_mount(path)
        if not resolved.is_file():
            raise FileNotFoundError(f"Path {path} not found under mount {self.mount_point}.")
        with open(resolved, "rb") as handle:
            while True:
                chunk = handle.read(chunk_size)
                if not chunk:
                    break
                yield chunk

    def _resolve_under_mount(self, path: str) -> Path:
        """Resolve ``path`` and refuse anything that escapes the mount root."""
        base = self.mount_point.resolve()
        resolved = (self.mount_point / path.lstrip("/")).resolve()
        try:
            resolved.relative_to(base)
        except ValueError as exc:
            raise ValueError(
                f"Path traversal attempt: {path!r} resolves outside mount {self.mount_point}"
            ) from exc
        return resolved


class _PyEwfImgInfo:
    def __new__(cls, ewf_handle, pytsk3_module):  # type: ignore[override]
        class ImgInfo(pytsk3_module.Img_Info):  # type: ignore
            def __init__(self, handle):
                self._ewf_handle = handle
                super().__init__(url="", type=pytsk3_module.TSK_IMG_TYPE_EXTERNAL)

            def close(self):  # pragma: no cover - cleanup
                self._ewf_handle.close()

            def read(self, offset: int, size: int) -> bytes:
                self._ewf_handle.seek(offset)
                return self._ewf_handle.read(size)

            def get_size(self) -> int:
                return self._ewf_handle.get_media_size()

        return ImgInfo(ewf_handle)
