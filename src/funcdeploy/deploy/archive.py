"""Code archive packing and safe extraction."""

from __future__ import annotations

import hashlib
import os
import stat
import tempfile
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

import structlog

from funcdeploy.core.exceptions import (
    ArchiveError,
    ArchiveTooLargeError,
    DirectoryNotFoundError,
    PathTraversalRejectedError,
)

logger = structlog.get_logger()

MAX_EXTRACT_SIZE_BYTES = 100 * 1024 * 1024  # 100MB
DIGEST_ALGORITHM = "sha256"

# Fixed entry timestamp so identical trees produce identical archives.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_CHUNK_SIZE = 64 * 1024


def _calculate_digest(path: Path) -> str:
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hasher.update(block)
    return f"{DIGEST_ALGORITHM}:{hasher.hexdigest()}"


def _is_within(base: Path, target: Path) -> bool:
    return target == base or base in target.parents


def _collect_files(root: Path) -> List[Path]:
    """List regular files under root in a stable order.

    Symlinked directories are not descended into.
    """
    files: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            files.append(Path(dirpath) / name)
    return files


def _zip_info_for(relative: str, mode: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(relative, date_time=_ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    perms = 0o755 if mode & stat.S_IXUSR else 0o644
    info.external_attr = (stat.S_IFREG | perms) << 16
    return info


def _zip_directory(zip_path: Path, root: Path) -> int:
    base = root.resolve()
    count = 0
    with zipfile.ZipFile(zip_path, "w") as zf:
        for path in _collect_files(root):
            # Only the relative path goes into the archive, never the caller's layout.
            relative = path.relative_to(root).as_posix()

            resolved = path.resolve()
            if not _is_within(base, resolved):
                raise PathTraversalRejectedError(f"File {relative!r} resolves outside {root}")
            if not resolved.is_file():
                continue

            mode = resolved.stat().st_mode
            with open(resolved, "rb") as src, zf.open(_zip_info_for(relative, mode), "w") as dst:
                for block in iter(lambda: src.read(_CHUNK_SIZE), b""):
                    dst.write(block)
            count += 1
    return count


class CodeArchive:
    """A sealed zip of a function directory stored in a temporary file."""

    def __init__(self, path: Path, size: int, digest: str):
        self.path = path
        self.size = size
        self.digest = digest

    @classmethod
    def create(cls, directory: Union[str, Path]) -> "CodeArchive":
        """Pack ``directory`` into a temporary zip and compute its digest.

        Raises:
            DirectoryNotFoundError: If ``directory`` does not exist
            PathTraversalRejectedError: If a file resolves outside the directory
            ArchiveError: On any I/O error while packing
        """
        root = Path(directory)
        if not root.is_dir():
            raise DirectoryNotFoundError(f"Directory not found: {root}")

        fd, tmp_name = tempfile.mkstemp(prefix="function-archive-", suffix=".zip")
        os.close(fd)
        zip_path = Path(tmp_name)

        try:
            file_count = _zip_directory(zip_path, root)
            size = zip_path.stat().st_size
            digest = _calculate_digest(zip_path)
        except PathTraversalRejectedError:
            zip_path.unlink(missing_ok=True)
            raise
        except (OSError, zipfile.BadZipFile) as e:
            zip_path.unlink(missing_ok=True)
            raise ArchiveError(f"Failed to create code archive from {root}: {e}") from e

        logger.info("Code archive created", directory=str(root), files=file_count, size=size, digest=digest)
        return cls(zip_path, size, digest)

    def compare_digest(self, other: Optional[str]) -> bool:
        return other is not None and other == self.digest

    def cleanup(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove code archive", path=str(self.path), error=str(e))

    def __enter__(self) -> "CodeArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def __repr__(self) -> str:
        return f"CodeArchive(path={str(self.path)!r}, size={self.size}, digest={self.digest!r})"


def _validate_member_name(name: str, base: Path) -> Path:
    """Return the extraction target for ``name`` or raise on traversal."""
    normalized = name.replace("\\", "/")
    member_path = PurePosixPath(normalized)
    if (
        not normalized
        or member_path.is_absolute()
        or ".." in member_path.parts
        or (len(normalized) > 1 and normalized[1] == ":")
    ):
        raise PathTraversalRejectedError(f"Archive contains unsafe path (zip-slip): {name!r}")
    try:
        target = (base / Path(*member_path.parts)).resolve()
    except (OSError, RuntimeError) as e:
        raise ArchiveError(f"Cannot resolve archive entry {name!r}: {e}") from e
    if not _is_within(base, target):
        raise PathTraversalRejectedError(f"Archive entry escapes destination (zip-slip): {name!r}")
    return target


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    *,
    max_total_size: int = MAX_EXTRACT_SIZE_BYTES,
) -> int:
    """Safely extract a zip into ``destination``.

    Every entry is validated before anything is written. Decompressed bytes
    are counted across the whole archive and extraction stops with
    ArchiveTooLargeError past ``max_total_size``; files already written are
    left in place.

    Returns:
        Total number of decompressed bytes written
    """
    dest = Path(destination)
    if not dest.is_dir():
        raise DirectoryNotFoundError(f"Destination directory not found: {dest}")
    base = dest.resolve()

    try:
        zf = zipfile.ZipFile(archive_path, "r")
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(f"Failed to open code archive: {e}") from e

    total = 0
    with zf:
        members = [(member, _validate_member_name(member.filename, base)) for member in zf.infolist()]

        for member, target in members:
            try:
                if member.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(member, "r") as src, open(target, "wb") as dst:
                    for chunk in iter(lambda: src.read(_CHUNK_SIZE), b""):
                        total += len(chunk)
                        if total > max_total_size:
                            raise ArchiveTooLargeError(
                                f"Archive exceeds maximum extracted size of {max_total_size} bytes"
                            )
                        dst.write(chunk)
            except ArchiveError:
                raise
            except (OSError, zipfile.BadZipFile, EOFError, zlib.error) as e:
                raise ArchiveError(f"Failed to extract {member.filename!r}: {e}") from e

    logger.info("Code archive extracted", destination=str(dest), entries=len(members), size=total)
    return total
