"""Upload and download of code archives through presigned URLs."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
import httpx
import structlog

from funcdeploy.core.exceptions import DownloadFailedError, UploadFailedError
from funcdeploy.deploy.archive import CodeArchive

logger = structlog.get_logger()

CHUNK_SIZE = 64 * 1024


async def _iter_file(path: Path, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk


async def upload_code_archive(
    archive: CodeArchive,
    presigned_url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 300.0,
) -> None:
    """PUT the archive to a presigned URL.

    Content-Length is always sent so the body is never chunked; storage
    endpoints reject chunked uploads.
    """
    headers = {
        "Content-Type": "application/octet-stream",
        "Content-Length": str(archive.size),
    }

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    logger.info("Uploading code archive", size=archive.size, digest=archive.digest)
    try:
        resp = await client.put(presigned_url, content=_iter_file(archive.path), headers=headers)
    except httpx.HTTPError as e:
        raise UploadFailedError(f"Uploading code archive failed: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    if resp.status_code != 200:
        raise UploadFailedError(
            f"Uploading code archive failed: status code {resp.status_code}",
            status_code=resp.status_code,
        )
    logger.info("Uploaded code archive", size=archive.size)


async def download_code_archive(
    presigned_url: str,
    dest_path: Path,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 300.0,
    max_size_bytes: Optional[int] = None,
) -> int:
    """Stream a code archive to ``dest_path``.

    Returns:
        Number of bytes written
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    bytes_written = 0
    try:
        async with client.stream("GET", presigned_url, follow_redirects=True) as resp:
            if resp.status_code != 200:
                raise DownloadFailedError(
                    f"Downloading code archive failed: status code {resp.status_code}",
                    status_code=resp.status_code,
                )
            async with aiofiles.open(dest_path, "wb") as f:
                async for chunk in resp.aiter_bytes(CHUNK_SIZE):
                    bytes_written += len(chunk)
                    if max_size_bytes is not None and bytes_written > max_size_bytes:
                        raise DownloadFailedError("Code archive exceeds maximum allowed size")
                    await f.write(chunk)
    except httpx.HTTPError as e:
        raise DownloadFailedError(f"Downloading code archive failed: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    logger.info("Downloaded code archive", bytes=bytes_written)
    return bytes_written


def make_download_path() -> Path:
    fd, name = tempfile.mkstemp(prefix="function-download-", suffix=".zip")
    os.close(fd)
    return Path(name)
