#
# Copyright (C) 2024 The Android Open Source Project
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
"""Downloads and extracts the source archives."""
from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path
from typing import Optional

from aiohttp import (ClientError, ClientResponseError, ClientSession,
                     ClientTimeout)

from turnip.archive import ArchiveError, unzip
from turnip.config import SourceArchive

CHUNK_SIZE = 4 * 1024 * 1024

# The NDK is several hundred MiB, well past aiohttp's default five minute
# total timeout. Only stalled connections are treated as failures.
DOWNLOAD_TIMEOUT = ClientTimeout(total=None, sock_connect=60, sock_read=300)


class DownloadError(RuntimeError):
    """Raised when an archive cannot be downloaded."""


def logger() -> logging.Logger:
    """Returns the module logger."""
    return logging.getLogger(__name__)


async def download(url: str, destination: Path,
                   sha256: Optional[str] = None) -> Path:
    """Streams url to destination.

    Args:
        url: URL to download.
        destination: Output file. Replaced if it exists.
        sha256: Expected hex digest of the content, if known.

    Returns:
        The destination path.

    Raises:
        DownloadError: The server returned an error status, the connection
            failed, or the content did not match sha256.
    """
    logger().info('Downloading %s', url)
    digest = hashlib.sha256()
    try:
        async with ClientSession(timeout=DOWNLOAD_TIMEOUT) as session:
            async with session.get(url) as response:
                response.raise_for_status()
                with destination.open('wb') as output:
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        digest.update(chunk)
                        output.write(chunk)
    except ClientResponseError as ex:
        raise DownloadError(
            f'Failed to download {url}: HTTP {ex.status}') from ex
    except (ClientError, asyncio.TimeoutError) as ex:
        raise DownloadError(f'Failed to download {url}: {ex}') from ex

    if sha256 is not None and digest.hexdigest() != sha256.lower():
        destination.unlink()
        raise DownloadError(
            f'Checksum mismatch for {url}: expected {sha256}, '
            f'got {digest.hexdigest()}')
    return destination


def fetch_and_extract(archive: SourceArchive, work_dir: Path,
                      label: str) -> Path:
    """Downloads archive into work_dir and extracts it there.

    Returns:
        The directory the archive extracted to.

    Raises:
        ArchiveError: The archive did not contain the expected top level
            directory.
    """
    zip_path = work_dir / archive.zip_name
    print(f'Downloading {label}...')
    asyncio.run(download(archive.url, zip_path, archive.sha256))

    print(f'Extracting {label}...')
    unzip(zip_path, work_dir)

    extracted = work_dir / archive.name
    if not extracted.is_dir():
        raise ArchiveError(
            f'{zip_path.name} did not extract to {archive.name}/')
    return extracted
