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
"""Tests for turnip.fetch."""
import asyncio
import hashlib
from pathlib import Path
import shutil
import zipfile

from aiohttp import test_utils, web
import pytest

from turnip.archive import ArchiveError
from turnip.config import SourceArchive
from turnip.fetch import DownloadError, download, fetch_and_extract

PAYLOAD = b'payload' * 1024


def make_app(files: dict) -> web.Application:
    async def handler(request: web.Request) -> web.Response:
        name = request.match_info['name']
        if name not in files:
            raise web.HTTPNotFound()
        return web.Response(body=files[name])

    async def status_handler(request: web.Request) -> web.Response:
        return web.Response(status=int(request.match_info['code']),
                            body=PAYLOAD)

    app = web.Application()
    app.router.add_get('/status/{code}', status_handler)
    app.router.add_get('/{name}', handler)
    return app


def serve_and_run(files: dict, func) -> None:
    """Runs func(base_url) against a local server serving files."""

    async def run() -> None:
        async with test_utils.TestServer(make_app(files)) as server:
            await func(str(server.make_url('/')).rstrip('/'))

    asyncio.run(run())


def test_download(tmp_path: Path) -> None:
    dest = tmp_path / 'file.zip'

    async def check(base_url: str) -> None:
        assert await download(f'{base_url}/file.zip', dest) == dest

    serve_and_run({'file.zip': PAYLOAD}, check)
    assert dest.read_bytes() == PAYLOAD


def test_download_verifies_checksum(tmp_path: Path) -> None:
    dest = tmp_path / 'file.zip'
    good = hashlib.sha256(PAYLOAD).hexdigest()

    async def check(base_url: str) -> None:
        await download(f'{base_url}/file.zip', dest, sha256=good)
        with pytest.raises(DownloadError, match='Checksum mismatch'):
            await download(f'{base_url}/file.zip', dest, sha256='0' * 64)

    serve_and_run({'file.zip': PAYLOAD}, check)
    assert not dest.exists()


def test_download_http_error(tmp_path: Path) -> None:
    async def check(base_url: str) -> None:
        with pytest.raises(DownloadError, match='HTTP 404'):
            await download(f'{base_url}/missing.zip', tmp_path / 'missing.zip')

    serve_and_run({}, check)


def test_download_accepts_any_success_status(tmp_path: Path) -> None:
    dest = tmp_path / 'file.zip'

    async def check(base_url: str) -> None:
        await download(f'{base_url}/status/203', dest)

    serve_and_run({}, check)
    assert dest.read_bytes() == PAYLOAD


def test_download_server_error(tmp_path: Path) -> None:
    async def check(base_url: str) -> None:
        with pytest.raises(DownloadError, match='HTTP 503'):
            await download(f'{base_url}/status/503', tmp_path / 'file.zip')

    serve_and_run({}, check)


def zip_bytes(tmp_path: Path, top_level: str) -> bytes:
    path = tmp_path / 'build.zip'
    with zipfile.ZipFile(path, 'w') as archive:
        archive.writestr(f'{top_level}/meson.build', "project('mesa')\n")
    return path.read_bytes()


@pytest.mark.skipif(shutil.which('unzip') is None,
                    reason='unzip is not installed')
def test_fetch_and_extract(tmp_path: Path,
                           monkeypatch: pytest.MonkeyPatch) -> None:
    work_dir = tmp_path / 'work'
    work_dir.mkdir()
    body = zip_bytes(tmp_path, 'mesa-main')

    async def fake_download(url: str, destination: Path, sha256=None) -> Path:
        destination.write_bytes(body)
        return destination

    monkeypatch.setattr('turnip.fetch.download', fake_download)
    archive = SourceArchive(url='https://example.invalid/mesa-main.zip',
                            name='mesa-main')
    extracted = fetch_and_extract(archive, work_dir, 'Mesa source')
    assert extracted == work_dir / 'mesa-main'
    assert (extracted / 'meson.build').is_file()
    assert (work_dir / 'mesa-main.zip').is_file()


@pytest.mark.skipif(shutil.which('unzip') is None,
                    reason='unzip is not installed')
def test_fetch_and_extract_unexpected_layout(
        tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    work_dir = tmp_path / 'work'
    work_dir.mkdir()
    body = zip_bytes(tmp_path, 'mesa-something-else')

    async def fake_download(url: str, destination: Path, sha256=None) -> Path:
        destination.write_bytes(body)
        return destination

    monkeypatch.setattr('turnip.fetch.download', fake_download)
    archive = SourceArchive(url='https://example.invalid/mesa-main.zip',
                            name='mesa-main')
    with pytest.raises(ArchiveError):
        fetch_and_extract(archive, work_dir, 'Mesa source')
