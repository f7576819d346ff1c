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
"""Helper functions for reading and writing .zip archives."""
from __future__ import annotations

import logging
from pathlib import Path
import shlex
import subprocess
from typing import Iterable, List
import zipfile

import turnip.paths


class ArchiveError(RuntimeError):
    """Raised for malformed archive inputs or outputs."""


def logger() -> logging.Logger:
    """Returns the module logger."""
    return logging.getLogger(__name__)


# Extraction goes through the system unzip rather than zipfile: zipfile does
# not restore permissions, and the NDK's clang, lld and llvm-ar are useless
# without their executable bits. https://bugs.python.org/issue15795
#
# Creation has no such constraint. Magisk and the emulator loaders only read
# file contents, so the packages are written with zipfile directly.


def unzip(zip_file: Path, dest_dir: Path) -> None:
    """Unzip zip_file into dest_dir."""
    if not zip_file.is_file() or zip_file.suffix != '.zip':
        raise ArchiveError(f'Not a .zip file: {zip_file}')
    if not dest_dir.is_dir():
        raise ArchiveError(f'Not a directory: {dest_dir}')

    cmd = ['unzip', '-qq', '-o', str(zip_file), '-d', str(dest_dir)]
    logger().debug('exec %s', shlex.join(cmd))
    subprocess.check_call(cmd)


def make_zip(zip_file: Path, root_dir: Path, paths: Iterable[Path]) -> Path:
    """Creates a zip package for distribution.

    Directories in paths are added recursively. Entries are named relative to
    root_dir (identical to running zip from within root_dir). An existing
    zip_file is replaced.

    Args:
        zip_file: Path to the output archive.
        root_dir: Directory the archive entry names are relative to.
        paths: Files and directories to package, each within root_dir.

    Returns:
        The path to the created archive.
    """
    if not root_dir.is_dir():
        raise ArchiveError(f'Not a directory: {root_dir}')

    files: List[Path] = []
    for path in paths:
        if not path.exists():
            raise ArchiveError(f'No such file or directory: {path}')
        if path.is_dir():
            files.extend(turnip.paths.walk(path, directories=False))
        else:
            files.append(path)

    if zip_file.exists():
        zip_file.unlink()

    logger().debug('zip %s <- %s', zip_file, root_dir)
    with zipfile.ZipFile(zip_file, 'w', compression=zipfile.ZIP_DEFLATED,
                         compresslevel=9) as archive:
        for path in files:
            arcname = path.relative_to(root_dir).as_posix()
            archive.write(path, arcname)
    return zip_file


def make_zip_of_dir(zip_file: Path, root_dir: Path) -> Path:
    """Creates a zip of everything inside root_dir."""
    if not root_dir.is_dir():
        raise ArchiveError(f'Not a directory: {root_dir}')
    return make_zip(zip_file, root_dir, sorted(root_dir.iterdir()))


def list_entries(zip_file: Path) -> List[str]:
    """Returns the names of the files in zip_file."""
    with zipfile.ZipFile(zip_file) as archive:
        return [info.filename for info in archive.infolist() if not info.is_dir()]
