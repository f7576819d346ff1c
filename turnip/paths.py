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
"""Helper functions for work directory paths."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterator, Optional

from turnip.config import BuildConfig

WORK_DIR_ENV = 'TURNIP_WORK_DIR'


def absolute_path(path: Path) -> Path:
    """Returns path made absolute without following symlinks.

    The final component is left as given so a symlinked work directory is
    still seen as a symlink by the workspace reset.

    >>> str(absolute_path(Path('/tmp/a/../b')))
    '/tmp/b'
    """
    return Path(os.path.abspath(path))


def get_work_dir(default: Path) -> Path:
    """Returns the absolute work directory.

    $TURNIP_WORK_DIR takes precedence over the default. Unlike the NDK's
    out directory, the path is not created here; the workspace reset owns
    creating it.
    """
    return absolute_path(Path(os.getenv(WORK_DIR_ENV, str(default))))


class WorkPaths:
    """Every path a build touches, derived from the work directory.

    Stages are handed these paths explicitly instead of relying on the
    process working directory.
    """

    def __init__(self, config: BuildConfig, work_dir: Optional[Path] = None) -> None:
        self.config = config
        self.work_dir = absolute_path(work_dir or config.work_dir)

    @property
    def ndk_zip(self) -> Path:
        return self.work_dir / self.config.ndk.zip_name

    @property
    def ndk_dir(self) -> Path:
        return self.work_dir / self.config.ndk.name

    @property
    def mesa_zip(self) -> Path:
        return self.work_dir / self.config.mesa.zip_name

    @property
    def mesa_dir(self) -> Path:
        return self.work_dir / self.config.mesa.name

    @property
    def cross_file(self) -> Path:
        return self.mesa_dir / self.config.cross_file_name

    @property
    def build_dir(self) -> Path:
        return self.mesa_dir / self.config.build_dir_name

    @property
    def built_library(self) -> Path:
        """The library as produced by ninja, inside the build tree."""
        return self.build_dir / self.config.built_library

    @property
    def library(self) -> Path:
        """The library copied to the work directory root."""
        return self.work_dir / self.config.built_library.name

    @property
    def renamed_library(self) -> Path:
        """Intermediate copy named as the vendor driver."""
        return self.work_dir / self.config.module_library_name

    @property
    def module_dir(self) -> Path:
        return self.work_dir / self.config.module_dir_name

    @property
    def module_zip(self) -> Path:
        return self.work_dir / self.config.module_zip_name

    @property
    def emulator_library(self) -> Path:
        return self.work_dir / self.config.emulator_meta.library_name

    @property
    def emulator_meta(self) -> Path:
        return self.work_dir / self.config.emulator_meta_name

    @property
    def emulator_zip(self) -> Path:
        return self.work_dir / self.config.emulator_zip_name

    @property
    def meson_log(self) -> Path:
        return self.work_dir / self.config.meson_log_name

    @property
    def ninja_log(self) -> Path:
        return self.work_dir / self.config.ninja_log_name


def walk(
    path: Path,
    top_down: bool = True,
    on_error: Optional[Callable[[OSError], None]] = None,
    follow_links: bool = False,
    directories: bool = True,
) -> Iterator[Path]:
    """Recursively iterates through files in a directory.

    This is a pathlib equivalent of os.walk.

    Args:
        path: Directory tree to walk.
        top_down: If True, walk the tree top-down. If False, walk the tree
                  bottom-up.
        on_error: An error handling callback for any OSError raised by the
                  walk.
        follow_links: If True, walk into symbolic links that resolve to
                      directories.
        directories: If True, the walk will also yield directories.
    Yields:
        A Path for each file (and optionally each directory) in the same manner
        as os.walk.
    """
    for root, dirs, files in os.walk(
        str(path), topdown=top_down, onerror=on_error, followlinks=follow_links
    ):
        root_path = Path(root)
        # Sorted so archives are laid out deterministically.
        dirs.sort()
        if directories:
            for dir_name in dirs:
                yield root_path / dir_name
        for file_name in sorted(files):
            yield root_path / file_name
