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
"""Packages the built driver for Magisk/KSU and for emulators."""
from __future__ import annotations

import json
import logging
from pathlib import Path
import shutil
import stat
from typing import List

from turnip.archive import list_entries, make_zip, make_zip_of_dir
from turnip.config import BuildConfig, EmulatorMeta
from turnip.templates import VENDOR_HW_DIR, render_module_files

EXECUTABLE_MODE = (stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH |
                   stat.S_IXOTH)


class LibraryNotFoundError(RuntimeError):
    """Raised when the build did not produce the driver library."""


class PackagingError(RuntimeError):
    """Raised when a package was not created as expected."""


def logger() -> logging.Logger:
    """Returns the module logger."""
    return logging.getLogger(__name__)


def materialize_library(built_library: Path, destination: Path) -> Path:
    """Copies the library out of the build tree.

    This is the one artifact both packages are made from, so its absence is
    reported before either is attempted.

    Raises:
        LibraryNotFoundError: The build tree has no library to copy.
    """
    if destination.exists():
        destination.unlink()
    if built_library.is_file():
        logger().debug('cp %s %s', built_library, destination)
        shutil.copyfile(built_library, destination)
    if not destination.is_file():
        raise LibraryNotFoundError(
            f'Build failed! {built_library.name} not found')
    return destination


class MagiskModule:
    """A flashable Magisk/KSU module that overlays the vendor Vulkan driver."""

    def __init__(self, config: BuildConfig, module_dir: Path) -> None:
        self.config = config
        self.module_dir = module_dir

    @property
    def library_path(self) -> Path:
        return self.module_dir / VENDOR_HW_DIR / self.config.module_library_name

    def stage(self, library: Path, renamed_library: Path) -> None:
        """Lays out the module tree.

        Args:
            library: The materialized driver library.
            renamed_library: Where to leave a copy of the library under its
                vendor name. The emulator package is made from this copy.
        """
        print('Prepare magisk module structure...')
        if self.module_dir.exists():
            shutil.rmtree(self.module_dir)
        self.library_path.parent.mkdir(parents=True)

        shutil.copyfile(library, renamed_library)
        shutil.copyfile(renamed_library, self.library_path)

        for relpath, text in render_module_files(self.config).items():
            path = self.module_dir / relpath
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
            if path.name in ('update-binary', 'customize.sh'):
                path.chmod(EXECUTABLE_MODE)

    def package(self, zip_file: Path) -> Path:
        """Zips the staged tree.

        Raises:
            PackagingError: The zip was not created.
        """
        print('Packing driver files into Magisk/KSU module ...')
        make_zip_of_dir(zip_file, self.module_dir)
        if not zip_file.is_file():
            raise PackagingError('Packing failed!')
        return zip_file


class EmulatorPackage:
    """A driver zip loadable by emulators: the library plus meta.json."""

    def __init__(self, meta: EmulatorMeta, work_dir: Path,
                 meta_name: str) -> None:
        self.meta = meta
        self.work_dir = work_dir
        self.meta_path = work_dir / meta_name

    @property
    def library_path(self) -> Path:
        return self.work_dir / self.meta.library_name

    def generate_meta_str(self) -> str:
        return json.dumps(self.meta.to_json_dict(), indent=2) + '\n'

    def stage(self, renamed_library: Path) -> None:
        print('Creating Turnip build for EMULATOR...')
        renamed_library.rename(self.library_path)
        self.meta_path.write_text(self.generate_meta_str())

    @property
    def contents(self) -> List[Path]:
        return [self.library_path, self.meta_path]

    def package(self, zip_file: Path) -> Path:
        """Zips the library and meta.json, then removes the loose copies.

        Raises:
            PackagingError: The zip was not created or is missing entries.
        """
        make_zip(zip_file, self.work_dir, self.contents)
        if not zip_file.is_file():
            raise PackagingError('Error: Zipping driver files failed.')

        entries = sorted(list_entries(zip_file))
        expected = sorted(p.name for p in self.contents)
        if entries != expected:
            raise PackagingError(
                f'{zip_file.name} contains {entries}, expected {expected}')

        for path in self.contents:
            path.unlink()
        return zip_file
