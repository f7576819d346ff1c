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
"""Work directory management."""
from __future__ import annotations

import logging
from pathlib import Path
import shutil


class WorkspaceError(RuntimeError):
    """Raised when a path is unsafe to use as a work directory."""


def logger() -> logging.Logger:
    """Returns the module logger."""
    return logging.getLogger(__name__)


def reset_workspace(work_dir: Path) -> Path:
    """Deletes and recreates the work directory.

    Anything left by a previous run, complete or interrupted, is discarded so
    every build starts from an empty directory.

    Args:
        work_dir: Directory to reset.

    Returns:
        The resolved path of the (now empty) work directory.

    Raises:
        WorkspaceError: work_dir is a symlink, the filesystem root or the home
            directory, or exists but is not a directory.
    """
    if work_dir.is_symlink():
        raise WorkspaceError(
            f'Refusing to reset {work_dir}: it is a symlink to '
            f'{work_dir.resolve()}')
    if work_dir.is_file():
        raise WorkspaceError(f'Not a directory: {work_dir}')

    work_dir = work_dir.resolve()
    if work_dir == Path(work_dir.anchor) or work_dir == Path.home().resolve():
        raise WorkspaceError(f'Refusing to use {work_dir} as a work directory')

    if work_dir.exists():
        print('Work directory already exists. Cleaning before proceeding...')
        logger().debug('rmtree %s', work_dir)
        shutil.rmtree(work_dir)

    logger().debug('mkdir -p %s', work_dir)
    work_dir.mkdir(parents=True)
    return work_dir
