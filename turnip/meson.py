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
"""APIs for building meson projects."""
from __future__ import annotations

import logging
from pathlib import Path
import shlex
import shutil
import subprocess
from typing import List, Optional


class BuildError(RuntimeError):
    """Raised when meson or ninja exits unsuccessfully."""

    def __init__(self, step: str, returncode: int, log_path: Path) -> None:
        super().__init__(
            f'{step} failed with exit status {returncode}. See {log_path}')
        self.step = step
        self.returncode = returncode
        self.log_path = log_path


def logger() -> logging.Logger:
    """Returns the module logger."""
    return logging.getLogger(__name__)


class MesonBuilder:
    """Builder for a meson project."""

    def __init__(self,
                 src_path: Path,
                 build_dir: Path,
                 cross_file: Path,
                 options: Optional[List[str]] = None,
                 meson: str = 'meson',
                 ninja: str = 'ninja') -> None:
        """Initializes a meson builder.

        Args:
            src_path: Path to the meson project.
            build_dir: Directory to use for building. If the directory exists,
                it will be deleted and recreated to ensure the build is
                correct.
            cross_file: Meson cross file describing the target.
            options: Additional arguments to meson setup, typically -D
                options.
            meson: meson executable.
            ninja: ninja executable.
        """
        self.src_path = src_path
        self.build_directory = build_dir
        self.cross_file = cross_file
        self.options = list(options or [])
        self.meson = meson
        self.ninja = ninja

    def _run(self, cmd: List[str], log_path: Path, step: str) -> None:
        """Runs a subprocess with its output captured in log_path."""
        logger().debug('exec CWD=%s %s > %s', self.src_path, shlex.join(cmd),
                       log_path)
        with log_path.open('w') as log_file:
            result = subprocess.run(cmd,
                                    cwd=self.src_path,
                                    stdout=log_file,
                                    stderr=subprocess.STDOUT,
                                    check=False)
        if result.returncode != 0:
            raise BuildError(step, result.returncode, log_path)

    def clean(self) -> None:
        """Removes the build directory left by an earlier configure."""
        if self.build_directory.exists():
            shutil.rmtree(self.build_directory)

    def configure(self, log_path: Path) -> None:
        """Invokes meson setup."""
        print('Generating build files...')
        cmd = [
            self.meson,
            'setup',
            str(self.build_directory),
            '--cross-file',
            str(self.cross_file),
        ] + self.options
        self._run(cmd, log_path, 'meson setup')

    def make(self, log_path: Path) -> None:
        """Builds the project."""
        print('Compiling build files...')
        self._run([self.ninja, '-C', str(self.build_directory)], log_path,
                  'ninja')

    def build(self, configure_log: Path, build_log: Path) -> None:
        """Configures and builds the project.

        Logs are left in place on failure for inspection.
        """
        self.clean()
        self.configure(configure_log)
        self.make(build_log)
