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
"""Checks for, and installs, the host tools needed to build the driver."""
from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from typing import Callable, Iterable, List, Optional, Sequence

from turnip.hosts import Host
from turnip.termcolor import maybe_color


class MissingDependencyError(RuntimeError):
    """Raised when required tools are still unavailable."""

    def __init__(self, tools: Sequence[str]) -> None:
        super().__init__(
            'Missing required tools: {}'.format(', '.join(tools)))
        self.tools = list(tools)


def logger() -> logging.Logger:
    """Returns the module logger."""
    return logging.getLogger(__name__)


def find_missing(tools: Iterable[str],
                 which: Callable[[str], Optional[str]] = shutil.which
                 ) -> List[str]:
    """Returns the tools that cannot be found on PATH, in the given order."""
    return [tool for tool in tools if which(tool) is None]


def install_command(packages: Sequence[str]) -> List[str]:
    """Returns the apt command that installs the given packages."""
    cmd = ['apt', 'install', '-y'] + list(packages)
    if os.geteuid() != 0:
        cmd.insert(0, 'sudo')
    return cmd


def run_install(cmd: List[str]) -> int:
    """Runs the package manager, logging its output, and returns its status."""
    logger().debug('exec %s', shlex.join(cmd))
    proc = subprocess.run(cmd,
                          stdout=subprocess.PIPE,
                          stderr=subprocess.STDOUT,
                          encoding='utf-8',
                          check=False)
    for line in proc.stdout.splitlines():
        logger().debug('%s', line)
    return proc.returncode


def print_report(tools: Iterable[str], missing: Sequence[str],
                 do_color: bool) -> None:
    for tool in tools:
        if tool in missing:
            print(maybe_color(f' - {tool} not found', 'red', do_color))
        else:
            print(maybe_color(f' - {tool} found', 'green', do_color))


def check_dependencies(
        tools: Sequence[str],
        packages: Sequence[str],
        install: bool = True,
        do_color: bool = False,
        which: Callable[[str], Optional[str]] = shutil.which,
        installer: Callable[[List[str]], int] = run_install) -> None:
    """Verifies that every tool is available, installing packages if not.

    A single install pass is attempted when anything is missing. Presence is
    checked again afterwards, so a failed or partial install is reported here
    rather than by whichever build step first needs the tool.

    Args:
        tools: Executable names to look up on PATH.
        packages: Packages to install when any tool is missing.
        install: Set to False to fail without attempting to install.
        do_color: Color the per-tool report.
        which: Lookup function with the signature of shutil.which.
        installer: Runs the install command and returns its exit status.

    Raises:
        MissingDependencyError: Tools are missing after the install pass.
    """
    print('Checking system for required dependencies...')
    missing = find_missing(tools, which)
    print_report(tools, missing, do_color)
    if not missing:
        return

    if not install:
        raise MissingDependencyError(missing)
    if Host.current() is not Host.Linux:
        logger().warning('Automatic installation requires apt; skipping.')
        raise MissingDependencyError(missing)

    print('Missing dependencies, installing them now...')
    status = installer(install_command(packages))
    if status != 0:
        logger().warning('Package installation exited with status %d', status)

    still_missing = find_missing(tools, which)
    if still_missing:
        raise MissingDependencyError(still_missing)
    logger().info('Installed %s', ', '.join(missing))
