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
"""Generates Meson cross files for the NDK toolchain."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Union

from turnip.toolchains import NdkToolchain

MesonValue = Union[str, List[str]]


def meson_format_value(value: MesonValue) -> str:
    """Renders a string or list of strings as a Meson literal.

    >>> meson_format_value('lld')
    "'lld'"
    >>> meson_format_value(['env', 'FOO=1'])
    "['env', 'FOO=1']"
    """
    if isinstance(value, list):
        return '[' + ', '.join(meson_format_value(v) for v in value) + ']'
    escaped = value.replace('\\', '\\\\').replace("'", "\\'")
    return f"'{escaped}'"


def var_dict_to_meson(section: str, var_dict: Dict[str, MesonValue]) -> str:
    lines = [f'[{section}]']
    lines.extend(
        f'{key} = {meson_format_value(value)}' for key, value in var_dict.items())
    return '\n'.join(lines) + '\n'


class CrossFileGenerator:
    """Describes an Android cross build to meson.

    Nothing here checks that the toolchain paths exist or that the flags are
    accepted; meson setup reports those problems.
    """

    def __init__(self, toolchain: NdkToolchain,
                 launcher: Optional[str] = None,
                 cpu_family: str = 'aarch64',
                 cpu: str = 'armv8') -> None:
        self.toolchain = toolchain
        self.launcher = launcher
        self.cpu_family = cpu_family
        self.cpu = cpu

    def _compiler(self, compiler: Path, flags: List[str]) -> List[str]:
        cmd = [] if self.launcher is None else [self.launcher]
        return cmd + [str(compiler)] + flags

    @property
    def binaries(self) -> Dict[str, MesonValue]:
        toolchain = self.toolchain
        return {
            'ar': str(toolchain.ar),
            'c': self._compiler(toolchain.cc, toolchain.flags),
            'cpp': self._compiler(toolchain.cxx, toolchain.cxx_flags),
            'c_ld': toolchain.ld,
            'cpp_ld': toolchain.ld,
            'strip': str(toolchain.strip),
            'pkg-config': [
                'env',
                f'PKG_CONFIG_LIBDIR={toolchain.pkg_config_libdir}',
                '/usr/bin/pkg-config',
            ],
        }

    @property
    def host_machine(self) -> Dict[str, MesonValue]:
        return {
            'system': 'android',
            'cpu_family': self.cpu_family,
            'cpu': self.cpu,
            'endian': 'little',
        }

    def generate_str(self) -> str:
        return (var_dict_to_meson('binaries', self.binaries) +
                var_dict_to_meson('host_machine', self.host_machine))

    def write(self, output: Path) -> Path:
        print('Creating Meson cross file...')
        output.write_text(self.generate_str())
        return output
