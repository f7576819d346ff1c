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
"""APIs for accessing the NDK's LLVM toolchain."""
from __future__ import annotations

from pathlib import Path
from typing import List

from turnip.hosts import Host


class NdkToolchain:
    """The LLVM toolchain shipped in an extracted NDK.

    Describes the directories, executables, and default flags needed to build
    for one Android target and API level.
    """

    def __init__(self, ndk_path: Path, host: Host, triple: str,
                 api_level: int) -> None:
        self.ndk_path = ndk_path
        self.host = host
        self.triple = triple
        self.api_level = api_level

    @property
    def path(self) -> Path:
        """The path to the top level toolchain directory."""
        return self.ndk_path / 'toolchains/llvm/prebuilt' / self.host.tag

    @property
    def bin_dir(self) -> Path:
        return self.path / 'bin'

    @property
    def ar(self) -> Path:
        """The path to the archiver."""
        return self.bin_dir / 'llvm-ar'

    @property
    def cc(self) -> Path:
        """The path to the API level specific C compiler driver."""
        return self.bin_dir / f'{self.triple}{self.api_level}-clang'

    @property
    def cxx(self) -> Path:
        """The path to the API level specific C++ compiler driver."""
        return self.bin_dir / f'{self.triple}{self.api_level}-clang++'

    @property
    def strip(self) -> Path:
        return self.bin_dir / f'{self.triple}-strip'

    @property
    def ld(self) -> str:
        """The linker, as named to the compiler driver's -fuse-ld."""
        return 'lld'

    @property
    def pkg_config_libdir(self) -> Path:
        # Does not exist in the NDK. Pointing pkg-config here keeps it from
        # resolving the build machine's libraries during a cross build.
        return self.ndk_path / 'pkg-config'

    @property
    def flags(self) -> List[str]:
        """The default flags to be used with the C compiler."""
        return ['-fno-semantic-interposition', '-O2', '-flto']

    @property
    def cxx_flags(self) -> List[str]:
        """The default flags to be used with the C++ compiler."""
        return [
            '-fno-semantic-interposition',
            '-fno-exceptions',
            '-fno-unwind-tables',
            '-fno-asynchronous-unwind-tables',
            '-static-libstdc++',
            '-O2',
            '-flto',
        ]
