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
"""Constants and helper functions for build hosts."""
from __future__ import annotations

import enum
import sys


@enum.unique
class Host(enum.Enum):
    """Enumeration of hosts the NDK ships prebuilt toolchains for."""

    Darwin = 'darwin'
    Linux = 'linux'

    @property
    def tag(self) -> str:
        """Returns the NDK prebuilt directory tag for this host.

        >>> Host.Linux.tag
        'linux-x86_64'
        """
        # The NDK still names the universal Darwin toolchain x86_64.
        return f'{self.value}-x86_64'

    @classmethod
    def current(cls) -> Host:
        """Returns the Host matching the current machine."""
        if sys.platform in ('linux', 'linux2'):
            return Host.Linux
        elif sys.platform == 'darwin':
            return Host.Darwin
        else:
            raise RuntimeError(f'Unsupported host: {sys.platform}')
