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
"""Build configuration for the Turnip driver.

Every URL, directory name, version string and option the build depends on is
held by a single immutable BuildConfig. DEFAULT_CONFIG reproduces the
canonical mesa_git build; callers derive variants with
BuildConfig.with_overrides rather than mutating anything.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from turnip.hosts import Host


@dataclass(frozen=True)
class SourceArchive:
    """A zip archive that extracts to a single top level directory."""

    url: str
    name: str
    sha256: Optional[str] = None

    @property
    def zip_name(self) -> str:
        return f'{self.name}.zip'


@dataclass(frozen=True)
class ModuleProp:
    """Contents of the Magisk module.prop file."""

    id: str
    name: str
    version: str
    version_code: int
    author: str
    description: str
    update_json: str


@dataclass(frozen=True)
class EmulatorMeta:
    """Contents of the emulator driver package's meta.json."""

    name: str
    description: str
    author: str
    package_version: str
    vendor: str
    driver_version: str
    min_api: int
    library_name: str
    schema_version: int = 1

    def to_json_dict(self) -> Dict[str, Any]:
        """Returns the meta.json object with its keys in emitted order."""
        return {
            'schemaVersion': self.schema_version,
            'name': self.name,
            'description': self.description,
            'author': self.author,
            'packageVersion': self.package_version,
            'vendor': self.vendor,
            'driverVersion': self.driver_version,
            'minApi': self.min_api,
            'libraryName': self.library_name,
        }


def ndk_release(version: str) -> SourceArchive:
    """Returns the Linux download of a released NDK, e.g. r27c."""
    name = f'android-ndk-{version}'
    return SourceArchive(
        url=f'https://dl.google.com/android/repository/{name}-linux.zip',
        name=name)


def mesa_archive(ref: str) -> SourceArchive:
    """Returns the GitLab archive of a Mesa branch or tag."""
    name = f'mesa-{ref}'
    return SourceArchive(
        url=f'https://gitlab.freedesktop.org/mesa/mesa/-/archive/{ref}/{name}.zip',
        name=name)


def ndk_description(version: str) -> str:
    """Returns the emulator package description for an NDK release.

    >>> ndk_description('r28-beta1')
    'Compiled using Android NDK 28 Beta'
    >>> ndk_description('r27c')
    'Compiled using Android NDK 27c'
    """
    release, _, suffix = version.lstrip('r').partition('-')
    name = f'Android NDK {release}'
    if suffix.startswith('beta'):
        name += ' Beta'
    return f'Compiled using {name}'


NDK_VERSION = 'r28-beta1'
NDK = ndk_release(NDK_VERSION)
MESA = mesa_archive('main')
API_LEVEL = 33

# Tools looked up on PATH before building.
REQUIRED_TOOLS: Tuple[str, ...] = (
    'meson',
    'ninja',
    'patchelf',
    'unzip',
    'flex',
    'bison',
    'pkg-config',
    'ccache',
)

# Debian packages installed when any required tool is missing.
APT_PACKAGES: Tuple[str, ...] = (
    'meson',
    'ninja-build',
    'patchelf',
    'unzip',
    'python3-pip',
    'flex',
    'bison',
    'pkg-config',
    'ccache',
    'python3-mako',
    'python-is-python3',
)


@dataclass(frozen=True)
class BuildConfig:
    """Immutable description of one driver build."""

    work_dir: Path = Path('turnip_workdir')
    ndk: SourceArchive = NDK
    mesa: SourceArchive = MESA
    host: Host = Host.Linux
    target_triple: str = 'aarch64-linux-android'
    api_level: int = API_LEVEL
    compiler_launcher: Optional[str] = 'ccache'

    cross_file_name: str = 'android-aarch64'
    build_dir_name: str = 'build-android-aarch64'
    built_library: Path = Path('src/freedreno/vulkan/libvulkan_freedreno.so')
    vulkan_drivers: str = 'freedreno'
    freedreno_kmds: str = 'kgsl'
    meson_log_name: str = 'meson_log'
    ninja_log_name: str = 'ninja_log'

    module_dir_name: str = 'turnip_module'
    module_library_name: str = 'vulkan.adreno.so'
    module_prop: ModuleProp = ModuleProp(
        id='turnip-mesa',
        name='Freedreno Turnip Vulkan Driver-mesa_git',
        version='v24.3',
        version_code=261024,
        author='v3kt0r-87,Str4nger01',
        description=('Turnip is an open-source vulkan driver for devices with '
                     'Adreno 6xx-7xx GPUs.'),
        update_json=('https://raw.githubusercontent.com/str4ng3r-01/'
                     'Mesa-Turnip-Builder/refs/heads/test/update.json'),
    )
    banner: str = 'Freedreno Turnip Vulkan Driver -V3KT0R'
    support_line: str = 'Adreno Driver Support Group - Telegram'
    credits: str = '@VEKT0R_87 , @Str4nger01'
    module_zip_name: str = 'Turnip-MAGISK-KSU-mesa_git.zip'

    emulator_meta: EmulatorMeta = EmulatorMeta(
        name='Freedreno Turnip Driver mesa_git',
        description=ndk_description(NDK_VERSION),
        author='v3kt0r-87,@Str4nger01',
        package_version='3',
        vendor='Mesa3D',
        driver_version='Vulkan 1.3.296',
        min_api=API_LEVEL,
        library_name='vulkan.turnip.so',
    )
    emulator_meta_name: str = 'meta.json'
    emulator_zip_name: str = 'Turnip-EMULATOR-mesa_git.zip'

    required_tools: Tuple[str, ...] = REQUIRED_TOOLS
    apt_packages: Tuple[str, ...] = APT_PACKAGES
    install_missing_deps: bool = True

    extra_meson_options: Tuple[str, ...] = field(default_factory=tuple)

    def with_overrides(self, **changes: Any) -> BuildConfig:
        """Returns a copy of this config with the given fields replaced."""
        return replace(self, **changes)

    def meson_options(self) -> List[str]:
        """Returns the -D options passed to meson setup."""
        options = {
            'buildtype': 'release',
            'b_pie': 'true',
            'platforms': 'android',
            'platform-sdk-version': str(self.api_level),
            'android-stub': 'true',
            'gallium-drivers': '',
            'vulkan-drivers': self.vulkan_drivers,
            'freedreno-kmds': self.freedreno_kmds,
            'b_lto': 'true',
            'strip': 'true',
        }
        args = [f'-D{key}={value}' for key, value in options.items()]
        args.extend(self.extra_meson_options)
        return args


DEFAULT_CONFIG = BuildConfig()
