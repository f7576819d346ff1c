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
"""Tests for turnip.pipeline."""
import os
from pathlib import Path
import shutil
from typing import Dict, List
import zipfile

import pytest

from turnip.archive import list_entries
from turnip.config import DEFAULT_CONFIG
from turnip.crossfile import CrossFileGenerator
from turnip.hosts import Host
from turnip.paths import WorkPaths
from turnip.pipeline import (BuildContext, Pipeline, PipelineState, Step,
                             default_steps, package_emulator, package_module,
                             prepare_workdir, verify_library)
from turnip.toolchains import NdkToolchain


def make_context(work_dir: Path) -> BuildContext:
    return BuildContext(DEFAULT_CONFIG, WorkPaths(DEFAULT_CONFIG, work_dir),
                        check_deps=False)


def fake_fetch(context: BuildContext) -> None:
    context.paths.ndk_dir.mkdir()
    context.paths.mesa_dir.mkdir()


def fake_build(context: BuildContext) -> None:
    library = context.paths.built_library
    library.parent.mkdir(parents=True)
    library.write_bytes(b'\x7fELF')


def no_build(context: BuildContext) -> None:
    context.paths.build_dir.mkdir()


def steps_with(build) -> List[Step]:
    return [
        Step('prepare work directory', PipelineState.WORKDIR_READY,
             prepare_workdir),
        Step('fetch sources', PipelineState.SOURCES_FETCHED, fake_fetch),
        Step('compile', PipelineState.BUILT, build),
        Step('verify library', PipelineState.LIB_VERIFIED, verify_library),
        Step('package Magisk module', PipelineState.MODULE_PACKAGED,
             package_module),
        Step('package emulator driver', PipelineState.EMULATOR_PACKAGED,
             package_emulator),
    ]


def test_default_steps_reach_every_state_in_order() -> None:
    assert [step.state for step in default_steps()] == [
        PipelineState.DEPS_CHECKED,
        PipelineState.WORKDIR_READY,
        PipelineState.SOURCES_FETCHED,
        PipelineState.CONFIGURED,
        PipelineState.BUILT,
        PipelineState.LIB_VERIFIED,
        PipelineState.MODULE_PACKAGED,
        PipelineState.EMULATOR_PACKAGED,
    ]


def test_successful_build(tmp_path: Path) -> None:
    work_dir = tmp_path / 'work'
    work_dir.mkdir()
    (work_dir / 'stale').write_text('from a previous run')

    context = make_context(work_dir)
    pipeline = Pipeline(context, steps_with(fake_build))
    assert pipeline.state is PipelineState.INIT
    result = pipeline.run()

    assert result.ok
    assert pipeline.state is PipelineState.DONE
    assert [r.ok for r in result.results] == [True] * 6
    assert result.failure is None
    assert result.module_zip == context.paths.module_zip
    assert result.emulator_zip == context.paths.emulator_zip
    assert result.module_zip.stat().st_size > 0
    assert sorted(list_entries(result.emulator_zip)) == [
        'meta.json', 'vulkan.turnip.so'
    ]

    assert not (work_dir / 'stale').exists()
    # No loose libraries or metadata remain beside the packages.
    loose = sorted(p.name for p in work_dir.iterdir() if p.is_file())
    assert loose == [
        'Turnip-EMULATOR-mesa_git.zip',
        'Turnip-MAGISK-KSU-mesa_git.zip',
    ]


def test_missing_library_aborts_before_packaging(tmp_path: Path) -> None:
    work_dir = tmp_path / 'work'
    context = make_context(work_dir)
    pipeline = Pipeline(context, steps_with(no_build))
    result = pipeline.run()

    assert not result.ok
    assert result.state is PipelineState.ABORTED
    assert pipeline.state is PipelineState.ABORTED
    assert len(result.results) == 4
    failure = result.failure
    assert failure is not None
    assert failure.step == 'verify library'
    assert failure.error == 'Build failed! libvulkan_freedreno.so not found'
    assert result.module_zip is None
    assert result.emulator_zip is None
    assert not context.paths.module_dir.exists()
    assert not context.paths.module_zip.exists()


def test_failure_message_falls_back_to_exception_name(tmp_path: Path) -> None:

    def fail(context: BuildContext) -> None:
        raise KeyError()

    context = make_context(tmp_path / 'work')
    result = Pipeline(context,
                      [Step('explode', PipelineState.BUILT, fail)]).run()
    assert result.state is PipelineState.ABORTED
    assert result.failure is not None
    assert result.failure.error == 'KeyError'


def test_skipped_dependency_check(tmp_path: Path,
                                  monkeypatch: pytest.MonkeyPatch) -> None:

    def explode(*args, **kwargs) -> None:
        raise AssertionError('dependency check should be skipped')

    monkeypatch.setattr('turnip.pipeline.check_dependencies', explode)
    context = make_context(tmp_path / 'work')
    check_step = default_steps()[0]
    result = Pipeline(context, [check_step]).run()
    assert result.ok


FAKE_MESON = """\
#!/bin/sh
echo "meson $@"
echo "cwd=$(pwd)"
mkdir -p "$2"
exit {exit_status}
"""

FAKE_NINJA = """\
#!/bin/sh
echo "ninja $@"
mkdir -p "$2/src/freedreno/vulkan"
printf 'ELF' > "$2/src/freedreno/vulkan/libvulkan_freedreno.so"
"""


def install_build_tools(bin_dir: Path, monkeypatch: pytest.MonkeyPatch,
                        meson_status: int = 0) -> None:
    """Puts stand-ins for meson and ninja first on PATH."""
    bin_dir.mkdir()
    for name, script in (('meson', FAKE_MESON.format(exit_status=meson_status)),
                         ('ninja', FAKE_NINJA)):
        tool = bin_dir / name
        tool.write_text(script)
        tool.chmod(0o755)
    monkeypatch.setenv('PATH', f'{bin_dir}{os.pathsep}{os.environ["PATH"]}')


def serve_sources(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Makes downloads return small NDK and Mesa archives."""
    contents: Dict[str, Dict[str, str]] = {
        'android-ndk-r28-beta1.zip': {
            'android-ndk-r28-beta1/source.properties': 'Pkg.Revision = 28\n',
        },
        'mesa-main.zip': {
            'mesa-main/meson.build': "project('mesa')\n",
            # A build tree shipped in the archive must not survive configure.
            'mesa-main/build-android-aarch64/stale.ninja': '',
        },
    }
    archives = {}
    for zip_name, files in contents.items():
        path = tmp_path / zip_name
        with zipfile.ZipFile(path, 'w') as archive:
            for name, text in files.items():
                archive.writestr(name, text)
        archives[zip_name] = path.read_bytes()

    async def fake_download(url: str, destination: Path, sha256=None) -> Path:
        destination.write_bytes(archives[destination.name])
        return destination

    monkeypatch.setattr('turnip.fetch.download', fake_download)


@pytest.mark.skipif(shutil.which('unzip') is None,
                    reason='unzip is not installed')
def test_default_steps_build_and_package(
        tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    install_build_tools(tmp_path / 'bin', monkeypatch)
    serve_sources(tmp_path, monkeypatch)
    context = make_context(tmp_path / 'work')
    paths = context.paths

    result = Pipeline(context).run()
    assert result.failure is None
    assert result.state is PipelineState.DONE

    toolchain = NdkToolchain(paths.ndk_dir, Host.Linux, 'aarch64-linux-android',
                             33)
    cross_file = paths.mesa_dir / 'android-aarch64'
    assert cross_file.read_text() == CrossFileGenerator(
        toolchain, 'ccache').generate_str()
    assert (f"pkg-config = ['env', 'PKG_CONFIG_LIBDIR={paths.ndk_dir}/"
            "pkg-config', '/usr/bin/pkg-config']") in cross_file.read_text()

    assert not (paths.build_dir / 'stale.ninja').exists()
    meson_lines = (paths.work_dir / 'meson_log').read_text().splitlines()
    assert meson_lines[0] == ' '.join(
        ['meson', 'setup', str(paths.build_dir), '--cross-file',
         str(cross_file)] + DEFAULT_CONFIG.meson_options())
    assert meson_lines[1] == f'cwd={paths.mesa_dir}'
    assert (paths.work_dir / 'ninja_log').read_text().splitlines() == [
        f'ninja -C {paths.build_dir}'
    ]

    assert result.module_zip is not None and result.module_zip.is_file()
    assert result.emulator_zip is not None and result.emulator_zip.is_file()


@pytest.mark.skipif(shutil.which('unzip') is None,
                    reason='unzip is not installed')
def test_configure_failure_aborts_before_compile(
        tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    install_build_tools(tmp_path / 'bin', monkeypatch, meson_status=1)
    serve_sources(tmp_path, monkeypatch)
    context = make_context(tmp_path / 'work')

    result = Pipeline(context).run()
    assert result.state is PipelineState.ABORTED
    failure = result.failure
    assert failure is not None
    assert failure.step == 'configure'
    assert failure.error == (
        'meson setup failed with exit status 1. '
        f'See {context.paths.work_dir / "meson_log"}')
    assert [r.step for r in result.results][-1] == 'configure'
    assert not (context.paths.work_dir / 'ninja_log').exists()
