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
"""Command line entry point for building the Turnip driver."""
from __future__ import annotations

from dataclasses import replace
import logging
from pathlib import Path
import sys
from typing import Optional

import click

from turnip.config import (DEFAULT_CONFIG, BuildConfig, mesa_archive,
                           ndk_description, ndk_release)
from turnip.paths import WorkPaths, get_work_dir
from turnip.pipeline import BuildContext, Pipeline, PipelineResult
from turnip.termcolor import maybe_color, should_color


def make_config(ndk_version: Optional[str], mesa_ref: Optional[str],
                api_level: Optional[int], install_deps: bool) -> BuildConfig:
    """Applies command line overrides to DEFAULT_CONFIG."""
    config = DEFAULT_CONFIG.with_overrides(install_missing_deps=install_deps)
    if ndk_version is not None:
        config = config.with_overrides(
            ndk=ndk_release(ndk_version),
            emulator_meta=replace(config.emulator_meta,
                                  description=ndk_description(ndk_version)))
    if mesa_ref is not None:
        config = config.with_overrides(mesa=mesa_archive(mesa_ref))
    if api_level is not None:
        config = config.with_overrides(
            api_level=api_level,
            emulator_meta=replace(config.emulator_meta, min_api=api_level))
    return config


def print_summary(result: PipelineResult, do_color: bool) -> None:
    print()
    for stage in result.results:
        print('{}: {}'.format(stage.step, stage.duration))
    print()
    if result.ok:
        print(maybe_color('All done, you can take your drivers from here;',
                          'green', do_color))
        print(result.module_zip)
        print(result.emulator_zip)
        print(maybe_color('Build Finished :).', 'green', do_color))
    else:
        failure = result.failure
        assert failure is not None
        print(maybe_color(f'{failure.step} failed: {failure.error}', 'red',
                          do_color))


@click.command()
@click.option(
    '-v',
    '--verbose',
    count=True,
    default=0,
    help='Increase verbosity (repeatable).',
)
@click.option(
    '--work-dir',
    type=click.Path(file_okay=False, path_type=Path),
    help=(
        'Directory to download, build and package in. Deleted and recreated '
        'on every run. Defaults to $TURNIP_WORK_DIR or ./turnip_workdir.'
    ),
)
@click.option('--ndk-version',
              help='Released NDK to build with, such as r27c.')
@click.option('--mesa-ref', help='Mesa branch or tag to build.')
@click.option('--api-level',
              type=click.IntRange(min=24),
              help='Minimum Android API level to target.')
@click.option('--install-deps/--no-install-deps',
              default=True,
              help='Install missing tools with apt.')
@click.option('--skip-deps-check',
              is_flag=True,
              help='Do not check for required tools.')
@click.option('--color/--no-color',
              default=None,
              help='Color output. Defaults to on for terminals.')
def main(verbose: int, work_dir: Optional[Path], ndk_version: Optional[str],
         mesa_ref: Optional[str], api_level: Optional[int], install_deps: bool,
         skip_deps_check: bool, color: Optional[bool]) -> None:
    """Builds the Turnip Vulkan driver for Adreno GPUs.

    Downloads the Android NDK and Mesa, cross compiles Mesa's freedreno
    Vulkan driver and packages it as a Magisk/KSU module and as an emulator
    driver zip.
    """
    log_levels = [logging.INFO, logging.DEBUG]
    logging.basicConfig(level=log_levels[min(verbose, len(log_levels) - 1)])
    do_color = should_color() if color is None else color

    config = make_config(ndk_version, mesa_ref, api_level, install_deps)
    if work_dir is None:
        work_dir = get_work_dir(config.work_dir)
    paths = WorkPaths(config, work_dir)

    context = BuildContext(config, paths, do_color=do_color,
                           check_deps=not skip_deps_check)
    result = Pipeline(context).run()
    print_summary(result, do_color)
    sys.exit(0 if result.ok else 1)
