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
"""Runs the driver build as a sequence of fail-fast stages.

Each stage either completes, advancing the pipeline to the state it names, or
raises. The exception is captured as a failed StageResult and the pipeline
stops in ABORTED. There is no resume: a rerun starts over from INIT and the
workspace reset discards whatever the failed run left behind.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import datetime
from enum import Enum, unique
import logging
from pathlib import Path
import timeit
from typing import Callable, List, Optional

from turnip.config import BuildConfig
from turnip.crossfile import CrossFileGenerator
from turnip.deps import check_dependencies
from turnip.fetch import fetch_and_extract
from turnip.meson import MesonBuilder
from turnip.packaging import EmulatorPackage, MagiskModule, materialize_library
from turnip.paths import WorkPaths
from turnip.toolchains import NdkToolchain
from turnip.workspace import reset_workspace


@unique
class PipelineState(Enum):
    INIT = 'init'
    DEPS_CHECKED = 'deps-checked'
    WORKDIR_READY = 'workdir-ready'
    SOURCES_FETCHED = 'sources-fetched'
    CONFIGURED = 'configured'
    BUILT = 'built'
    LIB_VERIFIED = 'lib-verified'
    MODULE_PACKAGED = 'module-packaged'
    EMULATOR_PACKAGED = 'emulator-packaged'
    DONE = 'done'
    ABORTED = 'aborted'


def logger() -> logging.Logger:
    """Returns the module logger."""
    return logging.getLogger(__name__)


class BuildContext:
    """Class containing build context information."""

    def __init__(self, config: BuildConfig, paths: WorkPaths,
                 do_color: bool = False, check_deps: bool = True) -> None:
        self.config = config
        self.paths = paths
        self.do_color = do_color
        self.check_deps = check_deps

    @property
    def meson_builder(self) -> MesonBuilder:
        return MesonBuilder(self.paths.mesa_dir, self.paths.build_dir,
                            self.paths.cross_file, self.config.meson_options())


@dataclass(frozen=True)
class Step:
    name: str
    # The state the pipeline is in once this step completes.
    state: PipelineState
    action: Callable[[BuildContext], None]


@dataclass(frozen=True)
class StageResult:
    step: str
    state: PipelineState
    ok: bool
    error: Optional[str] = None
    duration: datetime.timedelta = datetime.timedelta()


@dataclass
class PipelineResult:
    state: PipelineState
    results: List[StageResult] = field(default_factory=list)
    module_zip: Optional[Path] = None
    emulator_zip: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def failure(self) -> Optional[StageResult]:
        """The result of the step that aborted the pipeline, if any."""
        for result in self.results:
            if not result.ok:
                return result
        return None


def check_deps(context: BuildContext) -> None:
    if not context.check_deps:
        logger().info('Skipping dependency check')
        return
    config = context.config
    check_dependencies(config.required_tools,
                       config.apt_packages,
                       install=config.install_missing_deps,
                       do_color=context.do_color)


def prepare_workdir(context: BuildContext) -> None:
    reset_workspace(context.paths.work_dir)


def fetch_sources(context: BuildContext) -> None:
    config = context.config
    work_dir = context.paths.work_dir
    fetch_and_extract(config.ndk, work_dir, 'Android NDK')
    fetch_and_extract(config.mesa, work_dir, 'Mesa source')


def configure_build(context: BuildContext) -> None:
    config = context.config
    paths = context.paths
    toolchain = NdkToolchain(paths.ndk_dir, config.host, config.target_triple,
                             config.api_level)
    CrossFileGenerator(toolchain, config.compiler_launcher).write(
        paths.cross_file)
    builder = context.meson_builder
    builder.clean()
    builder.configure(paths.meson_log)


def compile_driver(context: BuildContext) -> None:
    context.meson_builder.make(context.paths.ninja_log)


def verify_library(context: BuildContext) -> None:
    materialize_library(context.paths.built_library, context.paths.library)


def package_module(context: BuildContext) -> None:
    paths = context.paths
    module = MagiskModule(context.config, paths.module_dir)
    module.stage(paths.library, paths.renamed_library)
    module.package(paths.module_zip)


def package_emulator(context: BuildContext) -> None:
    config = context.config
    paths = context.paths
    package = EmulatorPackage(config.emulator_meta, paths.work_dir,
                              config.emulator_meta_name)
    package.stage(paths.renamed_library)
    package.package(paths.emulator_zip)
    # Both packages are made; the copy pulled out of the build tree is spent.
    paths.library.unlink()


def default_steps() -> List[Step]:
    return [
        Step('check dependencies', PipelineState.DEPS_CHECKED, check_deps),
        Step('prepare work directory', PipelineState.WORKDIR_READY,
             prepare_workdir),
        Step('fetch sources', PipelineState.SOURCES_FETCHED, fetch_sources),
        Step('configure', PipelineState.CONFIGURED, configure_build),
        Step('compile', PipelineState.BUILT, compile_driver),
        Step('verify library', PipelineState.LIB_VERIFIED, verify_library),
        Step('package Magisk module', PipelineState.MODULE_PACKAGED,
             package_module),
        Step('package emulator driver', PipelineState.EMULATOR_PACKAGED,
             package_emulator),
    ]


class Pipeline:
    """Runs steps in order, stopping at the first failure."""

    def __init__(self, context: BuildContext,
                 steps: Optional[List[Step]] = None) -> None:
        self.context = context
        self.steps = default_steps() if steps is None else steps
        self.state = PipelineState.INIT

    def _run_step(self, step: Step) -> StageResult:
        logger().info('Running step: %s', step.name)
        start = timeit.default_timer()
        error: Optional[str] = None
        try:
            step.action(self.context)
        except Exception as ex:  # pylint: disable=broad-except
            logger().debug('Step %s failed', step.name, exc_info=True)
            error = str(ex) or type(ex).__name__
        # Not interested in partial seconds at this scale.
        duration = datetime.timedelta(
            seconds=int(timeit.default_timer() - start))
        return StageResult(step.name, step.state, error is None, error,
                           duration)

    def run(self) -> PipelineResult:
        result = PipelineResult(self.state)
        for step in self.steps:
            stage_result = self._run_step(step)
            result.results.append(stage_result)
            if not stage_result.ok:
                self.state = PipelineState.ABORTED
                result.state = self.state
                return result
            self.state = step.state

        self.state = PipelineState.DONE
        result.state = self.state
        result.module_zip = self.context.paths.module_zip
        result.emulator_zip = self.context.paths.emulator_zip
        return result
