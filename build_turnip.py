#!/usr/bin/env python3
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
"""Shortcut for turnip/cli.py.

This would normally be installed by pip as build-turnip, but is kept in the
source directory so a checkout can build without installing.
"""
import turnip.cli


def main() -> None:
    """Trampoline into the command defined in the turnip package."""
    turnip.cli.main()  # pylint: disable=no-value-for-parameter


if __name__ == "__main__":
    main()
