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
"""APIs for string coloring on ANSI terminals."""
import sys
from typing import TextIO

COLORS = {
    'green': '\033[0;32m',
    'red': '\033[0;31m',
    'yellow': '\033[0;33m',
}
END_COLOR = '\033[0m'


def color_string(string: str, color: str) -> str:
    """Returns a string that will be colored when printed to a terminal."""
    return COLORS[color] + string + END_COLOR


def maybe_color(text: str, color: str, do_color: bool) -> str:
    """Returns an (optionally) colored string."""
    return color_string(text, color) if do_color else text


def should_color(stream: TextIO = sys.stdout) -> bool:
    """Returns True if output to the stream should be colored."""
    return stream.isatty()
