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
"""Templates for the text files shipped in the Magisk module.

Each template is a str.format string. Literal braces in the shell scripts are
doubled. Values are always supplied as an explicit mapping so a missing key
fails loudly instead of emitting a half-rendered script.
"""
from __future__ import annotations

import textwrap
from typing import Dict, Mapping

from turnip.config import BuildConfig

META_INF_DIR = 'META-INF/com/google/android'
VENDOR_HW_DIR = 'system/vendor/lib64/hw'

MIN_MAGISK_VERSION = 'v20.4'
MIN_MAGISK_VERSION_CODE = 20400

ANDROID_RELEASES = {
    29: '10',
    30: '11',
    31: '12',
    32: '12L',
    33: '13',
    34: '14',
    35: '15',
}

# (search root, name pattern) pairs for the GPU cache sweep in customize.sh.
CACHE_SWEEPS = (
    ('/data/user_de/*/*/*cache/*', '*shader*'),
    ('/data/data/*', '*shader*'),
    ('/data/data/*', '*graphitecache*'),
    ('/data/data/*', '*gpucache*'),
    ('/data_mirror/data*/*/*/*/*', '*shader*'),
    ('/data_mirror/data*/*/*/*/*', '*graphitecache*'),
    ('/data_mirror/data*/*/*/*/*', '*gpucache*'),
)

UPDATE_BINARY = textwrap.dedent("""\
    #################
    # Initialization
    #################
    umask 022
    # echo before loading util_functions
    ui_print() {{ echo "$1"; }}
    require_new_magisk() {{
      ui_print "*******************************"
      ui_print " Please install Magisk {min_magisk_version}+! "
      ui_print "*******************************"
      exit 1
    }}
    #########################
    # Load util_functions.sh
    #########################
    OUTFD=$2
    ZIPFILE=$3
    [ -f /data/adb/magisk/util_functions.sh ] || require_new_magisk
    . /data/adb/magisk/util_functions.sh
    [ $MAGISK_VER_CODE -lt {min_magisk_version_code} ] && require_new_magisk
    install_module
    exit 0
    """)

UPDATER_SCRIPT = '#MAGISK\n'

MODULE_PROP = textwrap.dedent("""\
    id={id}
    name={name}
    version={version}
    versionCode={version_code}
    author={author}
    description={description}
    updateJson={update_json}
    """)

CUSTOMIZE_SH = textwrap.dedent("""\
    MODVER=`grep_prop version $MODPATH/module.prop`
    MODVERCODE=`grep_prop versionCode $MODPATH/module.prop`

    ui_print ""
    ui_print "Version=$MODVER "
    ui_print "MagiskVersion=$MAGISK_VER"
    ui_print ""
    ui_print "{banner}"
    ui_print "{support_line}"
    ui_print ""
    sleep 1.25

    ui_print ""
    ui_print "Checking Device info ..."
    sleep 1.25

    [ $(getprop ro.system.build.version.sdk) -lt {api_level} ] && echo "Android {android_release} is required! Aborting ..." && abort
    echo ""
    echo "Everything looks fine .... proceeding"
    ui_print ""
    ui_print "Installing Driver Please Wait ..."
    ui_print ""

    sleep 1.25
    set_perm_recursive $MODPATH/system 0 0 755 u:object_r:system_file:s0
    set_perm_recursive $MODPATH/system/vendor 0 2000 755 u:object_r:vendor_file:s0
    set_perm $MODPATH/{vendor_hw_dir}/{library_name} 0 0 0644 u:object_r:same_process_hal_file:s0

    ui_print ""
    ui_print " Cleaning GPU Cache ... Please wait!"
    {cache_sweeps}
    ui_print "- Done."
    ui_print ""

    ui_print "Driver installed Successfully"
    sleep 1.25

    ui_print ""
    ui_print "All done, Please REBOOT device"
    ui_print ""
    ui_print "BY: {credits}"
    ui_print ""
    """)


def render(template: str, values: Mapping[str, object]) -> str:
    """Substitutes values into template.

    Raises:
        KeyError: template names a placeholder missing from values.
    """
    return template.format_map(values)


def android_release(api_level: int) -> str:
    """Returns the marketing version for an API level.

    >>> android_release(33)
    '13'
    >>> android_release(99)
    'API 99'
    """
    return ANDROID_RELEASES.get(api_level, f'API {api_level}')


def cache_sweep_commands() -> str:
    # Joined without indentation: the template's own line carries none.
    return '\n'.join(
        f'find {root} -iname "{pattern}" -exec rm -rf {{}} +'
        for root, pattern in CACHE_SWEEPS)


def module_prop_values(config: BuildConfig) -> Dict[str, object]:
    prop = config.module_prop
    return {
        'id': prop.id,
        'name': prop.name,
        'version': prop.version,
        'version_code': prop.version_code,
        'author': prop.author,
        'description': prop.description,
        'update_json': prop.update_json,
    }


def customize_values(config: BuildConfig) -> Dict[str, object]:
    return {
        'banner': config.banner,
        'support_line': config.support_line,
        'api_level': config.api_level,
        'android_release': android_release(config.api_level),
        'vendor_hw_dir': VENDOR_HW_DIR,
        'library_name': config.module_library_name,
        'cache_sweeps': cache_sweep_commands(),
        'credits': config.credits,
    }


def render_module_files(config: BuildConfig) -> Dict[str, str]:
    """Returns the module's generated text files keyed by relative path."""
    magisk_values = {
        'min_magisk_version': MIN_MAGISK_VERSION,
        'min_magisk_version_code': MIN_MAGISK_VERSION_CODE,
    }
    return {
        f'{META_INF_DIR}/update-binary': render(UPDATE_BINARY, magisk_values),
        f'{META_INF_DIR}/updater-script': UPDATER_SCRIPT,
        'module.prop': render(MODULE_PROP, module_prop_values(config)),
        'customize.sh': render(CUSTOMIZE_SH, customize_values(config)),
    }
