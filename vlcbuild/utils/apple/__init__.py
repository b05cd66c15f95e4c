#
# Copyright 2024 vlcbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""Apple build configuration records for vlcbuild."""

from .config import (
    APPLE_HOST_OS_LIST,
    BuildConfig,
    LinkSettings,
    PlatformOptions,
    merge_options,
)

__all__ = [
    'APPLE_HOST_OS_LIST',
    'BuildConfig',
    'LinkSettings',
    'PlatformOptions',
    'merge_options',
]
