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

"""Build scripts for Apple targets of VLC."""

__all__ = [
    "build_apple",
    "build_utils",
    "build_vlc",
    "errors",
    "static_link",
    "static_modules",
    "symbol_reader",
]
