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

import os


# This context data class to save the context of the command
class CliContext:
    def __init__(self, work_dir=None, verbose=False):
        # directory the command was started from, the VLC build dir
        self.work_dir = work_dir or os.getcwd()
        self.verbose = verbose

    def verbose_msg(self, msg):
        if self.verbose:
            print(msg)
