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
import sys
from abc import ABC, abstractmethod

from .context import CliContext
from .namespace import CliNameSpace


# Base class of every subcommand, see vlcbuild/commands
class CliCommand(ABC):
    @abstractmethod
    def description(self) -> str:
        pass

    @abstractmethod
    def cli(self, argv=None) -> CliNameSpace:
        pass

    @abstractmethod
    def exec(self, context: CliContext, args: CliNameSpace):
        pass

    def command_argv(self, argv, module_file):
        """Arguments meant for this subcommand, without its own name."""
        if argv is None:
            argv = sys.argv[1:]
        module_name = os.path.splitext(os.path.basename(module_file))[0]
        return [x for x in argv if x != module_name]
