#!/usr/bin/env python3
# -- coding: utf-8 --
#
# errors.py
# vlcbuild
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

"""
Errors raised by the build pipeline.

Every failure is fatal. Library code raises one of these and the command
that started the pipeline prints it as ``ERROR: <message>`` and exits 1.
"""


class VlcBuildError(Exception):
    """Base class for all build failures"""

    stage = "build"

    def __init__(self, message, path=None, output=None):
        super().__init__(message)
        self.path = path
        self.output = output

    def describe(self) -> str:
        msg = f"[{self.stage}] {self}"
        if self.output:
            msg += "\n" + self.output.rstrip()
        return msg


class ToolingMissingError(VlcBuildError):
    """A required external tool is not installed"""

    stage = "preflight"


class ConfigurationError(VlcBuildError):
    """Invalid architecture, SDK or configuration file"""

    stage = "configuration"


class StageError(VlcBuildError):
    """An external build step (bootstrap, configure, make) failed"""

    stage = "stage"

    def __init__(self, message, stage=None, path=None, output=None):
        super().__init__(message, path=path, output=output)
        if stage:
            self.stage = stage


class ArchiveInspectionError(VlcBuildError):
    """A plugin archive could not be read"""

    stage = "symbols"


class ModuleSymbolMissingError(VlcBuildError):
    """A plugin archive does not define a module entry function"""

    stage = "symbols"


class DuplicateModuleSymbolError(ModuleSymbolMissingError):
    """A plugin archive defines more than one module entry function"""

    def __init__(self, message, path=None, symbols=None):
        super().__init__(message, path=path)
        self.symbols = list(symbols or [])


class GeneratedFileWriteError(VlcBuildError):
    stage = "module-list"


class CompilationError(VlcBuildError):
    stage = "module-list"


class ManifestEnumerationError(VlcBuildError):
    """A search directory or core archive for the link set is missing"""

    stage = "manifest"


class LinkError(VlcBuildError):
    stage = "link"
