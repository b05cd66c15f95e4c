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


class CliResult:
    """Outcome of a command: a value on success or the error that stopped it."""

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error

    @classmethod
    def ok(cls, value=None):
        return cls(value=value)

    @classmethod
    def fail(cls, error):
        return cls(error=error)

    def is_success(self):
        return self.error is None

    def is_failure(self):
        return self.error is not None

    def get_error(self, default=None):
        if self.is_failure():
            return self.error
        else:
            return default

    def exit_code(self):
        return 0 if self.is_success() else 1
