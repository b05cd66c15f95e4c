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

import subprocess
import sys

from vlcbuild.utils.cmd.cmd_util import (
    NOT_FOUND_CODE,
    TIMEOUT_CODE,
    decode_bytes,
    exec_command,
    exec_command_with_timeout_second,
    run_streaming,
)


def python(code):
    return [sys.executable, "-c", code]


def test_decode_bytes():
    assert decode_bytes(None) == ""
    assert decode_bytes("héllo".encode("utf-8")) == "héllo"
    assert decode_bytes(b"\xff\xfeok").endswith("ok")


def test_exec_command_output():
    err_code, err_msg = exec_command(python("import sys; print('out'); print('err', file=sys.stderr)"))
    assert err_code == 0
    assert "out" in err_msg
    assert "err" in err_msg


def test_exec_command_exit_code(tmp_path):
    err_code, _ = exec_command(python("import sys; sys.exit(3)"), cwd=str(tmp_path))
    assert err_code == 3


def test_exec_command_env():
    err_code, err_msg = exec_command(
        python("import os; print(os.environ['VLCBUILD_TEST'])"),
        env={"VLCBUILD_TEST": "42"},
    )
    assert err_code == 0
    assert err_msg.strip() == "42"


def test_exec_command_missing_program(tmp_path):
    err_code, err_msg = exec_command([str(tmp_path / "no-such-tool")])
    assert err_code == NOT_FOUND_CODE
    assert "no-such-tool" in err_msg


def test_exec_command_timeout():
    err_code, err_msg = exec_command(python("import time; time.sleep(30)"), timeout_second=0.5)
    assert err_code == TIMEOUT_CODE
    assert err_msg


def test_run_streaming():
    assert run_streaming(python("pass")) == 0
    assert run_streaming(python("import sys; sys.exit(5)")) == 5


def test_run_streaming_timeout():
    assert run_streaming(python("import time; time.sleep(30)"), timeout_second=0.5) == TIMEOUT_CODE


def test_run_streaming_missing_program(tmp_path):
    assert run_streaming([str(tmp_path / "no-such-tool")]) == NOT_FOUND_CODE


def test_separate_stderr_is_returned_on_failure():
    err_code, err_msg = exec_command_with_timeout_second(
        python("import sys; print('partial'); print('broken', file=sys.stderr); sys.exit(2)"),
        timeout_second=30,
        stderr=subprocess.PIPE,
    )
    assert err_code == 2
    assert err_msg.strip() == "broken"


def test_separate_stderr_is_dropped_on_success():
    err_code, err_msg = exec_command_with_timeout_second(
        python("import sys; print('symbols'); print('warning', file=sys.stderr)"),
        timeout_second=30,
        stderr=subprocess.PIPE,
    )
    assert err_code == 0
    assert err_msg.strip() == "symbols"
