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
import time
from threading import Timer

DEFAULT_TIMEOUT_SECOND = 10
# long enough for a full contrib build
BUILD_TIMEOUT_SECOND = 3 * 3600
# returned instead of the real exit code when the command could not start
NOT_FOUND_CODE = 127
TIMEOUT_CODE = -9


def decode_bytes(input: bytes) -> str:
    if input is None:
        return ""
    try:
        return bytes.decode(input, "UTF-8")
    except UnicodeDecodeError:
        return bytes.decode(input, "UTF-8", errors="replace")


def exec_command(command, cwd=None, env=None, timeout_second=BUILD_TIMEOUT_SECOND):
    """
    Execute a command and capture its combined output.

    Args:
        command: argument list, or a shell command string
        cwd: working directory for the command
        env: complete environment for the command (None inherits ours)
        timeout_second: the process is killed after this many seconds

    Returns:
        tuple: (exit_code, output_message)
    """
    return exec_command_with_timeout_second(
        command, timeout_second, cwd=cwd, env=env
    )


def exec_command_with_timeout_second(
    command,
    timeout_second=DEFAULT_TIMEOUT_SECOND,
    cwd=None,
    env=None,
    stdout=subprocess.PIPE,
    stderr=subprocess.STDOUT,
):
    start_mills = int(time.time() * 1000)
    try:
        compile_popen = subprocess.Popen(
            command,
            shell=isinstance(command, str),
            cwd=cwd,
            env=env,
            stdout=stdout,
            stderr=stderr,
        )
    except OSError as e:
        return NOT_FOUND_CODE, f"Failed to run {command!r}: {e}"
    timer = Timer(timeout_second, lambda process: process.kill(), [compile_popen])
    try:
        timer.start()
        stdout, stderr = compile_popen.communicate()
    finally:
        timer.cancel()
    err_code = compile_popen.returncode
    err_msg = decode_bytes(stdout)
    # stderr is only returned when it was piped separately and the command failed
    if err_code not in (0, TIMEOUT_CODE) and stderr:
        err_msg = decode_bytes(stderr)
    if err_code == TIMEOUT_CODE:
        if not err_msg:
            if stderr:
                err_msg = decode_bytes(stderr)
            if not err_msg:
                use_time = int(time.time() * 1000) - start_mills
                err_msg = f"Failed for timeout({err_code}), use_time: {use_time}ms"
    return err_code, err_msg


def run_streaming(command, cwd=None, env=None, timeout_second=BUILD_TIMEOUT_SECOND):
    """
    Run a long build step with its output going straight to the console.

    Returns:
        int: exit code, TIMEOUT_CODE if the step was killed
    """
    try:
        result = subprocess.run(
            command,
            shell=isinstance(command, str),
            cwd=cwd,
            env=env,
            timeout=timeout_second,
        )
    except subprocess.TimeoutExpired:
        return TIMEOUT_CODE
    except OSError as e:
        print(f"Failed to run {command!r}: {e}")
        return NOT_FOUND_CODE
    return result.returncode
