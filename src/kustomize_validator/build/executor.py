#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR BUILD EXECUTOR
----------------------------------
Runs `kustomize build` for a single directory and wraps the outcome in
a BuildResult. The executor never raises: launch failures, non-zero
exits and cancellations are all recorded on the result.
"""

import logging
import os
import re
import signal
import subprocess
import threading
from typing import Callable, List, Optional, Sequence

from kustomize_validator.core.config import DEFAULT_BINARY, DEFAULT_BUILD_ARGS
from kustomize_validator.core.errors import BuildCancelledError, BuildError
from kustomize_validator.core.models import BuildResult

logger = logging.getLogger("kustomize_validator.executor")

# How often a running build checks the cancel signal (seconds)
POLL_INTERVAL = 0.1

# kustomize reports missing inputs as "... from 'path/to/file'"
FAILED_PATH_PATTERN = re.compile(r"from '(.*?)'")


def build_command(directory: str, binary: str = DEFAULT_BINARY,
                  build_args: Sequence[str] = DEFAULT_BUILD_ARGS) -> List[str]:
    return [binary, *build_args, directory]


def terminate(proc: subprocess.Popen):
    """Kills the build and anything it spawned (helm, plugins)."""
    try:
        if os.name == "posix":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except (ProcessLookupError, PermissionError):
        # Already gone
        pass


def execute(directory: str, binary: str = DEFAULT_BINARY,
            build_args: Sequence[str] = DEFAULT_BUILD_ARGS,
            cancel_event: Optional[threading.Event] = None,
            on_spawn: Optional[Callable[[subprocess.Popen], None]] = None) -> BuildResult:
    """
    Builds one kustomization directory.

    Blocks until the subprocess exits. When `cancel_event` is set while the
    build is still running, the process group is killed and the result
    carries a BuildCancelledError. `on_spawn` receives the live process so
    an owner can kill it without waiting for the next poll.
    """
    cmd = build_command(directory, binary, build_args)
    logger.debug(f"Executing: {' '.join(cmd)}")

    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            start_new_session=(os.name == "posix"),
        )
    except OSError as e:
        return BuildResult(path=directory, error=BuildError(f"failed to launch {binary}: {e}"))

    if on_spawn is not None:
        on_spawn(proc)

    cancelled = False
    while True:
        try:
            stdout, stderr = proc.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if cancel_event is not None and cancel_event.is_set() and not cancelled:
                logger.debug(f"Cancelling build of {directory}")
                terminate(proc)
                cancelled = True

    if cancelled or (cancel_event is not None and cancel_event.is_set() and proc.returncode < 0):
        error = BuildCancelledError("build cancelled: deadline exceeded", proc.returncode)
    elif proc.returncode != 0:
        error = BuildError(f"exit status {proc.returncode}", proc.returncode)
    else:
        error = None

    return BuildResult(path=directory, stdout=stdout or "", stderr=stderr or "", error=error)


def extract_failed_paths(output: str) -> List[str]:
    """Returns the file paths kustomize names in its error output."""
    return FAILED_PATH_PATTERN.findall(output or "")
