#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR DIRECTORY WALKER
------------------------------------
Discovers kustomization files below a root directory and fans out one
build per containing directory. Results are funnelled through a single
unbounded queue so the caller can start consuming while the walk and
the builds are still running.

Stream lifecycle:
  1. discover() starts a background walker thread and returns a BuildStream.
  2. Each kustomization file found spawns a worker thread running execute().
  3. The stream closes once the walk is done AND every worker has delivered.
"""

import logging
import os
import queue
import subprocess
import threading
import time
from typing import Iterator, Optional, Set

from kustomize_validator.build.executor import execute, terminate
from kustomize_validator.core.config import ValidatorConfig
from kustomize_validator.core.errors import BuildCancelledError, BuildError
from kustomize_validator.core.models import BuildResult

logger = logging.getLogger("kustomize_validator.walker")

# Marks the end of the stream
_CLOSED = object()


class BuildStream:
    """
    Fan-in channel for BuildResults: many producer threads, one consumer.
    Results arrive in completion order; no ordering is guaranteed.
    """

    def __init__(self, root: str, config: ValidatorConfig):
        self.root = root
        self.config = config
        self.timed_out = False
        self.scheduled = 0
        self.delivered = 0

        self._queue: "queue.Queue[object]" = queue.Queue()
        self._cancel = threading.Event()
        self._lock = threading.Lock()
        # The walk itself counts as one outstanding producer
        self._outstanding = 1
        self._closed = False
        # Build processes still running, killed by cancel()
        self._procs: Set[subprocess.Popen] = set()

    # --- producer side ---

    def start(self) -> "BuildStream":
        walker = threading.Thread(target=self._walk, name="kustomize-walker", daemon=True)
        walker.start()
        return self

    def _walk(self):
        try:
            if os.path.isfile(self.root):
                if os.path.basename(self.root) in self.config.filenames:
                    self._schedule(os.path.dirname(self.root) or ".")
                return

            for dirpath, _dirnames, filenames in os.walk(self.root, onerror=self._on_walk_error):
                if self._cancel.is_set():
                    break
                for name in filenames:
                    if name in self.config.filenames:
                        self._schedule(dirpath)
        finally:
            self._release()

    def _on_walk_error(self, err: OSError):
        logger.warning(f"Skipping {err.filename}: {err.strerror or err}")

    def _schedule(self, directory: str):
        with self._lock:
            self._outstanding += 1
            self.scheduled += 1
        logger.debug(f"Scheduling build for {directory}")
        worker = threading.Thread(
            target=self._build, args=(directory,), name=f"kustomize-build:{directory}", daemon=True
        )
        worker.start()

    def _build(self, directory: str):
        try:
            if self._cancel.is_set():
                result = BuildResult(path=directory, error=BuildCancelledError("build cancelled before start"))
            else:
                result = execute(
                    directory,
                    binary=self.config.binary,
                    build_args=self.config.build_args,
                    cancel_event=self._cancel,
                    on_spawn=self._track,
                )
        except Exception as e:
            # Every scheduled directory must still deliver exactly one result
            logger.exception(f"Build worker for {directory} crashed")
            result = BuildResult(path=directory, error=BuildError(f"build worker crashed: {e}"))
        try:
            self._queue.put(result)
        finally:
            self._release()

    def _track(self, proc: subprocess.Popen):
        with self._lock:
            if not self._cancel.is_set():
                self._procs.add(proc)
                return
        # Spawned after cancel() swept the live set
        terminate(proc)

    def _release(self):
        with self._lock:
            self._outstanding -= 1
            done = self._outstanding == 0
        if done:
            self._queue.put(_CLOSED)

    # --- consumer side ---

    def cancel(self):
        """
        Stops the walk and kills builds that have not finished yet.
        Running process groups are killed before this returns, so no build
        outlives a caller that exits right after the deadline.
        """
        with self._lock:
            self._cancel.set()
            live = [proc for proc in self._procs if proc.poll() is None]
            self._procs.clear()
        for proc in live:
            terminate(proc)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def get(self, timeout: Optional[float] = None) -> Optional[BuildResult]:
        """
        Returns the next result, or None once the stream is closed.
        Raises queue.Empty if nothing arrives within `timeout`.
        """
        if self._closed:
            return None
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            self._closed = True
            return None
        self.delivered += 1
        return item

    def __iter__(self) -> Iterator[BuildResult]:
        while True:
            result = self.get()
            if result is None:
                return
            yield result

    def results(self, timeout: Optional[float] = None) -> Iterator[BuildResult]:
        """
        Yields results until the stream closes or `timeout` seconds elapse.
        On expiry the remaining builds are cancelled and their results dropped.
        """
        if timeout is None:
            yield from self
            return

        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._expire(timeout)
                return
            try:
                result = self.get(timeout=remaining)
            except queue.Empty:
                self._expire(timeout)
                return
            if result is None:
                return
            yield result

    def _expire(self, timeout: float):
        self.timed_out = True
        logger.warning(
            f"Deadline of {timeout}s exceeded: "
            f"{self.delivered}/{self.scheduled} builds delivered, cancelling the rest"
        )
        self.cancel()


def discover(root: str, config: Optional[ValidatorConfig] = None) -> BuildStream:
    """Starts discovering kustomizations under `root` and returns the result stream."""
    return BuildStream(root, config or ValidatorConfig()).start()
