import os
import stat
import time
from pathlib import Path

import pytest

# Stand-in for `kustomize build --enable-helm --enable-alpha-plugins <dir>`:
#   <dir>/build.pid      written with the script's own pid
#   <dir>/sleep          seconds to wait (in a child whose pid goes to <dir>/child.pid)
#   <dir>/garbage        non-UTF-8 bytes on stdout and stderr, exit 1
#   <dir>/rendered.yaml  printed to stdout with exit 0
#   otherwise            kustomize-style error on stderr, exit 1
FAKE_KUSTOMIZE = r"""#!/bin/sh
dir="$4"
echo $$ > "$dir/build.pid"
if [ -f "$dir/sleep" ]; then
  sleep "$(cat "$dir/sleep")" &
  echo $! > "$dir/child.pid"
  wait $!
fi
if [ -f "$dir/garbage" ]; then
  printf 'kind: \377\376\n'
  printf 'Error: \377 from helm\n' >&2
  exit 1
fi
if [ -f "$dir/rendered.yaml" ]; then
  cat "$dir/rendered.yaml"
  exit 0
fi
echo "Error: accumulating resources: accumulation err='accumulating resources from 'missing.yaml': no such file'" >&2
exit 1
"""

POD = """apiVersion: v1
kind: Pod
metadata:
  name: {name}
  labels:
    app: {label}
"""


@pytest.fixture
def fake_kustomize(tmp_path: Path) -> str:
    script = tmp_path / "bin" / "kustomize"
    script.parent.mkdir()
    script.write_text(FAKE_KUSTOMIZE)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def make_overlay(tmp_path: Path):
    """Creates <tmp>/tree/<rel> with a kustomization and optional rendered output."""
    def _make(rel: str, rendered=None, sleep=None, garbage=False, filename="kustomization.yaml") -> Path:
        overlay = tmp_path / "tree" / rel
        overlay.mkdir(parents=True, exist_ok=True)
        (overlay / filename).write_text("resources: []\n")
        if rendered is not None:
            (overlay / "rendered.yaml").write_text(rendered)
        if sleep is not None:
            (overlay / "sleep").write_text(str(sleep))
        if garbage:
            (overlay / "garbage").write_text("")
        return overlay
    return _make


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    root = tmp_path / "tree"
    root.mkdir(exist_ok=True)
    return root


@pytest.fixture
def pod():
    def _pod(name: str, label: str = "web") -> str:
        return POD.format(name=name, label=label)
    return _pod


def _running(pid: int) -> bool:
    """True while pid exists and is not a zombie awaiting its reaper."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    try:
        with open(f"/proc/{pid}/stat") as f:
            # Field 3 is the state; the command name in field 2 may contain spaces
            return f.read().rsplit(")", 1)[1].split()[0] != "Z"
    except OSError:
        return True


@pytest.fixture
def wait_gone():
    """Returns a checker that waits up to `timeout` seconds for a pid to die."""
    def _wait(pid: int, timeout: float = 3.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not _running(pid):
                return True
            time.sleep(0.05)
        return not _running(pid)
    return _wait


@pytest.fixture
def read_pid():
    """Waits for the fake kustomize to record a pid file and returns its value."""
    def _read(path: Path, timeout: float = 5.0) -> int:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if path.exists() and path.read_text().strip():
                return int(path.read_text().strip())
            time.sleep(0.05)
        raise AssertionError(f"{path} was never written")
    return _read
