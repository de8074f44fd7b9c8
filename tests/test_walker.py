#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR WALKER SUITE
--------------------------------
Discovery, concurrent fan-out and stream closing semantics.
"""

import os
import logging

import pytest

from kustomize_validator.build import walker
from kustomize_validator.build.walker import BuildStream, discover
from kustomize_validator.core.errors import BuildCancelledError, BuildError
from kustomize_validator.core.config import ValidatorConfig

pytestmark = pytest.mark.skipif(os.name != "posix", reason="fake kustomize is a POSIX shell script")


def test_three_kustomizations_three_results(fake_kustomize, make_overlay, tree, pod):
    make_overlay("base", rendered=pod("base"))
    make_overlay("overlays/dev", rendered=pod("dev"), filename="kustomization.yml")
    make_overlay("overlays/prod")

    stream = discover(str(tree), ValidatorConfig(binary=fake_kustomize))
    results = list(stream)

    assert sorted(os.path.relpath(r.path, tree) for r in results) == ["base", "overlays/dev", "overlays/prod"]
    ok = sum(1 for r in results if r.ok)
    failed = sum(1 for r in results if not r.ok)
    assert (ok, failed) == (2, 1)
    assert ok + failed == len(results) == stream.scheduled == stream.delivered


def test_other_files_ignored(fake_kustomize, tree):
    (tree / "app").mkdir()
    (tree / "app" / "deployment.yaml").write_text("kind: Deployment\n")
    (tree / "app" / "Kustomization.yaml").write_text("resources: []\n")

    assert list(discover(str(tree), ValidatorConfig(binary=fake_kustomize))) == []


def test_empty_tree_closes_stream(fake_kustomize, tree):
    stream = discover(str(tree), ValidatorConfig(binary=fake_kustomize))
    assert list(stream) == []
    assert stream.get() is None


def test_root_may_be_the_kustomization_file(fake_kustomize, make_overlay, pod):
    overlay = make_overlay("single", rendered=pod("single"))

    results = list(discover(str(overlay / "kustomization.yaml"), ValidatorConfig(binary=fake_kustomize)))

    assert [r.path for r in results] == [str(overlay)]


def test_builds_run_concurrently(fake_kustomize, make_overlay, tree, pod):
    for i in range(4):
        make_overlay(f"svc-{i}", rendered=pod(f"svc-{i}"), sleep=1)

    stream = discover(str(tree), ValidatorConfig(binary=fake_kustomize))
    results = list(stream.results(timeout=3.5))

    assert len(results) == 4
    assert not stream.timed_out


def test_deadline_drops_and_cancels_slow_builds(fake_kustomize, make_overlay, tree, pod):
    make_overlay("fast", rendered=pod("fast"))
    make_overlay("slow", rendered=pod("slow"), sleep=30)

    stream = discover(str(tree), ValidatorConfig(binary=fake_kustomize))
    results = list(stream.results(timeout=1.5))

    assert [os.path.basename(r.path) for r in results] == ["fast"]
    assert stream.timed_out
    assert stream.cancelled


@pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root ignores directory permissions")
def test_unreadable_directory_logged_and_skipped(fake_kustomize, make_overlay, tree, pod, caplog):
    make_overlay("visible", rendered=pod("visible"))
    locked = make_overlay("locked/inner", rendered=pod("hidden")).parent
    locked.chmod(0)
    try:
        with caplog.at_level(logging.WARNING, logger="kustomize_validator.walker"):
            results = list(discover(str(tree), ValidatorConfig(binary=fake_kustomize)))
    finally:
        locked.chmod(0o755)

    assert [os.path.basename(r.path) for r in results] == ["visible"]
    assert "Skipping" in caplog.text


def test_deadline_kills_running_builds(fake_kustomize, make_overlay, tree, pod, read_pid, wait_gone):
    slow = make_overlay("slow", rendered=pod("slow"), sleep=30)

    stream = discover(str(tree), ValidatorConfig(binary=fake_kustomize))
    build_pid = read_pid(slow / "build.pid")
    child_pid = read_pid(slow / "child.pid")
    assert list(stream.results(timeout=0.5)) == []

    assert stream.timed_out
    assert wait_gone(build_pid)
    assert wait_gone(child_pid)


def test_undecodable_output_still_delivers(fake_kustomize, make_overlay, tree, pod):
    make_overlay("good", rendered=pod("good"))
    make_overlay("garbage", garbage=True)
    make_overlay("broken")

    stream = discover(str(tree), ValidatorConfig(binary=fake_kustomize))
    results = {os.path.basename(r.path): r for r in stream}

    assert set(results) == {"good", "garbage", "broken"}
    assert results["good"].ok
    assert not results["garbage"].ok
    assert stream.scheduled == stream.delivered == 3


def test_crashed_worker_still_delivers(fake_kustomize, make_overlay, tree, pod, monkeypatch):
    make_overlay("a", rendered=pod("a"))

    def explode(directory, **kwargs):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(walker, "execute", explode)
    (result,) = list(discover(str(tree), ValidatorConfig(binary=fake_kustomize)))

    assert isinstance(result.error, BuildError)
    assert "unexpected" in str(result.error)


def test_cancel_before_start_reports_cancelled(fake_kustomize, make_overlay, tree, pod):
    make_overlay("late", rendered=pod("late"))
    stream = BuildStream(str(tree), ValidatorConfig(binary=fake_kustomize))
    stream.cancel()

    stream._schedule(str(tree / "late"))
    stream._release()
    (result,) = list(stream)

    assert isinstance(result.error, BuildCancelledError)
