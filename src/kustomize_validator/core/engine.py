#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR ENGINE - The Orchestrator
---------------------------------------------
Ties the pipeline together: discovered directories are built
concurrently, their output is parsed into resources and every resource
is checked for forbidden content.
"""

import logging
import os
from typing import Any, Dict, Iterator, List, Optional, Tuple

from kustomize_validator.build.walker import BuildStream, discover
from kustomize_validator.core.config import ValidatorConfig
from kustomize_validator.core.models import BuildResult, DirectoryReport
from kustomize_validator.parsing.resources import parse
from kustomize_validator.validator.validator import validate

logger = logging.getLogger("kustomize_validator.engine")


class ValidationEngine:
    """
    Turns BuildResults into DirectoryReports and summarises a run.
    Holds no per-run state, so reports may be processed in any order.
    """

    def __init__(self, config: Optional[ValidatorConfig] = None, base_dir: Optional[str] = None):
        self.config = config or ValidatorConfig()
        # Resource paths are reported relative to this directory
        self.base_dir = base_dir or os.getcwd()

    def process(self, result: BuildResult) -> DirectoryReport:
        """Parses and validates the output of a single build."""
        resources = parse(result.stdout, result.path, self.base_dir)
        violations = validate(resources, self.config.checks)
        if not result.ok:
            logger.debug(f"Build failed for {result.path}: {result.error}")
        elif violations:
            logger.debug(f"{len(violations)} violation(s) in {result.path}")
        return DirectoryReport(build=result, resources=resources, violations=violations)

    def stream(self, root: str) -> BuildStream:
        return discover(root, self.config)

    def iter_reports(self, stream: BuildStream) -> Iterator[DirectoryReport]:
        """Yields reports as builds complete, within the configured deadline."""
        for result in stream.results(timeout=self.config.timeout):
            yield self.process(result)

    def run(self, root: str) -> Tuple[List[DirectoryReport], bool]:
        """
        Validates every kustomization below `root`.
        Returns the reports and whether the deadline cut the run short.
        """
        stream = self.stream(root)
        reports = list(self.iter_reports(stream))
        return reports, stream.timed_out

    def generate_summary(self, reports: List[DirectoryReport]) -> Dict[str, Any]:
        """Counters are pure sums, so arrival order never matters."""
        total = len(reports)
        failed = sum(1 for r in reports if r.failed)
        return {
            "total": total,
            "successful": total - failed,
            "failed": failed,
            "build_errors": sum(1 for r in reports if not r.build.ok),
            "violations": sum(len(r.violations) for r in reports),
            "resources": sum(len(r.resources) for r in reports),
            "failure_rate": (failed / total) if total > 0 else 0.0,
        }
