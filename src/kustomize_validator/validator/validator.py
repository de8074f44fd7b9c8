#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR - The Judge
-------------------------------
Runs every configured check against every rendered resource and
decides whether a kustomization directory passes.
"""

from typing import List, Optional, Sequence

from kustomize_validator.core.models import BuildResult, ParsedResource, ViolationRecord
from kustomize_validator.validator.matcher import compile_check, scan, split_check


def validate(resources: Sequence[ParsedResource], checks: Sequence[str]) -> List[ViolationRecord]:
    """
    Returns every violation, checks outermost and resources innermost.
    The same resource appears once per check that matches it.
    """
    violations = []
    for check in checks:
        predicate = compile_check(check)
        pattern = split_check(check)[1]
        for resource in resources:
            violation = scan(resource, predicate, pattern=pattern)
            if violation is not None:
                violations.append(violation)
    return violations


def find(violations: Sequence[ViolationRecord], api_version: str, kind: str,
         namespace: str, name: str) -> Optional[ViolationRecord]:
    """First violation whose resource matches the exact identity, if any."""
    for violation in violations:
        res = violation.resource
        if (res.api_version == api_version and res.kind == kind
                and res.namespace == namespace and res.name == name):
            return violation
    return None


def has_failed(result: BuildResult, violations: Sequence[ViolationRecord]) -> bool:
    """A directory fails on a build error or on any content violation."""
    return not result.ok or len(violations) > 0
