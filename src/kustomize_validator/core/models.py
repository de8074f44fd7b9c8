#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR CORE MODELS
-------------------------------
Defines the data structures that flow through the discovery, build,
parse and validation phases. A BuildResult enters the pipeline; a
DirectoryReport leaves it.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from kustomize_validator.core.errors import BuildError

# Placeholder used when a rendered resource omits metadata.namespace
DEFAULT_NAMESPACE = "<none>"


@dataclass(frozen=True)
class BuildResult:
    """
    The envelope produced for one discovered kustomization directory.
    Created once by the Build Executor and consumed once by the caller.
    """
    path: str                           # Directory handed to `kustomize build`
    stdout: str = ""                    # Rendered multi-document YAML
    stderr: str = ""                    # Diagnostics emitted by kustomize
    error: Optional[BuildError] = None  # Set on non-zero exit, launch failure or cancellation

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ParsedResource:
    """A single Kubernetes object recovered from rendered output."""
    api_version: str
    kind: str
    name: str
    namespace: str = DEFAULT_NAMESPACE
    source_path: str = ""
    raw_content: str = ""               # The originating YAML document

    @property
    def identity(self) -> str:
        return f"{self.api_version}/{self.kind}/{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ViolationRecord:
    """
    A forbidden pattern found in a resource.
    At most one record exists per (resource, check) pair: the first hit wins.
    """
    resource: ParsedResource
    pattern: str
    line_number: int                    # 1-based line inside raw_content
    matched_line: str
    context_lines: List[str] = field(default_factory=list)
    context_start: int = 1              # 1-based line number of context_lines[0]

    def message(self) -> str:
        return (
            f"validation failed: found '{self.pattern}' in line {self.line_number} "
            f"for resource {self.resource.identity}"
        )


@dataclass
class DirectoryReport:
    """Everything learned about one kustomization directory."""
    build: BuildResult
    resources: List[ParsedResource] = field(default_factory=list)
    violations: List[ViolationRecord] = field(default_factory=list)

    @property
    def path(self) -> str:
        return self.build.path

    @property
    def failed(self) -> bool:
        # Deferred: the validator module imports these models
        from kustomize_validator.validator.validator import has_failed
        return has_failed(self.build, self.violations)
