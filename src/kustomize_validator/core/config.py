#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR CONFIGURATION
---------------------------------
Runtime settings for a validation run. Defaults mirror the behaviour of
the command line when no flags are given.
"""

import argparse
from dataclasses import dataclass, field
from typing import List, Tuple

DEFAULT_BINARY = "kustomize"
# Enables Helm chart inflation and exec/container (alpha) plugins
DEFAULT_BUILD_ARGS = ("build", "--enable-helm", "--enable-alpha-plugins")
KUSTOMIZATION_FILENAMES = ("kustomization.yaml", "kustomization.yml")
DEFAULT_TIMEOUT = 2.0
DEFAULT_CHECKS = ["PATCH_ME"]


@dataclass
class ValidatorConfig:
    binary: str = DEFAULT_BINARY
    build_args: Tuple[str, ...] = DEFAULT_BUILD_ARGS
    filenames: Tuple[str, ...] = KUSTOMIZATION_FILENAMES
    timeout: float = DEFAULT_TIMEOUT    # Seconds the caller waits for results
    checks: List[str] = field(default_factory=lambda: list(DEFAULT_CHECKS))
    verbose: bool = False
    error_only: bool = False
    table: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ValidatorConfig":
        """Builds a config from parsed CLI flags, keeping defaults for unset ones."""
        return cls(
            binary=args.kustomize_bin or DEFAULT_BINARY,
            timeout=args.timeout if args.timeout is not None else DEFAULT_TIMEOUT,
            checks=list(args.check) if args.check else list(DEFAULT_CHECKS),
            verbose=args.verbose,
            error_only=args.error_only,
            table=args.table,
        )
