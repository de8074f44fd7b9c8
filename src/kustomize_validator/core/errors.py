#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR ERRORS
--------------------------
Exception hierarchy shared by the executor, parser and engine.
Build errors are never raised to the caller; they are carried inside
a BuildResult so one broken overlay cannot stop the others.
"""

from typing import Optional


class KustomizeValidatorError(Exception):
    """Base class for every error raised by the validator."""


class BuildError(KustomizeValidatorError):
    """The kustomize collaborator failed to launch or exited non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class BuildCancelledError(BuildError):
    """The build was killed because the caller's deadline expired."""


class ResourceDecodeError(KustomizeValidatorError):
    """A rendered YAML document could not be decoded into a resource."""
