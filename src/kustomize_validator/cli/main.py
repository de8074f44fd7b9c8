#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR CLI
-----------------------
Command-line front end: discovers kustomizations, streams per-directory
results as they arrive (or collects them into a table) and exits
non-zero when anything failed.
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from kustomize_validator.cli.formatter import format_report, format_summary, render_table
from kustomize_validator.core.config import DEFAULT_TIMEOUT, ValidatorConfig
from kustomize_validator.core.engine import ValidationEngine

__version__ = "0.1.0"

# Global console for consistent styling across the application
console = Console()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class KustomizeValidatorCLI:
    """Translates command-line flags into a validation run."""

    def __init__(self, out: Optional[Console] = None):
        self.console = out or console
        self.parser = argparse.ArgumentParser(
            prog="kustomize-validator",
            description="Build every kustomization below a path and check the output for forbidden content",
        )
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("--version", action="version", version=f"kustomize-validator v{__version__}")
        self.parser.add_argument("path", help="Directory to search for kustomization files")
        self.parser.add_argument("-v", "--verbose", action="store_true", help="verbose output")
        self.parser.add_argument("-e", "--error-only", action="store_true", help="whether we should only log errors")
        self.parser.add_argument("-t", "--table", action="store_true", help="output resources in table format")
        self.parser.add_argument(
            "-c", "--check", action="append",
            help="forbidden content; literal, 'glob:<pattern>' (*, ?, [...], {a,b}) or 'regex:<pattern>' (repeatable, default: PATCH_ME)",
        )
        self.parser.add_argument(
            "--timeout", type=float, default=None,
            help=f"seconds to wait for all builds (default: {DEFAULT_TIMEOUT})",
        )
        self.parser.add_argument("--kustomize-bin", default=None, help="kustomize executable (default: kustomize)")

    def _configure_logging(self, verbose: bool):
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.WARNING,
            format="%(levelname)s %(name)s: %(message)s",
        )

    def _run_engine(self, config: ValidatorConfig, path: str) -> int:
        root = Path(path)
        if not root.exists():
            self.console.print(f"[bold red]Error:[/bold red] Path '{path}' not found.")
            return EXIT_USAGE

        self.console.print(f"Validating Kustomization files {path}")
        engine = ValidationEngine(config)

        if config.table:
            reports, timed_out = engine.run(path)
            if any(r.resources or not r.build.ok for r in reports):
                self.console.print(render_table(reports, error_only=config.error_only))
            summary = engine.generate_summary(reports)
        else:
            stream = engine.stream(path)
            reports = []
            for report in engine.iter_reports(stream):
                reports.append(report)
                for line in format_report(report, error_only=config.error_only, verbose=config.verbose):
                    self.console.print(line)
            timed_out = stream.timed_out
            summary = engine.generate_summary(reports)
            for line in format_summary(summary):
                self.console.print(line)

        if timed_out:
            self.console.print(
                f"[bold yellow]Timed out:[/bold yellow] not every build finished within {config.timeout}s"
            )

        if summary["failed"] or timed_out:
            return EXIT_FAILURE
        return EXIT_OK

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary entry point; returns the process exit status."""
        args = self.parser.parse_args(argv)
        self._configure_logging(args.verbose)
        config = ValidatorConfig.from_args(args)
        return self._run_engine(config, args.path)


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(KustomizeValidatorCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
