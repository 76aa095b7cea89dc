#!/usr/bin/env python3
"""Run import sorting, formatting and the test suite.

Usage:
    python scripts/lint_all.py [--check] [--skip-tests]

Options:
    --check: Only report formatting problems, never rewrite files
    --skip-tests: Skip running pytest
"""

import argparse
import subprocess
import sys
from pathlib import Path
from typing import List

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# Directories checked by isort and black
SOURCE_DIRS = ["catalogrec", "tests", "scripts"]


def run_command(cmd: List[str], description: str) -> bool:
    """Run a command from the project root.

    Args:
        cmd: Command to run as list of strings
        description: Human-readable description of what's being run

    Returns:
        True if the command exited with status 0
    """
    print(f"\n{'=' * 60}")
    print(f"Running: {description}")
    print(f"Command: {' '.join(cmd)}")
    print(f"{'=' * 60}\n")

    try:
        result = subprocess.run(cmd, cwd=PROJECT_ROOT, check=False)
    except FileNotFoundError as e:
        print(f"\n✗ Error: {e}")
        print("  Install the dev extra: pip install -e '.[dev]'\n")
        return False

    if result.returncode != 0:
        print(f"\n✗ {description} failed (exit code: {result.returncode})\n")
        return False

    print(f"\n✓ {description} passed\n")
    return True


def run_formatter(name: str, check_flags: List[str], check_only: bool) -> bool:
    """Check a formatter and, unless check_only, rewrite files on failure."""
    if run_command([name, *SOURCE_DIRS, *check_flags], f"{name} (check)"):
        return True
    if check_only:
        return False

    print(f"Attempting to auto-fix with {name}...")
    return run_command([name, *SOURCE_DIRS], f"{name} (auto-fix)")


def main() -> int:
    """Main entry point for linting script.

    Returns:
        Exit code: 0 if all checks passed, 1 otherwise
    """
    parser = argparse.ArgumentParser(
        description="Run linting, formatting, and testing checks",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only check formatting (don't modify files)",
    )
    parser.add_argument(
        "--skip-tests",
        action="store_true",
        help="Skip running pytest",
    )
    args = parser.parse_args()

    print("\n" + "=" * 60)
    print("CatalogRec Code Quality Checks")
    print("=" * 60)

    results = [
        run_formatter("isort", ["--check-only", "--diff"], args.check),
        run_formatter("black", ["--check"], args.check),
    ]
    if not args.skip_tests:
        results.append(run_command(["pytest", "tests/", "-v"], "pytest (tests)"))

    print("\n" + "=" * 60)
    if all(results):
        print("✓ All checks passed!")
        print("=" * 60 + "\n")
        return 0

    print("✗ Some checks failed. Please fix the issues above.")
    print("=" * 60 + "\n")
    return 1


if __name__ == "__main__":
    sys.exit(main())
