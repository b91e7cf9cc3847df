"""Test runner commands."""

import subprocess
import sys


def _pytest(*args: str) -> None:
    sys.exit(
        subprocess.run(
            [sys.executable, "-m", "pytest", *args, "-v", "--tb=short"],
            check=False,
        ).returncode
    )


def main() -> None:
    """Run unit tests (engine, config, services)."""
    _pytest("tests/unit")


def test_smoke() -> None:
    """Run HTTP smoke tests."""
    _pytest("tests/smoke")


def test_all() -> None:
    """Run all tests."""
    _pytest("tests/")
