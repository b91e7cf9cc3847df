"""Code quality commands."""

import subprocess
import sys

LINT_PATHS = ["app/", "cli/", "tests/"]


def _ruff(*args: str) -> None:
    sys.exit(
        subprocess.run([sys.executable, "-m", "ruff", *args, *LINT_PATHS], check=False).returncode
    )


def main() -> None:
    """Run ruff linter."""
    _ruff("check")


def format_code() -> None:
    """Run ruff formatter."""
    _ruff("format")
