"""Root pytest configuration: run the Python blocks of docs/ as tests."""

import os
from pathlib import Path
from tempfile import mkdtemp
from typing import Any

from sybil import Sybil
from sybil.parsers.markdown import PythonCodeBlockParser, SkipParser

_ORIGINAL_CWD = Path.cwd()


def documentation_setup(namespace: dict[str, Any]) -> None:  # noqa: ARG001
    """Run each documentation page from a fresh temporary directory."""
    os.chdir(mkdtemp(prefix="dae_stepper-docs-"))


def documentation_teardown(namespace: dict[str, Any]) -> None:  # noqa: ARG001
    """Return to the original working directory."""
    os.chdir(_ORIGINAL_CWD)


pytest_collect_file = Sybil(
    parsers=[
        PythonCodeBlockParser(),
        SkipParser(),
    ],
    path=str(Path(__file__).parent / "docs"),
    pattern="**/*.md",
    setup=documentation_setup,
    teardown=documentation_teardown,
).pytest()
