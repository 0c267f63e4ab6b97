"""Shared test fixtures."""

import os

import pytest

BACKEND_CONFIG = (
    'terraform {\n'
    '  backend "s3" {\n'
    '    bucket = "state"\n'
    '  }\n'
    '}\n'
)


def module_block(name: str, source: str) -> str:
    return f'module "{name}" {{\n  source = "{source}"\n}}\n'


@pytest.fixture
def make_module(tmp_path):
    """
    Create a module directory under tmp_path.

    make_module("app", stateful=True, uses=["../net"]) writes main.tf with
    a module block per source, plus a backend block when stateful.
    Returns the canonical module path.
    """
    def _make(relpath, stateful=False, uses=(), extra=None):
        directory = tmp_path / relpath
        directory.mkdir(parents=True, exist_ok=True)

        content = ""
        for index, source in enumerate(uses):
            content += module_block(f"dep{index}", source)
        (directory / "main.tf").write_text(content or 'resource "null_resource" "this" {}\n')

        if stateful:
            (directory / "backend.tf").write_text(BACKEND_CONFIG)

        for filename, text in (extra or {}).items():
            (directory / filename).write_text(text)

        return os.path.realpath(str(directory))

    return _make


@pytest.fixture
def root(tmp_path):
    """Canonical path of the temporary module tree root."""
    return os.path.realpath(str(tmp_path))
