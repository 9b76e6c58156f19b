"""Shared pytest fixtures."""

import subprocess
from pathlib import Path

import pytest

from claude_desktop_opensuse.config import ICON_FILES
from claude_desktop_opensuse.context import BuildContext, StagingTree


@pytest.fixture
def context(tmp_path: Path) -> BuildContext:
    """RPM build context for version 1.2.3 on x86_64."""
    return BuildContext.create(
        work_dir=tmp_path / 'build',
        version='1.2.3',
        architecture='x86_64',
        output_dir=tmp_path / 'out',
    )


def write_icons(directory: Path, sizes: list[int]) -> dict[int, Path]:
    """Write fake PNG files using the icotool naming convention."""
    directory.mkdir(parents=True, exist_ok=True)
    icons = {}
    for size in sizes:
        path = directory / ICON_FILES[size]
        path.write_bytes(b'\x89PNG fake icon ' + str(size).encode())
        icons[size] = path
    return icons


@pytest.fixture
def staging(context: BuildContext) -> StagingTree:
    """App staging tree with all six icons and a fake bundled Electron."""
    app_dir = context.staging_dir
    app_dir.mkdir(parents=True)
    (app_dir / 'app.asar').write_bytes(b'asar archive')
    unpacked = app_dir / 'app.asar.unpacked' / 'node_modules' / '@ant' / 'claude-native'
    unpacked.mkdir(parents=True)
    (unpacked / 'index.js').write_text('module.exports = {};\n')
    dist = app_dir / 'node_modules' / 'electron' / 'dist'
    dist.mkdir(parents=True)
    (dist / 'electron').write_text('#!/bin/sh\n')
    (dist / 'chrome-sandbox').write_bytes(b'sandbox')

    icons = write_icons(context.work_dir, sorted(ICON_FILES))
    return StagingTree(app_dir=app_dir, icons=icons, electron_version='37.2.0')


def completed(args: list[str], returncode: int = 0, stdout: str = '', stderr: str = '') -> subprocess.CompletedProcess:
    """Build a CompletedProcess for mocked subprocess.run calls."""
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)
