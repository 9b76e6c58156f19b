"""Bundle the Electron runtime next to the patched application."""

import json
import logging
import os
from pathlib import Path

from .config import NPM_ARCH
from .context import StagingTree
from .errors import PackageBuildFailed
from .tools import run_tool

logger = logging.getLogger(__name__)


def bundle_electron(staging: StagingTree, architecture: str) -> Path:
    """Install Electron into the app staging dir with npm.

    Args:
        staging: App staging tree; its ``electron_version`` selects the release
        architecture: Target architecture of the package

    Returns:
        Path to the bundled ``node_modules`` directory

    Raises:
        PackageBuildFailed: If the Electron version is unknown or npm fails.

    """
    if not staging.electron_version:
        msg = 'Electron version not found in package.json, cannot bundle Electron'
        raise PackageBuildFailed(msg, stage='runtime')

    logger.info('Installing Electron %s for %s...', staging.electron_version, architecture)

    package_json = {
        'name': 'claude-desktop-electron',
        'version': '1.0.0',
        'private': True,
        'dependencies': {'electron': staging.electron_version},
    }
    (staging.app_dir / 'package.json').write_text(json.dumps(package_json, indent=2))

    # electron's postinstall downloads the binary for npm_config_arch
    env = dict(os.environ, npm_config_arch=NPM_ARCH[architecture])
    run_tool(
        ['npm', 'install', '--production', '--no-save'],
        PackageBuildFailed,
        cwd=staging.app_dir,
        env=env,
        stage='runtime',
    )

    electron_bin = staging.node_modules / 'electron' / 'dist' / 'electron'
    if not electron_bin.is_file():
        msg = f'Electron binary missing after npm install: {electron_bin}'
        raise PackageBuildFailed(msg, stage='runtime')

    return staging.node_modules
