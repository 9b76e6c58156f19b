"""Locate or fetch the Windows installer a build starts from."""

import logging
from pathlib import Path
from urllib.parse import urlparse

from .config import CLAUDE_DOWNLOAD_URLS
from .context import BuildContext, InstallerArtifact
from .downloader import download_file
from .errors import InputNotFound

logger = logging.getLogger(__name__)


def installer_url(architecture: str) -> str:
    """Return the installer download URL for ``architecture``."""
    try:
        return CLAUDE_DOWNLOAD_URLS[architecture]
    except KeyError:
        msg = f'No installer download URL for architecture {architecture}'
        raise ValueError(msg) from None


def installer_download_path(context: BuildContext) -> Path:
    """Deterministic location of the downloaded installer inside the work dir."""
    filename = Path(urlparse(installer_url(context.architecture)).path).name
    return context.work_dir / 'downloads' / filename


def resolve_installer(context: BuildContext, exe_path: Path | None = None) -> InstallerArtifact:
    """Produce the installer for this build.

    Args:
        context: Build parameters
        exe_path: Local installer to use instead of downloading

    Returns:
        The installer artifact

    Raises:
        InputNotFound: If ``exe_path`` is given but missing.
        DownloadFailed: If the download fails.

    """
    if exe_path is not None:
        if not exe_path.is_file():
            msg = f'Installer not found: {exe_path}'
            raise InputNotFound(msg)
        logger.info('Using local installer: %s', exe_path)
        return InstallerArtifact(path=exe_path.resolve(), source_kind='local')

    dest = installer_download_path(context)
    logger.info('Downloading %s installer...', context.architecture)
    path = download_file(installer_url(context.architecture), dest)
    return InstallerArtifact(path=path, source_kind='downloaded')
