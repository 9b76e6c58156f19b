"""Download helper for Claude Desktop installers."""

import logging
import re
from pathlib import Path

import requests
from tqdm import tqdm

from .errors import DownloadFailed

logger = logging.getLogger(__name__)


def extract_version_from_url(url: str) -> str | None:
    """Extract version from download URL.

    Release URLs contain version info like:
    - https://downloads.claude.ai/releases/win32/x64/1.0.1217/Claude-...

    Args:
        url: The download URL

    Returns:
        Version string or None if not found

    """
    match = re.search(r'/(\d+\.\d+\.\d+)/', url)
    if match:
        return match.group(1)
    return None


def download_file(url: str, dest_path: Path, *, timeout: float | None = None) -> Path:
    """Download a file in a single attempt.

    Args:
        url: URL to download from
        dest_path: Destination path for the downloaded file
        timeout: Optional socket timeout in seconds (None waits indefinitely)

    Returns:
        Path to the downloaded file

    Raises:
        DownloadFailed: On a non-2xx response or any network error.

    """
    version = extract_version_from_url(url)
    if version:
        logger.info('Downloading version %s from: %s', version, url)
    else:
        logger.info('Downloading from: %s', url)

    dest_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()

            total_size = int(response.headers.get('Content-Length', 0))

            with (
                dest_path.open('wb') as f,
                tqdm(total=total_size, unit='B', unit_scale=True, desc='Downloading') as pbar,
            ):
                for chunk in response.iter_content(chunk_size=8192):
                    f.write(chunk)
                    pbar.update(len(chunk))
    except requests.HTTPError as e:
        dest_path.unlink(missing_ok=True)
        status = e.response.status_code if e.response is not None else 'unknown'
        msg = f'Download of {url} failed with HTTP status {status}'
        raise DownloadFailed(msg) from e
    except requests.RequestException as e:
        dest_path.unlink(missing_ok=True)
        msg = f'Download of {url} failed: {e}'
        raise DownloadFailed(msg) from e

    return dest_path
