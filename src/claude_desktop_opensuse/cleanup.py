"""Removal of intermediate build files."""

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


def clean_work_dir(work_dir: Path, keep: Iterable[Path] = ()) -> None:
    """Remove ``work_dir`` and everything in it except the ``keep`` paths.

    Args:
        work_dir: Build working directory
        keep: Published files that must survive (only those inside ``work_dir`` matter)

    """
    if not work_dir.exists():
        return

    work_dir = work_dir.resolve()
    kept = [path.resolve() for path in keep]
    kept = [path for path in kept if path.is_relative_to(work_dir)]

    if not kept:
        logger.info('Removing %s...', work_dir)
        shutil.rmtree(work_dir)
        return

    _remove_except(work_dir, kept)


def _remove_except(directory: Path, kept: list[Path]) -> None:
    for child in directory.iterdir():
        if child in kept:
            continue
        if child.is_dir() and not child.is_symlink():
            if any(path.is_relative_to(child) for path in kept):
                _remove_except(child, kept)
            else:
                logger.debug('Removing %s', child)
                shutil.rmtree(child)
        else:
            child.unlink()
