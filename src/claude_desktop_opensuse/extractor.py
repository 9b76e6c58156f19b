"""Unpack the Windows installer and recover the application bundle and icons."""

import logging
import re
import shutil
from pathlib import Path

from .config import ICON_FILES
from .context import BuildContext, ExtractedResources, InstallerArtifact
from .errors import BuildError, ExtractionFailed
from .tools import run_tool

NUPKG_PATTERN = re.compile(r'AnthropicClaude-(.+)-full\.nupkg')


class ResourceExtractor:
    """Extracts exe -> nupkg -> resources, plus the icons embedded in claude.exe."""

    def __init__(self, context: BuildContext) -> None:
        """Initialize the extractor.

        Args:
            context: Build parameters

        """
        self.context = context
        self.logger = logging.getLogger(__name__)

    @property
    def extract_dir(self) -> Path:
        """Where the installer itself is unpacked."""
        return self.context.work_dir / 'extract'

    @property
    def nupkg_dir(self) -> Path:
        """Where the nupkg is unpacked."""
        return self.context.work_dir / 'nupkg'

    @property
    def icon_dir(self) -> Path:
        """Where icotool writes the icon set."""
        return self.context.work_dir / 'icons'

    def extract(self, installer: InstallerArtifact) -> ExtractedResources:
        """Extract the installer.

        Args:
            installer: Installer to unpack

        Returns:
            The recovered resources

        Raises:
            ExtractionFailed: If 7z fails or app.asar is missing afterwards.

        """
        self.logger.info('Extracting Windows installer %s...', installer.path)

        for directory in (self.extract_dir, self.nupkg_dir, self.icon_dir):
            if directory.exists():
                shutil.rmtree(directory)
            directory.mkdir(parents=True)

        run_tool(['7z', 'x', '-y', str(installer.path), f'-o{self.extract_dir}'], ExtractionFailed)

        nupkg_files = sorted(self.extract_dir.glob('*.nupkg'))
        if not nupkg_files:
            msg = f'No .nupkg file found in {self.extract_dir}'
            raise ExtractionFailed(msg)

        nupkg = nupkg_files[0]
        version = self.version_from_nupkg(nupkg)
        self.logger.info('Found %s (version %s)', nupkg.name, version or 'unknown')

        run_tool(['7z', 'x', '-y', str(nupkg), f'-o{self.nupkg_dir}'], ExtractionFailed)

        resources_dir = self.nupkg_dir / 'lib' / 'net45' / 'resources'
        app_asar = resources_dir / 'app.asar'
        if not app_asar.is_file():
            msg = f'app.asar not found at {app_asar}'
            raise ExtractionFailed(msg)

        unpacked_dir = resources_dir / 'app.asar.unpacked'

        return ExtractedResources(
            resources_dir=resources_dir,
            app_asar=app_asar,
            unpacked_dir=unpacked_dir if unpacked_dir.is_dir() else None,
            icons=self.extract_icons(resources_dir.parent / 'claude.exe'),
            version=version,
        )

    @staticmethod
    def version_from_nupkg(nupkg: Path) -> str | None:
        """Parse the application version out of the nupkg file name."""
        match = NUPKG_PATTERN.fullmatch(nupkg.name)
        return match.group(1) if match else None

    def extract_icons(self, exe_path: Path) -> dict[int, Path]:
        """Extract the icon set from claude.exe using wrestool/icotool.

        Icons are written to ``icon_dir`` under their icotool names.
        Missing sizes are logged and left out of the result.

        Returns:
            Mapping of pixel size to icon file, for icons that exist

        """
        self.logger.info('Extracting icons from %s...', exe_path)

        ico_path = self.icon_dir / 'claude.ico'

        if exe_path.is_file():
            try:
                run_tool(['wrestool', '-x', '-t', '14', str(exe_path), '-o', str(ico_path)], ExtractionFailed)
                run_tool(['icotool', '-x', str(ico_path)], ExtractionFailed, cwd=self.icon_dir)
            except BuildError as e:
                self.logger.warning('Icon extraction failed, continuing without icons: %s', e)
        else:
            self.logger.warning('claude.exe not found at %s, cannot extract icons', exe_path)

        return resolve_icons(self.icon_dir, self.logger)


def resolve_icons(icon_dir: Path, logger: logging.Logger) -> dict[int, Path]:
    """Map each declared icon size to its file in ``icon_dir``.

    Sizes whose file is missing are logged as warnings and omitted.
    """
    icons: dict[int, Path] = {}
    for size, filename in ICON_FILES.items():
        icon_path = icon_dir / filename
        if icon_path.is_file():
            icons[size] = icon_path
        else:
            logger.warning('Missing %dx%d icon at %s', size, size, icon_path)
    return icons
