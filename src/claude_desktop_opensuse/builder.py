"""Build pipeline for Claude Desktop RPM and AppImage packages."""

import logging
import shutil
import subprocess
from pathlib import Path

from . import runtime
from .appimage import AppImagePackager
from .cleanup import clean_work_dir
from .config import DEBIAN_PACKAGES, DNF_PACKAGES, ZYPPER_PACKAGES
from .context import BuildContext, InstallerArtifact
from .errors import ExtractionFailed
from .extractor import ResourceExtractor
from .packager import Packager
from .patches import CLAUDE_CODE_PLATFORM_RULE, DEFAULT_RULES, AppPatcher, PatchRule
from .resolver import resolve_installer
from .rpm import RpmPackager

EXTRACT_COMMANDS = ['7z', 'npx', 'npm', 'wrestool', 'icotool']


def get_packager(context: BuildContext) -> Packager:
    """Get the packager for the context's build format.

    Args:
        context: Build parameters

    Returns:
        Packager instance

    """
    packagers: dict[str, type[Packager]] = {
        'rpm': RpmPackager,
        'appimage': AppImagePackager,
    }

    if context.build_format not in packagers:
        msg = f"Unknown build format: {context.build_format}. Available: {', '.join(packagers.keys())}"
        raise ValueError(msg)

    return packagers[context.build_format](context)


class ClaudeDesktopBuilder:
    """Runs resolve -> extract -> patch -> package -> cleanup for one build."""

    def __init__(
        self,
        context: BuildContext,
        exe_path: Path | None = None,
        *,
        bundle_electron: bool = True,
        patch_claude_code_platforms: bool = False,
    ) -> None:
        """Initialize the builder.

        Args:
            context: Build parameters; an empty version is read from the installer
            exe_path: Local installer to use instead of downloading
            bundle_electron: Ship Electron inside the package
            patch_claude_code_platforms: Enable Linux platform in Claude Code

        """
        self.context = context
        self.exe_path = exe_path
        self.bundle_electron = bundle_electron
        self.patch_claude_code_platforms = patch_claude_code_platforms
        self.logger = logging.getLogger(__name__)

    @property
    def rules(self) -> tuple[PatchRule, ...]:
        """Patch rules for this build."""
        if self.patch_claude_code_platforms:
            return (*DEFAULT_RULES, CLAUDE_CODE_PLATFORM_RULE)
        return DEFAULT_RULES

    def required_commands(self) -> list[str]:
        """System commands this build needs."""
        return [*EXTRACT_COMMANDS, *get_packager(self.context).required_commands]

    def detect_package_manager(self) -> tuple[str, list[str]]:
        """Detect the system package manager and required packages."""
        if shutil.which('zypper'):
            return 'zypper', ZYPPER_PACKAGES
        if shutil.which('dnf'):
            return 'dnf', DNF_PACKAGES
        if shutil.which('apt'):
            return 'apt', DEBIAN_PACKAGES
        msg = 'No supported package manager found (zypper, dnf or apt)'
        raise RuntimeError(msg)

    def check_dependencies(self) -> None:
        """Check and install required system dependencies."""
        missing = [cmd for cmd in self.required_commands() if not shutil.which(cmd)]
        if not missing:
            return

        pkg_manager, packages = self.detect_package_manager()
        self.logger.warning('Missing required commands: %s', ', '.join(missing))
        self.logger.info('Installing dependencies using %s...', pkg_manager)

        if pkg_manager == 'zypper':
            subprocess.run(['sudo', 'zypper', '--non-interactive', 'install', *packages], check=True)
        elif pkg_manager == 'dnf':
            subprocess.run(['sudo', 'dnf', 'install', '-y', *packages], check=True)
        else:
            subprocess.run(['sudo', 'apt', 'update'], check=True)
            subprocess.run(['sudo', 'apt', 'install', '-y', *packages], check=True)

    def build(self) -> Path:
        """Run the complete build process.

        Returns:
            Path to the built package

        """
        context = self.context
        self.logger.info(
            'Starting Claude Desktop %s build for %s...',
            context.build_format,
            context.architecture,
        )
        context.work_dir.mkdir(parents=True, exist_ok=True)

        self.logger.info('Stage: resolve')
        installer = resolve_installer(context, self.exe_path)

        self.logger.info('Stage: extract')
        resources = ResourceExtractor(context).extract(installer)

        if not context.version:
            if not resources.version:
                msg = 'Could not determine the Claude Desktop version from the installer; pass --version'
                raise ExtractionFailed(msg)
            context = context.with_version(resources.version)
            self.context = context

        self.logger.info(
            'Building %s %s-%s (%s)',
            context.package_name,
            context.version,
            context.release,
            context.architecture,
        )

        self.logger.info('Stage: patch')
        staging = AppPatcher(context, self.rules).patch(resources)

        if self.bundle_electron:
            self.logger.info('Stage: runtime')
            runtime.bundle_electron(staging, context.architecture)
        else:
            self.logger.info('Not bundling Electron, the launcher will use a global electron')

        self.logger.info('Stage: package')
        packager = get_packager(context)
        artifact = packager.package(staging)

        self.logger.info('Stage: cleanup')
        self.cleanup(installer, packager.published)

        self.logger.info('Build complete!')
        return artifact

    def cleanup(self, installer: InstallerArtifact, published: list[Path]) -> None:
        """Remove intermediate files unless the clean policy keeps them.

        A local installer is never removed, nor are the ``published`` files
        (the artifact and its desktop entry).
        """
        if not self.context.clean:
            self.logger.info('Keeping intermediate files in %s', self.context.work_dir)
            return

        if installer.is_local and installer.path.is_relative_to(self.context.work_dir.resolve()):
            self.logger.warning('Local installer %s lives in the work dir, keeping it', installer.path)
            return

        clean_work_dir(self.context.work_dir, keep=published)
