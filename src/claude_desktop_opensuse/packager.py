"""Staging tree assembly shared by the RPM and AppImage packagers."""

import logging
import shutil
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from .context import BuildContext, PackageDescriptor, StagingTree
from .errors import BuildError, PackageBuildFailed
from .templates import render_desktop_entry, render_launcher_script


class PackagerState(str, Enum):
    """Lifecycle of a packager."""

    NEW = 'new'
    STAGED = 'staged'
    DESCRIPTORS_GENERATED = 'descriptors_generated'
    INVOKED = 'invoked'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


TRANSITIONS = {
    PackagerState.NEW: {PackagerState.STAGED, PackagerState.FAILED},
    PackagerState.STAGED: {PackagerState.DESCRIPTORS_GENERATED, PackagerState.FAILED},
    PackagerState.DESCRIPTORS_GENERATED: {PackagerState.INVOKED, PackagerState.FAILED},
    PackagerState.INVOKED: {PackagerState.SUCCEEDED, PackagerState.FAILED},
    PackagerState.SUCCEEDED: set(),
    PackagerState.FAILED: set(),
}


class Packager(ABC):
    """Builds one package format from the app staging tree."""

    def __init__(self, context: BuildContext) -> None:
        """Initialize the packager.

        Args:
            context: Build parameters

        """
        self.context = context
        self.state = PackagerState.NEW
        self.descriptor: PackageDescriptor | None = None
        self.published: list[Path] = []
        self.logger = logging.getLogger(__name__)

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the package format name (e.g., 'rpm')."""

    @property
    @abstractmethod
    def required_commands(self) -> list[str]:
        """Return list of system commands the format needs."""

    @property
    def desktop_exec(self) -> str:
        """Exec= value of the desktop entry."""
        return f'/usr/bin/{self.context.package_name}'

    @abstractmethod
    def generate_descriptors(self, descriptor: PackageDescriptor) -> PackageDescriptor:
        """Write format-specific files (spec, post-install hook, AppDir).

        Returns:
            The descriptor with the format-specific paths filled in

        """

    @abstractmethod
    def invoke(self, descriptor: PackageDescriptor) -> Path:
        """Run the native packaging tool.

        Returns:
            Path to the produced artifact

        """

    def _transition(self, state: PackagerState) -> None:
        if state not in TRANSITIONS[self.state]:
            msg = f'Invalid packager transition: {self.state.value} -> {state.value}'
            raise RuntimeError(msg)
        self.logger.debug('%s packager: %s -> %s', self.name, self.state.value, state.value)
        self.state = state

    def package(self, staging: StagingTree) -> Path:
        """Stage, generate descriptors and build the package.

        Args:
            staging: Patched application bundle and icons

        Returns:
            Path to the artifact in the output directory

        """
        try:
            descriptor = self.stage(staging)
            self._transition(PackagerState.STAGED)

            descriptor = self.generate_descriptors(descriptor)
            missing = descriptor.missing()
            if missing:
                msg = f'Generated files missing: {", ".join(str(p) for p in missing)}'
                raise PackageBuildFailed(msg)
            self.descriptor = descriptor
            self._transition(PackagerState.DESCRIPTORS_GENERATED)

            self._transition(PackagerState.INVOKED)
            artifact = self.invoke(descriptor)
        except BuildError:
            self._transition(PackagerState.FAILED)
            raise

        self.published = [artifact, self.publish_desktop_entry(descriptor, artifact)]
        self._transition(PackagerState.SUCCEEDED)
        self.logger.info('Built %s package: %s', self.name, artifact)
        return artifact

    def stage(self, staging: StagingTree) -> PackageDescriptor:
        """Assemble the installed filesystem layout under ``package_root``.

        Rebuilt from scratch each time, so identical inputs give identical trees.
        """
        context = self.context
        install_root = context.install_root
        self.logger.info('Creating package structure in %s...', context.package_root)

        if context.package_root.exists():
            shutil.rmtree(context.package_root)

        bin_dir = install_root / 'bin'
        apps_dir = install_root / 'share' / 'applications'
        for directory in (bin_dir, context.lib_dir, apps_dir, install_root / 'share' / 'icons'):
            directory.mkdir(parents=True, exist_ok=True)

        self.install_icons(staging)
        self.install_app(staging)

        desktop_file = apps_dir / f'{context.package_name}.desktop'
        desktop_file.write_text(render_desktop_entry(context.package_name, self.desktop_exec))

        launcher = bin_dir / context.package_name
        launcher.write_text(render_launcher_script(f'/usr/lib/{context.package_name}'))
        launcher.chmod(0o755)

        return PackageDescriptor(
            install_root=install_root,
            desktop_entry_path=desktop_file,
            launcher_script_path=launcher,
        )

    def install_icons(self, staging: StagingTree) -> list[Path]:
        """Copy each resolved icon to its hicolor size directory.

        Returns:
            Installed icon paths

        """
        self.logger.info('Installing icons...')
        hicolor = self.context.install_root / 'share' / 'icons' / 'hicolor'
        installed = []
        for size, icon_path in sorted(staging.icons.items()):
            if not icon_path.is_file():
                self.logger.warning('Missing %dx%d icon at %s', size, size, icon_path)
                continue
            icon_dir = hicolor / f'{size}x{size}' / 'apps'
            icon_dir.mkdir(parents=True, exist_ok=True)
            target = icon_dir / f'{self.context.package_name}.png'
            shutil.copyfile(icon_path, target)
            target.chmod(0o644)
            installed.append(target)
        return installed

    def install_app(self, staging: StagingTree) -> None:
        """Copy Electron and the app into ``lib/<package>``.

        app.asar goes into Electron's resources directory, which is where
        ``process.resourcesPath`` points for a packaged app.
        """
        self.logger.info('Copying application files from %s...', staging.app_dir)
        lib_dir = self.context.lib_dir

        if staging.node_modules.is_dir():
            self.logger.info('Copying packaged Electron...')
            shutil.copytree(staging.node_modules, lib_dir / 'node_modules', symlinks=True)

        resources_dir = self.context.resources_dir
        resources_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(staging.app_asar, resources_dir / 'app.asar')
        if staging.unpacked_dir.is_dir():
            shutil.copytree(staging.unpacked_dir, resources_dir / 'app.asar.unpacked', symlinks=True)

    def publish_desktop_entry(self, descriptor: PackageDescriptor, artifact: Path) -> Path:
        """Place a copy of the desktop entry next to the artifact."""
        target = artifact.parent / descriptor.desktop_entry_path.name
        shutil.copyfile(descriptor.desktop_entry_path, target)
        return target
