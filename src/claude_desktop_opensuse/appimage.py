"""AppImage packaging with appimagetool."""

import os
import platform
import shutil
from pathlib import Path

from .config import APPIMAGE_UPDATE_REPO, APPIMAGETOOL_URL
from .context import BuildContext, PackageDescriptor
from .downloader import download_file
from .errors import ArtifactNotFound, PackageBuildFailed
from .packager import Packager
from .templates import render_desktop_entry, render_launcher_script
from .tools import run_tool


class AppImagePackager(Packager):
    """Builds ``<package>-<version>-<arch>.AppImage`` from the staging tree."""

    def __init__(self, context: BuildContext, update_repo: tuple[str, str] | None = APPIMAGE_UPDATE_REPO) -> None:
        """Initialize the packager.

        Args:
            context: Build parameters
            update_repo: GitHub (owner, repo) publishing releases, None disables update information

        """
        super().__init__(context)
        self.update_repo = update_repo

    @property
    def name(self) -> str:
        """Return format name."""
        return 'appimage'

    @property
    def required_commands(self) -> list[str]:
        """Return required system commands (appimagetool is fetched when missing)."""
        return []

    @property
    def desktop_exec(self) -> str:
        """AppImage desktop entries reference the binary by name."""
        return self.context.package_name

    @property
    def appdir(self) -> Path:
        """AppDir assembled for appimagetool."""
        return self.context.work_dir / 'AppDir'

    @property
    def update_information(self) -> str | None:
        """zsync update information embedded into the AppImage."""
        if self.update_repo is None:
            return None
        owner, repo = self.update_repo
        context = self.context
        return f'gh-releases-zsync|{owner}|{repo}|latest|{context.package_name}-*-{context.architecture}.AppImage.zsync'

    def generate_descriptors(self, descriptor: PackageDescriptor) -> PackageDescriptor:
        """Lay out the AppDir: usr tree, AppRun, root desktop entry and icon."""
        context = self.context
        appdir = self.appdir
        self.logger.info('Creating AppDir in %s...', appdir)

        if appdir.exists():
            shutil.rmtree(appdir)
        shutil.copytree(context.install_root, appdir / 'usr', symlinks=True)

        launcher = render_launcher_script(f'${{APPDIR}}/usr/lib/{context.package_name}')
        for script in (appdir / 'AppRun', appdir / 'usr' / 'bin' / context.package_name):
            script.write_text(launcher)
            script.chmod(0o755)

        desktop_file = appdir / f'{context.package_name}.desktop'
        desktop_file.write_text(render_desktop_entry(context.package_name, self.desktop_exec))

        # appimagetool refuses an AppDir without a root icon
        icon = self._largest_icon()
        if icon is None:
            msg = 'AppImage requires at least one icon, none were extracted from the installer'
            raise PackageBuildFailed(msg)
        shutil.copyfile(icon, appdir / f'{context.package_name}.png')
        shutil.copyfile(icon, appdir / '.DirIcon')

        descriptor.spec_or_manifest_path = desktop_file
        return descriptor

    def _largest_icon(self) -> Path | None:
        hicolor = self.context.install_root / 'share' / 'icons' / 'hicolor'
        icons = list(hicolor.glob(f'*/apps/{self.context.package_name}.png'))
        if not icons:
            return None
        return max(icons, key=lambda p: int(p.parent.parent.name.split('x')[0]))

    def find_appimagetool(self) -> Path:
        """Return appimagetool from PATH, downloading it once if absent."""
        system_tool = shutil.which('appimagetool')
        if system_tool:
            return Path(system_tool)

        tool = self.context.work_dir / 'tools' / f'appimagetool-{platform.machine()}.AppImage'
        if not tool.is_file():
            self.logger.info('appimagetool not found, downloading it...')
            download_file(APPIMAGETOOL_URL.format(arch=platform.machine()), tool)
            tool.chmod(0o755)
        return tool

    def invoke(self, descriptor: PackageDescriptor) -> Path:  # noqa: ARG002
        """Run appimagetool on the AppDir."""
        context = self.context
        context.output_dir.mkdir(parents=True, exist_ok=True)
        artifact = context.output_dir / context.appimage_filename

        command = [str(self.find_appimagetool()), '--no-appstream']
        if self.update_information:
            command.extend(['-u', self.update_information])
        command.extend([str(self.appdir), str(artifact)])

        # appimagetool is itself an AppImage, FUSE may be unavailable in CI
        env = dict(os.environ, ARCH=context.architecture, APPIMAGE_EXTRACT_AND_RUN='1')

        self.logger.info('Running appimagetool...')
        run_tool(command, PackageBuildFailed, cwd=context.output_dir, env=env)

        if not artifact.is_file():
            msg = f'AppImage not found after build (expected {artifact})'
            raise ArtifactNotFound(msg)

        artifact.chmod(0o755)
        return artifact.resolve()
