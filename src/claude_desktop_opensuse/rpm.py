"""RPM packaging with rpmbuild."""

import re
import shutil
from collections.abc import Callable
from datetime import date
from pathlib import Path

from .context import BuildContext, PackageDescriptor
from .errors import ArtifactNotFound, PackageBuildFailed
from .packager import Packager
from .templates import render_post_install_script, render_rpm_spec
from .tools import run_tool

WROTE_PATTERN = re.compile(r'^Wrote:\s+(\S+\.rpm)\s*$', re.MULTILINE)


class RpmPackager(Packager):
    """Builds ``<package>-<version>-<release>.<arch>.rpm``."""

    def __init__(self, context: BuildContext, today: Callable[[], date] = date.today) -> None:
        """Initialize the packager.

        Args:
            context: Build parameters
            today: Clock for the changelog entry

        """
        super().__init__(context)
        self.today = today

    @property
    def name(self) -> str:
        """Return format name."""
        return 'rpm'

    @property
    def required_commands(self) -> list[str]:
        """Return required system commands."""
        return ['rpmbuild']

    @property
    def rpmbuild_dir(self) -> Path:
        """rpmbuild ``_topdir``."""
        return self.context.work_dir / 'rpmbuild'

    @property
    def sandbox_path(self) -> str:
        """Installed location of Electron's setuid sandbox helper."""
        return f'/usr/lib/{self.context.package_name}/node_modules/electron/dist/chrome-sandbox'

    def installed_files(self) -> list[str]:
        """Paths for the %files section, one per installed location."""
        context = self.context
        package_root = context.package_root
        files = [
            context.install_root / 'bin' / context.package_name,
            context.lib_dir,
            context.install_root / 'share' / 'applications' / f'{context.package_name}.desktop',
        ]
        hicolor = context.install_root / 'share' / 'icons' / 'hicolor'
        files.extend(sorted(hicolor.glob(f'*/apps/{context.package_name}.png'), key=_icon_size))
        return ['/' + path.relative_to(package_root).as_posix() for path in files if path.exists()]

    def generate_descriptors(self, descriptor: PackageDescriptor) -> PackageDescriptor:
        """Write the post-install hook and the spec file."""
        context = self.context

        self.logger.info('Creating post-install script...')
        post_install = render_post_install_script(self.sandbox_path)
        postinst_path = context.work_dir / 'postinst.sh'
        postinst_path.write_text(post_install)
        postinst_path.chmod(0o755)

        self.logger.info('Creating RPM spec file...')
        spec_file = context.work_dir / f'{context.package_name}.spec'
        spec_file.write_text(render_rpm_spec(context, self.installed_files(), post_install, self.today()))

        descriptor.post_install_script_path = postinst_path
        descriptor.spec_or_manifest_path = spec_file
        return descriptor

    def invoke(self, descriptor: PackageDescriptor) -> Path:
        """Run rpmbuild and move the RPM into the output directory."""
        context = self.context
        if descriptor.spec_or_manifest_path is None:
            msg = 'Spec file has not been generated'
            raise PackageBuildFailed(msg)

        for subdir in ['BUILD', 'BUILDROOT', 'RPMS', 'SOURCES', 'SPECS', 'SRPMS']:
            (self.rpmbuild_dir / subdir).mkdir(parents=True, exist_ok=True)

        spec_file = self.rpmbuild_dir / 'SPECS' / descriptor.spec_or_manifest_path.name
        shutil.copyfile(descriptor.spec_or_manifest_path, spec_file)

        self.logger.info('Running rpmbuild...')
        result = run_tool(
            [
                'rpmbuild',
                '--define', f'_topdir {self.rpmbuild_dir}',
                '--define', f'_rpmdir {context.work_dir}',
                '--target', context.architecture,
                '-bb', str(spec_file),
            ],
            PackageBuildFailed,
        )

        built = self.find_artifact(result.stdout)
        context.output_dir.mkdir(parents=True, exist_ok=True)
        artifact = context.output_dir / built.name
        if built.resolve() != artifact.resolve():
            shutil.move(built, artifact)
        return artifact.resolve()

    def find_artifact(self, rpmbuild_output: str) -> Path:
        """Locate the RPM rpmbuild just wrote.

        rpmbuild's ``Wrote:`` lines are authoritative. The expected
        ``_rpmdir/<arch>/<name>`` path and a glob over ``_rpmdir`` are
        fallbacks for output that was not captured.

        Raises:
            ArtifactNotFound: If no matching RPM exists.

        """
        context = self.context
        for match in WROTE_PATTERN.finditer(rpmbuild_output):
            path = Path(match.group(1))
            if path.name == context.rpm_filename and path.is_file():
                return path

        expected = context.work_dir / context.architecture / context.rpm_filename
        if expected.is_file():
            return expected

        pattern = f'{context.package_name}-{context.version}-*.{context.architecture}.rpm'
        candidates = [*context.work_dir.glob(pattern), *context.work_dir.glob(f'*/{pattern}')]
        if candidates:
            newest = max(candidates, key=lambda p: p.stat().st_mtime)
            self.logger.warning('Located RPM by pattern match: %s', newest)
            return newest

        msg = f'RPM file not found after build (expected {expected})'
        raise ArtifactNotFound(msg)


def _icon_size(path: Path) -> int:
    return int(path.parent.parent.name.split('x')[0])
