"""Values threaded through the build stages."""

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path

from .config import ARCHITECTURES, BUILD_FORMATS, DESCRIPTION, MAINTAINER, PACKAGE_NAME, RELEASE


@dataclass(frozen=True)
class BuildContext:
    """Immutable parameters of a single build invocation."""

    version: str
    architecture: str
    work_dir: Path
    staging_dir: Path
    build_format: str = 'rpm'
    clean: bool = True
    output_dir: Path = field(default_factory=Path.cwd)
    package_name: str = PACKAGE_NAME
    maintainer: str = MAINTAINER
    description: str = DESCRIPTION
    release: str = RELEASE

    def __post_init__(self) -> None:
        """Validate enumerated fields."""
        if self.architecture not in ARCHITECTURES:
            msg = f"Unsupported architecture: {self.architecture}. Available: {', '.join(ARCHITECTURES)}"
            raise ValueError(msg)
        if self.build_format not in BUILD_FORMATS:
            msg = f"Unknown build format: {self.build_format}. Available: {', '.join(BUILD_FORMATS)}"
            raise ValueError(msg)

    @classmethod
    def create(cls, work_dir: Path, **kwargs: object) -> 'BuildContext':
        """Create a context whose app staging dir lives inside ``work_dir``.

        The version may be left empty and filled in later with
        :meth:`with_version` once the installer has been inspected.
        """
        kwargs.setdefault('version', '')
        kwargs.setdefault('architecture', 'x86_64')
        return cls(work_dir=work_dir, staging_dir=work_dir / 'electron-app', **kwargs)  # type: ignore[arg-type]

    def with_version(self, version: str) -> 'BuildContext':
        """Return a copy of this context carrying ``version``."""
        return dataclasses.replace(self, version=version)

    @property
    def package_root(self) -> Path:
        """Root of the staging tree (mirrors ``/`` of the installed system)."""
        return self.work_dir / 'package'

    @property
    def install_root(self) -> Path:
        """The ``usr`` directory of the staging tree."""
        return self.package_root / 'usr'

    @property
    def lib_dir(self) -> Path:
        """Staged ``/usr/lib/<package>``."""
        return self.install_root / 'lib' / self.package_name

    @property
    def resources_dir(self) -> Path:
        """Staged Electron resources directory (``process.resourcesPath``)."""
        return self.lib_dir / 'node_modules' / 'electron' / 'dist' / 'resources'

    @property
    def rpm_filename(self) -> str:
        """File name rpmbuild gives the binary package."""
        return f'{self.package_name}-{self.version}-{self.release}.{self.architecture}.rpm'

    @property
    def appimage_filename(self) -> str:
        """File name of the AppImage artifact."""
        return f'{self.package_name}-{self.version}-{self.architecture}.AppImage'


@dataclass(frozen=True)
class InstallerArtifact:
    """The Windows installer a build starts from."""

    path: Path
    source_kind: str  # 'downloaded' or 'local'

    @property
    def is_local(self) -> bool:
        """Whether the installer was supplied by the user."""
        return self.source_kind == 'local'


@dataclass(frozen=True)
class ExtractedResources:
    """What the extractor recovered from the installer."""

    resources_dir: Path
    app_asar: Path
    unpacked_dir: Path | None
    icons: dict[int, Path]
    version: str | None = None


@dataclass(frozen=True)
class StagingTree:
    """Patched application bundle plus the icons to install."""

    app_dir: Path
    icons: dict[int, Path]
    electron_version: str | None = None

    @property
    def app_asar(self) -> Path:
        """Patched application archive."""
        return self.app_dir / 'app.asar'

    @property
    def unpacked_dir(self) -> Path:
        """Unpacked native modules next to the archive."""
        return self.app_dir / 'app.asar.unpacked'

    @property
    def node_modules(self) -> Path:
        """Bundled Electron runtime, if one was installed."""
        return self.app_dir / 'node_modules'


@dataclass
class PackageDescriptor:
    """Generated files the native packaging tool consumes."""

    install_root: Path
    desktop_entry_path: Path
    launcher_script_path: Path
    post_install_script_path: Path | None = None
    spec_or_manifest_path: Path | None = None

    def paths(self) -> list[Path]:
        """All paths the descriptor refers to."""
        candidates = [
            self.install_root,
            self.desktop_entry_path,
            self.launcher_script_path,
            self.post_install_script_path,
            self.spec_or_manifest_path,
        ]
        return [path for path in candidates if path is not None]

    def missing(self) -> list[Path]:
        """Paths that are referenced but do not exist on disk."""
        return [path for path in self.paths() if not path.exists()]
