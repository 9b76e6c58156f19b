"""Test appimage.py - AppDir layout and appimagetool invocation."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from conftest import completed

from claude_desktop_opensuse.appimage import AppImagePackager
from claude_desktop_opensuse.context import BuildContext, StagingTree
from claude_desktop_opensuse.errors import ArtifactNotFound, PackageBuildFailed
from claude_desktop_opensuse.packager import PackagerState


@pytest.fixture
def appimage_context(tmp_path: Path) -> BuildContext:
    return BuildContext.create(
        work_dir=tmp_path / 'build',
        version='1.2.3',
        build_format='appimage',
        output_dir=tmp_path / 'out',
    )


@pytest.fixture
def appimage_staging(appimage_context: BuildContext, staging: StagingTree) -> StagingTree:
    # The shared staging fixture is built for the rpm context; both share work_dir
    assert staging.app_dir == appimage_context.staging_dir
    return staging


class FakeAppimagetool:
    """Writes the output file appimagetool was asked for."""

    def __init__(self, *, write: bool = True, returncode: int = 0) -> None:
        self.write = write
        self.returncode = returncode
        self.calls: list[tuple[list[str], dict]] = []

    def __call__(self, command: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        self.calls.append((command, kwargs))
        if self.returncode:
            return completed(command, returncode=self.returncode, stderr='appimagetool: squashfs failed')
        if self.write:
            Path(command[-1]).write_bytes(b'\x7fELF AppImage')
        return completed(command)


class TestAppDir:
    """Test the AppDir produced by generate_descriptors."""

    def test_layout(self, appimage_context: BuildContext, appimage_staging: StagingTree) -> None:
        packager = AppImagePackager(appimage_context)
        descriptor = packager.generate_descriptors(packager.stage(appimage_staging))
        appdir = packager.appdir

        assert descriptor.spec_or_manifest_path == appdir / 'claude-desktop.desktop'
        assert (appdir / 'AppRun').stat().st_mode & 0o777 == 0o755
        assert (appdir / 'usr' / 'lib' / 'claude-desktop' / 'node_modules' / 'electron' / 'dist' / 'resources' / 'app.asar').exists()
        assert (appdir / 'claude-desktop.png').read_bytes() == appimage_staging.icons[256].read_bytes()
        assert (appdir / '.DirIcon').exists()
        assert descriptor.missing() == []

    def test_apprun_resolves_lib_dir_inside_appdir(self, appimage_context: BuildContext, appimage_staging: StagingTree) -> None:
        packager = AppImagePackager(appimage_context)
        packager.generate_descriptors(packager.stage(appimage_staging))

        apprun = (packager.appdir / 'AppRun').read_text()
        assert 'APP_DIR="${APPDIR}/usr/lib/claude-desktop"' in apprun
        assert (packager.appdir / 'usr' / 'bin' / 'claude-desktop').read_text() == apprun

    def test_desktop_entry_uses_binary_name(self, appimage_context: BuildContext, appimage_staging: StagingTree) -> None:
        packager = AppImagePackager(appimage_context)
        packager.generate_descriptors(packager.stage(appimage_staging))

        assert 'Exec=claude-desktop %u' in (packager.appdir / 'claude-desktop.desktop').read_text()

    @patch('claude_desktop_opensuse.appimage.shutil.which', return_value='/usr/bin/appimagetool')
    def test_no_icons_fails_before_appimagetool(
        self,
        mock_which: MagicMock,  # noqa: ARG002
        appimage_context: BuildContext,
        appimage_staging: StagingTree,
    ) -> None:
        iconless = StagingTree(app_dir=appimage_staging.app_dir, icons={})
        packager = AppImagePackager(appimage_context)

        with (
            patch('claude_desktop_opensuse.tools.subprocess.run') as mock_run,
            pytest.raises(PackageBuildFailed, match='at least one icon'),
        ):
            packager.package(iconless)

        mock_run.assert_not_called()
        assert packager.state is PackagerState.FAILED

    def test_update_information(self, appimage_context: BuildContext) -> None:
        packager = AppImagePackager(appimage_context, update_repo=('owner', 'repo'))

        assert packager.update_information == 'gh-releases-zsync|owner|repo|latest|claude-desktop-*-x86_64.AppImage.zsync'
        assert AppImagePackager(appimage_context, update_repo=None).update_information is None


class TestInvoke:
    """Test appimagetool invocation."""

    @patch('claude_desktop_opensuse.appimage.shutil.which', return_value='/usr/bin/appimagetool')
    def test_builds_appimage(
        self,
        mock_which: MagicMock,
        appimage_context: BuildContext,
        appimage_staging: StagingTree,
    ) -> None:
        tool = FakeAppimagetool()
        packager = AppImagePackager(appimage_context, update_repo=('owner', 'repo'))

        with patch('claude_desktop_opensuse.tools.subprocess.run', side_effect=tool):
            artifact = packager.package(appimage_staging)

        assert artifact == (appimage_context.output_dir / 'claude-desktop-1.2.3-x86_64.AppImage').resolve()
        assert artifact.stat().st_mode & 0o111

        command, kwargs = tool.calls[0]
        assert command[:2] == ['/usr/bin/appimagetool', '--no-appstream']
        assert command[2:4] == ['-u', packager.update_information]
        assert command[4] == str(packager.appdir)
        assert kwargs['env']['ARCH'] == 'x86_64'
        assert kwargs['env']['APPIMAGE_EXTRACT_AND_RUN'] == '1'
        mock_which.assert_called_with('appimagetool')

    @patch('claude_desktop_opensuse.appimage.shutil.which', return_value='/usr/bin/appimagetool')
    def test_no_update_information(
        self,
        mock_which: MagicMock,  # noqa: ARG002
        appimage_context: BuildContext,
        appimage_staging: StagingTree,
    ) -> None:
        tool = FakeAppimagetool()

        with patch('claude_desktop_opensuse.tools.subprocess.run', side_effect=tool):
            AppImagePackager(appimage_context, update_repo=None).package(appimage_staging)

        assert '-u' not in tool.calls[0][0]

    @patch('claude_desktop_opensuse.appimage.shutil.which', return_value='/usr/bin/appimagetool')
    def test_missing_output(
        self,
        mock_which: MagicMock,  # noqa: ARG002
        appimage_context: BuildContext,
        appimage_staging: StagingTree,
    ) -> None:
        with (
            patch('claude_desktop_opensuse.tools.subprocess.run', side_effect=FakeAppimagetool(write=False)),
            pytest.raises(ArtifactNotFound, match='AppImage not found'),
        ):
            AppImagePackager(appimage_context).package(appimage_staging)

    @patch('claude_desktop_opensuse.appimage.shutil.which', return_value='/usr/bin/appimagetool')
    def test_tool_failure(
        self,
        mock_which: MagicMock,  # noqa: ARG002
        appimage_context: BuildContext,
        appimage_staging: StagingTree,
    ) -> None:
        with (
            patch('claude_desktop_opensuse.tools.subprocess.run', side_effect=FakeAppimagetool(returncode=1)),
            pytest.raises(PackageBuildFailed, match='squashfs failed'),
        ):
            AppImagePackager(appimage_context).package(appimage_staging)


class TestFindAppimagetool:
    """Test appimagetool lookup."""

    @patch('claude_desktop_opensuse.appimage.download_file')
    @patch('claude_desktop_opensuse.appimage.shutil.which', return_value=None)
    def test_downloads_when_missing(
        self,
        mock_which: MagicMock,  # noqa: ARG002
        mock_download: MagicMock,
        appimage_context: BuildContext,
    ) -> None:
        def fake_download(url: str, dest: Path) -> Path:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(b'tool')
            return dest

        mock_download.side_effect = fake_download

        with patch('claude_desktop_opensuse.appimage.platform.machine', return_value='x86_64'):
            tool = AppImagePackager(appimage_context).find_appimagetool()

        assert tool == appimage_context.work_dir / 'tools' / 'appimagetool-x86_64.AppImage'
        assert mock_download.call_args.args[0].endswith('/appimagetool-x86_64.AppImage')
        assert tool.stat().st_mode & 0o111

    @patch('claude_desktop_opensuse.appimage.download_file')
    @patch('claude_desktop_opensuse.appimage.shutil.which', return_value=None)
    def test_cached_download_is_reused(
        self,
        mock_which: MagicMock,  # noqa: ARG002
        mock_download: MagicMock,
        appimage_context: BuildContext,
    ) -> None:
        with patch('claude_desktop_opensuse.appimage.platform.machine', return_value='x86_64'):
            cached = appimage_context.work_dir / 'tools' / 'appimagetool-x86_64.AppImage'
            cached.parent.mkdir(parents=True)
            cached.write_bytes(b'tool')

            assert AppImagePackager(appimage_context).find_appimagetool() == cached

        mock_download.assert_not_called()
