"""Test patches.py - patch rules and app.asar rewriting."""

import json
import logging
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import completed

from claude_desktop_opensuse.context import BuildContext, ExtractedResources
from claude_desktop_opensuse.errors import ExtractionFailed, PatchTargetMissing
from claude_desktop_opensuse.patches import (
    CLAUDE_CODE_PLATFORM_RULE,
    NATIVE_STUB_INDEX,
    TITLE_BAR_RULE,
    TRAY_RULE,
    AppPatcher,
    PatchRule,
    install_native_stub,
)

MAIN_WINDOW_JS = 'function R(){if(!isWindows && isMainWindow)return null;return render()}'
INDEX_JS = (
    'async function rt(){Xe&&(Xe.destroy(),Xe=null);Xe=new Tray(icon)}'
    'ipc.on("menuBarEnabled",()=>{rt()});'
    'getHostPlatform(){const e=process.arch;'
    'if(process.platform==="darwin")return e==="arm64"?"darwin-arm64":"darwin-x64";'
    'if(process.platform==="win32")return"win32-x64";'
    'throw new Error(`Unsupported platform: ${process.platform}-${e}`)}'
)


def write_app(app_dir: Path, *, main_window: str = MAIN_WINDOW_JS, index: str = INDEX_JS) -> Path:
    """Lay out a minimal unpacked Claude app."""
    assets = app_dir / '.vite' / 'renderer' / 'main_window' / 'assets'
    assets.mkdir(parents=True)
    (assets / 'MainWindowPage-abc123.js').write_text(main_window)
    build = app_dir / '.vite' / 'build'
    build.mkdir(parents=True)
    (build / 'index.js').write_text(index)
    (app_dir / 'package.json').write_text(json.dumps({'devDependencies': {'electron': '37.2.0'}}))
    (app_dir / 'node_modules' / '@ant' / 'claude-native').mkdir(parents=True)
    (app_dir / 'node_modules' / '@ant' / 'claude-native' / 'claude-native-binding.node').write_bytes(b'PE')
    return app_dir


class TestPatchRule:
    """Test the generic rule behaviour."""

    def test_title_bar_guard_is_flipped(self, tmp_path: Path) -> None:
        app = write_app(tmp_path / 'app')

        assert TITLE_BAR_RULE.apply(app)

        content = next(app.glob('.vite/renderer/main_window/assets/MainWindowPage-*.js')).read_text()
        assert 'if(isWindows && isMainWindow)' in content
        assert '!isWindows' not in content

    def test_required_rule_with_missing_anchor_raises(self, tmp_path: Path) -> None:
        app = write_app(tmp_path / 'app', main_window='function R(){return render()}')

        with pytest.raises(PatchTargetMissing, match='title bar patch is stale'):
            TITLE_BAR_RULE.apply(app)

    def test_required_rule_with_missing_file_raises(self, tmp_path: Path) -> None:
        app = tmp_path / 'app'
        app.mkdir()

        with pytest.raises(PatchTargetMissing, match='found 0'):
            TITLE_BAR_RULE.apply(app)

    def test_ambiguous_target_raises(self, tmp_path: Path) -> None:
        app = write_app(tmp_path / 'app')
        assets = app / '.vite' / 'renderer' / 'main_window' / 'assets'
        (assets / 'MainWindowPage-def456.js').write_text(MAIN_WINDOW_JS)

        with pytest.raises(PatchTargetMissing, match='found 2'):
            TITLE_BAR_RULE.apply(app)

    def test_optional_rule_only_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        app = write_app(tmp_path / 'app')
        rule = PatchRule(name='optional', target='missing.js', pattern='x', replacement='y', required=False)

        with caplog.at_level(logging.WARNING):
            assert rule.apply(app) is False

        assert 'Skipping optional patch' in caplog.text

    def test_claude_code_platform_rule_adds_linux(self, tmp_path: Path) -> None:
        app = write_app(tmp_path / 'app')

        assert CLAUDE_CODE_PLATFORM_RULE.apply(app)

        content = (app / '.vite' / 'build' / 'index.js').read_text()
        assert 'if(process.platform==="linux")return e==="arm64"?"linux-arm64":"linux-x64";' in content
        assert 'throw new Error(`Unsupported platform: ${process.platform}-${e}`)' in content


class TestTrayRebuildRule:
    """Test the tray rebuild race fix."""

    def test_guard_and_delay_inserted(self, tmp_path: Path) -> None:
        app = write_app(tmp_path / 'app')

        assert TRAY_RULE.apply(app)

        content = (app / '.vite' / 'build' / 'index.js').read_text()
        assert 'async function rt(){if(rt._running)return;rt._running=true;' in content
        assert 'setTimeout(()=>{rt._running=false},1500);' in content
        assert 'Xe&&(Xe.destroy(),Xe=null,await new Promise(r=>setTimeout(r,250)))' in content

    def test_missing_listener_raises(self, tmp_path: Path) -> None:
        app = write_app(tmp_path / 'app', index='async function rt(){}')

        with pytest.raises(PatchTargetMissing, match='tray rebuild'):
            TRAY_RULE.apply(app)

    def test_destroy_sites_outside_rebuild_function_untouched(self, tmp_path: Path) -> None:
        close_window = 'function closeWin(){W&&(W.destroy(),W=null)}'
        app = write_app(tmp_path / 'app', index=close_window + INDEX_JS)

        assert TRAY_RULE.apply(app)

        content = (app / '.vite' / 'build' / 'index.js').read_text()
        assert content.startswith(close_window)
        assert content.count('await') == 1
        assert 'Xe&&(Xe.destroy(),Xe=null,await new Promise(r=>setTimeout(r,250)))' in content

    def test_rebuild_function_without_destroy_site_raises(self, tmp_path: Path) -> None:
        index = (
            'function closeWin(){W&&(W.destroy(),W=null)}async function rt(){W=new Tray(icon)}'
            'ipc.on("menuBarEnabled",()=>{rt()});'
        )
        app = write_app(tmp_path / 'app', index=index)

        with pytest.raises(PatchTargetMissing, match='tray rebuild'):
            TRAY_RULE.apply(app)

        assert (app / '.vite' / 'build' / 'index.js').read_text() == index

    def test_listener_without_async_function_raises(self, tmp_path: Path) -> None:
        app = write_app(tmp_path / 'app', index='function rt(){};ipc.on("menuBarEnabled",()=>{rt()});')

        with pytest.raises(PatchTargetMissing):
            TRAY_RULE.apply(app)


class TestInstallNativeStub:
    """Test native module shim replacement."""

    def test_existing_module_dir_gets_stub(self, tmp_path: Path) -> None:
        app = write_app(tmp_path / 'app')

        dirs = install_native_stub(app)

        assert dirs == [app / 'node_modules' / '@ant' / 'claude-native']
        assert (dirs[0] / 'index.js').read_text() == NATIVE_STUB_INDEX
        assert json.loads((dirs[0] / 'package.json').read_text())['main'] == 'index.js'

    def test_creates_canonical_dir_when_absent(self, tmp_path: Path) -> None:
        dirs = install_native_stub(tmp_path)

        assert dirs == [tmp_path / 'node_modules' / '@ant' / 'claude-native']

    def test_no_create_leaves_tree_alone(self, tmp_path: Path) -> None:
        assert install_native_stub(tmp_path, create=False) == []
        assert not (tmp_path / 'node_modules').exists()


class FakeAsar:
    """Stands in for ``npx asar``; pack copies the tree next to the archive."""

    def __init__(self, index: str = INDEX_JS, fail: str | None = None) -> None:
        self.index = index
        self.fail = fail

    def __call__(self, command: list[str], **kwargs: object) -> object:
        action, source, dest = command[2], Path(command[3]), Path(command[4])
        if action == self.fail:
            return completed(command, returncode=1, stderr='asar failed')
        if action == 'extract':
            write_app(dest, index=self.index)
        elif action == 'pack':
            shutil.copytree(source, dest.with_suffix('.contents'))
            dest.write_bytes(b'packed')
        return completed(command)


@pytest.fixture
def resources(tmp_path: Path) -> ExtractedResources:
    resources_dir = tmp_path / 'resources'
    unpacked = resources_dir / 'app.asar.unpacked' / 'node_modules' / '@ant' / 'claude-native'
    unpacked.mkdir(parents=True)
    (unpacked / 'claude-native-binding.node').write_bytes(b'PE')
    (resources_dir / 'app.asar').write_bytes(b'asar')
    (resources_dir / 'TrayIconTemplate.png').write_bytes(b'png')
    (resources_dir / 'en-US.json').write_text('{}')
    (resources_dir / 'build-props.json').write_text('{}')
    return ExtractedResources(
        resources_dir=resources_dir,
        app_asar=resources_dir / 'app.asar',
        unpacked_dir=resources_dir / 'app.asar.unpacked',
        icons={},
        version='1.2.3',
    )


class TestAppPatcher:
    """Test AppPatcher.patch."""

    def test_patch_builds_staging_tree(self, context: BuildContext, resources: ExtractedResources) -> None:
        with patch('claude_desktop_opensuse.tools.subprocess.run', side_effect=FakeAsar()):
            staging = AppPatcher(context).patch(resources)

        assert staging.app_dir == context.staging_dir
        assert staging.app_asar.read_bytes() == b'packed'
        assert staging.electron_version == '37.2.0'

        contents = staging.app_dir / 'app.contents'
        assert (contents / 'node_modules' / '@ant' / 'claude-native' / 'index.js').read_text() == NATIVE_STUB_INDEX
        assert (contents / 'resources' / 'TrayIconTemplate.png').exists()
        assert (contents / 'resources' / 'i18n' / 'en-US.json').exists()
        assert not (contents / 'resources' / 'i18n' / 'build-props.json').exists()

        unpacked_native = staging.unpacked_dir / 'node_modules' / '@ant' / 'claude-native'
        assert (unpacked_native / 'index.js').read_text() == NATIVE_STUB_INDEX

    def test_stale_patch_aborts(self, context: BuildContext, resources: ExtractedResources) -> None:
        with (
            patch('claude_desktop_opensuse.tools.subprocess.run', side_effect=FakeAsar(index='nothing here')),
            pytest.raises(PatchTargetMissing),
        ):
            AppPatcher(context).patch(resources)

    def test_asar_extract_failure(self, context: BuildContext, resources: ExtractedResources) -> None:
        with (
            patch('claude_desktop_opensuse.tools.subprocess.run', side_effect=FakeAsar(fail='extract')),
            pytest.raises(ExtractionFailed, match='asar failed'),
        ):
            AppPatcher(context).patch(resources)

    def test_rerun_replaces_previous_staging(self, context: BuildContext, resources: ExtractedResources) -> None:
        with patch('claude_desktop_opensuse.tools.subprocess.run', side_effect=FakeAsar()):
            AppPatcher(context).patch(resources)
            (context.staging_dir / 'leftover').write_text('x')
            AppPatcher(context).patch(resources)

        assert not (context.staging_dir / 'leftover').exists()
