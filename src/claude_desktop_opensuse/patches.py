"""Patch the Claude Desktop application archive for Linux."""

import json
import logging
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .context import BuildContext, ExtractedResources, StagingTree
from .errors import ExtractionFailed, PackageBuildFailed, PatchTargetMissing
from .tools import run_tool

logger = logging.getLogger(__name__)

# Linux stand-in for the Windows-only @ant/claude-native addon
NATIVE_STUB_INDEX = """// Linux stub for the Windows-only claude-native addon
const KeyboardKey = {
  Backspace: 43, Tab: 280, Enter: 261, Shift: 272, Control: 61, Alt: 40,
  CapsLock: 56, Escape: 85, Space: 276, PageUp: 251, PageDown: 250,
  End: 83, Home: 154, LeftArrow: 175, UpArrow: 282, RightArrow: 262,
  DownArrow: 81, Delete: 79, Meta: 187,
};
Object.freeze(KeyboardKey);

module.exports = {
  getWindowsVersion: () => "10.0.0",
  setWindowEffect: () => {},
  removeWindowEffect: () => {},
  getIsMaximized: () => false,
  flashFrame: () => {},
  clearFlashFrame: () => {},
  showNotification: () => {},
  setProgressBar: () => {},
  clearProgressBar: () => {},
  setOverlayIcon: () => {},
  clearOverlayIcon: () => {},
  KeyboardKey,
};
"""

NATIVE_STUB_PACKAGE = """{
  "name": "@ant/claude-native",
  "version": "1.0.0",
  "description": "Linux stub for the Windows claude-native addon",
  "main": "index.js",
  "private": true
}
"""

# Module directories (relative to the app root) that get the stub, first one is canonical
NATIVE_MODULE_DIRS = (
    Path('node_modules') / '@ant' / 'claude-native',
    Path('node_modules') / 'claude-native',
)


@dataclass(frozen=True)
class PatchRule:
    """A regex rewrite of a single file inside the unpacked application.

    ``target`` is a glob relative to the application root and must match
    exactly one file. A rule that cannot be applied raises
    PatchTargetMissing when ``required`` and only logs a warning otherwise.
    """

    name: str
    target: str
    pattern: str
    replacement: str = ''
    required: bool = True

    def rewrite(self, content: str) -> str | None:
        """Return the patched content, or None if the anchor is absent."""
        new_content, count = re.subn(self.pattern, self.replacement, content)
        return new_content if count else None

    def apply(self, app_dir: Path) -> bool:
        """Apply the rule to the unpacked application at ``app_dir``.

        Returns:
            True if the file was rewritten

        """
        targets = sorted(app_dir.glob(self.target))
        if len(targets) != 1:
            return self._missing(f'expected 1 file matching {self.target}, found {len(targets)}')

        target_file = targets[0]
        new_content = self.rewrite(target_file.read_text())
        if new_content is None:
            return self._missing(f'anchor not found in {target_file.relative_to(app_dir)}')

        target_file.write_text(new_content)
        logger.info('%s patch applied to %s', self.name, target_file.relative_to(app_dir))
        return True

    def _missing(self, reason: str) -> bool:
        if self.required:
            msg = f'{self.name} patch is stale: {reason}'
            raise PatchTargetMissing(msg)
        logger.warning('Skipping %s patch: %s', self.name, reason)
        return False


@dataclass(frozen=True)
class TrayRebuildRule(PatchRule):
    """Serialize tray rebuilds so the old icon leaves DBus before the new one appears.

    The tray rebuild function is found through its ``menuBarEnabled``
    listener. It gets a re-entrancy guard, and a delay is inserted between
    destroying the old tray and creating the new one.
    """

    guard_ms: int = 1500
    delay_ms: int = 250

    def rewrite(self, content: str) -> str | None:
        """Return the patched content, or None if the anchor is absent."""
        listener = re.search(self.pattern, content)
        if listener is None:
            return None

        func = listener.group(1)
        anchor = f'async function {func}(){{'
        body_start = content.find(anchor)
        if body_start == -1:
            return None
        body_start += len(anchor)
        body_end = _block_end(content, body_start)
        if body_end is None:
            return None

        # Pause after destroying the old tray, only inside the async rebuild function
        body, count = re.subn(
            r'(\w+)&&\(\1\.destroy\(\),\1=null\)',
            rf'\1&&(\1.destroy(),\1=null,await new Promise(r=>setTimeout(r,{self.delay_ms})))',
            content[body_start:body_end],
        )
        if not count:
            return None

        guard = (
            f'if({func}._running)return;{func}._running=true;'
            f'setTimeout(()=>{{{func}._running=false}},{self.guard_ms});'
        )
        return content[:body_start] + guard + body + content[body_end:]


def _block_end(content: str, start: int) -> int | None:
    """Index of the ``}`` closing the block whose body begins at ``start``."""
    depth = 1
    for index in range(start, len(content)):
        char = content[index]
        if char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return index
    return None


TITLE_BAR_RULE = PatchRule(
    name='title bar',
    target='.vite/renderer/main_window/assets/MainWindowPage-*.js',
    # Change if(!isWindows && isMainWindow) to if(isWindows && isMainWindow)
    pattern=r'if\(!(\w+)\s*&&\s*(\w+)\)',
    replacement=r'if(\1 && \2)',
)

TRAY_RULE = TrayRebuildRule(
    name='tray rebuild',
    target='.vite/build/index.js',
    pattern=r'on\("menuBarEnabled",\(\)=>\{(\w+)\(\)\}\)',
)

CLAUDE_CODE_PLATFORM_RULE = PatchRule(
    name='Claude Code platforms',
    target='.vite/build/index.js',
    pattern=(
        r'getHostPlatform\(\)\{const e=process\.arch;'
        r'if\(process\.platform==="darwin"\)'
        r'return e==="arm64"\?"darwin-arm64":"darwin-x64";'
        r'if\(process\.platform==="win32"\)return"win32-x64";'
        r'throw new Error\(`Unsupported platform: \$\{process\.platform\}-\$\{e\}`\)\}'
    ),
    replacement=(
        'getHostPlatform(){const e=process.arch;'
        'if(process.platform==="darwin")return e==="arm64"?"darwin-arm64":"darwin-x64";'
        'if(process.platform==="win32")return"win32-x64";'
        'if(process.platform==="linux")return e==="arm64"?"linux-arm64":"linux-x64";'
        'throw new Error(`Unsupported platform: ${process.platform}-${e}`)}'
    ),
)

DEFAULT_RULES = (TITLE_BAR_RULE, TRAY_RULE)


def install_native_stub(app_dir: Path, *, create: bool = True) -> list[Path]:
    """Replace the claude-native module entries under ``app_dir`` with the stub.

    Args:
        app_dir: Application root (unpacked app.asar or app.asar.unpacked)
        create: Create the canonical module dir if none exists

    Returns:
        Module directories that received the stub

    """
    module_dirs = [app_dir / rel for rel in NATIVE_MODULE_DIRS if (app_dir / rel).is_dir()]
    if not module_dirs and create:
        module_dirs = [app_dir / NATIVE_MODULE_DIRS[0]]

    for module_dir in module_dirs:
        module_dir.mkdir(parents=True, exist_ok=True)
        (module_dir / 'index.js').write_text(NATIVE_STUB_INDEX)
        (module_dir / 'package.json').write_text(NATIVE_STUB_PACKAGE)
        logger.debug('Installed claude-native stub in %s', module_dir)

    return module_dirs


class AppPatcher:
    """Rewrites app.asar for Linux and lays out the app staging directory."""

    def __init__(self, context: BuildContext, rules: tuple[PatchRule, ...] = DEFAULT_RULES) -> None:
        """Initialize the patcher.

        Args:
            context: Build parameters
            rules: Patch rules applied to the unpacked archive, in order

        """
        self.context = context
        self.rules = rules
        self.logger = logging.getLogger(__name__)

    def patch(self, resources: ExtractedResources) -> StagingTree:
        """Patch app.asar and place it with its unpacked modules in the staging dir.

        Args:
            resources: Output of the extractor

        Returns:
            The app staging tree

        """
        self.logger.info('Patching app.asar...')

        app_dir = self.context.staging_dir
        if app_dir.exists():
            shutil.rmtree(app_dir)
        app_dir.mkdir(parents=True)

        with tempfile.TemporaryDirectory() as tmpdir:
            app_extract = Path(tmpdir) / 'app'

            run_tool(['npx', 'asar', 'extract', str(resources.app_asar), str(app_extract)], ExtractionFailed)

            package_data = read_package_json(app_extract)

            install_native_stub(app_extract)
            self._copy_app_resources(resources.resources_dir, app_extract)

            for rule in self.rules:
                rule.apply(app_extract)

            run_tool(
                ['npx', 'asar', 'pack', str(app_extract), str(app_dir / 'app.asar')],
                PackageBuildFailed,
            )

        if resources.unpacked_dir is not None:
            unpacked_dst = app_dir / 'app.asar.unpacked'
            shutil.copytree(resources.unpacked_dir, unpacked_dst)
            install_native_stub(unpacked_dst, create=False)
        else:
            (app_dir / 'app.asar.unpacked').mkdir()

        return StagingTree(
            app_dir=app_dir,
            icons=dict(resources.icons),
            electron_version=package_data.get('devDependencies', {}).get('electron'),
        )

    def _copy_app_resources(self, resources_dir: Path, app_extract: Path) -> None:
        """Copy tray icons and locale files into the app's own resources dir."""
        app_resources = app_extract / 'resources'
        app_resources.mkdir(exist_ok=True)

        for tray_file in sorted(resources_dir.glob('Tray*')):
            shutil.copy2(tray_file, app_resources)

        i18n_dir = app_resources / 'i18n'
        i18n_dir.mkdir(exist_ok=True)
        for json_file in sorted(resources_dir.glob('*.json')):
            if json_file.name not in ['build-props.json']:
                shutil.copy2(json_file, i18n_dir)


def read_package_json(app_dir: Path) -> dict[str, Any]:
    """Read the application's package.json (empty dict if absent)."""
    package_json_path = app_dir / 'package.json'
    if not package_json_path.is_file():
        logger.warning('package.json not found in %s', app_dir)
        return {}
    result: dict[str, Any] = json.loads(package_json_path.read_text())
    return result
