"""How the generated launcher starts Electron.

The launcher shipped in the package is a shell script (see ``templates``),
rendered from the flag tuples defined here. The functions below are the
reference model of its decisions (display mode, runtime lookup, argument
order); the test suite runs the rendered script and checks it against them.
"""

import shutil
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import NoDisplayEnvironment, RuntimeNotFound

USE_WAYLAND_ENV = 'CLAUDE_USE_WAYLAND'

# Always passed: native window decorations instead of the custom title bar
BASE_FLAGS = ('--disable-features=CustomTitlebar',)

# Wayland session, X11 via XWayland (default, keeps global hotkeys working)
X11_ON_WAYLAND_FLAGS = (
    '--no-sandbox',
    '--ozone-platform=x11',
)

# Wayland session, native backend (CLAUDE_USE_WAYLAND=1, global hotkeys unavailable)
WAYLAND_FLAGS = (
    '--no-sandbox',
    '--enable-features=UseOzonePlatform,WaylandWindowDecorations',
    '--ozone-platform=wayland',
    '--enable-wayland-ime',
    '--wayland-text-input-version=3',
)


class DisplayMode(str, Enum):
    """Display backend Electron is started with."""

    X11 = 'x11'
    X11_ON_WAYLAND = 'x11-on-wayland'
    WAYLAND = 'wayland'

    @property
    def flags(self) -> tuple[str, ...]:
        """Platform flags for this mode (without the base flags)."""
        return MODE_FLAGS[self]


MODE_FLAGS = {
    DisplayMode.X11: (),
    DisplayMode.X11_ON_WAYLAND: X11_ON_WAYLAND_FLAGS,
    DisplayMode.WAYLAND: WAYLAND_FLAGS,
}


def detect_display_mode(env: Mapping[str, str]) -> DisplayMode:
    """Pick the display backend from the session environment.

    Raises:
        NoDisplayEnvironment: If neither DISPLAY nor WAYLAND_DISPLAY is set.

    """
    if not env.get('DISPLAY') and not env.get('WAYLAND_DISPLAY'):
        msg = 'Claude Desktop requires a graphical desktop environment (no DISPLAY or WAYLAND_DISPLAY set)'
        raise NoDisplayEnvironment(msg)

    if not env.get('WAYLAND_DISPLAY'):
        return DisplayMode.X11
    if env.get(USE_WAYLAND_ENV) == '1':
        return DisplayMode.WAYLAND
    return DisplayMode.X11_ON_WAYLAND


def locate_electron(local_path: Path, which: Callable[[str], str | None] = shutil.which) -> Path:
    """Return the Electron executable, preferring the bundled copy.

    Raises:
        RuntimeNotFound: If neither the bundled nor a global electron exists.

    """
    if local_path.is_file():
        return local_path

    global_electron = which('electron')
    if global_electron:
        return Path(global_electron)

    msg = f'Electron executable not found (checked local {local_path} and global path)'
    raise RuntimeNotFound(msg)


def build_electron_args(mode: DisplayMode, app_path: Path, extra: Sequence[str] = ()) -> tuple[str, ...]:
    """Assemble Electron's arguments.

    All platform flags come before the application path, otherwise Electron
    takes them for positional arguments. ``extra`` (the launcher's own
    arguments, e.g. a claude:// URL) follows the application path.
    """
    return (*BASE_FLAGS, *mode.flags, str(app_path), *extra)


@dataclass(frozen=True)
class LaunchPlan:
    """Executable and arguments the launcher runs."""

    executable: Path
    mode: DisplayMode
    args: tuple[str, ...]

    @property
    def command(self) -> list[str]:
        """Full command line."""
        return [str(self.executable), *self.args]


def plan_launch(
    env: Mapping[str, str],
    lib_dir: Path,
    argv: Sequence[str] = (),
    which: Callable[[str], str | None] = shutil.which,
) -> LaunchPlan:
    """Decide how to start Claude installed under ``lib_dir``.

    The display check runs first so nothing is resolved for a TTY session.
    """
    mode = detect_display_mode(env)
    dist_dir = lib_dir / 'node_modules' / 'electron' / 'dist'
    executable = locate_electron(dist_dir / 'electron', which)
    return LaunchPlan(
        executable=executable,
        mode=mode,
        args=build_electron_args(mode, dist_dir / 'resources' / 'app.asar', argv),
    )
