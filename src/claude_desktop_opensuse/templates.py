"""Templates for generated resource files."""

from datetime import date

from .config import HOMEPAGE, LOG_DIR_NAME
from .context import BuildContext
from .launcher import BASE_FLAGS, USE_WAYLAND_ENV, WAYLAND_FLAGS, X11_ON_WAYLAND_FLAGS

LAUNCHER_SCRIPT = """\
#!/bin/bash
LOG_DIR="${XDG_CACHE_HOME:-$HOME/.cache}/@LOG_DIR_NAME@"
mkdir -p "$LOG_DIR"
LOG_FILE="$LOG_DIR/launcher.log"
echo "--- Claude Desktop Launcher Start ---" > "$LOG_FILE"
echo "Timestamp: $(date)" >> "$LOG_FILE"
echo "Arguments: $@" >> "$LOG_FILE"

export ELECTRON_FORCE_IS_PACKAGED=true

IS_WAYLAND=false
if [ -n "$WAYLAND_DISPLAY" ]; then
  IS_WAYLAND=true
  echo "Wayland detected" >> "$LOG_FILE"
fi

if [ -z "$DISPLAY" ] && [ -z "$WAYLAND_DISPLAY" ]; then
  echo "No display detected (TTY session) - cannot start graphical application" >> "$LOG_FILE"
  echo "Error: Claude Desktop requires a graphical desktop environment." >&2
  echo "Please run from within an X11 or Wayland session, not from a TTY." >&2
  exit 1
fi

# X11 via XWayland by default (global hotkeys need it), @USE_WAYLAND_ENV@=1 opts into native Wayland
USE_X11_ON_WAYLAND=true
if [ "$@USE_WAYLAND_ENV@" = "1" ]; then
  USE_X11_ON_WAYLAND=false
  echo "@USE_WAYLAND_ENV@=1 set, using native Wayland backend" >> "$LOG_FILE"
  echo "Note: Global hotkeys (quick window) may not work in native Wayland mode" >> "$LOG_FILE"
fi

APP_DIR="@LIB_DIR@"
ELECTRON_EXEC="electron"
LOCAL_ELECTRON_PATH="$APP_DIR/node_modules/electron/dist/electron"
if [ -f "$LOCAL_ELECTRON_PATH" ]; then
  ELECTRON_EXEC="$LOCAL_ELECTRON_PATH"
  echo "Using local Electron: $ELECTRON_EXEC" >> "$LOG_FILE"
elif command -v electron > /dev/null 2>&1; then
  echo "Using global Electron: $ELECTRON_EXEC" >> "$LOG_FILE"
else
  echo "Error: Electron executable not found (checked local $LOCAL_ELECTRON_PATH and global path)." >> "$LOG_FILE"
  echo "Error: Electron executable not found." >&2
  ERROR_TEXT="Claude Desktop cannot start because the Electron framework is missing. Please ensure Electron is installed globally or reinstall Claude Desktop."
  if command -v zenity > /dev/null 2>&1; then
    zenity --error --text="$ERROR_TEXT"
  elif command -v kdialog > /dev/null 2>&1; then
    kdialog --error "$ERROR_TEXT"
  fi
  exit 1
fi

APP_PATH="$APP_DIR/node_modules/electron/dist/resources/app.asar"

# Flags MUST come before the app path
ELECTRON_ARGS=()
@BASE_FLAGS@

if [ "$IS_WAYLAND" = true ]; then
  if [ "$USE_X11_ON_WAYLAND" = true ]; then
    echo "Using X11 backend via XWayland (for global hotkey support)" >> "$LOG_FILE"
@X11_ON_WAYLAND_FLAGS@
    echo "To use native Wayland instead, set @USE_WAYLAND_ENV@=1" >> "$LOG_FILE"
  else
    echo "Using native Wayland backend" >> "$LOG_FILE"
@WAYLAND_FLAGS@
    echo "Warning: Global hotkeys may not work in native Wayland mode" >> "$LOG_FILE"
  fi
else
  echo "X11 session detected" >> "$LOG_FILE"
fi

ELECTRON_ARGS+=("$APP_PATH")
export ELECTRON_USE_SYSTEM_TITLE_BAR=1

echo "Changing directory to $APP_DIR" >> "$LOG_FILE"
cd "$APP_DIR" || { echo "Failed to cd to $APP_DIR" >> "$LOG_FILE"; exit 1; }

echo "Executing: $ELECTRON_EXEC ${ELECTRON_ARGS[*]} $*" >> "$LOG_FILE"
"$ELECTRON_EXEC" "${ELECTRON_ARGS[@]}" "$@" >> "$LOG_FILE" 2>&1
EXIT_CODE=$?
echo "Electron exited with code: $EXIT_CODE" >> "$LOG_FILE"
echo "--- Claude Desktop Launcher End ---" >> "$LOG_FILE"
exit $EXIT_CODE
"""

DESKTOP_ENTRY = """\
[Desktop Entry]
Name=Claude
Comment=Claude Desktop for Linux
Exec=@EXEC@ %u
Icon=@ICON@
Type=Application
Terminal=false
Categories=Office;Utility;
MimeType=x-scheme-handler/claude;
StartupWMClass=Claude
"""

POST_INSTALL_SCRIPT = """\
#!/bin/sh
set -e

echo "Updating desktop database..."
update-desktop-database /usr/share/applications > /dev/null 2>&1 || true

echo "Setting chrome-sandbox permissions..."
SANDBOX_PATH="@SANDBOX_PATH@"
if [ -f "$SANDBOX_PATH" ]; then
    echo "Found chrome-sandbox at: $SANDBOX_PATH"
    chown root:root "$SANDBOX_PATH" || echo "Warning: Failed to chown chrome-sandbox"
    chmod 4755 "$SANDBOX_PATH" || echo "Warning: Failed to chmod chrome-sandbox"
    echo "Permissions set for $SANDBOX_PATH"
else
    echo "Warning: chrome-sandbox binary not found at $SANDBOX_PATH. Sandbox may not function correctly."
fi

exit 0
"""

RPM_SPEC = """\
%global debug_package %{nil}
%global __os_install_post %{nil}

Name:           @NAME@
Version:        @VERSION@
Release:        @RELEASE@
Summary:        @SUMMARY@
License:        Proprietary
URL:            @URL@
BuildArch:      @ARCH@
AutoReqProv:    no

%description
Claude is an AI assistant from Anthropic.
This package provides the desktop interface for Claude.

Supported on openSUSE Linux distributions.

%install
rm -rf %{buildroot}
mkdir -p %{buildroot}
cp -a "@PACKAGE_ROOT@/." %{buildroot}/

%post
@POST@
%files
%defattr(-,root,root,-)
@FILES@

%changelog
* @CHANGELOG_DATE@ @MAINTAINER@ - @VERSION@-@RELEASE@
- Claude Desktop version @VERSION@ for openSUSE
"""


def _fill(template: str, values: dict[str, str]) -> str:
    for key, value in values.items():
        template = template.replace(f'@{key}@', value)
    return template


def _array_appends(flags: tuple[str, ...], indent: str) -> str:
    return '\n'.join(f'{indent}ELECTRON_ARGS+=("{flag}")' for flag in flags)


def render_launcher_script(lib_dir: str) -> str:
    """Render the launcher shell script.

    Args:
        lib_dir: Directory the package's lib files are installed to at runtime
            (e.g. ``/usr/lib/claude-desktop`` or ``${APPDIR}/usr/lib/claude-desktop``)

    """
    return _fill(
        LAUNCHER_SCRIPT,
        {
            'LOG_DIR_NAME': LOG_DIR_NAME,
            'USE_WAYLAND_ENV': USE_WAYLAND_ENV,
            'LIB_DIR': lib_dir,
            'BASE_FLAGS': _array_appends(BASE_FLAGS, ''),
            'X11_ON_WAYLAND_FLAGS': _array_appends(X11_ON_WAYLAND_FLAGS, '    '),
            'WAYLAND_FLAGS': _array_appends(WAYLAND_FLAGS, '    '),
        },
    )


def render_desktop_entry(package_name: str, exec_path: str) -> str:
    """Render the .desktop file."""
    return _fill(DESKTOP_ENTRY, {'EXEC': exec_path, 'ICON': package_name})


def render_post_install_script(sandbox_path: str) -> str:
    """Render the post-install hook that fixes chrome-sandbox permissions."""
    return _fill(POST_INSTALL_SCRIPT, {'SANDBOX_PATH': sandbox_path})


def render_rpm_spec(
    context: BuildContext,
    files: list[str],
    post_install: str,
    changelog_date: date,
) -> str:
    """Render the RPM spec file.

    Args:
        context: Build parameters
        files: Installed paths for the %files section
        post_install: Body of the %post scriptlet
        changelog_date: Date of the changelog entry

    """
    post_body = '\n'.join(line for line in post_install.splitlines() if not line.startswith('#!'))
    return _fill(
        RPM_SPEC,
        {
            'NAME': context.package_name,
            'VERSION': context.version,
            'RELEASE': context.release,
            'SUMMARY': context.description,
            'URL': HOMEPAGE,
            'ARCH': context.architecture,
            'PACKAGE_ROOT': str(context.package_root),
            'POST': post_body,
            'FILES': '\n'.join(_quote_rpm_path(path) for path in files),
            'CHANGELOG_DATE': changelog_date.strftime('%a %b %d %Y'),
            'MAINTAINER': context.maintainer,
        },
    )


def _quote_rpm_path(path: str) -> str:
    return f'"{path}"' if ' ' in path else path
