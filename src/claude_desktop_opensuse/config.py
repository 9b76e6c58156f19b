"""Configuration for the Claude Desktop openSUSE builder."""

from pathlib import Path

# Claude Desktop Windows installers (version-agnostic, keyed by target architecture)
CLAUDE_DOWNLOAD_URLS = {
    'x86_64': 'https://storage.googleapis.com/osprey-downloads-c02f6a0d-347c-492b-a752-3e0651722e97/nest-win-x64/Claude-Setup-x64.exe',
    'aarch64': 'https://storage.googleapis.com/osprey-downloads-c02f6a0d-347c-492b-a752-3e0651722e97/nest-win-arm64/Claude-Setup-arm64.exe',
}

ARCHITECTURES = ('x86_64', 'aarch64')
BUILD_FORMATS = ('rpm', 'appimage')

# npm's name for each target architecture (used when fetching Electron)
NPM_ARCH = {
    'x86_64': 'x64',
    'aarch64': 'arm64',
}

# Directory structure
WORK_DIR = Path.cwd() / 'build'
OUTPUT_DIR = Path.cwd()

# Package metadata
PACKAGE_NAME = 'claude-desktop'
MAINTAINER = 'Claude Desktop Linux Maintainers'
DESCRIPTION = 'Claude Desktop for Linux'
RELEASE = '1'
HOMEPAGE = 'https://claude.ai'

# Launcher log directory name under $XDG_CACHE_HOME
LOG_DIR_NAME = 'claude-desktop-opensuse'

# Icons extracted from claude.exe by icotool, keyed by pixel size
ICON_FILES = {
    16: 'claude_13_16x16x32.png',
    24: 'claude_11_24x24x32.png',
    32: 'claude_10_32x32x32.png',
    48: 'claude_8_48x48x32.png',
    64: 'claude_7_64x64x32.png',
    256: 'claude_6_256x256x32.png',
}

# AppImage update information (embedded into the image by appimagetool)
APPIMAGE_UPDATE_REPO = ('claude-desktop-linux', 'claude-desktop-opensuse')
APPIMAGETOOL_URL = 'https://github.com/AppImage/appimagetool/releases/download/continuous/appimagetool-{arch}.AppImage'

# System packages providing the external tools
ZYPPER_PACKAGES = ['p7zip-full', 'nodejs-default', 'npm-default', 'icoutils', 'rpm-build']
DNF_PACKAGES = ['p7zip', 'p7zip-plugins', 'nodejs', 'npm', 'icoutils', 'rpm-build']
DEBIAN_PACKAGES = ['p7zip-full', 'nodejs', 'npm', 'icoutils', 'rpm']
