"""CLI interface for the Claude Desktop openSUSE builder."""

import logging
import shutil
import sys
from pathlib import Path

import click

from . import __version__
from .builder import ClaudeDesktopBuilder
from .config import ARCHITECTURES, BUILD_FORMATS, MAINTAINER, OUTPUT_DIR, PACKAGE_NAME, WORK_DIR
from .context import BuildContext
from .errors import BuildError
from .resolver import resolve_installer


@click.group()
@click.version_option(version=__version__, prog_name='claude-desktop-build')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--debug', is_flag=True, help='Enable debug output')
def cli(*, verbose: bool, debug: bool) -> None:
    """Build Claude Desktop RPM or AppImage packages from the Windows installer."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s',
    )


@cli.command()
@click.option(
    '--build', '-b', 'build_format',
    type=click.Choice(BUILD_FORMATS),
    default='rpm',
    show_default=True,
    help='Package format to produce',
)
@click.option(
    '--clean', '-c',
    type=click.Choice(['yes', 'no']),
    default='yes',
    show_default=True,
    help='Remove intermediate build files afterwards',
)
@click.option(
    '--exe', 'exe_path',
    type=click.Path(path_type=Path, dir_okay=False),
    help='Use a local installer instead of downloading',
)
@click.option('--arch', type=click.Choice(ARCHITECTURES), default='x86_64', show_default=True, help='Target architecture')
@click.option('--version', 'app_version', default='', help='Package version (default: read from the installer)')
@click.option('--work-dir', type=click.Path(path_type=Path, file_okay=False), help='Working directory for build')
@click.option('--output-dir', type=click.Path(path_type=Path, file_okay=False), help='Directory for the built package')
@click.option('--package-name', default=PACKAGE_NAME, show_default=True, help='Package name')
@click.option('--maintainer', default=MAINTAINER, show_default=True, help='Maintainer for the changelog entry')
@click.option('--skip-deps', is_flag=True, help='Skip dependency check')
@click.option('--no-bundle-electron', is_flag=True, help='Rely on a system-wide electron instead of bundling one')
@click.option(
    '--patch-claude-code-platforms',
    is_flag=True,
    help='Enable Linux platform support in Claude Code mode',
)
def build(  # noqa: PLR0913
    build_format: str,
    clean: str,
    exe_path: Path | None,
    arch: str,
    app_version: str,
    work_dir: Path | None,
    output_dir: Path | None,
    package_name: str,
    maintainer: str,
    *,
    skip_deps: bool,
    no_bundle_electron: bool,
    patch_claude_code_platforms: bool,
) -> None:
    """Build a Claude Desktop package.

    Downloads the Windows installer for the target architecture unless --exe
    is given, then produces an RPM (default) or an AppImage.
    """
    context = BuildContext.create(
        work_dir=(work_dir or WORK_DIR).resolve(),
        version=app_version,
        architecture=arch,
        build_format=build_format,
        clean=clean == 'yes',
        output_dir=(output_dir or OUTPUT_DIR).resolve(),
        package_name=package_name,
        maintainer=maintainer,
    )
    builder = ClaudeDesktopBuilder(
        context,
        exe_path,
        bundle_electron=not no_bundle_electron,
        patch_claude_code_platforms=patch_claude_code_platforms,
    )

    try:
        if not skip_deps:
            builder.check_dependencies()

        package = builder.build()
    except BuildError as e:
        click.echo(f'Error: {e!s}', err=True)
        sys.exit(e.exit_code)
    except (OSError, RuntimeError) as e:
        click.echo(f'Error: {e!s}', err=True)
        sys.exit(1)

    click.echo(f'Package built: {package}')
    click.echo('Install with:')
    if package.suffix == '.rpm':
        click.echo(f'  sudo zypper install {package}')
    else:
        click.echo(f'  chmod +x {package} && {package}')


@cli.command()
@click.option('--arch', type=click.Choice(ARCHITECTURES), default='x86_64', show_default=True, help='Target architecture')
@click.option('--output', '-o', type=click.Path(path_type=Path), help='Output path for installer')
def download(arch: str, output: Path | None) -> None:
    """Download the installer file."""
    context = BuildContext.create(work_dir=WORK_DIR, architecture=arch)

    try:
        click.echo(f'Downloading {arch} installer...')
        installer = resolve_installer(context)

        if output:
            shutil.copy2(installer.path, output)
            click.echo(f'Installer saved to: {output}')
        else:
            click.echo(f'Installer saved to: {installer.path}')

        click.echo('Download complete!')

    except BuildError as e:
        click.echo(f'Error: {e!s}', err=True)
        sys.exit(e.exit_code)


@cli.command()
@click.option('--work-dir', type=click.Path(path_type=Path, file_okay=False), help='Working directory to remove')
def clean(work_dir: Path | None) -> None:
    """Clean build artifacts."""
    dir_path = work_dir or WORK_DIR

    if dir_path.exists():
        click.echo(f'Removing {dir_path}...')
        shutil.rmtree(dir_path)

    click.echo('Cleanup complete')


def main() -> None:
    """Entry point for the CLI."""
    cli(auto_envvar_prefix='CLAUDE_DESKTOP')


if __name__ == '__main__':
    main()
