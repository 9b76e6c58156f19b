"""Build failures, one type per pipeline stage failure."""


class BuildError(RuntimeError):
    """Fatal failure of a build stage.

    Every subclass aborts the pipeline. ``exit_code`` is the process exit
    status the CLI uses when the error reaches it.
    """

    stage = 'build'
    exit_code = 1

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f'[{self.stage}] {super().__str__()}'


class InputNotFound(BuildError):
    """The local installer passed with ``--exe`` does not exist."""

    stage = 'resolve'
    exit_code = 2


class DownloadFailed(BuildError):
    """The installer download returned a non-2xx status or a network error."""

    stage = 'resolve'
    exit_code = 3


class ExtractionFailed(BuildError):
    """An archive tool failed or the application archive is missing."""

    stage = 'extract'
    exit_code = 4


class PatchTargetMissing(BuildError):
    """A required patch anchor was not found in the application sources."""

    stage = 'patch'
    exit_code = 5


class RuntimeNotFound(BuildError):
    """Neither a bundled nor a global Electron runtime is available."""

    stage = 'launch'
    exit_code = 6


class NoDisplayEnvironment(BuildError):
    """No X11 or Wayland display is available to the launcher."""

    stage = 'launch'
    exit_code = 7


class PackageBuildFailed(BuildError):
    """The native packaging tool returned a nonzero exit code."""

    stage = 'package'
    exit_code = 8


class ArtifactNotFound(BuildError):
    """The packaging tool succeeded but produced no artifact."""

    stage = 'package'
    exit_code = 9
