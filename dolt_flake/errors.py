"""Exceptions raised by the generator. Only the CLI turns them into exit codes."""


class FlakeGenError(Exception):
    """Base class for every failure of a generator run."""

    stage = "generate"

    def __str__(self) -> str:
        return f"{self.stage}: {super().__str__()}"


class ConfigError(FlakeGenError):
    stage = "config"


class SetupError(FlakeGenError):
    """A required program is missing or the workspace cannot be created."""

    stage = "setup"


class FetchError(FlakeGenError):
    stage = "download"


class CommandError(FlakeGenError):
    """An external program could not be started or exited non-zero."""

    stage = "command"


class HashError(FlakeGenError):
    stage = "hash"


class LockError(FlakeGenError):
    stage = "lock"


class RenderError(FlakeGenError):
    stage = "render"
