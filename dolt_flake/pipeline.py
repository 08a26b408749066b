import sys
from pathlib import Path

from . import steps
from .config import Settings
from .environment import locate_tools, workspace
from .errors import ConfigError
from .lock import read_revision
from .render import TemplateArgs, render


def flake_paths(settings: Settings) -> tuple[Path, Path]:
    """Return the output flake and its lock file.

    `nix flake update` only evaluates flake.nix and writes flake.lock next
    to it, so a relative lock_file is taken from the output's directory.
    """
    output = Path(settings.output_file)
    if output.name != "flake.nix":
        raise ConfigError(f"output must be named flake.nix for nix to evaluate it, got {output}")
    lock = Path(settings.lock_file)
    if not lock.is_absolute():
        lock = output.parent / lock
    if lock.resolve().parent != output.resolve().parent:
        raise ConfigError(f"lock file {lock} is not in the flake directory {output.parent}")
    return output, lock


def generate(settings: Settings, revision_segment: str = "") -> str:
    """Regenerate flake.nix and return the computed vendorHash.

    flake.nix is first written with a placeholder hash so that
    `nix flake update` can evaluate it and pin the Dolt revision; the Go
    modules of that revision are then downloaded and hashed, and flake.nix
    is written again with the real hash.
    """
    output, lock = flake_paths(settings)
    tools = locate_tools(settings)
    template = Path(settings.template_file)

    def write_flake(deps_hash: str) -> None:
        render(template, TemplateArgs(settings.warning, revision_segment, deps_hash), output)

    print(f"Rendering {output} with placeholder hash", file=sys.stderr)
    write_flake(settings.placeholder_hash)

    print("Running nix flake update", file=sys.stderr)
    steps.flake_update(tools.nix, output.resolve().parent)

    revision = read_revision(lock, settings.input_name)
    print(f"Locked {settings.input_name} revision: {revision}", file=sys.stderr)

    with workspace(revision, settings, tools) as env:
        print(f"Downloading {env.source_zip_url}", file=sys.stderr)
        steps.download_file(env.source_zip, env.source_zip_url, settings.http_timeout)

        print(f"Extracting {env.source_zip.name}", file=sys.stderr)
        steps.extract_archive(env)

        print(f"Downloading Go modules in {env.module_dir}", file=sys.stderr)
        steps.download_modules(env)

        steps.remove_sumdb(env)
        deps_hash = steps.hash_path(tools.nix, env.download_dir)

    print(f"Go module hash: {deps_hash}", file=sys.stderr)
    write_flake(deps_hash)
    print(f"Written to {output}", file=sys.stderr)
    return deps_hash
