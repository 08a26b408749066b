"""Required programs and the per-run scratch workspace."""

import os
import shutil
import stat
import sys
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from .config import Settings
from .errors import SetupError


@dataclass(frozen=True)
class Tools:
    nix: str
    go: str
    unzip: str


@dataclass(frozen=True)
class Environment:
    """Workspace for one run: the archive, its extracted tree and isolated Go caches.

    Always pair acquire() with release(), or use workspace().
    """

    tools: Tools
    base_dir: Path
    source_zip_url: str
    source_zip: Path
    source_dir: Path
    module_dir: Path
    go_cache_dir: Path
    go_path_dir: Path
    download_dir: Path
    sumdb_dir: Path


def locate_tools(settings: Settings) -> Tools:
    """Resolve nix, go and unzip on PATH."""
    found = {}
    for name in ("nix", "go", "unzip"):
        prog = getattr(settings, name)
        path = shutil.which(prog)
        if path is None:
            raise SetupError(f"did not find required executable, {prog}, in PATH")
        found[name] = path
    return Tools(**found)


def acquire(revision: str, settings: Settings, tools: Optional[Tools] = None) -> Environment:
    if tools is None:
        tools = locate_tools(settings)
    try:
        base = Path(tempfile.mkdtemp(prefix="dolt-nix-flake-"))
    except OSError as e:
        raise SetupError(f"could not create temp dir: {e}") from e

    source_dir = base / settings.extracted_dir_name(revision)
    go_path_dir = base / "go"
    download_dir = go_path_dir / "pkg" / "mod" / "cache" / "download"
    env = Environment(
        tools=tools,
        base_dir=base,
        source_zip_url=settings.archive_url(revision),
        source_zip=base / settings.archive_name(revision),
        source_dir=source_dir,
        module_dir=source_dir / settings.module_subdir,
        go_cache_dir=base / "go-cache",
        go_path_dir=go_path_dir,
        download_dir=download_dir,
        sumdb_dir=download_dir / "sumdb",
    )

    for label, path in (("GOCACHE", env.go_cache_dir), ("GOPATH", env.go_path_dir)):
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            release(env)
            raise SetupError(f"could not create temporary {label} directory {path}: {e}") from e
    return env


def _make_writable(func, path, exc):
    # onerror passes exc_info, onexc the exception itself.
    error = exc[1] if isinstance(exc, tuple) else exc
    if isinstance(error, FileNotFoundError):
        raise error
    # Go marks module cache directories read-only.
    parent = os.path.dirname(path)
    os.chmod(parent, os.stat(parent).st_mode | stat.S_IWUSR)
    if os.path.isdir(path) and not os.path.islink(path):
        os.chmod(path, os.stat(path).st_mode | stat.S_IWUSR | stat.S_IXUSR)
    func(path)


def force_rmtree(path: Path) -> None:
    """shutil.rmtree that also removes read-only trees."""
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_make_writable)
    else:
        shutil.rmtree(path, onerror=_make_writable)


def release(env: Environment) -> None:
    """Delete the workspace. Failures are reported, never raised."""
    try:
        force_rmtree(env.base_dir)
    except FileNotFoundError:
        pass
    except OSError as e:
        print(f"Warning: could not remove workspace {env.base_dir}: {e}", file=sys.stderr)


@contextmanager
def workspace(revision: str, settings: Settings, tools: Optional[Tools] = None) -> Iterator[Environment]:
    env = acquire(revision, settings, tools)
    try:
        yield env
    finally:
        release(env)
