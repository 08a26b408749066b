"""External steps of a generator run: download, unzip, go mod download, nix."""

import os
import subprocess
from pathlib import Path
from typing import Optional

import requests

from .environment import Environment, force_rmtree
from .errors import CommandError, FetchError, HashError

CHUNK_SIZE = 64 * 1024


def download_file(dest: Path, url: str, timeout: Optional[float] = None) -> None:
    """Download url to dest.

    The directory of dest must already exist and dest itself must not. A
    failed transfer may leave a partial file behind.
    """
    if dest.exists():
        raise FetchError(f"refusing to overwrite existing file {dest}")
    try:
        resp = requests.get(url, stream=True, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"error GETing {url}: {e}") from e

    with resp:
        if resp.status_code != 200:
            raise FetchError(f"could not fetch {url}, got status code: {resp.status_code}")
        try:
            with open(dest, "xb") as f:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
        except requests.RequestException as e:
            raise FetchError(f"could not download entire file: {e}") from e
        except OSError as e:
            raise FetchError(f"error writing {dest}: {e}") from e


def _run(args: list[str], cwd: Path, env: Optional[dict] = None) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            args, cwd=cwd, env=env, check=True,
            stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True,
        )
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip()
        message = f"`{Path(args[0]).name} {' '.join(args[1:])}` in {cwd} exited with status {e.returncode}"
        raise CommandError(f"{message}: {detail}" if detail else message) from e
    except OSError as e:
        raise CommandError(f"could not run {args[0]}: {e}") from e


def flake_update(nix: str, cwd: Path) -> None:
    """Run `nix flake update`, which rewrites flake.lock."""
    _run([nix, "flake", "update"], cwd)


def extract_archive(env: Environment) -> None:
    _run([env.tools.unzip, "-q", str(env.source_zip)], env.base_dir)
    if not env.source_dir.is_dir():
        raise CommandError(f"unzip of {env.source_zip} did not produce {env.source_dir.name}")


def go_environ(env: Environment) -> dict:
    """The process environment with Go's caches pointed into the workspace."""
    child = dict(os.environ)
    child["GOCACHE"] = str(env.go_cache_dir)
    child["GOPATH"] = str(env.go_path_dir)
    child["GOMODCACHE"] = str(env.go_path_dir / "pkg" / "mod")
    # Ignore the user's go.env file, it can relocate caches too.
    child["GOENV"] = "off"
    return child


def download_modules(env: Environment) -> None:
    _run([env.tools.go, "mod", "download"], env.module_dir, env=go_environ(env))


def remove_sumdb(env: Environment) -> None:
    # The checksum database is not part of the vendored modules.
    try:
        force_rmtree(env.sumdb_dir)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise CommandError(f"could not remove sumdb path at {env.sumdb_dir}: {e}") from e


def hash_path(nix: str, directory: Path) -> str:
    """Return `nix hash path --base64 --type sha256` of directory."""
    args = [nix, "hash", "path", "--base64", "--type", "sha256", str(directory)]
    try:
        out = _run(args, directory).stdout
    except CommandError as e:
        raise HashError(f"could not nix-hash {directory}: {e.args[0]}") from e
    lines = [line.strip() for line in out.splitlines() if line.strip()]
    if not lines:
        raise HashError(f"`nix hash path` printed no hash for {directory}")
    return lines[-1]
