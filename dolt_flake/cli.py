"""Regenerate flake.nix with the vendorHash of the Dolt revision in flake.lock.

Requires nix, go and unzip on PATH. Reads flake.nix.template and
flake.lock from the working directory and rewrites flake.nix.

Usage:
    dolt-nix-flake
    dolt-nix-flake --revision '?ref=tags/v1.20.0'
    dolt-nix-flake --revision /c3a827c8a8c197402fa955274d667dfecb80e014
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from .config import load_settings
from .errors import FlakeGenError
from .pipeline import generate


def _report(error: BaseException) -> None:
    print(f"error: {error}", file=sys.stderr)
    cause = error.__cause__
    while cause is not None:
        print(f"  caused by: {cause}", file=sys.stderr)
        cause = cause.__cause__


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate a reproducible flake.nix for Dolt",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--revision", default="",
                        help="revision path segment for the dolt github flake url; "
                             "ex: ?ref=tags/v1.20.0, /c3a827c8a8c197402fa955274d667dfecb80e014")
    parser.add_argument("-c", "--config", type=Path, default=None,
                        help="TOML settings file (default: flake-gen.toml if present)")
    parser.add_argument("--template", default=None,
                        help="flake template (default: flake.nix.template)")
    parser.add_argument("--lock", default=None,
                        help="flake lock file, relative to the output directory (default: flake.lock)")
    parser.add_argument("-o", "--output", default=None,
                        help="generated flake, must be named flake.nix (default: flake.nix)")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(
            args.config,
            template_file=args.template,
            lock_file=args.lock,
            output_file=args.output,
        )
        generate(settings, args.revision)
    except FlakeGenError as e:
        _report(e)
        return 1
    return 0
