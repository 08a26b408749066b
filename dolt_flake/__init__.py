"""Generate a reproducible flake.nix for Dolt.

Resolves the Dolt revision pinned in flake.lock, downloads its Go module
dependencies into a throwaway workspace and writes the resulting
vendorHash into flake.nix.
"""

__version__ = "0.1.0"
