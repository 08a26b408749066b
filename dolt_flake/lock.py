import json
from pathlib import Path

from .errors import LockError


def read_revision(lock_path: Path, input_name: str = "dolt") -> str:
    """Return nodes.<input_name>.locked.rev from a flake.lock.

    A missing or empty revision is an error: an empty string would produce
    an archive URL that does not exist.
    """
    try:
        with open(lock_path, encoding="utf-8") as f:
            lock = json.load(f)
    except OSError as e:
        raise LockError(f"could not read {lock_path}: {e}") from e
    except ValueError as e:
        raise LockError(f"error parsing {lock_path}: {e}") from e

    node = lock
    for key in ("nodes", input_name, "locked"):
        if not isinstance(node, dict) or key not in node:
            raise LockError(f"{lock_path} has no {key!r} entry for input {input_name!r}")
        node = node[key]

    rev = node.get("rev") if isinstance(node, dict) else None
    if not isinstance(rev, str) or not rev:
        raise LockError(f"{lock_path} has no locked revision for input {input_name!r}")
    return rev
