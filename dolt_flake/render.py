"""Render flake.nix.template and atomically replace flake.nix.

The template uses Go template field actions, e.g. ``{{.DepsHash}}``. Field
actions are the only construct supported.
"""

import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import RenderError

_ACTION = re.compile(r"\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*")


@dataclass(frozen=True)
class TemplateArgs:
    warning: str
    revision: str
    deps_hash: str

    def fields(self) -> dict[str, str]:
        return {
            "Warning": self.warning,
            "DoltRevision": self.revision,
            "DepsHash": self.deps_hash,
        }


def parse(source: str, name: str = "template") -> list[Union[str, tuple[str, int]]]:
    """Split source into literal text and (field, line) actions."""
    parts: list[Union[str, tuple[str, int]]] = []
    pos = 0
    while True:
        start = source.find("{{", pos)
        if start < 0:
            parts.append(source[pos:])
            return parts
        line = source.count("\n", 0, start) + 1
        end = source.find("}}", start + 2)
        if end < 0:
            raise RenderError(f"{name}:{line}: unclosed action")
        m = _ACTION.fullmatch(source, start + 2, end)
        if m is None:
            raise RenderError(f"{name}:{line}: unsupported action {source[start:end + 2]!r}")
        parts.append(source[pos:start])
        parts.append((m.group(1), line))
        pos = end + 2


def execute(parts, args: TemplateArgs, name: str = "template") -> str:
    values = args.fields()
    out = []
    for part in parts:
        if isinstance(part, str):
            out.append(part)
            continue
        field, line = part
        if field not in values:
            raise RenderError(f"{name}:{line}: can't evaluate field {field} in TemplateArgs")
        out.append(values[field])
    return "".join(out)


def render(template_path: Path, args: TemplateArgs, dest: Path) -> None:
    """Render template_path with args into dest.

    dest is only replaced once the whole template has rendered and been
    written; on failure any existing dest is left as it was.
    """
    try:
        source = Path(template_path).read_text()
    except OSError as e:
        raise RenderError(f"could not load the nix flake template: {e}") from e
    name = Path(template_path).name
    text = execute(parse(source, name), args, name)

    dest = Path(dest)
    try:
        tmp = tempfile.NamedTemporaryFile(
            mode="w", dir=dest.parent, prefix=f"{dest.name}.", delete=False
        )
    except OSError as e:
        raise RenderError(f"could not create {dest.name}.* temp file in {dest.parent}: {e}") from e
    try:
        with tmp:
            tmp.write(text)
        os.replace(tmp.name, dest)
    except OSError as e:
        raise RenderError(f"could not write {dest}: {e}") from e
    finally:
        if os.path.exists(tmp.name):
            os.unlink(tmp.name)
