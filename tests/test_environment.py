import os
import stat

import pytest

from dolt_flake.environment import acquire, locate_tools, release, workspace
from dolt_flake.errors import SetupError


def test_locate_tools(settings, all_tools_on_path) -> None:
    tools = locate_tools(settings)
    assert (tools.nix, tools.go, tools.unzip) == ("/usr/bin/nix", "/usr/bin/go", "/usr/bin/unzip")


def test_locate_tools_missing_program(settings, monkeypatch) -> None:
    monkeypatch.setattr(
        "dolt_flake.environment.shutil.which",
        lambda prog: None if prog == "unzip" else f"/usr/bin/{prog}",
    )
    with pytest.raises(SetupError, match="unzip"):
        locate_tools(settings)


def test_acquire_missing_program_creates_nothing(settings, monkeypatch, tmp_path) -> None:
    monkeypatch.setattr("dolt_flake.environment.shutil.which", lambda prog: None)
    monkeypatch.setattr("dolt_flake.environment.tempfile.tempdir", str(tmp_path))
    with pytest.raises(SetupError):
        acquire("abc123", settings)
    assert list(tmp_path.iterdir()) == []


def test_acquire_derives_paths_from_revision(settings, all_tools_on_path) -> None:
    env = acquire("abc123", settings)
    try:
        assert env.source_zip_url == "https://github.com/dolthub/dolt/archive/abc123.zip"
        assert env.source_zip == env.base_dir / "abc123.zip"
        assert env.source_dir == env.base_dir / "dolt-abc123"
        assert env.module_dir == env.base_dir / "dolt-abc123" / "go"
        assert env.go_cache_dir == env.base_dir / "go-cache"
        assert env.go_path_dir == env.base_dir / "go"
        assert env.download_dir == env.go_path_dir / "pkg" / "mod" / "cache" / "download"
        assert env.sumdb_dir == env.download_dir / "sumdb"
    finally:
        release(env)


def test_acquire_creates_empty_cache_dirs(settings, tools) -> None:
    env = acquire("abc123", settings, tools)
    try:
        assert env.base_dir.name.startswith("dolt-nix-flake-")
        for path in (env.go_cache_dir, env.go_path_dir):
            assert path.is_dir()
            assert list(path.iterdir()) == []
        assert sorted(p.name for p in env.base_dir.iterdir()) == ["go", "go-cache"]
    finally:
        release(env)


def test_release_removes_read_only_module_cache(settings, tools) -> None:
    env = acquire("abc123", settings, tools)
    module = env.go_path_dir / "pkg" / "mod" / "github.com" / "example@v1.0.0"
    module.mkdir(parents=True)
    (module / "go.mod").write_text("module github.com/example\n")
    os.chmod(module / "go.mod", stat.S_IRUSR)
    os.chmod(module, stat.S_IRUSR | stat.S_IXUSR)

    release(env)
    assert not env.base_dir.exists()


def test_release_twice_is_quiet(settings, tools, capsys) -> None:
    env = acquire("abc123", settings, tools)
    release(env)
    release(env)
    assert capsys.readouterr().err == ""


def test_workspace_released_after_failure(settings, tools) -> None:
    with pytest.raises(RuntimeError):
        with workspace("abc123", settings, tools) as env:
            (env.go_cache_dir / "partial").write_text("x")
            raise RuntimeError("stage failed")
    assert not env.base_dir.exists()


def test_release_of_missing_workspace_leaves_parent_alone(settings, tools, monkeypatch, capsys) -> None:
    env = acquire("abc123", settings, tools)
    release(env)

    def no_chmod(path, mode):
        raise PermissionError(1, "Operation not permitted", path)

    monkeypatch.setattr("dolt_flake.environment.os.chmod", no_chmod)
    release(env)
    assert capsys.readouterr().err == ""
