"""CLI integration tests for hashbackup."""

from __future__ import annotations

import json
import os
import zipfile
from pathlib import Path

import yaml
from click.testing import CliRunner

from hashbackup.cli import cli


def _env_with_home(tmp_path: Path) -> dict[str, str]:
    """Return environment variables pointing HOME to a temp directory.

    Logging is limited to errors so stderr stays out of captured output.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        dict[str, str]: Environment mapping with HOME set.
    """
    env = {key: value for key, value in os.environ.items() if not key.startswith("HASHBACKUP__")}
    env["HOME"] = str(tmp_path / "home")
    env["HASHBACKUP__LOGGING__LEVEL"] = "ERROR"
    return env


def _setup(tmp_path: Path) -> tuple[Path, Path]:
    """Create one world with a tracked file and a config file describing it.

    Returns:
        tuple[Path, Path]: Config path and the tracked region file.
    """
    region = tmp_path / "worlds" / "world1" / "region"
    region.mkdir(parents=True)
    tracked = region / "r.0.0.mca"
    tracked.write_bytes(b"A")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "backup": {
                    "worlds": ["world1"],
                    "worlds_root": str(tmp_path / "worlds"),
                    "data_dir": str(tmp_path / "data"),
                }
            }
        ),
        encoding="utf-8",
    )
    return config_path, tracked


def _containers(tmp_path: Path) -> list[Path]:
    return sorted((tmp_path / "data" / "backups" / "world1").glob("*.zip"))


def test_cli_save_archives_changes(tmp_path: Path) -> None:
    """Ensure `hashbackup save` writes a container and reports a summary.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    config_path, _ = _setup(tmp_path)
    runner = CliRunner()

    result = runner.invoke(cli, ["--config", str(config_path), "save"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    assert "Backup saved! 1 file(s) archived across 1 world(s)." in result.output
    containers = _containers(tmp_path)
    assert len(containers) == 1
    with zipfile.ZipFile(containers[0]) as archive:
        assert archive.namelist() == ["world1/region/r.0.0.mca"]
    assert (tmp_path / "data" / "file_metadata.json").exists()
    assert (tmp_path / "data" / "hashbackup.log").exists()


def test_cli_save_json(tmp_path: Path) -> None:
    """`hashbackup save --json` should emit the cycle report.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    config_path, _ = _setup(tmp_path)
    runner = CliRunner()

    result = runner.invoke(
        cli, ["--config", str(config_path), "save", "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["archived_files"] == 1
    assert payload["metadata_saved"] is True
    assert payload["worlds"][0]["status"] == "archived"


def test_cli_save_json_and_quiet_conflict(tmp_path: Path) -> None:
    config_path, _ = _setup(tmp_path)

    result = CliRunner().invoke(
        cli,
        ["--config", str(config_path), "save", "--json", "--quiet"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code != 0
    assert "--json cannot be combined with --quiet" in result.output
    assert _containers(tmp_path) == []


def test_cli_set_override_applies(tmp_path: Path) -> None:
    config_path, _ = _setup(tmp_path)
    (tmp_path / "worlds" / "world1" / "region" / "r.0.0.mca.bak").write_bytes(b"B")

    result = CliRunner().invoke(
        cli,
        ["--config", str(config_path), "--set", "backup.extension=.bak", "save", "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["worlds"][0]["entries"] == ["world1/region/r.0.0.mca.bak"]


def test_cli_list_shows_worlds_and_containers(tmp_path: Path) -> None:
    config_path, _ = _setup(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    empty = runner.invoke(cli, ["--config", str(config_path), "list"], env=env)
    runner.invoke(cli, ["--config", str(config_path), "save"], env=env)
    worlds = runner.invoke(cli, ["--config", str(config_path), "list"], env=env)
    containers = runner.invoke(cli, ["--config", str(config_path), "list", "world1"], env=env)
    missing = runner.invoke(cli, ["--config", str(config_path), "list", "ghost"], env=env)

    assert "No worlds have backups yet." in empty.output
    assert "Available worlds with backups:" in worlds.output
    assert "- world1" in worlds.output
    assert containers.exit_code == 0
    assert _containers(tmp_path)[0].name in containers.output
    assert "yes" in containers.output
    assert "No backups found for world: ghost" in missing.output


def test_cli_restore_overwrites_world_files(tmp_path: Path) -> None:
    config_path, tracked = _setup(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    runner.invoke(cli, ["--config", str(config_path), "save"], env=env)
    container = _containers(tmp_path)[0].name
    tracked.write_bytes(b"broken")

    declined = runner.invoke(
        cli, ["--config", str(config_path), "restore", "world1", container], input="n\n", env=env
    )
    assert declined.exit_code == 1
    assert tracked.read_bytes() == b"broken"

    result = runner.invoke(
        cli, ["--config", str(config_path), "restore", "world1", container, "--yes"], env=env
    )

    assert result.exit_code == 0, result.output
    assert "Please restart the server to apply changes." in " ".join(result.output.split())
    assert tracked.read_bytes() == b"A"


def test_cli_restore_unknown_container(tmp_path: Path) -> None:
    config_path, _ = _setup(tmp_path)

    result = CliRunner().invoke(
        cli,
        ["--config", str(config_path), "restore", "world1", "backup_1.zip", "--yes"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 1
    assert "Backup file not found: backup_1.zip" in result.output


def test_cli_run_interactive_processes_commands(tmp_path: Path) -> None:
    """`hashbackup run --interactive` should run a cycle and answer commands.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    config_path, _ = _setup(tmp_path)

    result = CliRunner().invoke(
        cli,
        ["--config", str(config_path), "run", "--interactive"],
        input="save\nlist world1\nbogus\nstop\nsave\n",
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    assert "Backing up world1 every 10 minute(s)." in result.output
    assert "Backup saved! 0 file(s) archived across 1 world(s)." in result.output
    assert "Backups for world1:" in result.output
    assert "(active)" in result.output
    assert "Usage: save | list [world] | restore <world> <filename>" in result.output
    assert len(_containers(tmp_path)) == 1
