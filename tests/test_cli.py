"""
Tests for the quick-cli command line.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from quickcli.cli import cli

from conftest import RDP_DEFINITION, SPICE_DEFINITION


@pytest.fixture
def config_file(tmp_path, quickemu_dir, profile_dir):
    path = tmp_path / "quick-cli.conf"
    path.write_text(
        f"quickemu_dir={quickemu_dir}\n"
        f"profile_dir={profile_dir}\n"
        "os_type=linux\n"
        "remote_app=remmina\n"
        "default_spice_port=5930\n"
    )
    return path


@pytest.fixture
def run(config_file):
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, ["--config", str(config_file), *args])

    return _run


class TestListCommand:
    """Tests for `quick-cli list`."""

    def test_json(self, run, make_vm, profile_dir):
        make_vm("win11", RDP_DEFINITION)
        make_vm("ubuntu", SPICE_DEFINITION)
        (profile_dir / "win11.remmina").write_text("[remmina]\n")

        with patch("quickcli.commands.is_vm_running", return_value=False):
            result = run("list", "--json")

        assert result.exit_code == 0, result.output
        rows = {row["name"]: row for row in json.loads(result.output)}
        assert rows["win11"]["protocol"] == "rdp"
        assert rows["win11"]["port"] == 3390
        assert rows["win11"]["profile"] == str(profile_dir / "win11.remmina")
        assert rows["ubuntu"]["protocol"] == "spice"
        assert rows["ubuntu"]["port"] == 5930
        assert rows["ubuntu"]["running"] is False

    def test_table(self, run, make_vm):
        make_vm("win11", RDP_DEFINITION)

        with patch("quickcli.commands.is_vm_running", return_value=True):
            result = run("list")

        assert result.exit_code == 0
        assert "win11" in result.output
        assert "running" in result.output

    def test_table_without_profile(self, run, make_vm):
        make_vm("ubuntu", SPICE_DEFINITION)

        with patch("quickcli.commands.is_vm_running", return_value=False):
            result = run("list")

        assert result.exit_code == 0
        assert "ubuntu" in result.output
        assert "\u2014" not in result.output

    def test_empty(self, run):
        result = run("list")
        assert result.exit_code == 0
        assert "No VM definitions found" in result.output


class TestVmCommands:
    """Tests for start/stop/connect/spice/up."""

    def test_unknown_vm(self, run):
        result = run("start", "nope")
        assert result.exit_code == 1
        assert "VM not found: nope" in result.output

    def test_start(self, run, make_vm):
        make_vm("ubuntu", SPICE_DEFINITION)

        with patch("quickcli.commands.is_vm_running", return_value=False), \
                patch("quickcli.utils.subprocess.Popen") as popen, \
                patch("quickcli.lifecycle.time.sleep"):
            result = run("start", "ubuntu")

        assert result.exit_code == 0, result.output
        assert popen.call_args.args[0][0] == "quickemu"
        assert "started" in result.output

    def test_start_already_running(self, run, make_vm):
        make_vm("ubuntu", SPICE_DEFINITION)

        with patch("quickcli.commands.is_vm_running", return_value=True), \
                patch("quickcli.utils.subprocess.Popen") as popen:
            result = run("start", "ubuntu")

        assert result.exit_code == 0
        assert "already running" in result.output
        popen.assert_not_called()

    def test_stop(self, run, make_vm):
        make_vm("ubuntu", SPICE_DEFINITION)

        with patch("quickcli.utils.subprocess.Popen") as popen:
            result = run("stop", "ubuntu")

        assert result.exit_code == 0
        assert popen.call_args.args[0][:2] == ["quickemu", "--kill"]
        assert "Stop command issued" in result.output

    def test_connect_requires_running(self, run, make_vm):
        make_vm("win11", RDP_DEFINITION)

        with patch("quickcli.commands.is_vm_running", return_value=False), \
                patch("quickcli.utils.subprocess.Popen") as popen:
            result = run("connect", "win11")

        assert result.exit_code == 1
        assert "is not running; cannot connect" in result.output
        popen.assert_not_called()

    def test_connect_force(self, run, make_vm):
        make_vm("win11", RDP_DEFINITION)

        with patch("quickcli.utils.subprocess.Popen") as popen:
            result = run("connect", "--force", "win11")

        assert result.exit_code == 0, result.output
        assert popen.call_args.args[0] == [
            "remmina", "--quiet", "-p", "rdp", "rdp://127.0.0.1:3390",
        ]

    def test_connect_all_viewers_missing(self, run, make_vm):
        make_vm("ubuntu", SPICE_DEFINITION)

        with patch("quickcli.commands.is_vm_running", return_value=True), \
                patch("quickcli.utils.subprocess.Popen", side_effect=FileNotFoundError):
            result = run("connect", "ubuntu")

        assert result.exit_code == 1
        assert result.output.count("failed to launch") == 3
        assert "No viewer could be launched for ubuntu" in result.output

    def test_spice(self, run, make_vm):
        make_vm("win11", RDP_DEFINITION)

        with patch("quickcli.utils.subprocess.Popen") as popen:
            result = run("spice", "win11")

        assert result.exit_code == 0
        assert popen.call_args.args[0][-1] == "spice://127.0.0.1:5930"

    def test_up(self, run, make_vm):
        make_vm("win11", RDP_DEFINITION)

        with patch("quickcli.commands.is_vm_running", return_value=False), \
                patch("quickcli.utils.subprocess.Popen") as popen, \
                patch("quickcli.lifecycle.time.sleep") as sleep:
            result = run("up", "win11")

        assert result.exit_code == 0, result.output
        commands = [c.args[0][0] for c in popen.call_args_list]
        assert commands == ["quickemu", "remmina"]
        sleep.assert_called_once()
