import json
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from synapse_poc.az_cli import AzCli, CommandRunner, SqlCmd, TerraformCli
from synapse_poc.az_cli.command_runner import CommandResult, redact
from synapse_poc.deployment.errors import CommandError


def completed(returncode=0, stdout="", stderr=""):
    return mock.Mock(returncode=returncode, stdout=stdout, stderr=stderr)


def test_run_captures_output():
    runner = CommandRunner()
    with mock.patch("subprocess.run") as run:
        run.return_value = completed(stdout="Succeeded\n")
        result = runner.run(["az", "account", "show"])

    assert result.ok
    assert result.stdout == "Succeeded"
    run.assert_called_once_with(
        ["az", "account", "show"],
        check=False,
        capture_output=True,
        text=True,
        cwd=None,
        env=None,
        timeout=None,
    )


def test_run_checked_raises_with_redacted_command():
    runner = CommandRunner()
    with mock.patch("subprocess.run") as run:
        run.return_value = completed(returncode=1, stderr="Login failed for hunter2")
        with pytest.raises(CommandError) as excinfo:
            runner.run_checked(["sqlcmd", "-P", "hunter2"], secrets=("hunter2",))

    assert "hunter2" not in str(excinfo.value)
    assert excinfo.value.command == ["sqlcmd", "-P", "***"]
    assert excinfo.value.returncode == 1


def test_missing_executable_becomes_command_error():
    runner = CommandRunner()
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("sqlcmd")):
        with pytest.raises(CommandError):
            runner.run(["sqlcmd", "-?"])


def test_timeout_becomes_command_error():
    runner = CommandRunner(timeout=5)
    with mock.patch("subprocess.run", side_effect=subprocess.TimeoutExpired("az", 5)):
        with pytest.raises(CommandError, match="Timed out"):
            runner.run(["az", "deployment", "sub", "create"])


def test_env_is_merged_with_parent_environment(monkeypatch):
    monkeypatch.setenv("PATH_MARKER", "kept")
    runner = CommandRunner(cwd=Path("/repo"))
    with mock.patch("subprocess.run") as run:
        run.return_value = completed()
        runner.run(["sqlcmd"], env={"SQLCMDPASSWORD": "pw"})

    kwargs = run.call_args.kwargs
    assert kwargs["env"]["SQLCMDPASSWORD"] == "pw"
    assert kwargs["env"]["PATH_MARKER"] == "kept"
    assert kwargs["cwd"] == "/repo"


def test_redact_masks_embedded_secrets():
    assert redact(["--file", "key=abc/def"], ["abc/def"]) == ["--file", "key=***"]


def test_output_combines_streams():
    result = CommandResult(["az"], 3, "out", "ERROR: something")
    assert result.output == "out\nERROR: something"
    assert not result.ok


def test_account_show_parses_json(runner):
    runner.on("account show", stdout=json.dumps({"id": "sub-id"}))
    assert AzCli(runner).account_show() == {"id": "sub-id"}
    assert runner.lines[0] == "az account show --output json --only-show-errors"


def test_invalid_json_raises(runner):
    runner.on("account show", stdout="not json")
    with pytest.raises(CommandError, match="Invalid JSON"):
        AzCli(runner).account_show()


def test_synapse_create_passes_file_reference(runner):
    AzCli(runner).synapse_create("pipeline", "ws1", "Auto Pause and Resume", Path("artifacts/p.json"))
    assert runner.calls[0].args == [
        "az",
        "synapse",
        "pipeline",
        "create",
        "--workspace-name",
        "ws1",
        "--name",
        "Auto Pause and Resume",
        "--file",
        "@artifacts/p.json",
        "--output",
        "none",
        "--only-show-errors",
    ]


def test_sqlcmd_keeps_password_off_the_command_line(runner):
    sql = SqlCmd.for_dedicated_pool(runner, "ws1", "sqladmin", "S3cret!")
    sql.query("master", "SELECT 1;")

    call = runner.calls[0]
    assert "S3cret!" not in call.args
    assert call.env == {"SQLCMDPASSWORD": "S3cret!"}
    assert call.args[:9] == ["sqlcmd", "-U", "sqladmin", "-S", "tcp:ws1.sql.azuresynapse.net", "-d", "master", "-I", "-b"]
    assert call.args[-2:] == ["-Q", "SELECT 1;"]


def test_sqlcmd_serverless_endpoint(runner):
    sql = SqlCmd.for_serverless(runner, "ws1", "sqladmin", "pw")
    sql.run_file("Demo Data (Serverless)", Path("views.sql"))
    assert "tcp:ws1-ondemand.sql.azuresynapse.net" in runner.calls[0].args
    assert runner.calls[0].args[-2:] == ["-i", "views.sql"]


def test_terraform_outputs(runner):
    runner.on(
        "terraform",
        stdout=json.dumps({"datalake_name": {"sensitive": False, "type": "string", "value": "dl1"}}),
    )
    outputs = TerraformCli(runner, Path("Terraform")).outputs()
    assert outputs == {"datalake_name": "dl1"}
    assert runner.calls[0].args == ["terraform", "-chdir=Terraform", "output", "-json"]
