from __future__ import annotations

from pathlib import Path

from synapse_poc.az_cli.command_runner import CommandResult, CommandRunner

SQL_ENDPOINT_SUFFIX = "sql.azuresynapse.net"


class SqlCmd:
    """
    Runs statements and scripts against a Synapse SQL endpoint with ``sqlcmd``.

    The password is handed over through ``SQLCMDPASSWORD`` so it never shows
    up on the command line. ``-b`` makes sqlcmd exit non-zero on SQL errors.
    """

    def __init__(
        self,
        runner: CommandRunner,
        server: str,
        user: str,
        password: str,
        executable: str = "sqlcmd",
    ) -> None:
        self.runner = runner
        self.server = server
        self.user = user
        self.password = password
        self.executable = executable

    @classmethod
    def for_dedicated_pool(
        cls, runner: CommandRunner, workspace_name: str, user: str, password: str
    ) -> "SqlCmd":
        return cls(runner, f"tcp:{workspace_name}.{SQL_ENDPOINT_SUFFIX}", user, password)

    @classmethod
    def for_serverless(
        cls, runner: CommandRunner, workspace_name: str, user: str, password: str
    ) -> "SqlCmd":
        return cls(
            runner, f"tcp:{workspace_name}-ondemand.{SQL_ENDPOINT_SUFFIX}", user, password
        )

    def _base_args(self, database: str) -> list:
        return [
            self.executable,
            "-U",
            self.user,
            "-S",
            self.server,
            "-d",
            database,
            "-I",
            "-b",
        ]

    def query(self, database: str, statement: str) -> CommandResult:
        return self.runner.run_checked(
            [*self._base_args(database), "-Q", statement],
            secrets=(self.password,),
            env={"SQLCMDPASSWORD": self.password},
        )

    def run_file(self, database: str, script: Path) -> CommandResult:
        return self.runner.run_checked(
            [*self._base_args(database), "-i", str(script)],
            secrets=(self.password,),
            env={"SQLCMDPASSWORD": self.password},
        )
