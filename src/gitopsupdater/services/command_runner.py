"""Subprocess execution service for the GitOps updater."""

import subprocess
from typing import List, Optional

from gitopsupdater.errors import ExternalToolError
from gitopsupdater.errors_catalog import actionable_error


class CommandRunner:
    """Runs external commands, keeping stdout in memory and stderr in the log."""

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: List[str],
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=effective_timeout,
            )
        except FileNotFoundError as exc:
            raise ExternalToolError(actionable_error("tool_not_found", tool=cmd[0])) from exc
        except subprocess.TimeoutExpired as exc:
            raise ExternalToolError(
                f"Command timed out after {effective_timeout}s: {cmd_str}"
            ) from exc
        except OSError as exc:
            raise ExternalToolError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        if stderr:
            log = self.logger.debug if result.returncode == 0 else self.logger.warning
            for line in stderr.splitlines():
                log("%s: %s", cmd[0], line)

        if result.returncode != 0:
            message = f"Command failed ({result.returncode}): {cmd_str}"
            if stderr:
                message = f"{message}\n{stderr}"
            raise ExternalToolError(message)

        return result
