# Copyright 2026 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.
"""PowerShell remoting transport for Windows hosts."""

from __future__ import annotations

import base64
import logging
import re
import subprocess
import sys
from typing import Callable, Optional

from fleet_backend.app.application.command_dispatcher import CommandTransport
from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.models import (
    CommandResult,
    Credential,
    HostResultStatus,
    ServerConnection,
)
from fleet_backend.app.infrastructure.ssh_transport import describe_timeout

logger = logging.getLogger(__name__)

_HOSTNAME_PATTERN = re.compile(r"[a-zA-Z0-9]([a-zA-Z0-9\-.]*[a-zA-Z0-9])?")
_IPV4_PATTERN = re.compile(r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}")

INVALID_HOSTNAME = "Invalid hostname format"

# PowerShell closes a single-quoted literal on any of these.
SINGLE_QUOTES = "'\u2018\u2019\u201a\u201b"


def default_executable() -> str:
    return "powershell.exe" if sys.platform == "win32" else "pwsh"


def is_valid_hostname(hostname: str) -> bool:
    """Allow-list check: DNS-style names or dotted-quad IPv4 only."""
    return bool(
        _HOSTNAME_PATTERN.fullmatch(hostname) or _IPV4_PATTERN.fullmatch(hostname)
    )


def escape_powershell(value: str) -> str:
    """Escape for a single-quoted PowerShell literal."""
    return "".join(ch * 2 if ch in SINGLE_QUOTES else ch for ch in value)


def encode_powershell_command(script: str) -> str:
    """Base64 of the UTF-16LE script, as ``-EncodedCommand`` expects."""
    return base64.b64encode(script.encode("utf-16-le")).decode("ascii")


def build_remote_script(
    hostname: str,
    command: str,
    username: Optional[str] = None,
    password: Optional[str] = None,
    domain: Optional[str] = None,
    negotiate: bool = False,
) -> str:
    """Assemble the Invoke-Command script; every value is a quoted literal.

    Raises ValueError for a hostname outside the allow-list.
    """
    if not is_valid_hostname(hostname):
        raise ValueError(INVALID_HOSTNAME)
    invoke = (
        f"Invoke-Command -ComputerName '{escape_powershell(hostname)}'"
        f" -ScriptBlock ([scriptblock]::Create('{escape_powershell(command)}'))"
        " -ErrorAction Stop"
    )
    if not password:
        return invoke
    full_username = f"{domain}\\{username or ''}" if domain else (username or "")
    lines = [
        f"$secpasswd = ConvertTo-SecureString '{escape_powershell(password)}'"
        " -AsPlainText -Force",
        "$cred = New-Object System.Management.Automation.PSCredential"
        f" ('{escape_powershell(full_username)}', $secpasswd)",
        invoke + " -Credential $cred" + (" -Authentication Negotiate" if negotiate else ""),
    ]
    return "; ".join(lines)


class PowerShellCommandTransport(CommandTransport):
    """Runs commands through a local PowerShell host via Invoke-Command."""

    def __init__(
        self,
        executable: Optional[str] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.executable = executable or default_executable()
        self.popen = popen

    def _result(
        self,
        connection: ServerConnection,
        started_at: str,
        status: HostResultStatus,
        **fields,
    ) -> CommandResult:
        return CommandResult(
            connection_id=connection.id,
            connection_name=connection.name,
            hostname=connection.hostname,
            status=status,
            started_at=started_at,
            completed_at=utc_now(),
            **fields,
        )

    def build_arguments(
        self,
        connection: ServerConnection,
        credential: Optional[Credential],
        command: str,
    ) -> list[str]:
        script = build_remote_script(
            hostname=connection.hostname,
            command=command,
            username=(credential.username if credential else None)
            or connection.username,
            password=credential.secret if credential else None,
            domain=credential.domain if credential else None,
            negotiate=not self.executable.lower().endswith("powershell.exe"),
        )
        return [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-EncodedCommand",
            encode_powershell_command(script),
        ]

    def run(
        self,
        connection: ServerConnection,
        credential: Optional[Credential],
        command: str,
        timeout: float,
    ) -> CommandResult:
        started_at = utc_now()
        try:
            args = self.build_arguments(connection, credential, command)
        except ValueError as exc:
            logger.warning("Rejected host %s: %s", connection.id, exc)
            return self._result(
                connection, started_at, HostResultStatus.ERROR, error=str(exc)
            )

        try:
            process = self.popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
            )
        except OSError as exc:
            return self._result(
                connection,
                started_at,
                HostResultStatus.ERROR,
                error=(
                    f"WinRM execution failed: {exc}. "
                    "Ensure PowerShell remoting is enabled on the target."
                ),
            )

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            return self._result(
                connection,
                started_at,
                HostResultStatus.ERROR,
                error=f"Command timed out after {describe_timeout(timeout)}",
            )

        exit_code = process.returncode
        return self._result(
            connection,
            started_at,
            HostResultStatus.SUCCESS if exit_code == 0 else HostResultStatus.ERROR,
            exit_code=exit_code,
            stdout=(stdout or b"").decode("utf-8", errors="replace").strip(),
            stderr=(stderr or b"").decode("utf-8", errors="replace").strip(),
        )
