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
"""SSH execution transport for Unix-like hosts (paramiko)."""

from __future__ import annotations

import io
import logging
import socket
import time
from typing import Callable, Optional

import paramiko

from fleet_backend.app.application.command_dispatcher import CommandTransport
from fleet_backend.app.application.events import utc_now
from fleet_backend.app.domain.models import (
    CommandResult,
    Credential,
    CredentialType,
    HostResultStatus,
    ServerConnection,
)

logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "root"
CONNECT_TIMEOUT = 30.0
POLL_INTERVAL = 0.05
READ_CHUNK = 32768

_KEY_CLASSES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


def load_private_key(text: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Parse an OpenSSH/PEM private key of any supported algorithm."""
    last_error: Exception | None = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(text), password=passphrase)
        except paramiko.SSHException as exc:
            last_error = exc
    raise paramiko.SSHException(f"Unsupported or invalid private key: {last_error}")


def resolve_username(
    connection: ServerConnection, credential: Optional[Credential]
) -> str:
    if credential and credential.username:
        return credential.username
    return connection.username or DEFAULT_USERNAME


def connect_kwargs(
    connection: ServerConnection,
    credential: Optional[Credential],
    timeout: float = CONNECT_TIMEOUT,
) -> dict:
    """paramiko connect arguments: password, then private key, then agent."""
    kwargs: dict = {
        "hostname": connection.hostname,
        "port": connection.port,
        "username": resolve_username(connection, credential),
        "timeout": timeout,
        "banner_timeout": timeout,
        "auth_timeout": timeout,
        "look_for_keys": False,
        "allow_agent": False,
    }
    if credential is None or credential.type == CredentialType.AGENT:
        kwargs["allow_agent"] = True
    elif credential.type == CredentialType.PASSWORD:
        kwargs["password"] = credential.secret or ""
    elif credential.type == CredentialType.PRIVATE_KEY:
        if not credential.private_key:
            raise paramiko.SSHException("Credential has no private key")
        kwargs["pkey"] = load_private_key(credential.private_key, credential.passphrase)
    return kwargs


def describe_timeout(timeout: float) -> str:
    if timeout >= 60 and timeout % 60 == 0:
        minutes = int(timeout // 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{timeout:g} second" if timeout == 1 else f"{timeout:g} seconds"


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace").strip()


class SSHCommandTransport(CommandTransport):
    """Runs one command per connection with a wall-clock deadline."""

    def __init__(
        self,
        connect_timeout: float = CONNECT_TIMEOUT,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.connect_timeout = connect_timeout
        self.client_factory = client_factory
        self.clock = clock

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

    def _connect(
        self, connection: ServerConnection, credential: Optional[Credential]
    ) -> paramiko.SSHClient:
        client = self.client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(**connect_kwargs(connection, credential, self.connect_timeout))
        except BaseException:
            client.close()
            raise
        return client

    def run(
        self,
        connection: ServerConnection,
        credential: Optional[Credential],
        command: str,
        timeout: float,
    ) -> CommandResult:
        started_at = utc_now()
        try:
            client = self._connect(connection, credential)
        except paramiko.AuthenticationException as exc:
            return self._result(
                connection,
                started_at,
                HostResultStatus.ERROR,
                error=f"Authentication failed: {exc}",
            )
        except (socket.timeout, TimeoutError) as exc:
            return self._result(
                connection,
                started_at,
                HostResultStatus.ERROR,
                error=f"Connection timeout: {exc}",
            )
        except (paramiko.SSHException, OSError) as exc:
            return self._result(
                connection,
                started_at,
                HostResultStatus.ERROR,
                error=f"Connection error: {exc}",
            )

        try:
            deadline = self.clock() + timeout
            transport = client.get_transport()
            if transport is None or not transport.is_active():
                return self._result(
                    connection,
                    started_at,
                    HostResultStatus.ERROR,
                    error="Connection error: SSH transport not active",
                )
            channel = transport.open_session()
            channel.exec_command(command)

            stdout: list[bytes] = []
            stderr: list[bytes] = []
            while True:
                drained = False
                if channel.recv_ready():
                    stdout.append(channel.recv(READ_CHUNK))
                    drained = True
                if channel.recv_stderr_ready():
                    stderr.append(channel.recv_stderr(READ_CHUNK))
                    drained = True
                if not drained and channel.exit_status_ready():
                    break
                if self.clock() >= deadline:
                    # Output gathered so far is dropped with the channel.
                    return self._result(
                        connection,
                        started_at,
                        HostResultStatus.ERROR,
                        error=f"Command timed out after {describe_timeout(timeout)}",
                    )
                if not drained:
                    time.sleep(POLL_INTERVAL)

            while channel.recv_ready():
                stdout.append(channel.recv(READ_CHUNK))
            while channel.recv_stderr_ready():
                stderr.append(channel.recv_stderr(READ_CHUNK))
            exit_code = channel.recv_exit_status()
            return self._result(
                connection,
                started_at,
                HostResultStatus.SUCCESS if exit_code == 0 else HostResultStatus.ERROR,
                exit_code=exit_code,
                stdout=_decode(stdout),
                stderr=_decode(stderr),
            )
        except (paramiko.SSHException, OSError) as exc:
            return self._result(
                connection,
                started_at,
                HostResultStatus.ERROR,
                error=f"SSH error: {exc}",
            )
        finally:
            client.close()
