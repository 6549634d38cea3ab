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
"""Unit tests for the PowerShell remoting transport."""

import base64
import subprocess

import pytest

from fleet_backend.app.domain.models import (
    Credential,
    CredentialType,
    HostResultStatus,
    OSType,
    ServerConnection,
)
from fleet_backend.app.infrastructure.powershell_transport import (
    INVALID_HOSTNAME,
    PowerShellCommandTransport,
    build_remote_script,
    encode_powershell_command,
    escape_powershell,
    is_valid_hostname,
)

CONNECTION = ServerConnection(
    id="w1", name="dc-1", hostname="dc-1.corp.local", os_type=OSType.WINDOWS
)
ADMIN = Credential(
    id="k",
    name="admin",
    type=CredentialType.PASSWORD,
    username="Administrator",
    secret="p@ss'word",
    domain="CORP",
)


class FakeProcess:
    def __init__(self, stdout=b"", stderr=b"", returncode=0, hang=False):
        self._output = (stdout, stderr)
        self.returncode = returncode
        self.hang = hang
        self.killed = False

    def communicate(self, timeout=None):
        if self.hang and not self.killed:
            raise subprocess.TimeoutExpired(cmd="pwsh", timeout=timeout)
        return self._output

    def kill(self):
        self.killed = True


class FakePopen:
    def __init__(self, process=None, error=None):
        self.process = process or FakeProcess()
        self.error = error
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append((args, kwargs))
        if self.error:
            raise self.error
        return self.process


def decode_script(encoded: str) -> str:
    return base64.b64decode(encoded).decode("utf-16-le")


@pytest.mark.parametrize(
    "hostname",
    ["dc-1", "dc-1.corp.local", "10.0.0.5", "a"],
)
def test_valid_hostnames(hostname):
    assert is_valid_hostname(hostname)


@pytest.mark.parametrize(
    "hostname",
    ["", "-dc", "dc-", "dc;calc", "dc 1", "dc-1\n", "$(whoami)", "dc'1"],
)
def test_invalid_hostnames(hostname):
    assert not is_valid_hostname(hostname)


def test_escape_doubles_single_quotes():
    assert escape_powershell("it's 'quoted'") == "it''s ''quoted''"


QUOTE_CHARACTERS = ["'", "\u2018", "\u2019", "\u201a", "\u201b"]


@pytest.mark.parametrize("quote", QUOTE_CHARACTERS)
def test_escape_doubles_every_single_quote_variant(quote):
    assert escape_powershell(f"a{quote}b") == f"a{quote}{quote}b"


@pytest.mark.parametrize("quote", QUOTE_CHARACTERS)
def test_quote_variants_in_password_stay_inside_the_literal(quote):
    password = f"pw{quote}; Remove-Item C:\\x; {quote}"

    script = build_remote_script("host1", "hostname", username="ops", password=password)

    escaped = f"pw{quote}{quote}; Remove-Item C:\\x; {quote}{quote}"
    assert f"ConvertTo-SecureString '{escaped}' -AsPlainText" in script


@pytest.mark.parametrize("quote", QUOTE_CHARACTERS)
def test_quote_variants_in_username_and_domain_stay_inside_the_literal(quote):
    script = build_remote_script(
        "host1", "hostname", username=f"o{quote}ps", password="pw", domain=f"C{quote}RP"
    )

    assert f"PSCredential ('C{quote}{quote}RP\\o{quote}{quote}ps', $secpasswd)" in script


@pytest.mark.parametrize("quote", QUOTE_CHARACTERS)
def test_quote_variants_in_command_stay_inside_the_scriptblock(quote):
    script = build_remote_script("host1", f"echo {quote}x{quote}; calc")

    assert (
        f"[scriptblock]::Create('echo {quote}{quote}x{quote}{quote}; calc')" in script
    )


def test_encoded_command_is_utf16le_base64():
    assert decode_script(encode_powershell_command("Get-Date ü")) == "Get-Date ü"


def test_script_without_password_uses_ambient_identity():
    script = build_remote_script("dc-1", "Get-Service 'w32time'")

    assert script == (
        "Invoke-Command -ComputerName 'dc-1'"
        " -ScriptBlock ([scriptblock]::Create('Get-Service ''w32time'''))"
        " -ErrorAction Stop"
    )


def test_script_with_password_builds_credential_object():
    script = build_remote_script(
        "dc-1", "hostname", "Administrator", "p@ss'word", "CORP", negotiate=True
    )

    assert "ConvertTo-SecureString 'p@ss''word' -AsPlainText -Force" in script
    assert "PSCredential ('CORP\\Administrator', $secpasswd)" in script
    assert script.endswith("-Credential $cred -Authentication Negotiate")


def test_script_rejects_bad_hostname():
    with pytest.raises(ValueError, match=INVALID_HOSTNAME):
        build_remote_script("dc-1; Remove-Item C:\\", "hostname")


def test_arguments_use_encoded_command():
    transport = PowerShellCommandTransport(executable="pwsh")

    args = transport.build_arguments(CONNECTION, ADMIN, "Get-Date")

    assert args[:4] == ["pwsh", "-NoProfile", "-NonInteractive", "-EncodedCommand"]
    script = decode_script(args[4])
    assert "-ComputerName 'dc-1.corp.local'" in script
    assert "-Authentication Negotiate" in script


def test_windows_powershell_does_not_force_negotiate():
    transport = PowerShellCommandTransport(executable="C:\\Windows\\powershell.exe")

    args = transport.build_arguments(CONNECTION, ADMIN, "Get-Date")

    assert "-Authentication Negotiate" not in decode_script(args[4])


def test_run_success():
    popen = FakePopen(FakeProcess(stdout=b"DC-1\r\n"))
    transport = PowerShellCommandTransport(executable="pwsh", popen=popen)

    result = transport.run(CONNECTION, ADMIN, "hostname", timeout=30)

    assert result.status == HostResultStatus.SUCCESS
    assert result.exit_code == 0
    assert result.stdout == "DC-1"
    args, kwargs = popen.calls[0]
    assert args[0] == "pwsh"
    assert kwargs["stdin"] == subprocess.DEVNULL


def test_run_nonzero_exit_is_error():
    popen = FakePopen(FakeProcess(stderr=b"Access is denied.", returncode=1))
    transport = PowerShellCommandTransport(executable="pwsh", popen=popen)

    result = transport.run(CONNECTION, ADMIN, "hostname", timeout=30)

    assert result.status == HostResultStatus.ERROR
    assert result.exit_code == 1
    assert result.stderr == "Access is denied."


def test_run_rejects_invalid_hostname_without_spawning():
    popen = FakePopen()
    transport = PowerShellCommandTransport(executable="pwsh", popen=popen)
    connection = ServerConnection(id="w2", name="bad", hostname="dc;calc")

    result = transport.run(connection, ADMIN, "hostname", timeout=30)

    assert result.status == HostResultStatus.ERROR
    assert result.error == INVALID_HOSTNAME
    assert popen.calls == []


def test_run_timeout_kills_process():
    process = FakeProcess(hang=True)
    transport = PowerShellCommandTransport(
        executable="pwsh", popen=FakePopen(process)
    )

    result = transport.run(CONNECTION, ADMIN, "Start-Sleep 999", timeout=60)

    assert process.killed is True
    assert result.status == HostResultStatus.ERROR
    assert result.error == "Command timed out after 1 minute"


def test_missing_executable_reports_remoting_hint():
    transport = PowerShellCommandTransport(
        executable="pwsh", popen=FakePopen(error=FileNotFoundError("pwsh"))
    )

    result = transport.run(CONNECTION, ADMIN, "hostname", timeout=30)

    assert result.status == HostResultStatus.ERROR
    assert result.error.startswith("WinRM execution failed:")
    assert result.error.endswith("Ensure PowerShell remoting is enabled on the target.")
