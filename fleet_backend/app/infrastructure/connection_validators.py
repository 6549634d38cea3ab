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
"""Connection validator implementations."""

from __future__ import annotations

from typing import Optional

from netmiko import ConnectHandler  # type: ignore[import-untyped]
from netmiko.exceptions import (  # type: ignore[import-untyped]
    NetmikoAuthenticationException,
    NetmikoTimeoutException,
)

from fleet_backend.app.application.inventory_service import ConnectionValidator
from fleet_backend.app.domain.models import Credential, CredentialType, ServerConnection
from fleet_backend.app.infrastructure.ssh_transport import (
    load_private_key,
    resolve_username,
)

CONNECTION_TIMEOUT = 10


class SimulatedConnectionValidator(ConnectionValidator):
    """Always succeeds. Useful for local scaffold testing."""

    def validate(
        self, connection: ServerConnection, credential: Optional[Credential]
    ) -> tuple[bool, str | None]:
        del connection, credential
        return True, None


class NetmikoConnectionValidator(ConnectionValidator):
    """Logs in with Netmiko, reads the prompt and disconnects."""

    def __init__(self, timeout: int = CONNECTION_TIMEOUT):
        self.timeout = timeout

    def _params(
        self, connection: ServerConnection, credential: Optional[Credential]
    ) -> dict:
        params: dict = {
            "device_type": "linux",
            "host": connection.hostname,
            "port": connection.port,
            "username": resolve_username(connection, credential),
            "timeout": self.timeout,
        }
        if credential is None or credential.type == CredentialType.AGENT:
            params["allow_agent"] = True
        elif credential.type == CredentialType.PASSWORD:
            params["password"] = credential.secret or ""
        elif credential.private_key:
            params["use_keys"] = True
            params["pkey"] = load_private_key(
                credential.private_key, credential.passphrase
            )
        return params

    def validate(
        self, connection: ServerConnection, credential: Optional[Credential]
    ) -> tuple[bool, str | None]:
        try:
            session = ConnectHandler(**self._params(connection, credential))
            session.find_prompt()
            session.disconnect()
            return True, None
        except NetmikoAuthenticationException as e:
            return False, f"Authentication failed: {str(e)}"
        except NetmikoTimeoutException as e:
            return False, f"Connection timeout: {str(e)}"
        except Exception as e:
            return False, f"Connection error: {str(e)}"
