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
"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from fleet_backend.app.infrastructure.powershell_transport import default_executable

TRANSPORT_MODES = {"simulated", "live"}


def _env_number(name: str, default: str, cast, minimum) -> object:
    raw = os.getenv(name, default).strip() or default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration resolved once at start-up."""

    transport_mode: str = "simulated"
    batch_size: int = 10
    host_timeout_seconds: float = 300.0
    ssh_connect_timeout_seconds: float = 30.0
    powershell_executable: str = ""
    simulated_delay_ms: int = 0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        mode = os.getenv("FLEET_TRANSPORT_MODE", "simulated").strip().lower()
        if mode not in TRANSPORT_MODES:
            raise ValueError(
                f"FLEET_TRANSPORT_MODE must be one of {sorted(TRANSPORT_MODES)}, got {mode!r}"
            )
        return cls(
            transport_mode=mode,
            batch_size=_env_number("FLEET_BATCH_SIZE", "10", int, 1),
            host_timeout_seconds=_env_number(
                "FLEET_HOST_TIMEOUT_SECONDS", "300", float, 1
            ),
            ssh_connect_timeout_seconds=_env_number(
                "FLEET_SSH_CONNECT_TIMEOUT_SECONDS", "30", float, 1
            ),
            powershell_executable=os.getenv("FLEET_POWERSHELL_EXECUTABLE", "").strip()
            or default_executable(),
            simulated_delay_ms=_env_number("FLEET_SIMULATED_DELAY_MS", "0", int, 0),
            log_level=os.getenv("FLEET_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
