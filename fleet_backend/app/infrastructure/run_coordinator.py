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
"""Background run coordinator."""

from threading import Lock, Thread
from typing import Any, Callable


class RunCoordinator:
    """Runs one background thread per execution."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._threads: dict[str, Thread] = {}

    def _cleanup_dead_locked(self) -> None:
        dead = [
            execution_id
            for execution_id, thread in self._threads.items()
            if not thread.is_alive()
        ]
        for execution_id in dead:
            self._threads.pop(execution_id, None)

    def start(self, execution_id: str, target: Callable[[], Any]) -> bool:
        """Start a background run unless one is already alive for this id."""
        with self._lock:
            self._cleanup_dead_locked()
            thread = self._threads.get(execution_id)
            if thread and thread.is_alive():
                return False
            new_thread = Thread(
                target=target, name=f"execution-{execution_id}", daemon=True
            )
            self._threads[execution_id] = new_thread
            new_thread.start()
            return True

    def join(self, execution_id: str, timeout: float | None = None) -> bool:
        """Wait for a run; True when it is no longer alive."""
        with self._lock:
            thread = self._threads.get(execution_id)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def join_all(self, timeout: float | None = None) -> None:
        with self._lock:
            threads = list(self._threads.values())
        for thread in threads:
            thread.join(timeout)
