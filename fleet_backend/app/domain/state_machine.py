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
"""Finite state machines for executions and per-host result slots."""

from .models import (
    ExecutionStatus,
    ExecutionTransition,
    ExecutionTrigger,
    HostResultStatus,
)


class ExecutionStateMachine:
    """Validates and executes command execution status transitions."""

    _transitions = {
        (ExecutionStatus.PENDING, ExecutionTrigger.START): ExecutionStatus.RUNNING,
        (ExecutionStatus.PENDING, ExecutionTrigger.CANCEL): ExecutionStatus.CANCELLED,
        (ExecutionStatus.RUNNING, ExecutionTrigger.COMPLETE): ExecutionStatus.COMPLETED,
        (ExecutionStatus.RUNNING, ExecutionTrigger.FAIL): ExecutionStatus.FAILED,
        (ExecutionStatus.RUNNING, ExecutionTrigger.CANCEL): ExecutionStatus.CANCELLED,
    }

    _trigger_for_outcome = {
        ExecutionStatus.COMPLETED: ExecutionTrigger.COMPLETE,
        ExecutionStatus.FAILED: ExecutionTrigger.FAIL,
        ExecutionStatus.CANCELLED: ExecutionTrigger.CANCEL,
    }

    def can_transition(self, status: ExecutionStatus, trigger: ExecutionTrigger) -> bool:
        """Return True if transition is valid for the current status."""
        return (status, trigger) in self._transitions

    def transition(
        self, status: ExecutionStatus, trigger: ExecutionTrigger
    ) -> ExecutionTransition:
        """Apply a transition or raise ValueError for invalid transitions."""
        key = (status, trigger)
        if key not in self._transitions:
            raise ValueError(
                f"Invalid transition: status={status.value}, trigger={trigger.value}"
            )
        return ExecutionTransition(
            current=status, trigger=trigger, next_status=self._transitions[key]
        )

    def finish(
        self, status: ExecutionStatus, outcome: ExecutionStatus
    ) -> ExecutionTransition:
        """Move a running execution to a terminal outcome."""
        trigger = self._trigger_for_outcome.get(outcome)
        if trigger is None:
            raise ValueError(f"Not a terminal outcome: {outcome.value}")
        return self.transition(status, trigger)


class HostResultStateMachine:
    """Guards per-host result slots; terminal slots are never rewritten."""

    _allowed = {
        HostResultStatus.PENDING: {
            HostResultStatus.RUNNING,
            HostResultStatus.SUCCESS,
            HostResultStatus.ERROR,
            HostResultStatus.SKIPPED,
        },
        HostResultStatus.RUNNING: {
            HostResultStatus.SUCCESS,
            HostResultStatus.ERROR,
            HostResultStatus.SKIPPED,
        },
    }

    def can_transition(self, current: HostResultStatus, new: HostResultStatus) -> bool:
        return new in self._allowed.get(current, set())


def aggregate_status(
    statuses: list[HostResultStatus], cancelled: bool
) -> ExecutionStatus:
    """Roll per-host statuses up into an execution status."""
    if cancelled:
        return ExecutionStatus.CANCELLED
    if any(not status.is_terminal for status in statuses):
        return ExecutionStatus.RUNNING
    if any(status == HostResultStatus.ERROR for status in statuses):
        return ExecutionStatus.FAILED
    return ExecutionStatus.COMPLETED
