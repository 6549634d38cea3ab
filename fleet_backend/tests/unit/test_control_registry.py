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
"""Unit tests for the cancellation control registry."""

from fleet_backend.app.infrastructure.control_registry import ControlRegistry


def test_register_returns_stable_instance():
    registry = ControlRegistry()
    a = registry.register("e1")
    b = registry.register("e1")
    c = registry.register("e2")

    assert a is b
    assert a is not c
    assert sorted(registry.active_ids()) == ["e1", "e2"]


def test_discard_forgets_control():
    registry = ControlRegistry()
    control = registry.register("e1")
    control.cancel()

    registry.discard("e1")

    assert registry.get("e1") is None
    assert registry.register("e1").cancelled is False
