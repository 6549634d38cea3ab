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
"""Wildcard and dynamic-group matching shared by resolvers."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

from .models import GroupRule, ServerConnection


@lru_cache(maxsize=256)
def wildcard_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile an anchored, case-insensitive regex from a ``*``/``?`` wildcard.

    Everything except the two wildcard characters is matched literally.
    """
    escaped = re.escape(pattern.strip())
    translated = escaped.replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{translated}$", re.IGNORECASE | re.DOTALL)


def matches_wildcard(pattern: str, *values: Optional[str]) -> bool:
    """Return True if any non-empty value matches the wildcard pattern."""
    regex = wildcard_to_regex(pattern)
    return any(value and regex.match(value) for value in values)


def _matches_rule(connection: ServerConnection, rule: GroupRule) -> bool:
    if rule.hostname_pattern and not matches_wildcard(
        rule.hostname_pattern, connection.hostname, connection.name
    ):
        return False
    # Connections without a known OS are not excluded by an OS criterion.
    if rule.os_types and connection.os_type and connection.os_type not in rule.os_types:
        return False
    if rule.tags and not any(tag in connection.tags for tag in rule.tags):
        return False
    if rule.provider_id and connection.provider_id != rule.provider_id:
        return False
    if rule.connection_type and connection.connection_type != rule.connection_type:
        return False
    return True


def connection_matches_rules(
    connection: ServerConnection, rules: list[GroupRule]
) -> bool:
    """A connection belongs to a dynamic group when it matches every rule."""
    return all(_matches_rule(connection, rule) for rule in rules)
