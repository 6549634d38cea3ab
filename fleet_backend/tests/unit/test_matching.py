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
"""Unit tests for wildcard and dynamic-group matching."""

import pytest

from fleet_backend.app.domain.matching import connection_matches_rules, matches_wildcard
from fleet_backend.app.domain.models import (
    ConnectionType,
    GroupRule,
    OSType,
    ServerConnection,
)


def make_connection(**overrides) -> ServerConnection:
    fields = {"id": "c1", "name": "web-01", "hostname": "web-01.example.com"}
    fields.update(overrides)
    return ServerConnection(**fields)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("web-01.example.com", True),
        ("WEB-PROD", True),
        ("api-web", False),
        ("web", False),
    ],
)
def test_star_wildcard_is_anchored_and_case_insensitive(value, expected):
    assert matches_wildcard("web-*", value) is expected


def test_question_mark_matches_single_character():
    assert matches_wildcard("db-?", "db-1")
    assert not matches_wildcard("db-?", "db-12")


def test_regex_metacharacters_are_literal():
    assert matches_wildcard("db.(1)+", "db.(1)+")
    assert not matches_wildcard("db.(1)+", "dbx(1)")
    assert not matches_wildcard("db.(1)+", "db.11")


def test_any_value_may_match_and_empty_values_are_ignored():
    assert matches_wildcard("app*", None, "", "application")
    assert not matches_wildcard("app*", None, "")


def test_rule_hostname_pattern_checks_hostname_or_name():
    connection = make_connection(name="payments", hostname="10.0.0.5")
    assert connection_matches_rules(connection, [GroupRule(hostname_pattern="pay*")])
    assert connection_matches_rules(connection, [GroupRule(hostname_pattern="10.0.*")])
    assert not connection_matches_rules(
        connection, [GroupRule(hostname_pattern="web*")]
    )


def test_rule_os_types_skip_connections_without_os():
    rule = GroupRule(os_types=[OSType.LINUX])
    assert connection_matches_rules(make_connection(os_type=OSType.LINUX), [rule])
    assert connection_matches_rules(make_connection(os_type=None), [rule])
    assert not connection_matches_rules(make_connection(os_type=OSType.WINDOWS), [rule])


def test_rule_tags_match_any_of():
    connection = make_connection(tags=["env:prod", "team:core"])
    assert connection_matches_rules(connection, [GroupRule(tags=["env:dev", "team:core"])])
    assert not connection_matches_rules(connection, [GroupRule(tags=["env:dev"])])


def test_every_rule_must_match():
    connection = make_connection(
        provider_id="p1", connection_type=ConnectionType.SSH, os_type=OSType.LINUX
    )
    rules = [
        GroupRule(provider_id="p1"),
        GroupRule(connection_type=ConnectionType.SSH),
    ]
    assert connection_matches_rules(connection, rules)
    rules.append(GroupRule(provider_id="p2"))
    assert not connection_matches_rules(connection, rules)
