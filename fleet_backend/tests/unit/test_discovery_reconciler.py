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
"""Unit tests for provider inventory reconciliation."""

import threading
import time

from fleet_backend.app.application.discovery_reconciler import (
    DiscoveryReconciler,
    ProviderLocks,
)
from fleet_backend.app.domain.models import DiscoveredHost, HostState
from fleet_backend.app.infrastructure.in_memory_discovery_store import (
    InMemoryDiscoveredHostStore,
)


def host(provider_host_id: str, state=HostState.RUNNING, **fields) -> DiscoveredHost:
    return DiscoveredHost(
        id=f"id-{provider_host_id}",
        provider_id="p1",
        provider_host_id=provider_host_id,
        name=fields.pop("name", provider_host_id),
        state=state,
        **fields,
    )


def test_first_sync_reports_every_host_as_new():
    store = InMemoryDiscoveredHostStore()
    reconciler = DiscoveryReconciler(store)

    result = reconciler.sync("p1", "lab", [host("a"), host("b")])

    assert result.success is True
    assert sorted(h.provider_host_id for h in result.new_hosts) == ["a", "b"]
    assert result.summary.total == 2
    assert result.summary.new == 2
    assert result.summary.existing == 0
    assert len(store.list_for_provider("p1")) == 2


def test_state_change_is_reported_and_stored():
    store = InMemoryDiscoveredHostStore()
    reconciler = DiscoveryReconciler(store)
    reconciler.sync("p1", "lab", [host("a"), host("b")])

    result = reconciler.sync("p1", "lab", [host("a", HostState.STOPPED), host("b")])

    assert result.summary.new == 0
    assert result.summary.existing == 2
    assert result.summary.changed == 1
    change = result.changed_hosts[0]
    assert change.host.provider_host_id == "a"
    assert change.previous_state == HostState.RUNNING
    assert change.current_state == HostState.STOPPED
    stored = {h.provider_host_id: h for h in store.list_for_provider("p1")}
    assert stored["a"].state == HostState.STOPPED


def test_removed_hosts_are_reported_but_kept():
    store = InMemoryDiscoveredHostStore()
    reconciler = DiscoveryReconciler(store)
    reconciler.sync("p1", "lab", [host("a"), host("b")])

    result = reconciler.sync("p1", "lab", [host("a")])

    assert [h.provider_host_id for h in result.removed_hosts] == ["b"]
    assert result.summary.removed == 1
    assert result.summary.total == 1
    assert sorted(h.provider_host_id for h in store.list_for_provider("p1")) == [
        "a",
        "b",
    ]


def test_repeated_sync_with_same_listing_is_idempotent():
    store = InMemoryDiscoveredHostStore()
    reconciler = DiscoveryReconciler(store)
    listing = [host("a"), host("b", HostState.STOPPED)]
    reconciler.sync("p1", "lab", listing)

    result = reconciler.sync("p1", "lab", listing)

    assert result.summary.new == 0
    assert result.summary.removed == 0
    assert result.summary.changed == 0
    assert result.summary.existing == 2


def test_new_existing_and_removed_partition_the_union_of_ids():
    store = InMemoryDiscoveredHostStore()
    reconciler = DiscoveryReconciler(store)
    reconciler.sync("p1", "lab", [host("a"), host("b"), host("c")])

    result = reconciler.sync("p1", "lab", [host("b"), host("c"), host("d")])

    new = {h.provider_host_id for h in result.new_hosts}
    existing = {h.provider_host_id for h in result.existing_hosts}
    removed = {h.provider_host_id for h in result.removed_hosts}
    assert new == {"d"}
    assert existing == {"b", "c"}
    assert removed == {"a"}
    assert new | existing | removed == {"a", "b", "c", "d"}
    assert not (new & existing or new & removed or existing & removed)


def test_resync_keeps_stored_identity_and_import_linkage():
    store = InMemoryDiscoveredHostStore()
    reconciler = DiscoveryReconciler(store)
    first = reconciler.sync("p1", "lab", [host("a")]).new_hosts[0]
    store.mark_imported(first.id, "conn-1")

    result = reconciler.sync(
        "p1", "lab", [DiscoveredHost(id="fresh", provider_id="p1", provider_host_id="a", name="renamed")]
    )

    stored = result.existing_hosts[0]
    assert stored.id == first.id
    assert stored.name == "renamed"
    assert stored.imported is True
    assert stored.connection_id == "conn-1"
    assert stored.discovered_at == first.discovered_at
    assert result.summary.imported == 1


def test_duplicate_ids_in_one_listing_collapse_to_last_record():
    store = InMemoryDiscoveredHostStore()
    reconciler = DiscoveryReconciler(store)

    result = reconciler.sync(
        "p1", "lab", [host("a", name="first"), host("a", name="second")]
    )

    assert result.summary.total == 1
    assert result.new_hosts[0].name == "second"


def test_providers_are_reconciled_independently():
    store = InMemoryDiscoveredHostStore()
    reconciler = DiscoveryReconciler(store)
    reconciler.sync("p1", "lab", [host("a")])

    result = reconciler.sync("p2", "cloud", [])

    assert result.summary.removed == 0
    assert len(store.list_for_provider("p1")) == 1


def test_syncs_for_the_same_provider_are_serialized():
    active = 0
    max_active = 0
    guard = threading.Lock()

    class SlowStore(InMemoryDiscoveredHostStore):
        def list_for_provider(self, provider_id):
            nonlocal active, max_active
            with guard:
                active += 1
                max_active = max(max_active, active)
            time.sleep(0.05)
            with guard:
                active -= 1
            return super().list_for_provider(provider_id)

    store = SlowStore()
    reconciler = DiscoveryReconciler(store, ProviderLocks())
    results = []
    threads = [
        threading.Thread(
            target=lambda: results.append(reconciler.sync("p1", "lab", [host("a")]))
        )
        for _ in range(3)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert max_active == 1
    assert sorted(r.summary.new for r in results) == [0, 0, 1]


def test_provider_locks_are_per_provider():
    locks = ProviderLocks()

    assert locks.lock_for("p1") is locks.lock_for("p1")
    assert locks.lock_for("p1") is not locks.lock_for("p2")
