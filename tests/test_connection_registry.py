"""
Tests for the connection registry.

This module tests upsert semantics, lookups, lazy eviction, bulk clear
and concurrent access.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from lms_presence.managers.connection_registry import ConnectionRegistry
from tests.conftest import create_connection_data_fixture

PROFESOR = {
    "user_id": 7,
    "name": "Ana Torres",
    "email": "ana.torres@example.com",
    "role": "profesor",
}


class TestUpsert:
    """Tests for ConnectionRegistry.upsert."""

    def test_first_upsert_sets_both_timestamps(self, registry, clock):
        """A new session gets connected_at == last_activity == now."""
        record = registry.upsert("abc", create_connection_data_fixture())

        assert record.session_id == "abc"
        assert record.connected_at == clock.now
        assert record.last_activity == clock.now

    def test_second_upsert_keeps_connected_at(self, registry, clock):
        """Re-registering keeps connected_at and bumps last_activity."""
        first = registry.upsert("abc", create_connection_data_fixture())
        clock.advance(minutes=5)

        second = registry.upsert("abc", create_connection_data_fixture())

        assert second.connected_at == first.connected_at
        assert second.last_activity == clock.now
        assert second.connected_at < second.last_activity

    def test_upsert_replaces_all_fields(self, registry, clock):
        """Every non-timestamp field comes from the latest upsert."""
        registry.upsert(
            "abc",
            create_connection_data_fixture(
                ip="198.51.100.1",
                identity=PROFESOR,
                network_info={"isp": "First ISP", "city": "Quito"},
                user_agent="agent-1",
            ),
        )
        clock.advance(minutes=1)

        record = registry.upsert(
            "abc",
            create_connection_data_fixture(
                ip="198.51.100.2",
                network_info={"isp": "Second ISP"},
                user_agent="agent-2",
            ),
        )

        assert record.ip == "198.51.100.2"
        assert record.user_agent == "agent-2"
        assert record.network_info == {"isp": "Second ISP"}

    def test_upsert_without_identity_clears_known_identity(self, registry):
        """Full replace: an anonymous registration drops the old identity."""
        registry.upsert(
            "abc", create_connection_data_fixture(identity=PROFESOR)
        )

        record = registry.upsert("abc", create_connection_data_fixture())

        assert record.identity is None
        assert record.user_id is None
        assert record.user_name is None
        assert registry.get("abc").is_anonymous

    def test_upsert_rejects_empty_session_id(self, registry):
        with pytest.raises(ValueError):
            registry.upsert("", create_connection_data_fixture())

        assert registry.count() == 0

    def test_network_info_stored_verbatim(self, registry):
        payload = {"lat": 1, "nested": {"tags": ["a", "b"]}, "is_vpn": True}

        record = registry.upsert(
            "abc", create_connection_data_fixture(network_info=payload)
        )

        assert record.network_info == payload

    def test_caller_payload_not_shared_with_table(self, registry):
        payload = {"isp": "Example ISP", "nested": {"tags": ["a"]}}
        registry.upsert(
            "abc", create_connection_data_fixture(network_info=payload)
        )

        payload["isp"] = "Changed"
        payload["nested"]["tags"].append("b")

        assert registry.get("abc").network_info == {
            "isp": "Example ISP",
            "nested": {"tags": ["a"]},
        }

    @pytest.mark.parametrize("read", ["upsert", "get", "list_active"])
    def test_returned_records_not_shared_with_table(self, registry, read):
        data = create_connection_data_fixture(
            network_info={"isp": "Example ISP", "nested": {"tags": ["a"]}}
        )
        upserted = registry.upsert("abc", data)

        if read == "upsert":
            record = upserted
        elif read == "get":
            record = registry.get("abc")
        else:
            record = registry.list_active()[0]

        record.network_info["isp"] = "Changed"
        record.network_info["nested"]["tags"].append("b")

        assert registry.get("abc").network_info == {
            "isp": "Example ISP",
            "nested": {"tags": ["a"]},
        }


class TestReads:
    """Tests for get, list_active, count and remove."""

    def test_get_unknown_session(self, registry):
        assert registry.get("never-seen") is None

    def test_get_returns_record(self, registry):
        registry.upsert(
            "abc", create_connection_data_fixture(identity=PROFESOR)
        )

        record = registry.get("abc")

        assert record is not None
        assert record.user_id == 7
        assert record.user_role == "profesor"

    def test_count_distinct_sessions(self, registry):
        for i in range(7):
            registry.upsert(f"session-{i}", create_connection_data_fixture())

        assert registry.count() == 7

    def test_count_same_session_twice(self, registry):
        registry.upsert("abc", create_connection_data_fixture())
        registry.upsert("abc", create_connection_data_fixture())

        assert registry.count() == 1

    def test_list_active(self, registry):
        registry.upsert("a", create_connection_data_fixture())
        registry.upsert("b", create_connection_data_fixture())

        session_ids = {record.session_id for record in registry.list_active()}

        assert session_ids == {"a", "b"}

    def test_remove_existing(self, registry):
        registry.upsert("abc", create_connection_data_fixture())

        assert registry.remove("abc") is True
        assert registry.get("abc") is None

    def test_remove_missing_is_noop(self, registry):
        registry.upsert("abc", create_connection_data_fixture())

        assert registry.remove("other") is False
        assert registry.count() == 1


class TestClearAll:
    """Tests for ConnectionRegistry.clear_all."""

    def test_clear_all_returns_count(self, registry):
        for i in range(3):
            registry.upsert(f"session-{i}", create_connection_data_fixture())

        assert registry.clear_all() == 3
        assert registry.count() == 0

    def test_second_clear_returns_zero(self, registry):
        registry.upsert("abc", create_connection_data_fixture())

        registry.clear_all()

        assert registry.clear_all() == 0

    def test_clear_all_includes_stale_records(self, registry, clock):
        """Stale records not yet swept are counted by clear_all."""
        registry.upsert("old", create_connection_data_fixture())
        clock.advance(minutes=61)
        registry.upsert("new", create_connection_data_fixture())

        assert registry.clear_all() == 2


class TestEviction:
    """Tests for lazy staleness eviction."""

    @pytest.mark.parametrize("read", ["get", "list_active", "count"])
    def test_read_hides_and_deletes_stale_record(self, registry, clock, read):
        registry.upsert("abc", create_connection_data_fixture())
        clock.advance(minutes=61)

        if read == "get":
            assert registry.get("abc") is None
        elif read == "list_active":
            assert registry.list_active() == []
        else:
            assert registry.count() == 0

        # Physically deleted, not just hidden
        assert "abc" not in registry._connections
        assert registry.get("abc") is None

    def test_exactly_threshold_is_not_stale(self, registry, clock):
        """A record is stale only when idle for MORE than the threshold."""
        registry.upsert("abc", create_connection_data_fixture())
        clock.advance(minutes=60)

        assert registry.get("abc") is not None

    def test_heartbeat_keeps_record_alive(self, registry, clock):
        registry.upsert("abc", create_connection_data_fixture())
        clock.advance(minutes=50)
        registry.upsert("abc", create_connection_data_fixture())
        clock.advance(minutes=50)

        assert registry.get("abc") is not None

    def test_sweep_runs_every_nth_upsert(self, clock):
        registry = ConnectionRegistry(sweep_every=10, clock=clock)
        for i in range(5):
            registry.upsert(f"old-{i}", create_connection_data_fixture())
        clock.advance(minutes=61)

        for i in range(4):
            registry.upsert(f"new-{i}", create_connection_data_fixture())
        # 9 records: no sweep yet
        assert len(registry._connections) == 9

        registry.upsert("new-4", create_connection_data_fixture())
        # 10th record triggers the sweep
        assert len(registry._connections) == 5
        assert all(sid.startswith("new-") for sid in registry._connections)

    def test_explicit_sweep(self, registry, clock):
        registry.upsert("old", create_connection_data_fixture())
        clock.advance(minutes=61)
        registry.upsert("new", create_connection_data_fixture())

        assert registry.sweep() == 1
        assert registry.sweep() == 0
        assert set(registry._connections) == {"new"}

    def test_custom_threshold(self, clock):
        registry = ConnectionRegistry(
            stale_after=timedelta(minutes=5), clock=clock
        )
        registry.upsert("abc", create_connection_data_fixture())
        clock.advance(minutes=6)

        assert registry.get("abc") is None

    def test_invalid_sweep_every(self, clock):
        with pytest.raises(ValueError):
            ConnectionRegistry(sweep_every=0, clock=clock)


class TestConcurrency:
    """Tests for concurrent access to the registry."""

    def test_concurrent_upserts_same_session_are_atomic(self, registry):
        variants = [
            create_connection_data_fixture(
                ip="198.51.100.1", identity=PROFESOR, user_agent="teacher-agent"
            ),
            create_connection_data_fixture(
                ip="198.51.100.2", identity=None, user_agent="anon-agent"
            ),
        ]
        first = registry.upsert("abc", variants[0])

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(
                pool.map(
                    lambda i: registry.upsert("abc", variants[i % 2]),
                    range(400),
                )
            )

        record = registry.get("abc")
        assert (record.ip, record.user_agent, record.user_role) in {
            ("198.51.100.1", "teacher-agent", "profesor"),
            ("198.51.100.2", "anon-agent", None),
        }
        assert record.connected_at == first.connected_at
        assert registry.count() == 1

    def test_concurrent_upserts_distinct_sessions(self, registry):
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(
                pool.map(
                    lambda i: registry.upsert(
                        f"session-{i}", create_connection_data_fixture()
                    ),
                    range(200),
                )
            )

        assert registry.count() == 200


def test_end_to_end_session_lifecycle(registry, clock):
    """Anonymous registration, identified re-registration, then expiry."""
    anonymous = registry.upsert(
        "abc", create_connection_data_fixture(network_info={"lat": 1})
    )
    assert anonymous.user_id is None
    assert anonymous.connected_at == anonymous.last_activity

    clock.advance(minutes=5)
    identified = registry.upsert(
        "abc",
        create_connection_data_fixture(
            identity=PROFESOR, network_info={"lat": 1}
        ),
    )
    assert identified.connected_at == anonymous.connected_at
    assert identified.last_activity == clock.now
    assert identified.user_id == 7
    assert identified.user_name == "Ana Torres"

    clock.advance(minutes=61)
    assert registry.get("abc") is None
    assert registry.count() == 0
