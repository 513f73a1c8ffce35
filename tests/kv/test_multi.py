"""Tests for the multi-store aggregator."""

import logging

import pytest

from sealstore.errors import (
    DecryptionError,
    NotFoundError,
    PartialReplicationError,
    UnavailableError,
)
from sealstore.kms.base import EnvelopeService
from sealstore.kms.fernet import FernetKeyManager
from sealstore.kv.memory import MemoryService
from sealstore.kv.multi import MultiService


@pytest.fixture
def members(flaky):
    return [flaky("eu"), flaky("us"), flaky("ap")]


@pytest.fixture(params=[False, True], ids=["sequential", "parallel"])
def store(request, members):
    return MultiService(members, parallel=request.param)


def test_requires_members():
    with pytest.raises(ValueError):
        MultiService([])


def test_set_writes_every_member(store, members):
    store.set("vault-root", b"t")

    assert all(m.backing.get("vault-root") == b"t" for m in members)


def test_get_prefers_first_member(members):
    store = MultiService(members)
    members[0].backing.set("k", b"first")
    members[1].backing.set("k", b"second")

    assert store.get("k") == b"first"
    assert members[1].calls == []


def test_get_falls_back_over_unavailable_member(members):
    store = MultiService(members)
    store.set("k", b"v")
    members[0].fail = True

    assert store.get("k") == b"v"


def test_get_served_by_only_reachable_member(members, caplog):
    eu, us, ap = members
    eu.fail = True
    us.fail = True
    ap.backing.set("vault-unseal-0", b"share")
    store = MultiService(members)

    with caplog.at_level(logging.WARNING, logger="sealstore.kv.multi"):
        assert store.get("vault-unseal-0") == b"share"

    skipped = [r.getMessage() for r in caplog.records if "Skipping" in r.getMessage()]
    assert len(skipped) == 2
    assert any("eu" in message for message in skipped)
    assert any("us" in message for message in skipped)
    assert eu.calls == ["get"]
    assert us.calls == ["get"]


def test_get_skips_member_missing_the_key(members):
    store = MultiService(members)
    members[2].backing.set("k", b"only-ap")

    assert store.get("k") == b"only-ap"


def test_get_all_not_found(members):
    store = MultiService(members)

    with pytest.raises(NotFoundError) as exc_info:
        store.get("k")

    assert set(exc_info.value.failures) == {"eu", "us", "ap"}


def test_get_not_found_and_unavailable_is_unavailable(members):
    store = MultiService(members)
    members[1].fail = True

    with pytest.raises(UnavailableError) as exc_info:
        store.get("k")

    assert isinstance(exc_info.value.failures["eu"], NotFoundError)
    assert isinstance(exc_info.value.failures["us"], UnavailableError)


def test_get_skips_undecryptable_member():
    writer = FernetKeyManager()
    stranger = FernetKeyManager()
    a, b = MemoryService(), MemoryService()
    EnvelopeService(a, stranger).set("k", b"v")
    EnvelopeService(b, writer).set("k", b"v")

    store = MultiService([EnvelopeService(a, writer), EnvelopeService(b, writer)])

    assert store.get("k") == b"v"


def test_get_every_member_undecryptable(fernet):
    backing = MemoryService({"k": b"not a fernet token"})
    store = MultiService([EnvelopeService(backing, fernet)])

    with pytest.raises(DecryptionError):
        store.get("k")


def test_set_partial_failure_reports_every_member(store, members):
    members[1].fail = True

    with pytest.raises(PartialReplicationError) as exc_info:
        store.set("k", b"v")

    assert list(exc_info.value.failures) == ["us"]
    # Healthy members were still written
    assert members[0].backing.get("k") == b"v"
    assert members[2].backing.get("k") == b"v"


def test_set_attempts_all_members_after_failure(store, members):
    members[0].fail = True
    members[2].fail = True

    with pytest.raises(PartialReplicationError) as exc_info:
        store.set("k", b"v")

    assert set(exc_info.value.failures) == {"eu", "ap"}
    assert members[1].calls == ["set"]


def test_delete_twice_succeeds(store, members):
    store.set("k", b"v")

    store.delete("k")
    store.delete("k")

    assert all(not m.backing.exists("k") for m in members)


def test_delete_partial_failure(store, members):
    members[2].fail = True

    with pytest.raises(PartialReplicationError):
        store.delete("k")


def test_list_is_union_of_reachable_members(members):
    store = MultiService(members)
    members[0].backing.set("a", b"1")
    members[1].backing.set("b", b"2")
    members[2].backing.set("c", b"3")
    members[2].fail = True

    assert store.list() == ["a", "b"]


def test_list_every_member_down(members):
    store = MultiService(members)
    for m in members:
        m.fail = True

    with pytest.raises(UnavailableError):
        store.list()


def test_duplicate_member_names_are_disambiguated(flaky):
    store = MultiService([flaky("s3"), flaky("s3")])

    assert store.name == "multi(s3 #0, s3 #1)"


def test_close_closes_every_member(store, members):
    store.close()

    assert all(m.closed for m in members)
