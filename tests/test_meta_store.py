import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import insert, select
from structlog.testing import capture_logs

from lfs_metadata import MetaObject, RequestVars
from lfs_metadata.database.models import ObjectRecord
from lfs_metadata.metadata import (
    MetadataStore, AuthError, BucketNotFound, ObjectNotFound,
    DecodeError, EncodeError, StoreUnavailable,
)
from lfs_metadata.metadata.auth import allow_all, deny_all


def drop_bucket(store, name):
    with store._db.transaction(write=True) as conn:
        conn.exec_driver_sql(f"DROP TABLE {name}")


def write_raw(store, oid, value):
    with store._db.transaction(write=True) as conn:
        conn.execute(insert(ObjectRecord).values(oid=oid, value=value))


def read_raw(store, oid):
    with store._db.transaction() as conn:
        return conn.execute(select(ObjectRecord.value).where(ObjectRecord.oid == oid)).scalar()


def test_put_then_get_round_trip(store):
    created = store.put("token", "abc123", 42)
    assert created == MetaObject(oid="abc123", size=42, existing=False)

    fetched = store.get("token", "abc123")
    assert fetched.oid == "abc123"
    assert fetched.size == 42
    assert fetched.existing is False


def test_put_existing_oid_keeps_original_size(store):
    first = store.put("token", "oid1", 100)
    second = store.put("token", "oid1", 999)

    assert (first.size, first.existing) == (100, False)
    assert (second.size, second.existing) == (100, True)
    assert store.get("token", "oid1").size == 100
    assert [m.oid for m in store.objects()] == ["oid1"]


def test_get_unknown_oid_raises_and_logs(store, recorder):
    with pytest.raises(ObjectNotFound) as exc:
        store.get("token", "missing")

    assert exc.value.oid == "missing"
    errors = recorder.errors()
    assert len(errors) == 1
    assert errors[0]["operation"] == "meta_store"
    assert "missing" in errors[0]["message"]


def test_default_logger_reports_lookup_miss(db_path):
    with capture_logs() as logs:
        with MetadataStore(db_path, authenticator=allow_all) as s:
            with pytest.raises(ObjectNotFound):
                s.get("token", "missing")

    failures = [e for e in logs if e["log_level"] == "error"]
    assert len(failures) == 1
    assert failures[0]["operation"] == "meta_store"
    assert failures[0]["message"] == "Object not found: missing"
    assert failures[0]["db_path"] == db_path


def test_put_new_oid_does_not_log_lookup_miss(store, recorder):
    store.put("token", "fresh", 1)
    assert recorder.errors() == []


@pytest.mark.parametrize("verdict", [deny_all, lambda cred: None, lambda cred: "yes"])
def test_failed_authentication_never_touches_storage(db_path, recorder, verdict):
    with MetadataStore(db_path, authenticator=verdict, logger=recorder) as s:
        with pytest.raises(AuthError):
            s.put("bad", "oid1", 10)
        with pytest.raises(AuthError):
            s.get("bad", "oid1")
        assert s.objects() == []
    assert recorder.errors() == []


def test_authenticator_receives_credential(db_path):
    seen = []

    def authenticate(cred):
        seen.append(cred)
        return True

    with MetadataStore(db_path, authenticator=authenticate) as s:
        s.put("Basic abc", "oid1", 1)
        s.get("Basic abc", "oid1")
    assert seen and set(seen) == {"Basic abc"}


def test_empty_store_listings(store):
    assert store.users() == []
    assert store.objects() == []


def test_objects_listing_is_ordered_by_oid(store):
    for oid, size in [("c", 3), ("a", 1), ("b", 2)]:
        store.put("token", oid, size)
    assert [(m.oid, m.size) for m in store.objects()] == [("a", 1), ("b", 2), ("c", 3)]
    assert all(not m.existing for m in store.objects())


def test_request_vars_helpers(store):
    v = RequestVars(oid="abc123", size=42, authorization="token", user="bob", repo="repo")
    assert store.put_request(v).existing is False
    assert store.put_request(v).existing is True
    assert store.get_request(v).size == 42


def test_missing_objects_bucket(store, recorder):
    drop_bucket(store, "objects")

    with pytest.raises(BucketNotFound) as exc:
        store.get("token", "oid1")
    assert exc.value.bucket == "objects"
    assert recorder.errors()[0]["operation"] == "meta_store"

    with pytest.raises(BucketNotFound):
        store.put("token", "oid1", 5)
    errors = recorder.errors()
    assert len(errors) == 2
    assert errors[1]["operation"] == "meta_store"
    assert "objects" in errors[1]["message"]

    with pytest.raises(BucketNotFound):
        store.objects()


def test_reopen_recreates_missing_buckets(db_path, store):
    drop_bucket(store, "objects")
    store.close()

    with MetadataStore(db_path, authenticator=lambda c: True) as reopened:
        assert reopened.objects() == []


def test_corrupt_record_surfaces_decode_error(store):
    store.put("token", "good", 1)
    write_raw(store, "bad", b"\x00not json")

    with pytest.raises(DecodeError):
        store.get("token", "bad")
    with pytest.raises(DecodeError):
        store.objects()

    # put must not overwrite a record it failed to read
    with pytest.raises(DecodeError):
        store.put("token", "bad", 7)
    assert read_raw(store, "bad") == b"\x00not json"


def test_empty_value_reads_as_missing_and_can_be_replaced(store):
    write_raw(store, "hollow", b"")

    with pytest.raises(ObjectNotFound):
        store.get("token", "hollow")

    created = store.put("token", "hollow", 12)
    assert created.existing is False
    assert store.get("token", "hollow").size == 12


@pytest.mark.parametrize("size", ["12", 1.5, True, None])
def test_put_rejects_unencodable_size(store, size):
    with pytest.raises(EncodeError):
        store.put("token", "oid1", size)
    assert store.objects() == []


def test_close_is_idempotent_and_blocks_further_use(store):
    store.put("token", "oid1", 1)
    store.close()
    store.close()

    assert store.closed
    with pytest.raises(StoreUnavailable):
        store.get("token", "oid1")
    with pytest.raises(StoreUnavailable):
        store.users()


def test_open_fails_fast_when_locked(db_path):
    MetadataStore(db_path, authenticator=lambda c: True).close()

    holder = sqlite3.connect(db_path, isolation_level=None)
    try:
        holder.execute("BEGIN EXCLUSIVE")
        with pytest.raises(StoreUnavailable):
            MetadataStore(db_path, open_timeout=0.2)
    finally:
        holder.execute("ROLLBACK")
        holder.close()


def test_open_unwritable_location(tmp_path):
    with pytest.raises(StoreUnavailable):
        MetadataStore(str(tmp_path / "missing" / "dir" / "lfs.db"))


def test_concurrent_puts_create_exactly_once(db_path):
    with MetadataStore(db_path, authenticator=lambda c: True, open_timeout=5) as s:
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda size: s.put("token", "shared", size), range(1, 17)))

        assert len({m.size for m in results}) == 1
        assert sum(1 for m in results if not m.existing) == 1
        assert s.get("token", "shared").size == results[0].size
