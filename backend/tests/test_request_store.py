"""SqlRequestStore against SQLite: ownership, stamps, versions and comment appends."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from hostdesk.models.request import RequestComment
from hostdesk.services.errors import (
    FieldValidationError,
    RequestNotFound,
    SubdomainUnavailable,
    VersionConflict,
    WriteDenied,
)
from hostdesk.services.request_store import NewComment, SqlRequestStore
from hostdesk.utils.clock import ensure_utc, utcnow

from helpers import ADMIN, OTHER, OWNER, OWNER_ID, make_file_sessionmaker, request_payload


def _fields(**overrides):
    fields = request_payload(**overrides)
    fields.setdefault("user_id", OWNER_ID)
    fields.setdefault("status", "Pending")
    return fields


def test_create_assigns_id_and_created_at(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields(subdomain="bakery1"))

    record = store.get_by_id(OWNER, request_id)
    assert str(record.id) == request_id
    assert record.created_at is not None
    assert record.updated_at is None
    assert record.row_version == 1
    assert record.status == "Pending"


def test_create_for_another_user_is_denied(db_session):
    store = SqlRequestStore(db_session)
    with pytest.raises(WriteDenied):
        store.create(OTHER, _fields())


def test_create_reports_missing_required_fields(db_session):
    store = SqlRequestStore(db_session)
    fields = _fields()
    fields["whatsapp"] = ""
    with pytest.raises(FieldValidationError) as excinfo:
        store.create(OWNER, fields)
    assert excinfo.value.field == "whatsapp"


def test_unique_index_rejects_duplicate_subdomain(db_session):
    store = SqlRequestStore(db_session)
    store.create(OWNER, _fields(subdomain="shopify"))
    with pytest.raises(SubdomainUnavailable) as excinfo:
        store.create(OWNER, _fields(subdomain="shopify"))
    assert excinfo.value.availability == "TAKEN"
    assert len(store.query_by_owner(OWNER_ID)) == 1


def test_get_by_id_enforces_ownership(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())

    with pytest.raises(WriteDenied):
        store.get_by_id(OTHER, request_id)
    assert str(store.get_by_id(ADMIN, request_id).id) == request_id


def test_unknown_or_malformed_id_is_not_found(db_session):
    store = SqlRequestStore(db_session)
    with pytest.raises(RequestNotFound):
        store.get_by_id(ADMIN, "not-a-uuid")
    with pytest.raises(RequestNotFound):
        store.get_by_id(ADMIN, "00000000-0000-0000-0000-000000000000")


def test_update_stamps_and_bumps_version(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())

    record = store.update_by_id(ADMIN, request_id, {"status": "In Progress"})
    assert record.status == "In Progress"
    assert record.row_version == 2
    assert ensure_utc(record.created_at) <= ensure_utc(record.updated_at)


def test_updated_at_never_moves_backwards(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())
    first = ensure_utc(store.update_by_id(ADMIN, request_id, {"status": "In Progress"}).updated_at)

    skewed = first - timedelta(minutes=5)
    with patch("hostdesk.services.request_store.utcnow", return_value=skewed):
        second = ensure_utc(store.update_by_id(ADMIN, request_id, {"status": "Active"}).updated_at)
    assert second >= first


def test_stale_expected_version_conflicts(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())
    store.update_by_id(ADMIN, request_id, {"status": "In Progress"}, expected_version=1)

    with pytest.raises(VersionConflict):
        store.update_by_id(ADMIN, request_id, {"status": "Rejected"}, expected_version=1)
    assert store.get_by_id(ADMIN, request_id).status == "In Progress"


def test_non_updatable_fields_are_rejected(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())
    with pytest.raises(FieldValidationError):
        store.update_by_id(ADMIN, request_id, {"user_id": "someone-else"})


def test_watermark_never_trails_last_update(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())
    store.update_by_id(ADMIN, request_id, {"status": "In Progress"})
    stale = utcnow() - timedelta(hours=1)

    record = store.update_by_id(OWNER, request_id, {"last_viewed_by_client": stale})
    assert ensure_utc(record.last_viewed_by_client) >= ensure_utc(record.updated_at)


def test_watermark_write_keeps_version_and_stamp(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())
    updated = store.update_by_id(ADMIN, request_id, {"status": "In Progress"})
    version, stamp = updated.row_version, ensure_utc(updated.updated_at)

    record = store.update_by_id(OWNER, request_id, {"last_viewed_by_client": utcnow()})
    assert record.row_version == version
    assert ensure_utc(record.updated_at) == stamp
    # An admin holding the pre-view version can still write.
    store.update_by_id(ADMIN, request_id, {"status": "Active"}, expected_version=version)


def test_expected_version_is_checked_against_the_database(tmp_path):
    engine, SessionLocal = make_file_sessionmaker(tmp_path / "cas.db")
    first, second = SessionLocal(), SessionLocal()
    try:
        request_id = SqlRequestStore(first).create(OWNER, _fields())
        store_a, store_b = SqlRequestStore(first), SqlRequestStore(second)
        seen = store_a.get_by_id(ADMIN, request_id).row_version

        store_b.update_by_id(ADMIN, request_id, {"status": "Rejected"})

        with pytest.raises(VersionConflict):
            store_a.append_comment(
                OWNER,
                request_id,
                NewComment("Ada Obi", OWNER_ID, "late"),
                fields={"status": "New Update"},
                expected_version=seen,
            )
        record = store_a.get_by_id(ADMIN, request_id)
        assert record.status == "Rejected"
        assert list(record.comments) == []
    finally:
        first.close()
        second.close()
        engine.dispose()


def test_query_all_is_admin_only_and_newest_first(db_session):
    store = SqlRequestStore(db_session)
    older = store.create(OWNER, _fields())
    newer = store.create(OWNER, _fields())

    with pytest.raises(WriteDenied):
        store.query_all(OWNER)
    ids = [str(r.id) for r in store.query_all(ADMIN)]
    assert ids.index(newer) < ids.index(older)


def test_append_comment_keeps_existing_thread(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())

    store.append_comment(OWNER, request_id, NewComment("Ada Obi", OWNER_ID, "first"))
    record = store.append_comment(
        ADMIN,
        request_id,
        NewComment("Support Team", ADMIN.user_id, "second"),
        fields={"status": "In Progress"},
    )
    assert [c.text for c in record.comments] == ["first", "second"]
    assert record.status == "In Progress"
    assert record.row_version == 3


def test_append_comment_by_stranger_is_denied(db_session):
    store = SqlRequestStore(db_session)
    request_id = store.create(OWNER, _fields())
    with pytest.raises(WriteDenied):
        store.append_comment(OTHER, request_id, NewComment("User", OTHER.user_id, "hi"))
    assert db_session.query(RequestComment).count() == 0


def test_concurrent_appends_from_separate_sessions_both_survive(tmp_path):
    engine, SessionLocal = make_file_sessionmaker(tmp_path / "race.db")
    first, second = SessionLocal(), SessionLocal()
    try:
        request_id = SqlRequestStore(first).create(OWNER, _fields())

        store_a = SqlRequestStore(first)
        store_b = SqlRequestStore(second)
        # Both sides read the request before either writes.
        store_a.get_by_id(OWNER, request_id)
        store_b.get_by_id(ADMIN, request_id)

        store_a.append_comment(OWNER, request_id, NewComment("Ada Obi", OWNER_ID, "from owner"))
        store_b.append_comment(ADMIN, request_id, NewComment("Support Team", ADMIN.user_id, "from admin"))

        verify = SessionLocal()
        try:
            texts = sorted(c.text for c in SqlRequestStore(verify).get_by_id(ADMIN, request_id).comments)
        finally:
            verify.close()
        assert texts == ["from admin", "from owner"]
    finally:
        first.close()
        second.close()
        engine.dispose()
