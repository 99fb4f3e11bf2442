import threading
import time

import pytest

from src.schemas.application import ArchivedApplication
from src.services.errors import Forbidden, NotFound, StoreIOError, Unauthorized, ValidationError


def test_submit_stores_pending_application(application_service, payload_factory):
    application = application_service.submit(payload_factory())

    assert application.id
    listed = application_service.list_active()
    assert [item.id for item in listed] == [application.id]
    assert listed[0].to_dict()["status"] == "pending"
    assert application_service.count_active() == 1


def test_submit_reports_field_errors_and_persists_nothing(application_service, payload_factory):
    with pytest.raises(ValidationError) as excinfo:
        application_service.submit(payload_factory(age=17, steamId="123"))

    assert excinfo.value.fields["age"] == "You must be at least 18 years old."
    assert excinfo.value.fields["steamId"] == "Invalid Steam ID. It should be a 17-digit number."
    assert application_service.list_active() == []


def test_submit_reports_missing_fields(application_service, payload_factory):
    payload = payload_factory()
    del payload["cfxAccount"]

    with pytest.raises(ValidationError) as excinfo:
        application_service.submit(payload)

    assert "cfxAccount" in excinfo.value.fields


def test_submit_copies_discord_profile(application_service, payload_factory):
    profile = {"id": "42", "username": "alice", "verified": True, "createdAt": "2020-01-01"}

    application = application_service.submit(payload_factory(), discord_profile=profile)
    profile["username"] = "changed"

    stored = application_service.get_active(application.id)
    assert stored.discord["username"] == "alice"
    assert stored.discord["createdAt"] == "2020-01-01"


def test_decide_moves_application_to_archive(application_service, payload_factory, admin_id):
    application = application_service.submit(payload_factory())

    archived = application_service.decide(
        application.id, "denied", reason="Backstory too short", actor_identity=admin_id
    )

    assert archived.status == "denied"
    assert archived.status_reason == "Backstory too short"
    assert archived.updated_at is not None
    assert application_service.list_active() == []

    listed = application_service.list_archived()
    assert [item.id for item in listed] == [application.id]
    assert listed[0].status == "denied"
    assert listed[0].status_reason == "Backstory too short"


def test_archived_fields_match_original(application_service, payload_factory, admin_id):
    application = application_service.submit(
        payload_factory(discordId="alice#0001"),
        discord_profile={"id": "42", "username": "alice"},
    )
    original = application_service.get_active(application.id)

    application_service.decide(application.id, "approved", actor_identity=admin_id)
    archived = application_service.list_archived()[0]

    status_keys = {"status", "statusReason", "updatedAt"}
    archived_fields = {k: v for k, v in archived.to_dict().items() if k not in status_keys}
    original_fields = {k: v for k, v in original.to_dict().items() if k not in status_keys}
    assert archived_fields == original_fields
    assert archived.status_reason == ""


def test_decide_twice_raises_not_found(application_service, payload_factory, admin_id):
    application = application_service.submit(payload_factory())
    application_service.decide(application.id, "approved", actor_identity=admin_id)

    with pytest.raises(NotFound):
        application_service.decide(application.id, "denied", actor_identity=admin_id)

    assert len(application_service.list_archived()) == 1
    assert application_service.list_archived()[0].status == "approved"


def test_decide_requires_admin(application_service, payload_factory, member_id):
    application = application_service.submit(payload_factory())

    with pytest.raises(Unauthorized):
        application_service.decide(application.id, "approved", actor_identity=None)

    with pytest.raises(Forbidden):
        application_service.decide(application.id, "approved", actor_identity=member_id)

    assert [item.id for item in application_service.list_active()] == [application.id]
    assert application_service.list_archived() == []


def test_decide_rejects_unknown_decision(application_service, payload_factory, admin_id):
    application = application_service.submit(payload_factory())

    with pytest.raises(ValidationError):
        application_service.decide(application.id, "pending", actor_identity=admin_id)

    assert application_service.get_active(application.id).id == application.id


def test_list_archived_rejects_unknown_status_filter(application_service):
    with pytest.raises(ValidationError):
        application_service.list_archived(status="pending")


def test_concurrent_decisions_on_same_id_succeed_once(application_service, payload_factory, admin_id):
    application = application_service.submit(payload_factory())
    outcomes = []
    barrier = threading.Barrier(4)

    def decide(decision):
        barrier.wait()
        try:
            application_service.decide(application.id, decision, actor_identity=admin_id)
            outcomes.append("ok")
        except NotFound:
            outcomes.append("not_found")

    threads = [
        threading.Thread(target=decide, args=("approved" if i % 2 else "denied",))
        for i in range(4)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["not_found", "not_found", "not_found", "ok"]
    assert len(application_service.list_archived()) == 1
    assert application_service.list_active() == []


def test_reconcile_drops_active_copy_of_archived_application(
    application_service, repositories, payload_factory
):
    _, archive = repositories
    stale = application_service.submit(payload_factory())
    kept = application_service.submit(payload_factory(username="Bobby"))

    # Crash after the archive append, before the active remove.
    archive.append(ArchivedApplication.from_application(stale, status="approved"))

    dropped = application_service.reconcile()

    assert dropped == [stale.id]
    assert [item.id for item in application_service.list_active()] == [kept.id]
    assert archive.get(stale.id).status == "approved"
    assert application_service.reconcile() == []


def test_scenario_submit_then_approve(application_service, payload_factory, admin_id):
    application = application_service.submit(payload_factory())
    assert application_service.list_active()[0].username == "Alice"

    application_service.decide(application.id, "approved", reason="", actor_identity=admin_id)

    assert application_service.list_active() == []
    archived = application_service.list_archived()
    assert archived[0].id == application.id
    assert archived[0].status == "approved"


def test_retry_after_failed_remove_returns_archived_decision(
    application_service, repositories, payload_factory, admin_id, monkeypatch
):
    repository, archive = repositories
    application = application_service.submit(payload_factory())
    real_remove = repository.remove

    def failing_remove(application_id):
        raise StoreIOError("database is locked")

    monkeypatch.setattr(repository, "remove", failing_remove)
    with pytest.raises(StoreIOError):
        application_service.decide(
            application.id, "denied", reason="Too short", actor_identity=admin_id
        )

    # Archive append committed before the failing remove.
    assert archive.get(application.id).status == "denied"
    assert repository.contains(application.id)

    monkeypatch.setattr(repository, "remove", real_remove)
    retried = application_service.decide(application.id, "approved", actor_identity=admin_id)

    assert retried.status == "denied"
    assert retried.status_reason == "Too short"
    assert application_service.list_active() == []
    assert [item.id for item in application_service.list_archived()] == [application.id]


def test_readers_see_each_application_in_exactly_one_store(
    application_service, repositories, payload_factory, admin_id, monkeypatch
):
    repository, archive = repositories
    ids = [application_service.submit(payload_factory()).id for _ in range(6)]
    real_append = archive.append

    def slow_append(archived):
        real_append(archived)
        time.sleep(0.01)

    monkeypatch.setattr(archive, "append", slow_append)

    done = threading.Event()
    violations = []

    def read_snapshots():
        while not done.is_set():
            with repository.lock:
                active = {item.id for item in application_service.list_active()}
                archived = [item.id for item in application_service.list_archived()]
            for application_id in ids:
                seen = (application_id in active) + archived.count(application_id)
                if seen != 1:
                    violations.append((application_id, seen))

    def decide_all(subset):
        for application_id in subset:
            application_service.decide(application_id, "approved", actor_identity=admin_id)

    readers = [threading.Thread(target=read_snapshots) for _ in range(2)]
    deciders = [threading.Thread(target=decide_all, args=(ids[i::2],)) for i in range(2)]
    for thread in readers + deciders:
        thread.start()
    for thread in deciders:
        thread.join()
    done.set()
    for thread in readers:
        thread.join()

    assert violations == []
    assert application_service.list_active() == []
    assert sorted(item.id for item in application_service.list_archived()) == sorted(ids)
