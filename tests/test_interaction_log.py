from __future__ import annotations

import importlib
import sys
from types import SimpleNamespace

import pytest


def _reload_interaction_log(monkeypatch, **env):
    for key, value in env.items():
        if value is None:
            monkeypatch.delenv(key, raising=False)
        else:
            monkeypatch.setenv(key, value)
    sys.modules.pop("interaction_log", None)
    module = importlib.import_module("interaction_log")
    return module


class FakeDocumentRef:
    def __init__(self, store: dict, collection: str, doc_id: str):
        self._store = store
        self._collection = collection
        self.id = doc_id

    def set(self, data: dict, merge: bool = False) -> None:
        bucket = self._store.setdefault(self._collection, {})
        if merge and self.id in bucket:
            bucket[self.id] = {**bucket[self.id], **data}
        else:
            bucket[self.id] = dict(data)


class FakeQuery:
    def stream(self):  # pragma: no cover - deterministic empty iterator
        return []


class FakeCollection:
    def __init__(self, store: dict, name: str):
        self._store = store
        self._name = name

    def document(self, doc_id: str | None = None):
        if doc_id is None:
            doc_id = f"doc{len(self._store.get(self._name, {})) + 1}"
        return FakeDocumentRef(self._store, self._name, doc_id)

    def limit(self, *_):
        return FakeQuery()


class FakeClient:
    def __init__(self, store: dict):
        self._store = store

    def collection(self, name: str):
        return FakeCollection(self._store, name)


@pytest.fixture
def firestore_store(monkeypatch):
    store: dict = {}
    module = _reload_interaction_log(
        monkeypatch,
        INTERACTION_LOG_ENABLED="true",
        GCP_PROJECT_ID="demo-project",
        FIRESTORE_INTERACTIONS_COLLECTION=None,
        FIRESTORE_WORKS_COLLECTION=None,
    )
    fake_firestore = SimpleNamespace(Client=lambda *_, **__: FakeClient(store))
    monkeypatch.setattr(module, "firestore", fake_firestore, raising=False)
    monkeypatch.setattr(module, "get_service_account_credentials", lambda: SimpleNamespace(project_id="demo-project"))
    module._get_firestore_client.cache_clear()  # type: ignore[attr-defined]
    module.init_interaction_log()
    return module, store


def test_interaction_logging_disabled_by_env(monkeypatch):
    module = _reload_interaction_log(monkeypatch, INTERACTION_LOG_ENABLED="false")
    module.init_interaction_log()
    assert module.is_interaction_logging_enabled() is False
    enabled, reason = module.get_interaction_logging_status()
    assert enabled is False
    assert "INTERACTION_LOG_ENABLED" in reason
    assert module.record_interaction(user_id="kid", stage="plot") is None


def test_interaction_logging_disabled_without_firestore(monkeypatch):
    module = _reload_interaction_log(monkeypatch, INTERACTION_LOG_ENABLED="true", GCP_PROJECT_ID="demo-project")
    monkeypatch.setattr(module, "firestore", None, raising=False)
    module._get_firestore_client.cache_clear()  # type: ignore[attr-defined]
    module.init_interaction_log()
    assert module.is_interaction_logging_enabled() is False


def test_record_interaction_writes_document(firestore_store):
    module, store = firestore_store
    assert module.is_interaction_logging_enabled() is True

    record = module.record_interaction(
        user_id=" kid-1 ",
        stage="plot",
        input={"messages": [{"role": "user", "content": "forest"}]},
        output={"plotData": {"setting": "forest"}},
        client_ip="10.0.0.1",
    )

    assert record is not None
    assert record.user_id == "kid-1"
    assert record.kind == "interaction"
    payload = store["interactions"][record.id]
    assert payload["stage"] == "plot"
    assert payload["client_ip"] == "10.0.0.1"
    assert payload["output"] == {"plotData": {"setting": "forest"}}
    assert "work_id" not in payload
    assert "story_works" not in store


def test_record_interaction_skips_anonymous_user(firestore_store):
    module, store = firestore_store
    assert module.record_interaction(user_id="  ", stage="plot") is None
    assert store == {}


def test_review_story_upserts_work(firestore_store):
    module, store = firestore_store

    first = module.record_interaction(
        user_id="kid-1",
        stage="review",
        story="First draft.",
        character={"name": "Milo"},
        work_id="work-1",
    )
    module.record_interaction(
        user_id="kid-1",
        stage="review",
        story="Second draft.",
        character={"name": "Milo"},
        work_id="work-1",
    )

    assert first is not None and first.work_id == "work-1"
    works = store["story_works"]
    assert list(works) == ["work-1"]
    assert works["work-1"]["story"] == "Second draft."
    assert works["work-1"]["character"] == {"name": "Milo"}
    assert len(store["interactions"]) == 2


def test_log_api_call_records_endpoint(firestore_store):
    module, store = firestore_store
    record = module.log_api_call(
        "kid-1",
        "structure",
        "/api/generate-video (Fal.ai flux-schnell)",
        {"prompt": "a cat"},
        {"videoUrl": "https://cdn.example/v.mp4"},
    )
    assert record is not None
    payload = store["interactions"][record.id]
    assert payload["kind"] == "api_call"
    assert payload["endpoint"].startswith("/api/generate-video")


def test_write_failure_disables_logging(firestore_store, monkeypatch):
    module, _ = firestore_store

    def broken(_name):
        raise RuntimeError("permission denied")

    monkeypatch.setattr(module, "_collection", broken)

    assert module.record_interaction(user_id="kid-1", stage="plot") is None
    enabled, reason = module.get_interaction_logging_status()
    assert enabled is False
    assert reason == "permission denied"


def test_work_save_failure_disables_logging(firestore_store, monkeypatch):
    module, store = firestore_store
    real_collection = module._collection

    def works_unavailable(name):
        if name == module.WORKS_COLLECTION:
            raise RuntimeError("works collection unavailable")
        return real_collection(name)

    monkeypatch.setattr(module, "_collection", works_unavailable)

    record = module.record_interaction(user_id="kid-1", stage="review", story="Once", work_id="w1")

    assert record is None
    enabled, reason = module.get_interaction_logging_status()
    assert enabled is False
    assert reason == "works collection unavailable"
    assert "interactions" not in store
