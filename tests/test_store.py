# Tests for the JSON-file credential store.
# Created: 2026-10-12

import json
from datetime import UTC, datetime, timedelta

import pytest

from tokenhub.errors import StoreError
from tokenhub.models import Application, BearerToken, User
from tokenhub.security.credentials import hash_token
from tokenhub.store.file_store import FileCredentialStore
from tokenhub.store.protocol import CredentialStoreProtocol


@pytest.fixture
def user(store):
    return store.add_user(User.new("Ada", "Ada@Example.com"))


@pytest.fixture
def app_record(store, user):
    return store.add_application(Application.new("App", user.id, hash_token("secret")))


def _token(app, user, value="plain", **kwargs):
    return BearerToken.new("t", hash_token(value), app.id, user.id, ["read"], **kwargs)


class TestFileStore:
    def test_implements_protocol(self, store):
        assert isinstance(store, CredentialStoreProtocol)

    def test_user_email_is_case_insensitive_and_unique(self, store, user):
        assert store.get_user_by_email("ADA@example.com").id == user.id
        with pytest.raises(StoreError):
            store.add_user(User.new("Other", "ada@example.com"))

    def test_duplicate_client_id_rejected(self, store, user, app_record):
        dup = Application.new("Dup", user.id, hash_token("x"), client_id=app_record.client_id)
        with pytest.raises(StoreError):
            store.add_application(dup)

    def test_duplicate_token_hash_rejected(self, store, user, app_record):
        store.add_token(_token(app_record, user))
        with pytest.raises(StoreError):
            store.add_token(_token(app_record, user))

    def test_returns_copies(self, store, user, app_record):
        fetched = store.get_application(app_record.id)
        fetched.is_active = False
        assert store.get_application(app_record.id).is_active is True

    def test_update_user_rejects_taken_email(self, store, user):
        other = store.add_user(User.new("Grace", "grace@example.com"))
        with pytest.raises(StoreError):
            store.update_user(other.id, email="ada@example.com")
        assert store.get_user_by_email("grace@example.com").id == other.id

    def test_delete_user_cascades(self, store, user, app_record):
        stranger = store.add_user(User.new("Grace", "grace@example.com"))
        store.add_token(_token(app_record, user, "mine"))
        foreign_app = store.add_application(Application.new("G", stranger.id, hash_token("g")))
        # Issued to the deleted user through someone else's application.
        store.add_token(_token(foreign_app, user, "theirs"))
        kept = store.add_token(_token(foreign_app, stranger, "kept"))

        assert store.delete_user(user.id) is True
        assert store.delete_user(user.id) is False
        assert store.get_application_by_client_id(app_record.client_id) is None
        assert store.get_token_by_hash(hash_token("theirs")) is None
        assert [t.id for t in store.list_tokens()] == [kept.id]

    def test_mark_token_used_keeps_updated_at(self, store, user, app_record):
        token = store.add_token(_token(app_record, user))
        used_at = token.updated_at + timedelta(days=3)
        marked = store.mark_token_used(token.id, used_at)
        assert marked.last_used_at == used_at
        assert marked.updated_at == token.updated_at
        assert store.mark_token_used("missing", used_at) is None

    def test_persists_across_instances(self, store, user, app_record, tokenhub_home):
        token = store.add_token(_token(app_record, user))
        reopened = FileCredentialStore(base_path=tokenhub_home / "data")
        assert reopened.get_user_by_email("ada@example.com").id == user.id
        assert reopened.get_application_by_client_id(app_record.client_id).id == app_record.id
        assert reopened.get_token_by_hash(hash_token("plain")).id == token.id

    def test_plaintext_never_written(self, store, user, app_record, tokenhub_home):
        store.add_token(_token(app_record, user, value="super-secret-plaintext"))
        raw = (tokenhub_home / "data" / "tokens.json").read_text()
        assert "super-secret-plaintext" not in raw
        assert hash_token("super-secret-plaintext") in raw

    def test_immutable_fields(self, store, user, app_record):
        with pytest.raises(ValueError):
            store.update_application(app_record.id, client_id="other")
        token = store.add_token(_token(app_record, user))
        with pytest.raises(ValueError):
            store.update_token(token.id, token_hash="other")

    def test_update_missing_returns_none(self, store):
        assert store.update_application("missing", name="x") is None
        assert store.update_token("missing", is_active=False) is None

    def test_delete_application_cascades(self, store, user, app_record):
        token = store.add_token(_token(app_record, user))
        assert store.delete_application(app_record.id)
        assert store.get_application(app_record.id) is None
        assert store.get_token(token.id) is None
        assert store.get_token_by_hash(token.token_hash) is None
        assert not store.client_id_exists(app_record.client_id)
        assert not store.delete_application(app_record.id)

    def test_update_tokens_where(self, store, user, app_record):
        store.add_token(_token(app_record, user, "a"))
        store.add_token(_token(app_record, user, "b"))
        assert store.update_tokens_where({"is_active": False}, user_id=user.id, is_active=True) == 2
        assert store.update_tokens_where({"is_active": False}, user_id=user.id, is_active=True) == 0

    def test_list_tokens_newest_first(self, store, user, app_record):
        base = datetime(2026, 1, 1, tzinfo=UTC)
        for i in range(3):
            store.add_token(_token(app_record, user, f"t{i}", now=base + timedelta(hours=i)))
        listed = store.list_tokens(application_id=app_record.id)
        assert [t.created_at for t in listed] == sorted(
            (t.created_at for t in listed), reverse=True
        )

    def test_find_prunable_respects_limit(self, store, user, app_record):
        old = datetime(2020, 1, 1, tzinfo=UTC)
        for i in range(5):
            store.add_token(_token(app_record, user, f"old{i}", expires_at=old))
        found = store.find_prunable_tokens(datetime(2021, 1, 1, tzinfo=UTC), None, limit=3)
        assert len(found) == 3

    def test_delete_tokens_ignores_missing(self, store, user, app_record):
        token = store.add_token(_token(app_record, user))
        assert store.delete_tokens([token.id, "missing"]) == 1
        assert store.delete_tokens([token.id]) == 0

    def test_failed_write_keeps_previous_state(self, store, user, app_record, monkeypatch):
        def boom(path, data):
            raise StoreError("disk full")

        monkeypatch.setattr(store, "_save_json", boom)
        with pytest.raises(StoreError):
            store.update_application(app_record.id, name="Renamed")
        assert store.get_application(app_record.id).name == "App"

    def test_corrupt_file_loads_empty(self, tokenhub_home):
        data_dir = tokenhub_home / "data"
        data_dir.mkdir(parents=True)
        (data_dir / "users.json").write_text("{not json")
        assert FileCredentialStore(base_path=data_dir).list_users() == []

    def test_file_contents_are_json_lists(self, store, user, tokenhub_home):
        data = json.loads((tokenhub_home / "data" / "users.json").read_text())
        assert data[0]["email"] == "ada@example.com"
