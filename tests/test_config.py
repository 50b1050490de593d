# Tests for settings, session secret handling and audit logging.
# Created: 2026-10-12

import json
import stat

from tokenhub.config import (
    Settings,
    get_config_dir,
    get_session_secret,
    get_settings,
    regenerate_session_secret,
    reset_settings,
)
from tokenhub.security.audit import AuditLogger, AuditSeverity


class TestSettings:
    def test_defaults(self):
        settings = Settings.load()
        assert settings.token_ttl_days == 30
        assert settings.token_ttl_seconds == 2592000
        assert settings.prune_retention_days == 30
        assert settings.prune_batch_size == 100
        assert settings.per_page == 10
        assert settings.api_port == 8890

    def test_config_dir_from_env(self, tokenhub_home):
        assert get_config_dir() == tokenhub_home
        assert tokenhub_home.is_dir()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("TOKENHUB_TOKEN_TTL_DAYS", "7")
        assert Settings.load().token_ttl_days == 7

    def test_json_file(self, tokenhub_home):
        tokenhub_home.mkdir(parents=True, exist_ok=True)
        (tokenhub_home / "config.json").write_text(json.dumps({"per_page": 25}))
        assert Settings.load().per_page == 25

    def test_env_beats_file(self, tokenhub_home, monkeypatch):
        tokenhub_home.mkdir(parents=True, exist_ok=True)
        (tokenhub_home / "config.json").write_text(json.dumps({"per_page": 25}))
        monkeypatch.setenv("TOKENHUB_PER_PAGE", "50")
        assert Settings.load().per_page == 50

    def test_singleton(self):
        assert get_settings() is get_settings()
        first = get_settings()
        reset_settings()
        assert get_settings() is not first


class TestSessionSecret:
    def test_generated_once_and_persisted(self, tokenhub_home):
        first = get_session_secret()
        assert first == get_session_secret()
        key = tokenhub_home / "session.key"
        assert key.read_text() == first
        assert stat.S_IMODE(key.stat().st_mode) == 0o600

    def test_regenerate_invalidates(self):
        from tokenhub.security.session_tokens import create_session_token, verify_session_token

        old = get_session_secret()
        token = create_session_token("user-1", old)
        new = regenerate_session_secret()
        assert new != old
        assert verify_session_token(token, get_session_secret()) is None

    def test_configured_secret_wins(self, monkeypatch):
        monkeypatch.setenv("TOKENHUB_SESSION_SECRET", "configured")
        assert get_session_secret() == "configured"


class TestAuditLogger:
    def test_writes_jsonl(self, tmp_path):
        audit = AuditLogger(log_path=tmp_path / "audit.jsonl")
        event_id = audit.log_event(
            "token_revoked", "token:1", actor="user:1", severity=AuditSeverity.WARNING, count=2
        )
        record = json.loads((tmp_path / "audit.jsonl").read_text().splitlines()[0])
        assert record["id"] == event_id
        assert record["severity"] == "warning"
        assert record["context"] == {"count": 2}

    def test_write_failure_is_not_raised(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        audit = AuditLogger(log_path=blocker / "audit.jsonl")
        audit.log_event("token_issued", "token:1")
