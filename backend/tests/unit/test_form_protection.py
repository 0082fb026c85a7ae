"""Unit tests for session-bound form protection."""

import pytest

from login_gate.core.exceptions import FormProtectionError
from login_gate.core.session import BackendSession
from login_gate.services.form_protection import BackendFormProtection


@pytest.fixture
def protection(logged_in_session, session_store, token_registry):
    return BackendFormProtection(logged_in_session, session_store, token_registry)


@pytest.mark.unit
class TestFormTokens:
    def test_same_form_gives_same_token(self, protection):
        assert protection.generate_token("edit", "save") == protection.generate_token("edit", "save")

    def test_different_forms_give_different_tokens(self, protection):
        assert protection.generate_token("edit") != protection.generate_token("delete")

    def test_validate_own_token(self, protection):
        token = protection.generate_token("edit", "save", "record-1")

        assert protection.validate_token(token, "edit", "save", "record-1") is True

    def test_validate_rejects_other_form(self, protection):
        token = protection.generate_token("edit", "save")

        assert protection.validate_token(token, "edit", "delete") is False

    def test_validate_rejects_missing_token(self, protection):
        protection.generate_token("edit")

        assert protection.validate_token("", "edit") is False
        assert protection.validate_token(None, "edit") is False

    def test_empty_form_name_is_rejected(self, protection):
        with pytest.raises(ValueError):
            protection.generate_token("")

    def test_token_from_other_session_is_rejected(
        self, protection, session_store, token_registry
    ):
        other = BackendFormProtection(
            BackendSession(session_id="other", user_uid=2), session_store, token_registry
        )
        token = other.generate_token("edit")

        protection.generate_token("edit")
        assert protection.validate_token(token, "edit") is False


@pytest.mark.unit
class TestSessionTokenPersistence:
    @pytest.mark.asyncio
    async def test_persist_writes_session(self, protection, session_store, logged_in_session):
        await protection.persist_session_token()

        stored = await session_store.load(logged_in_session.session_id)
        assert stored.data[BackendFormProtection.SESSION_KEY] == protection.session_token

    @pytest.mark.asyncio
    async def test_store_in_registry(self, protection, token_registry, session_store):
        await protection.store_session_token_in_registry()

        stored = await token_registry.get("core", "formProtectionSessionToken:1")
        session = await session_store.load("session-1")
        assert stored == protection.session_token
        assert session.data[BackendFormProtection.SESSION_KEY] == stored

    @pytest.mark.asyncio
    async def test_refresh_login_restores_token(
        self, protection, session_store, token_registry
    ):
        await protection.store_session_token_in_registry()
        old_token = protection.session_token
        form_token = protection.generate_token("edit")

        renewed = BackendFormProtection(
            BackendSession(session_id="session-2", user_uid=1), session_store, token_registry
        )
        await renewed.set_session_token_from_registry()
        await renewed.persist_session_token()

        assert renewed.session_token == old_token
        assert renewed.validate_token(form_token, "edit") is True
        stored = await session_store.load("session-2")
        assert stored.data[BackendFormProtection.SESSION_KEY] == old_token

    @pytest.mark.asyncio
    async def test_restore_without_registry_entry_fails(self, protection):
        with pytest.raises(FormProtectionError):
            await protection.set_session_token_from_registry()

    @pytest.mark.asyncio
    async def test_clean(self, protection, token_registry, logged_in_session):
        await protection.store_session_token_in_registry()

        await protection.clean()

        assert BackendFormProtection.SESSION_KEY not in logged_in_session.data
        assert await token_registry.get("core", "formProtectionSessionToken:1") is None

    def test_token_is_loaded_from_session_data(self, session_store, token_registry):
        session = BackendSession(
            session_id="s", user_uid=1, data={BackendFormProtection.SESSION_KEY: "abc"}
        )

        assert BackendFormProtection(session, session_store, token_registry).session_token == "abc"
