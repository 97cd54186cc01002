import pytest
import uuid
from types import SimpleNamespace
from sqlalchemy.exc import IntegrityError, OperationalError
from support_inbox.exceptions import (
    DuplicateError,
    NotFoundError,
    RepositoryError,
    InvalidFieldError,
)
from support_inbox.models.message import Message
from support_inbox.repositories.base_repository import BaseRepository


@pytest.mark.asyncio
class TestBaseRepositoryCreate:

    async def test_create_success(self, base_repo):
        """
        Behavior:
                - Call BaseRepository.create(...) with valid data.
                - Assert the returned entity has the given fields, defaults and a generated id.

        Importance:
                - Confirms the happy path of create(): instantiation, add(), flush(), refresh()
                  and return of a fully populated model (server defaults included).

        Fixtures:
                - base_repo: BaseRepository[Conversation] bound to the test session.
        """
        # Act
        conversation = await base_repo.create(customer_id="cust-1", content="first")

        # Assert
        assert isinstance(conversation.id, uuid.UUID)
        assert conversation.customer_id == "cust-1"
        assert conversation.content == "first"
        assert conversation.message_count == 0
        assert conversation.participated_user_ids == []
        assert conversation.created_at is not None

    async def test_create_missing_required_field_raises_error(self, db_session):
        """
        Behavior:
                - Create a Message without its required conversation_id.
                - Expect RepositoryError listing the missing field, raised before any SQL runs.

        Importance:
                - Required fields are reported by name instead of surfacing a driver error.
        """
        repo = BaseRepository(Message, db_session)

        with pytest.raises(RepositoryError) as exc_info:
            await repo.create(content="orphan")

        assert "Missing required field" in str(exc_info.value)
        assert exc_info.value.fields == ["conversation_id"]

    async def test_create_with_unknown_field_raises(self, base_repo):
        """
        Behavior:
                - Pass a keyword that is not a Conversation attribute.
                - Expect InvalidFieldError naming it.

        Importance:
                - Typos in field names fail loudly instead of raising TypeError deep in the ORM.
        """
        with pytest.raises(InvalidFieldError) as exc_info:
            await base_repo.create(customer_id="cust-1", titel="typo")

        assert exc_info.value.fields == ["titel"]
        assert exc_info.value.error_code == "invalid_field"

    async def test_create_handles_integrity_error(self, monkeypatch, base_repo):
        """
        Behavior:
                - Simulate an IntegrityError (SQLSTATE 23505) during session.flush().
                - Verify create() raises DuplicateError, then that the rolled-back session
                  still accepts a new create.

        Importance:
                - IntegrityError is mapped to an app-level error, and the rollback keeps the
                  session usable (no PendingRollbackError for the caller).

        Fixtures:
                - monkeypatch: overrides base_repo.db.flush for the first call only.
        """
        orig_flush = base_repo.db.flush
        state = {"called": 0}

        async def fake_flush(*args, **kwargs):
            if state["called"] == 0:
                state["called"] += 1
                fake_orig = SimpleNamespace(
                    pgcode="23505",
                    diag=SimpleNamespace(constraint_name="pk_conversations")
                )
                raise IntegrityError("fake", params={}, orig=fake_orig)
            return await orig_flush(*args, **kwargs)

        monkeypatch.setattr(base_repo.db, "flush", fake_flush)

        with pytest.raises(DuplicateError) as exc_info:
            await base_repo.create(customer_id="dup")

        assert "already exists" in str(exc_info.value)
        assert exc_info.value.constraint == "pk_conversations"

        conversation = await base_repo.create(customer_id="ok")
        assert conversation.customer_id == "ok"

    async def test_create_propagates_driver_errors_unchanged(self, monkeypatch, base_repo):
        """
        Behavior:
                - Simulate a connection failure (OperationalError) during flush.
                - Expect the very same exception type to reach the caller.

        Importance:
                - Only integrity errors are translated; infrastructure failures must stay
                  recognizable to whoever retries or alerts on them.
        """
        async def failing_flush(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("database is unavailable"))

        monkeypatch.setattr(base_repo.db, "flush", failing_flush)

        with pytest.raises(OperationalError):
            await base_repo.create(customer_id="cust-1")


@pytest.mark.asyncio
class TestBaseRepositoryRead:

    async def test_get_by_id_returns_entity(self, base_repo, conversation_obj):
        """
        Behavior:
                - Fetch an existing conversation by id.

        Fixtures:
                - conversation_obj: a persisted conversation.
        """
        found = await base_repo.get_by_id(conversation_obj.id)

        assert found is not None
        assert found.id == conversation_obj.id

    async def test_get_by_id_returns_none_for_missing(self, base_repo):
        assert await base_repo.get_by_id(uuid.uuid4()) is None

    async def test_get_by_id_or_raise_not_found(self, base_repo):
        """
        Behavior:
                - get_by_id_or_raise() on a random id raises NotFoundError with code not_found.
        """
        with pytest.raises(NotFoundError) as exc_info:
            await base_repo.get_by_id_or_raise(uuid.uuid4())

        assert exc_info.value.error_code == "not_found"
        assert exc_info.value.http_status() == 404

    async def test_find_all_filters_scalar_list_and_none(self, base_repo):
        """
        Behavior:
                - Scalar filter means equality, list filter means IN, None means IS NULL.

        Importance:
                - These filter semantics are what every selector-based store operation
                  (bulk delete, customer reassignment) relies on.
        """
        # Arrange
        await base_repo.create(customer_id="a")
        await base_repo.create(customer_id="b")
        await base_repo.create(customer_id="c")
        await base_repo.create(customer_id=None)

        # Act / Assert
        assert [c.customer_id for c in await base_repo.find_all(customer_id="a")] == ["a"]
        assert sorted(c.customer_id for c in await base_repo.find_all(customer_id=["a", "c"])) == ["a", "c"]
        assert len(await base_repo.find_all(customer_id=None)) == 1
        assert len(await base_repo.find_all()) == 4

    async def test_find_all_unknown_filter_raises(self, base_repo):
        with pytest.raises(InvalidFieldError):
            await base_repo.find_all(customr_id="a")

    async def test_find_all_unknown_order_by_raises(self, base_repo):
        with pytest.raises(InvalidFieldError):
            await base_repo.find_all(order_by="nope")

    async def test_count_and_exists(self, base_repo, conversation_obj):
        """
        Behavior:
                - count() with and without filters, exists() for present and absent ids.
        """
        await base_repo.create(customer_id="other")

        assert await base_repo.count() == 2
        assert await base_repo.count(customer_id="other") == 1
        assert await base_repo.count(customer_id="nobody") == 0
        assert await base_repo.exists(conversation_obj.id) is True
        assert await base_repo.exists(uuid.uuid4()) is False


@pytest.mark.asyncio
class TestBaseRepositoryUpdate:

    async def test_update_changes_field(self, base_repo, conversation_obj):
        """
        Behavior:
                - Update a field on an existing entity; the returned entity reflects it.
        """
        updated = await base_repo.update(conversation_obj.id, content="new content")

        assert updated is not None
        assert updated.content == "new content"

    async def test_update_keeps_empty_string_drops_none(self, base_repo):
        """
        Behavior:
                - None values are ignored, empty strings are written.

        Importance:
                - A conversation's last content may legitimately become "" (attachment-only
                  message) while optional arguments left at None must not null columns.
        """
        conversation = await base_repo.create(customer_id="cust-1", content="hello")

        updated = await base_repo.update(conversation.id, customer_id=None, content="")

        assert updated.customer_id == "cust-1"
        assert updated.content == ""

    async def test_update_sets_updated_at(self, base_repo, conversation_obj):
        old_updated = conversation_obj.updated_at

        updated = await base_repo.update(conversation_obj.id, message_count=3)

        assert updated.updated_at is not None
        assert updated.updated_at != old_updated

    async def test_update_with_invalid_field_raises(self, base_repo, conversation_obj):
        with pytest.raises(InvalidFieldError):
            await base_repo.update(conversation_obj.id, not_a_field="x")

    async def test_update_not_found_returns_none(self, base_repo):
        assert await base_repo.update(uuid.uuid4(), content="x") is None

    async def test_update_where_returns_rowcount(self, base_repo):
        """
        Behavior:
                - update_where() changes every matching row and reports how many.
        """
        await base_repo.create(customer_id="old-1")
        await base_repo.create(customer_id="old-2")
        await base_repo.create(customer_id="keep")

        updated = await base_repo.update_where({"customer_id": ["old-1", "old-2"]}, customer_id="new")

        assert updated == 2
        assert await base_repo.count(customer_id="new") == 2
        assert await base_repo.count(customer_id="keep") == 1


@pytest.mark.asyncio
class TestBaseRepositoryDelete:

    async def test_delete_success_and_no_longer_exists(self, base_repo, conversation_obj):
        assert await base_repo.delete(conversation_obj.id) is True
        assert await base_repo.exists(conversation_obj.id) is False

    async def test_delete_not_found_returns_false(self, base_repo):
        assert await base_repo.delete(uuid.uuid4()) is False

    async def test_delete_where_returns_rowcount(self, base_repo):
        await base_repo.create(customer_id="gone")
        await base_repo.create(customer_id="gone")
        await base_repo.create(customer_id="stays")

        assert await base_repo.delete_where(customer_id="gone") == 2
        assert await base_repo.count() == 1

    async def test_delete_where_without_selector_is_refused(self, base_repo, conversation_obj):
        """
        Behavior:
                - delete_where() with no filters raises instead of emptying the table.
        """
        with pytest.raises(InvalidFieldError):
            await base_repo.delete_where()

        assert await base_repo.count() == 1
