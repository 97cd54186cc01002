import pytest
from types import SimpleNamespace
from sqlalchemy.exc import IntegrityError
from support_inbox.exceptions import DuplicateError, RepositoryError
from support_inbox.exceptions.integrity_classifier import (
    classify_integrity_error,
    UniqueConstraintError,
    NotNullConstraintError,
    ForeignKeyConstraintError,
    UnknownIntegrityError,
)
from support_inbox.exceptions.mapper import extract_columns_from_integrity, raise_mapped_integrity_error


def integrity_error(orig) -> IntegrityError:
    return IntegrityError("INSERT ...", params={}, orig=orig)


class FakeDriverError(Exception):
    """Driver error carrying a SQLSTATE like psycopg / asyncpg do."""

    def __init__(self, message, sqlstate=None, constraint_name=None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.diag = SimpleNamespace(constraint_name=constraint_name)


def test_classify_by_sqlstate():
    exc = integrity_error(FakeDriverError("fk", sqlstate="23503", constraint_name="fk_conversation_messages_conversation_id_conversations"))

    label, constraint = classify_integrity_error(exc)

    assert label is ForeignKeyConstraintError
    assert constraint == "fk_conversation_messages_conversation_id_conversations"


@pytest.mark.parametrize(
    "message, label",
    [
        ("UNIQUE constraint failed: conversations.id", UniqueConstraintError),
        ("NOT NULL constraint failed: conversation_messages.conversation_id", NotNullConstraintError),
        ("FOREIGN KEY constraint failed", ForeignKeyConstraintError),
        ("something else entirely", UnknownIntegrityError),
    ],
)
def test_classify_by_message(message, label):
    assert classify_integrity_error(integrity_error(Exception(message)))[0] is label


def test_extract_columns_from_sqlite_and_postgres_messages():
    sqlite = integrity_error(Exception("NOT NULL constraint failed: conversation_messages.conversation_id"))
    postgres = integrity_error(Exception('insert violates foreign key constraint\nDETAIL:  Key (conversation_id)=(1) is not present in table "conversations".'))

    assert extract_columns_from_integrity(sqlite) == ["conversation_id"]
    assert extract_columns_from_integrity(postgres) == ["conversation_id"]


def test_raise_mapped_integrity_error():
    with pytest.raises(DuplicateError) as dup:
        raise_mapped_integrity_error(integrity_error(Exception("UNIQUE constraint failed: conversations.id")), "Conversation")
    assert dup.value.fields == ["id"]
    assert dup.value.http_status() == 409

    with pytest.raises(RepositoryError) as fk:
        raise_mapped_integrity_error(integrity_error(Exception("FOREIGN KEY constraint failed")), "Message")
    assert "referenced entity not found" in fk.value.message
    assert isinstance(fk.value.__cause__, IntegrityError)
