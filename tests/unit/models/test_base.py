"""Unit tests for base model mixins."""

from app.models.credential import UserCredential


class TestUUIDMixin:
    """Tests for UUIDMixin."""

    def test_id_is_indexed_primary_key(self):
        id_column = UserCredential.__table__.columns["id"]

        assert id_column.primary_key is True
        assert id_column.index is True

    def test_id_has_python_default(self):
        id_column = UserCredential.__table__.columns["id"]
        assert id_column.default is not None


class TestTimestampMixin:
    """Tests for TimestampMixin."""

    def test_timestamps_are_not_nullable(self):
        columns = UserCredential.__table__.columns

        assert columns["created_at"].nullable is False
        assert columns["updated_at"].nullable is False

    def test_timestamps_are_timezone_aware(self):
        columns = UserCredential.__table__.columns

        assert columns["created_at"].type.timezone is True
        assert columns["updated_at"].type.timezone is True

    def test_updated_at_has_onupdate(self):
        assert UserCredential.__table__.columns["updated_at"].onupdate is not None

    def test_server_defaults(self):
        columns = UserCredential.__table__.columns

        assert columns["created_at"].server_default is not None
        assert columns["updated_at"].server_default is not None
