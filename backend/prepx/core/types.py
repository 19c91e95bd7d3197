"""Shared SQLAlchemy column types"""
import uuid

from sqlalchemy import TypeDecorator, String


def generate_uuid() -> str:
    return str(uuid.uuid4())


class GUID(TypeDecorator):
    """UUID stored as VARCHAR(36) so the same models run on Postgres and SQLite"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        return str(value) if value is not None else None

    def process_result_value(self, value, dialect):
        return str(value) if value is not None else None


def enum_value(value):
    """Plain string for a str-Enum member or an already-plain value"""
    return getattr(value, "value", value)
