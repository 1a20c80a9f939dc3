from sqlalchemy import DDL, event
from sqlalchemy.orm import DeclarativeBase
from utils.models.annotated_types import (
    StringPrimaryKeyType,
    BigIntegerType,
    UpdatedAtType,
)

# Tables are declared under this placeholder schema; the engine's schema_translate_map
# maps it to the processor's real schema (or to None where schemas are unsupported).
PER_SCHEMA = "per_schema"


class Base(DeclarativeBase):
    pass


class NextBlockToProcess(Base):
    __tablename__ = "next_blocks_to_process"
    __table_args__ = {"schema": PER_SCHEMA}

    indexer_name: StringPrimaryKeyType
    next_block: BigIntegerType
    updated_at: UpdatedAtType


def _translated_schemas(target, connection) -> set[str]:
    translate_map = connection.get_execution_options().get("schema_translate_map") or {}
    schemas = set()
    for table in target.tables.values():
        schema = translate_map.get(table.schema, table.schema)
        if schema is not None:
            schemas.add(schema)
    return schemas


@event.listens_for(Base.metadata, "before_create")
def create_schemas(target, connection, **kw):
    for schema in _translated_schemas(target, connection):
        connection.execute(DDL("CREATE SCHEMA IF NOT EXISTS %s" % schema))


@event.listens_for(Base.metadata, "after_drop")
def drop_schemas(target, connection, **kw):
    for schema in _translated_schemas(target, connection):
        connection.execute(DDL("DROP SCHEMA IF EXISTS %s" % schema))
