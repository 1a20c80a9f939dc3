from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from typing import Any

from utils.models.general_models import PER_SCHEMA

# Bound once at startup by `init_engine`; every processor opens sessions from here.
Session = sessionmaker(expire_on_commit=False)


def init_engine(
    connection_string: str, schema_name: str | None, **engine_kwargs: Any
) -> Engine:
    engine = create_engine(connection_string, **engine_kwargs)
    engine = engine.execution_options(
        schema_translate_map={PER_SCHEMA: schema_name}
    )
    Session.configure(bind=engine)
    return engine
