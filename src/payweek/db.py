"""Engine singleton and schema bootstrap."""
from __future__ import annotations
from sqlmodel import SQLModel, create_engine
from payweek.config import settings


def _make_engine():
    url = settings.database_url
    connect_args = {}
    if url.startswith("sqlite"):
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=False, connect_args=connect_args)


engine = _make_engine()


def init_db() -> None:
    import payweek.models  # noqa: F401
    from payweek.infra.db.schema_compat import ensure_schema_compat
    SQLModel.metadata.create_all(engine)
    ensure_schema_compat(engine)
