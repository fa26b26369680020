"""Re-export the singleton engine from payweek.db and register WAL pragmas."""
from sqlalchemy import event
from payweek.db import engine          # singleton; created once at payweek.db import
import payweek.models  # noqa: F401   # registers all ORM table mappers


def _set_wal_mode(dbapi_conn, _):
    if engine.dialect.name != "sqlite":
        return
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA journal_mode=WAL")
    cur.execute("PRAGMA synchronous=NORMAL")
    cur.close()


event.listen(engine, "connect", _set_wal_mode)

__all__ = ["engine"]
