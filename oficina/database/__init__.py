from .session import Base, engine, AsyncSessionLocal, get_db, init_db
from .unit_of_work import commit_or_conflict

__all__ = [
    "Base",
    "engine",
    "AsyncSessionLocal",
    "get_db",
    "init_db",
    "commit_or_conflict"
]
