"""rowforge adapters: the bridge between rendered SQL and a database driver."""
from rowforge.adapters.base import Adapter, QueryResult
from rowforge.adapters.postgres import AsyncpgAdapter
from rowforge.adapters.sqlite import AioSqliteAdapter

__all__ = [
    "Adapter",
    "AioSqliteAdapter",
    "AsyncpgAdapter",
    "QueryResult",
]
