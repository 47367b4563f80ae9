from importcost_kernel.db.base import Base, TimestampedBase, UUIDString
from importcost_kernel.db.engine import (
    create_db_engine,
    create_session_factory,
    create_tables,
    drop_tables,
    transaction_scope,
)

__all__ = [
    "Base",
    "TimestampedBase",
    "UUIDString",
    "create_db_engine",
    "create_session_factory",
    "create_tables",
    "drop_tables",
    "transaction_scope",
]
