from livesync.stores.sql import SqlBetStore, SqlGameStore

__all__ = [
    "SqlBetStore",
    "SqlGameStore",
]
