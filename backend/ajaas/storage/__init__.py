# AJaaS Storage
from ajaas.storage.factory import create_store
from ajaas.storage.interface import ScheduleStore, StoreClosedError, StoreError
from ajaas.storage.postgres import PostgresScheduleStore
from ajaas.storage.sqlite import SQLiteScheduleStore

__all__ = [
    "PostgresScheduleStore",
    "SQLiteScheduleStore",
    "ScheduleStore",
    "StoreClosedError",
    "StoreError",
    "create_store",
]
