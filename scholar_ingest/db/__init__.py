"""
Database access for scholar-ingest.

Storage admission (pooled or serialized) and the Postgres storage collaborator:
    from scholar_ingest.db import PostgresStorage, create_admission

    storage = PostgresStorage(create_admission("serialized"))
    with storage.unit_of_work() as session:
        session.count_articles()
"""

from .errors import StorageError
from .admission import (
    AdmissionHandle,
    StorageAdmission,
    PooledAdmission,
    SerializedAdmission,
    create_admission,
    get_admission,
    close_admission,
)
from .postgres import PostgresStorage, StorageSession, check_health

__all__ = [
    "StorageError",
    "AdmissionHandle",
    "StorageAdmission",
    "PooledAdmission",
    "SerializedAdmission",
    "create_admission",
    "get_admission",
    "close_admission",
    "PostgresStorage",
    "StorageSession",
    "check_health",
]
