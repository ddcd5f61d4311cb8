"""Database layer for the vector index.

VectorStore lives in ``ultravec.index._internal.db.store``; it is not
re-exported here because the table models import the codec from this package.
"""

from ultravec.index._internal.db.codec import decode_vector, encode_vector
from ultravec.index._internal.db.database import BulkWriter, Database

__all__ = [
    "BulkWriter",
    "Database",
    "decode_vector",
    "encode_vector",
]
