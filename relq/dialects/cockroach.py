"""CockroachDB-specific index DDL.

CockroachDB spells covering columns ``STORING (...)`` and supports
hash-sharded indexes for sequential keys::

    CockroachIndexBuilder("idx_events_ts", "events").on("ts").hash_sharded(8).include("payload")
    # CREATE INDEX "idx_events_ts" ON "events" ("ts") USING HASH WITH (bucket_count = 8) STORING ("payload")
"""

from __future__ import annotations

from relq.ddl.index import CreateIndexBuilder
from relq.pg_format import ident


class CockroachIndexBuilder(CreateIndexBuilder):
    """:class:`~relq.ddl.index.CreateIndexBuilder` rendering CockroachDB syntax."""

    def __init__(self, name: str, table: str) -> None:
        super().__init__(name, table)
        self.hash_shard = False
        self.bucket_count: int | None = None

    def hash_sharded(self, bucket_count: int | None = None) -> CockroachIndexBuilder:
        """Shard the index by a hash of its key; ``None`` keeps the server default."""
        self.hash_shard = True
        self.bucket_count = bucket_count
        return self

    def storing(self, *columns: str) -> CockroachIndexBuilder:
        """Alias of :meth:`include` using the CockroachDB keyword."""
        self.include(*columns)
        return self

    def _keys_sql(self) -> str:
        keys = super()._keys_sql()
        if self.hash_shard:
            keys += " USING HASH"
            if self.bucket_count is not None:
                keys += f" WITH (bucket_count = {self.bucket_count})"
        return keys

    def _include_sql(self) -> str:
        return f" STORING ({ident(self.include_columns)})"
