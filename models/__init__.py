from .record import Record, ObjectType, OBJECT_TYPE_PARTITIONS, partition_for, now_ms
from .store import Store

__all__ = [
    "Record",
    "ObjectType",
    "OBJECT_TYPE_PARTITIONS",
    "partition_for",
    "now_ms",
    "Store",
]
