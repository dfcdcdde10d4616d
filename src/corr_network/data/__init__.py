"""Data module - Return and partition loading"""

from .loader import ReturnDataLoader, LoadedData, load_partitions

__all__ = [
    "ReturnDataLoader",
    "LoadedData",
    "load_partitions",
]
