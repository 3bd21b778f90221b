import math
import struct
from typing import Any, Iterable, List, Mapping, Tuple, Union

import numpy as np

from milvus_binding.exceptions import ParamError

SparseRow = Union[Mapping[int, float], Iterable[Tuple[int, float]]]


# reference: https://docs.python.org/3/library/struct.html#struct.pack
def vector_float_to_bytes(v: List[float]):
    # pack len(v) number of float
    return struct.pack(f"{len(v)}f", *v)


def vector_float16_to_bytes(v: Any) -> bytes:
    if isinstance(v, bytes):
        return v
    return np.asarray(v, dtype="<f2").tobytes()


def vector_bfloat16_to_bytes(v: Any) -> bytes:
    """bfloat16 is the upper half of an IEEE float32, so truncate the low 16 bits."""
    if isinstance(v, bytes):
        return v
    if isinstance(v, np.ndarray) and v.dtype.name == "bfloat16":
        return v.tobytes()
    bits = np.asarray(v, dtype="<f4").view("<u4") >> 16
    return bits.astype("<u2").tobytes()


def sparse_row_items(row: SparseRow) -> List[Tuple[int, float]]:
    items = row.items() if isinstance(row, Mapping) else row
    return sorted(((int(i), float(v)) for i, v in items), key=lambda x: x[0])


def sparse_row_to_bytes(row: SparseRow) -> bytes:
    # same layout milvus persists: (uint32 index, float32 value) pairs sorted by index
    data = b""
    for i, v in sparse_row_items(row):
        if not (0 <= i < 2**32 - 1):
            raise ParamError(
                message=f"sparse vector index must be positive and less than 2^32-1: {i}"
            )
        if math.isnan(v):
            raise ParamError(message="sparse vector value must not be NaN")
        data += struct.pack("I", i)
        data += struct.pack("f", v)
    return data


def sparse_bytes_to_row(data: bytes) -> dict:
    if len(data) % 8 != 0:
        raise ParamError(message=f"The length of data must be a multiple of 8, got {len(data)}")
    return {
        struct.unpack("I", data[i : i + 4])[0]: struct.unpack("f", data[i + 4 : i + 8])[0]
        for i in range(0, len(data), 8)
    }


def sparse_dim(rows: Iterable[SparseRow]) -> int:
    dim = 0
    for row in rows:
        for i, _ in sparse_row_items(row):
            dim = max(dim, i + 1)
    return dim
