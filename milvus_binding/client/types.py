from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Union

from milvus_binding.exceptions import UnknownDataType, UnknownEnumValue
from pymilvus.grpc_gen import common_pb2, schema_pb2


def normalize_token(token: Any) -> Optional[str]:
    """Fold a user token so that "Float-Vector", "float_vector" and "FLOAT_VECTOR" match."""
    if not isinstance(token, str):
        return None
    return token.strip().lower().replace("-", "_")


def _resolve(table: Dict[str, Any], enum_cls: type, token: Any):
    if isinstance(token, enum_cls):
        return token
    return table.get(normalize_token(token))


class Status:
    """
    :attribute code: int (optional) default as ok

    :attribute message: str (optional) current status message
    """

    SUCCESS = 0
    UNEXPECTED_ERROR = 1
    CONNECT_FAILED = 2

    def __init__(self, code: int = SUCCESS, message: str = "Success") -> None:
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        attr_list = [f"{key}={value}" for key, value in self.__dict__.items()]
        return f"{self.__class__.__name__}({', '.join(attr_list)})"

    def __eq__(self, other: Union[int, "Status"]):
        """Make Status comparable with self by code"""
        if isinstance(other, int):
            return self.code == other

        return isinstance(other, self.__class__) and self.code == other.code

    def OK(self):
        return self.code == Status.SUCCESS


class DataType(IntEnum):
    """
    String of DataType is str of its value, e.g.: str(DataType.BOOL) == "1"
    """

    NONE = 0  # schema_pb2.None, this is an invalid representation in python
    BOOL = schema_pb2.Bool
    INT8 = schema_pb2.Int8
    INT16 = schema_pb2.Int16
    INT32 = schema_pb2.Int32
    INT64 = schema_pb2.Int64

    FLOAT = schema_pb2.Float
    DOUBLE = schema_pb2.Double

    STRING = schema_pb2.String
    VARCHAR = schema_pb2.VarChar
    ARRAY = schema_pb2.Array
    JSON = schema_pb2.JSON

    BINARY_VECTOR = schema_pb2.BinaryVector
    FLOAT_VECTOR = schema_pb2.FloatVector
    FLOAT16_VECTOR = schema_pb2.Float16Vector
    BFLOAT16_VECTOR = schema_pb2.BFloat16Vector
    SPARSE_FLOAT_VECTOR = schema_pb2.SparseFloatVector

    UNKNOWN = 999

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def from_token(cls, token: Any, field: str = "data_type") -> "DataType":
        found = _resolve(_DATA_TYPE_TOKENS, cls, token)
        if found is None or found in (cls.NONE, cls.UNKNOWN):
            raise UnknownDataType(field, token)
        return found

    @property
    def is_vector(self) -> bool:
        return self in VECTOR_TYPES

    @property
    def is_dense_vector(self) -> bool:
        return self in DENSE_VECTOR_TYPES

    @property
    def is_string(self) -> bool:
        return self in (DataType.VARCHAR, DataType.STRING)


DENSE_VECTOR_TYPES = frozenset(
    (
        DataType.BINARY_VECTOR,
        DataType.FLOAT_VECTOR,
        DataType.FLOAT16_VECTOR,
        DataType.BFLOAT16_VECTOR,
    )
)
VECTOR_TYPES = DENSE_VECTOR_TYPES | {DataType.SPARSE_FLOAT_VECTOR}

_DATA_TYPE_TOKENS = {
    member.name.lower(): member
    for member in DataType
    if member not in (DataType.NONE, DataType.UNKNOWN)
}
_DATA_TYPE_TOKENS["var_char"] = DataType.VARCHAR


class MetricType(Enum):
    L2 = "L2"
    IP = "IP"
    COSINE = "COSINE"
    HAMMING = "HAMMING"
    JACCARD = "JACCARD"

    @classmethod
    def from_token(cls, token: Any, field: str = "metric_type") -> "MetricType":
        found = _resolve(_METRIC_TYPE_TOKENS, cls, token)
        if found is None:
            raise UnknownEnumValue(field, token)
        return found


_METRIC_TYPE_TOKENS = {member.name.lower(): member for member in MetricType}
_METRIC_TYPE_TOKENS["inner_product"] = MetricType.IP


class IndexType(Enum):
    FLAT = "FLAT"
    IVF_FLAT = "IVF_FLAT"
    IVF_SQ8 = "IVF_SQ8"
    IVF_PQ = "IVF_PQ"
    HNSW = "HNSW"
    DISKANN = "DISKANN"
    AUTOINDEX = "AUTOINDEX"
    SCANN = "SCANN"
    GPU_IVF_FLAT = "GPU_IVF_FLAT"
    GPU_IVF_PQ = "GPU_IVF_PQ"
    GPU_BRUTE_FORCE = "GPU_BRUTE_FORCE"
    GPU_CAGRA = "GPU_CAGRA"
    BIN_FLAT = "BIN_FLAT"
    BIN_IVF_FLAT = "BIN_IVF_FLAT"
    TRIE = "Trie"
    STL_SORT = "STL_SORT"
    INVERTED = "INVERTED"
    SPARSE_INVERTED_INDEX = "SPARSE_INVERTED_INDEX"
    SPARSE_WAND = "SPARSE_WAND"

    @classmethod
    def from_token(cls, token: Any, field: str = "index_type") -> "IndexType":
        found = _resolve(_INDEX_TYPE_TOKENS, cls, token)
        if found is None:
            raise UnknownEnumValue(field, token)
        return found


_INDEX_TYPE_TOKENS = {member.name.lower(): member for member in IndexType}


class ConsistencyLevel(IntEnum):
    STRONG = common_pb2.Strong
    BOUNDED = common_pb2.Bounded
    EVENTUALLY = common_pb2.Eventually

    @classmethod
    def from_token(cls, token: Any, field: str = "consistency_level") -> "ConsistencyLevel":
        found = _resolve(_CONSISTENCY_LEVEL_TOKENS, cls, token)
        if found is None:
            raise UnknownEnumValue(field, token)
        return found


_CONSISTENCY_LEVEL_TOKENS = {member.name.lower(): member for member in ConsistencyLevel}


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @classmethod
    def from_token(cls, token: Any, field: str = "log_level") -> "LogLevel":
        found = _resolve(_LOG_LEVEL_TOKENS, cls, token)
        if found is None:
            raise UnknownEnumValue(field, token)
        return found


_LOG_LEVEL_TOKENS = {member.name.lower(): member for member in LogLevel}


class IndexState(IntEnum):
    IndexStateNone = common_pb2.IndexStateNone
    Unissued = common_pb2.Unissued
    InProgress = common_pb2.InProgress
    Finished = common_pb2.Finished
    Failed = common_pb2.Failed
    Retry = common_pb2.Retry


class PlaceholderType(IntEnum):
    NONE = 0
    BinaryVector = 100
    FloatVector = 101
    FLOAT16_VECTOR = 102
    BFLOAT16_VECTOR = 103
    SparseFloatVector = 104
