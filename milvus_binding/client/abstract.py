import abc
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import ujson

from milvus_binding.exceptions import ExceptionsMessage, ParamError
from milvus_binding.settings import Config

from .constants import DEFAULT_RRF_K, DYNAMIC_FIELD_NAME, RANKER_TYPE_RRF, RANKER_TYPE_WEIGHTED
from .types import DataType

logger = logging.getLogger(__name__)


class FieldSchema:
    def __init__(self, raw: Any):
        self._raw = raw

        self.field_id = 0
        self.name = None
        self.is_primary = False
        self.description = None
        self.auto_id = False
        self.type = DataType.UNKNOWN
        self.params = {}
        self.is_partition_key = False
        self.is_dynamic = False
        # For array field
        self.element_type = None
        self.__pack(self._raw)

    def __pack(self, raw: Any):
        self.field_id = raw.fieldID
        self.name = raw.name
        self.is_primary = raw.is_primary_key
        self.description = raw.description
        self.auto_id = raw.autoID
        self.type = DataType(raw.data_type)
        self.is_partition_key = raw.is_partition_key
        self.is_dynamic = raw.is_dynamic
        if self.type == DataType.ARRAY:
            self.element_type = DataType(raw.element_type)

        for type_param in raw.type_params:
            if type_param.key == "params":
                try:
                    self.params[type_param.key] = ujson.loads(type_param.value)
                except ValueError as e:
                    logger.error(
                        f"FieldSchema::__pack::Failed to load JSON type_param.value: {e}, original data: {type_param.value}"
                    )
                    raise
                continue
            self.params[type_param.key] = type_param.value
            if type_param.key in ["dim", Config.MaxVarCharLengthKey, "max_capacity"]:
                self.params[type_param.key] = int(type_param.value)

    @property
    def dim(self) -> Optional[int]:
        return self.params.get("dim")

    def dict(self):
        _dict = {
            "field_id": self.field_id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "params": self.params or {},
        }
        if self.element_type:
            _dict["element_type"] = self.element_type
        if self.is_partition_key:
            _dict["is_partition_key"] = True
        if self.is_dynamic:
            _dict["is_dynamic"] = True
        if self.auto_id:
            _dict["auto_id"] = True
        if self.is_primary:
            _dict["is_primary"] = self.is_primary
        return _dict


class CollectionSchema:
    """Schema of an existing collection as reported by DescribeCollection."""

    def __init__(self, raw: Any):
        self._raw = raw

        self.collection_name = None
        self.description = None
        self.fields = []
        self.collection_id = 0
        self.shards_num = 0
        self.consistency_level = None
        self.enable_dynamic_field = False

        if self._raw is not None:
            self.__pack(self._raw)

    def __pack(self, raw: Any):
        self.collection_name = raw.schema.name
        self.description = raw.schema.description
        self.enable_dynamic_field = raw.schema.enable_dynamic_field
        self.collection_id = raw.collectionID
        self.shards_num = raw.shards_num
        self.consistency_level = raw.consistency_level
        self.fields = [FieldSchema(f) for f in raw.schema.fields]

    @property
    def primary_field(self) -> Optional[FieldSchema]:
        for f in self.fields:
            if f.is_primary:
                return f
        return None

    def get_field(self, name: str) -> Optional[FieldSchema]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def declared_fields(self) -> List[FieldSchema]:
        """Fields in schema order, without the hidden dynamic column."""
        return [f for f in self.fields if not f.is_dynamic and f.name != DYNAMIC_FIELD_NAME]

    def dict(self):
        return {
            "collection_name": self.collection_name,
            "description": self.description,
            "fields": [f.dict() for f in self.fields],
            "collection_id": self.collection_id,
            "shards_num": self.shards_num,
            "consistency_level": self.consistency_level,
            "enable_dynamic_field": self.enable_dynamic_field,
        }

    def __str__(self):
        return self.dict().__str__()


class MutationResult:
    """Outcome of an insert, upsert or delete.

    Counts that do not apply to ``operation`` are ``None`` rather than 0.
    Exactly one identifier variant is populated, reported by ``id_kind`` as
    ``"int_id"`` or ``"str_id"``; ``id_kind`` is ``None`` when the service
    returned no identifiers.
    """

    _COUNTS = {
        "insert": ("insert_cnt",),
        "upsert": ("upsert_cnt",),
        "delete": ("delete_cnt",),
    }

    def __init__(self, raw: Any, operation: str = "insert"):
        self._raw = raw
        self._operation = operation
        self._primary_keys = []
        self._id_kind = None
        self._insert_cnt = None
        self._delete_cnt = None
        self._upsert_cnt = None
        self._timestamp = 0
        self._succ_index = []
        self._err_index = []

        self._pack(raw)

    @property
    def primary_keys(self):
        return self._primary_keys

    @property
    def ids(self):
        return self._primary_keys

    @property
    def id_kind(self):
        return self._id_kind

    @property
    def insert_count(self):
        return self._insert_cnt

    @property
    def delete_count(self):
        return self._delete_cnt

    @property
    def upsert_count(self):
        return self._upsert_cnt

    @property
    def timestamp(self):
        return self._timestamp

    @property
    def succ_index(self):
        return self._succ_index

    @property
    def err_index(self):
        return self._err_index

    def dict(self) -> Dict[str, Any]:
        return {
            "insert_count": self._insert_cnt,
            "delete_count": self._delete_cnt,
            "upsert_count": self._upsert_cnt,
            "ids": self._primary_keys,
            "id_kind": self._id_kind,
            "timestamp": self._timestamp,
        }

    def __str__(self):
        return (
            f"(insert count: {self._insert_cnt}, delete count: {self._delete_cnt}, "
            f"upsert count: {self._upsert_cnt}, timestamp: {self._timestamp}, "
            f"id kind: {self._id_kind}, ids: {self._primary_keys})"
        )

    __repr__ = __str__

    def _pack(self, raw: Any):
        which = raw.IDs.WhichOneof("id_field")
        if which == "int_id":
            self._primary_keys = list(raw.IDs.int_id.data)
        elif which == "str_id":
            self._primary_keys = list(raw.IDs.str_id.data)
        self._id_kind = which

        for attr in self._COUNTS.get(self._operation, ()):
            setattr(self, f"_{attr}", getattr(raw, attr))
        self._timestamp = raw.timestamp
        self._succ_index = list(raw.succ_index)
        self._err_index = list(raw.err_index)


class BaseRanker:
    @abc.abstractmethod
    def dict(self):
        return {}

    def __str__(self):
        return self.dict().__str__()


class RRFRanker(BaseRanker):
    def __init__(self, k: int = DEFAULT_RRF_K):
        self._strategy = RANKER_TYPE_RRF
        self._k = int(k)

    def dict(self):
        params = {
            "k": self._k,
        }
        return {
            "strategy": self._strategy,
            "params": params,
        }


class WeightedRanker(BaseRanker):
    def __init__(self, *nums, norm_score: bool = True):
        self._strategy = RANKER_TYPE_WEIGHTED
        weights = []
        for num in nums:
            # isinstance(True, int) is True, so we need to check bool first
            if isinstance(num, bool) or not isinstance(num, (int, float)):
                raise ParamError(message=f"Weight must be a number, got {type(num)}")
            weights.append(num)
        self._weights = weights
        self._norm_score = norm_score

    def dict(self):
        params = {
            "weights": self._weights,
            "norm_score": self._norm_score,
        }
        return {
            "strategy": self._strategy,
            "params": params,
        }


_VECTOR_KINDS = {
    "float_vectors": DataType.FLOAT_VECTOR,
    "binary_vectors": DataType.BINARY_VECTOR,
    "float16_vectors": DataType.FLOAT16_VECTOR,
    "bfloat16_vectors": DataType.BFLOAT16_VECTOR,
    "sparse_float_vectors": DataType.SPARSE_FLOAT_VECTOR,
}


class AnnSearchRequest:
    """One per-field ANN sub-search of a hybrid search.

    Exactly one of ``float_vectors``, ``binary_vectors``, ``float16_vectors``,
    ``bfloat16_vectors`` or ``sparse_float_vectors`` carries the query vectors.
    """

    def __init__(
        self,
        vector_field_name: str,
        top_k: Optional[int] = None,
        metric_type: Optional[str] = None,
        expr: Optional[str] = None,
        params: Optional[Union[str, Dict]] = None,
        float_vectors: Optional[Sequence] = None,
        binary_vectors: Optional[Sequence] = None,
        float16_vectors: Optional[Sequence] = None,
        bfloat16_vectors: Optional[Sequence] = None,
        sparse_float_vectors: Optional[Sequence] = None,
    ):
        given = {
            name: value
            for name, value in (
                ("float_vectors", float_vectors),
                ("binary_vectors", binary_vectors),
                ("float16_vectors", float16_vectors),
                ("bfloat16_vectors", bfloat16_vectors),
                ("sparse_float_vectors", sparse_float_vectors),
            )
            if value is not None
        }
        if len(given) != 1:
            raise ParamError(message=ExceptionsMessage.VectorKindCount % sorted(given))
        ((kind, vectors),) = given.items()

        self._anns_field = vector_field_name
        self._vector_type = _VECTOR_KINDS[kind]
        self._data = list(vectors)
        self._limit = top_k
        self._metric_type = metric_type
        self._params = params
        self._expr = expr

    @property
    def anns_field(self):
        return self._anns_field

    @property
    def vector_type(self) -> DataType:
        return self._vector_type

    @property
    def data(self):
        return self._data

    @property
    def vector_count(self) -> int:
        return len(self._data)

    @property
    def limit(self):
        return self._limit

    @property
    def metric_type(self):
        return self._metric_type

    @property
    def params(self):
        return self._params

    @property
    def expr(self):
        return self._expr

    def __str__(self):
        return {
            "anns_field": self.anns_field,
            "vector_type": self.vector_type.name,
            "nq": self.vector_count,
            "limit": self.limit,
            "metric_type": self.metric_type,
            "params": self.params,
            "expr": self.expr,
        }.__str__()
