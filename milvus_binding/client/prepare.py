from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from milvus_binding.exceptions import (
    DataNotMatchException,
    ExceptionsMessage,
    ParamError,
    UnknownDataType,
    UnknownEnumValue,
)
from pymilvus.grpc_gen import common_pb2 as common_types
from pymilvus.grpc_gen import milvus_pb2 as milvus_types

from . import blob, entity_helper, utils
from .abstract import AnnSearchRequest, BaseRanker, CollectionSchema
from .check import check_pass_param
from .constants import (
    ANNS_FIELD,
    DYNAMIC_FIELD_NAME,
    IGNORE_GROWING,
    INDEX_TYPE,
    LIMIT,
    METRIC_TYPE,
    OFFSET,
    PARAMS,
    PLACEHOLDER_TAG,
    ROUND_DECIMAL,
    TOPK,
)
from .json_codec import row_to_wire_json
from .schema import CollectionDescriptor, normalize_collection
from .types import ConsistencyLevel, DataType, IndexType, MetricType, PlaceholderType

_PLACEHOLDER_TYPES = {
    DataType.FLOAT_VECTOR: PlaceholderType.FloatVector,
    DataType.BINARY_VECTOR: PlaceholderType.BinaryVector,
    DataType.FLOAT16_VECTOR: PlaceholderType.FLOAT16_VECTOR,
    DataType.BFLOAT16_VECTOR: PlaceholderType.BFLOAT16_VECTOR,
    DataType.SPARSE_FLOAT_VECTOR: PlaceholderType.SparseFloatVector,
}


def _kv(key: str, value: Any) -> common_types.KeyValuePair:
    return common_types.KeyValuePair(key=str(key), value=utils.dumps(value))


def _params_value(params: Union[str, Dict, None]) -> Optional[str]:
    """Algorithm specific params pass through untouched when already a JSON string."""
    if params is None or isinstance(params, str):
        return params
    return utils.dumps(dict(params))


def _vector_type(token: Any) -> DataType:
    try:
        dtype = DataType.from_token(token, field="vector_type")
    except UnknownDataType as e:
        raise UnknownEnumValue("vector_type", token) from e
    if not dtype.is_vector:
        raise UnknownEnumValue("vector_type", token)
    return dtype


def _infer_vector_type(vectors: Sequence[Any]) -> DataType:
    first = vectors[0]
    if isinstance(first, bytes):
        return DataType.BINARY_VECTOR
    if isinstance(first, Mapping):
        return DataType.SPARSE_FLOAT_VECTOR
    if isinstance(first, np.ndarray):
        if first.dtype.name == "float16":
            return DataType.FLOAT16_VECTOR
        if first.dtype.name == "bfloat16":
            return DataType.BFLOAT16_VECTOR
    return DataType.FLOAT_VECTOR


def _consistency(request: Any, consistency_level: Any):
    if consistency_level is None:
        request.use_default_consistency = True
        return
    request.consistency_level = ConsistencyLevel.from_token(consistency_level)
    request.use_default_consistency = False


class Prepare:
    @classmethod
    def placeholder_group(cls, vectors: Sequence[Any], vector_type: Optional[Any] = None) -> bytes:
        """Serialize query vectors into the ``$0`` placeholder group a search carries."""
        if vectors is None or len(vectors) == 0:
            raise ParamError(message="vectors must be a non-empty list")
        vectors = list(vectors)
        dtype = _vector_type(vector_type) if vector_type is not None else _infer_vector_type(vectors)

        if dtype == DataType.FLOAT_VECTOR:
            values = [blob.vector_float_to_bytes([float(x) for x in v]) for v in vectors]
        elif dtype == DataType.BINARY_VECTOR:
            for v in vectors:
                if not isinstance(v, bytes):
                    raise ParamError(message=f"binary vector must be bytes, got {type(v)}")
            values = vectors
        elif dtype == DataType.FLOAT16_VECTOR:
            values = [blob.vector_float16_to_bytes(v) for v in vectors]
        elif dtype == DataType.BFLOAT16_VECTOR:
            values = [blob.vector_bfloat16_to_bytes(v) for v in vectors]
        else:
            values = [blob.sparse_row_to_bytes(v) for v in vectors]

        pl = common_types.PlaceholderValue(
            tag=PLACEHOLDER_TAG, type=_PLACEHOLDER_TYPES[dtype], values=values
        )
        return common_types.PlaceholderGroup(placeholders=[pl]).SerializeToString()

    @classmethod
    def create_collection_request(
        cls,
        collection_name: str,
        fields: Sequence[Any],
        description: Optional[str] = None,
        shards_num: Optional[int] = None,
        num_partitions: Optional[int] = None,
        consistency_level: Optional[Any] = None,
        enable_dynamic_field: Optional[bool] = None,
    ) -> milvus_types.CreateCollectionRequest:
        check_pass_param(collection_name=collection_name)
        level = None
        if consistency_level is not None:
            level = ConsistencyLevel.from_token(consistency_level)

        schema = normalize_collection(
            CollectionDescriptor(
                name=collection_name,
                fields=fields,
                description=description or "",
                shards_num=shards_num,
                num_partitions=num_partitions,
                consistency_level=level,
                enable_dynamic_field=bool(enable_dynamic_field),
            )
        )
        request = milvus_types.CreateCollectionRequest(
            collection_name=collection_name,
            schema=schema.SerializeToString(),
        )
        if shards_num is not None:
            request.shards_num = int(shards_num)
        if num_partitions is not None:
            request.num_partitions = int(num_partitions)
        if level is not None:
            request.consistency_level = level
        return request

    @classmethod
    def drop_collection_request(cls, collection_name: str) -> milvus_types.DropCollectionRequest:
        check_pass_param(collection_name=collection_name)
        return milvus_types.DropCollectionRequest(collection_name=collection_name)

    @classmethod
    def describe_collection_request(
        cls, collection_name: str
    ) -> milvus_types.DescribeCollectionRequest:
        check_pass_param(collection_name=collection_name)
        return milvus_types.DescribeCollectionRequest(collection_name=collection_name)

    @classmethod
    def create_index_request(
        cls,
        collection_name: str,
        field_name: str,
        index_type: Optional[Any] = None,
        index_name: Optional[str] = None,
        metric_type: Optional[Any] = None,
        extra_param: Optional[Union[str, Dict]] = None,
    ) -> milvus_types.CreateIndexRequest:
        check_pass_param(collection_name=collection_name, field_name=field_name)
        request = milvus_types.CreateIndexRequest(
            collection_name=collection_name, field_name=field_name
        )
        if index_type is not None:
            request.extra_params.append(_kv(INDEX_TYPE, IndexType.from_token(index_type).value))
        if metric_type is not None:
            request.extra_params.append(_kv(METRIC_TYPE, MetricType.from_token(metric_type).value))
        if extra_param is not None:
            request.extra_params.append(_kv(PARAMS, _params_value(extra_param)))
        if index_name is not None:
            request.index_name = index_name
        return request

    @classmethod
    def drop_index_request(
        cls, collection_name: str, index_name: Optional[str] = None, field_name: Optional[str] = None
    ) -> milvus_types.DropIndexRequest:
        check_pass_param(collection_name=collection_name)
        request = milvus_types.DropIndexRequest(collection_name=collection_name)
        if index_name is not None:
            request.index_name = index_name
        if field_name is not None:
            request.field_name = field_name
        return request

    @classmethod
    def describe_index_request(
        cls, collection_name: str, index_name: Optional[str] = None, field_name: Optional[str] = None
    ) -> milvus_types.DescribeIndexRequest:
        check_pass_param(collection_name=collection_name)
        request = milvus_types.DescribeIndexRequest(collection_name=collection_name)
        if index_name is not None:
            request.index_name = index_name
        if field_name is not None:
            request.field_name = field_name
        return request

    @classmethod
    def _columns_from_rows(
        cls, rows: Sequence[Mapping], schema: CollectionSchema, is_upsert: bool
    ) -> Dict[str, List[Any]]:
        declared = cls._insertable_fields(schema, is_upsert)
        names = [f.name for f in declared]
        columns: Dict[str, List[Any]] = {name: [] for name in names}
        dynamic: List[Dict[str, Any]] = []

        for row in rows:
            row = row_to_wire_json(row)
            for name in names:
                if name not in row:
                    raise DataNotMatchException(message=ExceptionsMessage.InsertMissedField % name)
                columns[name].append(row[name])
            extra = {k: v for k, v in row.items() if k not in columns}
            cls._check_extra_keys(extra, schema, is_upsert)
            dynamic.append(extra)

        if schema.enable_dynamic_field:
            columns[DYNAMIC_FIELD_NAME] = dynamic
        return columns

    @classmethod
    def _columns_from_fields(
        cls, fields: Union[Mapping, Sequence[Mapping]], schema: CollectionSchema, is_upsert: bool
    ) -> Dict[str, List[Any]]:
        if isinstance(fields, Mapping):
            given = {str(k): list(v) for k, v in fields.items()}
        else:
            given = {}
            for column in fields:
                if not isinstance(column, Mapping) or "name" not in column:
                    raise ParamError(message="each column must be a dict with 'name' and 'values'")
                given[column["name"]] = list(column.get("values", []))

        declared = cls._insertable_fields(schema, is_upsert)
        columns = {}
        for f in declared:
            if f.name not in given:
                raise DataNotMatchException(message=ExceptionsMessage.InsertMissedField % f.name)
            columns[f.name] = given.pop(f.name)
        cls._check_extra_keys(given, schema, is_upsert)

        num_rows = cls._num_rows(columns)
        if schema.enable_dynamic_field:
            for name, values in given.items():
                if len(values) != num_rows:
                    raise DataNotMatchException(
                        message=ExceptionsMessage.InsertColumnLength % (name, len(values), num_rows)
                    )
            columns[DYNAMIC_FIELD_NAME] = [
                {name: values[i] for name, values in given.items()} for i in range(num_rows)
            ]
        return columns

    @staticmethod
    def _insertable_fields(schema: CollectionSchema, is_upsert: bool):
        return [
            f for f in schema.declared_fields if is_upsert or not (f.is_primary and f.auto_id)
        ]

    @staticmethod
    def _check_extra_keys(extra: Mapping, schema: CollectionSchema, is_upsert: bool):
        for key in extra:
            field = schema.get_field(key)
            if field is not None and field.is_primary and field.auto_id and not is_upsert:
                raise DataNotMatchException(
                    message=f"The primary key field {key!r} is auto generated, do not provide it"
                )
            if not schema.enable_dynamic_field:
                raise DataNotMatchException(message=ExceptionsMessage.InsertUnexpectedField % key)

    @staticmethod
    def _num_rows(columns: Mapping[str, List[Any]]) -> int:
        lengths = {name: len(values) for name, values in columns.items()}
        num_rows = next(iter(lengths.values()), 0)
        for name, length in lengths.items():
            if length != num_rows:
                raise DataNotMatchException(
                    message=ExceptionsMessage.InsertColumnLength % (name, length, num_rows)
                )
        return num_rows

    @classmethod
    def _mutation_fields_data(
        cls,
        schema: CollectionSchema,
        fields: Optional[Union[Mapping, Sequence[Mapping]]],
        rows: Optional[Sequence[Mapping]],
        is_upsert: bool,
    ):
        if fields is not None and rows is not None:
            raise ParamError(message=ExceptionsMessage.InsertBothColumnsAndRows)
        if fields is None and rows is None:
            raise ParamError(message=ExceptionsMessage.InsertNoData)

        if rows is not None:
            columns = cls._columns_from_rows(rows, schema, is_upsert)
        else:
            columns = cls._columns_from_fields(fields, schema, is_upsert)
        num_rows = cls._num_rows(columns)
        if num_rows == 0:
            raise ParamError(message=ExceptionsMessage.InsertNoData)

        fields_data = []
        for name, values in columns.items():
            if name == DYNAMIC_FIELD_NAME:
                fields_data.append(
                    entity_helper.entity_to_field_data(
                        name, DataType.JSON, values, is_dynamic=True
                    )
                )
                continue
            f = schema.get_field(name)
            fields_data.append(
                entity_helper.entity_to_field_data(
                    name, f.type, values, dim=f.dim, element_type=f.element_type
                )
            )
        return fields_data, num_rows

    @classmethod
    def insert_request(
        cls,
        collection_name: str,
        schema: CollectionSchema,
        fields: Optional[Union[Mapping, Sequence[Mapping]]] = None,
        rows: Optional[Sequence[Mapping]] = None,
        partition_name: Optional[str] = None,
    ) -> milvus_types.InsertRequest:
        """Build an insert from either columns or rows.

        ``fields`` is ``{name: values}`` or ``[{"name": ..., "values": [...]}, ...]``;
        ``rows`` is a list of dicts keyed by field name.
        """
        check_pass_param(collection_name=collection_name)
        fields_data, num_rows = cls._mutation_fields_data(schema, fields, rows, is_upsert=False)
        request = milvus_types.InsertRequest(
            collection_name=collection_name, fields_data=fields_data, num_rows=num_rows
        )
        if partition_name is not None:
            request.partition_name = partition_name
        return request

    @classmethod
    def upsert_request(
        cls,
        collection_name: str,
        schema: CollectionSchema,
        fields: Optional[Union[Mapping, Sequence[Mapping]]] = None,
        rows: Optional[Sequence[Mapping]] = None,
        partition_name: Optional[str] = None,
    ) -> milvus_types.UpsertRequest:
        check_pass_param(collection_name=collection_name)
        fields_data, num_rows = cls._mutation_fields_data(schema, fields, rows, is_upsert=True)
        request = milvus_types.UpsertRequest(
            collection_name=collection_name, fields_data=fields_data, num_rows=num_rows
        )
        if partition_name is not None:
            request.partition_name = partition_name
        return request

    @classmethod
    def delete_request(
        cls,
        collection_name: str,
        expr: str,
        partition_name: Optional[str] = None,
        consistency_level: Optional[Any] = None,
    ) -> milvus_types.DeleteRequest:
        check_pass_param(collection_name=collection_name, expr=expr)
        request = milvus_types.DeleteRequest(collection_name=collection_name, expr=expr)
        if partition_name is not None:
            request.partition_name = partition_name
        if consistency_level is not None:
            request.consistency_level = ConsistencyLevel.from_token(consistency_level)
        return request

    @classmethod
    def query_request(
        cls,
        collection_name: str,
        expr: Optional[str] = None,
        out_fields: Optional[List[str]] = None,
        partition_names: Optional[List[str]] = None,
        consistency_level: Optional[Any] = None,
        travel_timestamp: Optional[int] = None,
        guarantee_timestamp: Optional[int] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        ignore_growing: Optional[bool] = None,
    ) -> milvus_types.QueryRequest:
        check_pass_param(collection_name=collection_name)
        request = milvus_types.QueryRequest(collection_name=collection_name)
        _consistency(request, consistency_level)
        if expr is not None:
            request.expr = expr
        if out_fields is not None:
            request.output_fields.extend(out_fields)
        if partition_names is not None:
            request.partition_names.extend(partition_names)
        if travel_timestamp is not None:
            request.travel_timestamp = int(travel_timestamp)
        if guarantee_timestamp is not None:
            request.guarantee_timestamp = int(guarantee_timestamp)
        if offset is not None:
            request.query_params.append(_kv(OFFSET, int(offset)))
        if limit is not None:
            request.query_params.append(_kv(LIMIT, int(limit)))
        if ignore_growing is not None:
            request.query_params.append(_kv(IGNORE_GROWING, bool(ignore_growing)))
        return request

    @classmethod
    def _search_params(
        cls,
        vector_field_name: str,
        top_k: Optional[int],
        metric_type: Optional[Any],
        params: Optional[Union[str, Dict]],
        round_decimal: Optional[int] = None,
        offset: Optional[int] = None,
        ignore_growing: Optional[bool] = None,
    ) -> List[common_types.KeyValuePair]:
        search_params = [_kv(ANNS_FIELD, vector_field_name)]
        if top_k is not None:
            search_params.append(_kv(TOPK, int(top_k)))
        if metric_type is not None:
            search_params.append(_kv(METRIC_TYPE, MetricType.from_token(metric_type).value))
        search_params.append(_kv(PARAMS, _params_value(params) or "{}"))
        if round_decimal is not None:
            search_params.append(_kv(ROUND_DECIMAL, int(round_decimal)))
        if offset is not None:
            search_params.append(_kv(OFFSET, int(offset)))
        if ignore_growing is not None:
            search_params.append(_kv(IGNORE_GROWING, bool(ignore_growing)))
        return search_params

    @classmethod
    def search_request(
        cls,
        collection_name: str,
        vectors: Sequence[Any],
        vector_field_name: str,
        top_k: Optional[int] = None,
        metric_type: Optional[Any] = None,
        expr: Optional[str] = None,
        partition_names: Optional[List[str]] = None,
        out_fields: Optional[List[str]] = None,
        consistency_level: Optional[Any] = None,
        round_decimal: Optional[int] = None,
        params: Optional[Union[str, Dict]] = None,
        offset: Optional[int] = None,
        ignore_growing: Optional[bool] = None,
        travel_timestamp: Optional[int] = None,
        guarantee_timestamp: Optional[int] = None,
        vector_type: Optional[Any] = None,
    ) -> milvus_types.SearchRequest:
        check_pass_param(collection_name=collection_name, field_name=vector_field_name)
        search_params = cls._search_params(
            vector_field_name, top_k, metric_type, params, round_decimal, offset, ignore_growing
        )
        request = milvus_types.SearchRequest(
            collection_name=collection_name,
            placeholder_group=cls.placeholder_group(vectors, vector_type),
            dsl_type=common_types.DslType.BoolExprV1,
            nq=len(vectors),
            search_params=search_params,
        )
        _consistency(request, consistency_level)
        if expr is not None:
            request.dsl = expr
        if partition_names is not None:
            request.partition_names.extend(partition_names)
        if out_fields is not None:
            request.output_fields.extend(out_fields)
        if travel_timestamp is not None:
            request.travel_timestamp = int(travel_timestamp)
        if guarantee_timestamp is not None:
            request.guarantee_timestamp = int(guarantee_timestamp)
        return request

    @classmethod
    def ann_search_request(
        cls, collection_name: str, req: AnnSearchRequest
    ) -> milvus_types.SearchRequest:
        """Compile one hybrid sub-request; output fields and consistency live on the outer request."""
        request = milvus_types.SearchRequest(
            collection_name=collection_name,
            placeholder_group=cls.placeholder_group(req.data, req.vector_type),
            dsl_type=common_types.DslType.BoolExprV1,
            nq=req.vector_count,
            search_params=cls._search_params(req.anns_field, req.limit, req.metric_type, req.params),
        )
        if req.expr is not None:
            request.dsl = req.expr
        return request

    @classmethod
    def hybrid_search_request(
        cls,
        collection_name: str,
        search_requests: Sequence[AnnSearchRequest],
        ranker: BaseRanker,
        top_k: Optional[int] = None,
        out_fields: Optional[List[str]] = None,
        partition_names: Optional[List[str]] = None,
        consistency_level: Optional[Any] = None,
        round_decimal: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> milvus_types.HybridSearchRequest:
        check_pass_param(collection_name=collection_name)
        if not search_requests:
            raise ParamError(message=ExceptionsMessage.NoSubRequest)
        if not isinstance(ranker, BaseRanker):
            raise ParamError(message=ExceptionsMessage.RankerType)
        counts = [req.vector_count for req in search_requests]
        if len(set(counts)) != 1:
            raise ParamError(message=ExceptionsMessage.HybridVectorCountMismatch % counts)

        request = milvus_types.HybridSearchRequest(
            collection_name=collection_name,
            requests=[cls.ann_search_request(collection_name, req) for req in search_requests],
        )
        _consistency(request, consistency_level)
        if out_fields is not None:
            request.output_fields.extend(out_fields)
        if partition_names is not None:
            request.partition_names.extend(partition_names)

        rank_params = ranker.dict()
        if top_k is not None:
            rank_params[LIMIT] = int(top_k)
        if round_decimal is not None:
            rank_params[ROUND_DECIMAL] = int(round_decimal)
        if offset is not None:
            rank_params[OFFSET] = int(offset)
        request.rank_params.extend([_kv(key, value) for key, value in rank_params.items()])
        return request

    @classmethod
    def flush_request(cls, collection_names: List[str]) -> milvus_types.FlushRequest:
        if not isinstance(collection_names, list) or not collection_names:
            raise ParamError(message="Collection name list can not be None or empty")
        for name in collection_names:
            check_pass_param(collection_name=name)
        return milvus_types.FlushRequest(collection_names=collection_names)

    @classmethod
    def get_flush_state_request(
        cls, segment_ids: List[int], collection_name: str, flush_ts: int
    ) -> milvus_types.GetFlushStateRequest:
        return milvus_types.GetFlushStateRequest(
            segmentIDs=segment_ids, collection_name=collection_name, flush_ts=flush_ts
        )

    @classmethod
    def load_collection_request(
        cls,
        collection_name: str,
        replica_number: Optional[int] = None,
        refresh: Optional[bool] = None,
    ) -> milvus_types.LoadCollectionRequest:
        check_pass_param(collection_name=collection_name)
        request = milvus_types.LoadCollectionRequest(collection_name=collection_name)
        if replica_number is not None:
            request.replica_number = int(replica_number)
        if refresh is not None:
            request.refresh = bool(refresh)
        return request

    @classmethod
    def get_loading_progress_request(
        cls, collection_name: str
    ) -> milvus_types.GetLoadingProgressRequest:
        check_pass_param(collection_name=collection_name)
        return milvus_types.GetLoadingProgressRequest(collection_name=collection_name)

    @classmethod
    def release_collection_request(
        cls, collection_name: str
    ) -> milvus_types.ReleaseCollectionRequest:
        check_pass_param(collection_name=collection_name)
        return milvus_types.ReleaseCollectionRequest(collection_name=collection_name)

    @classmethod
    def create_database_request(cls, db_name: str) -> milvus_types.CreateDatabaseRequest:
        check_pass_param(db_name=db_name)
        return milvus_types.CreateDatabaseRequest(db_name=db_name)

    @classmethod
    def drop_database_request(cls, db_name: str) -> milvus_types.DropDatabaseRequest:
        check_pass_param(db_name=db_name)
        return milvus_types.DropDatabaseRequest(db_name=db_name)

    @classmethod
    def list_databases_request(cls) -> milvus_types.ListDatabasesRequest:
        return milvus_types.ListDatabasesRequest()
