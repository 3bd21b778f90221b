"""Builders for real protobuf responses used in place of a live server."""

from milvus_binding.client.entity_helper import entity_to_field_data
from milvus_binding.client.types import DataType
from pymilvus.grpc_gen import common_pb2, milvus_pb2, schema_pb2


def make_status(code=0, error_code=0, reason=""):
    return common_pb2.Status(code=code, error_code=error_code, reason=reason)


def make_field_schema(name, data_type, is_primary=False, auto_id=False, is_dynamic=False, **params):
    field = schema_pb2.FieldSchema(
        name=name,
        data_type=data_type,
        is_primary_key=is_primary,
        autoID=auto_id,
        is_dynamic=is_dynamic,
    )
    element_type = params.pop("element_type", None)
    if element_type is not None:
        field.element_type = element_type
    for key, value in params.items():
        field.type_params.add(key=key, value=str(value))
    return field


def make_describe_response(fields, name="books", enable_dynamic_field=False):
    schema = schema_pb2.CollectionSchema(
        name=name, fields=fields, enable_dynamic_field=enable_dynamic_field
    )
    return milvus_pb2.DescribeCollectionResponse(
        status=make_status(), schema=schema, collectionID=7, shards_num=1
    )


def books_schema_fields():
    return [
        make_field_schema("id", DataType.INT64, is_primary=True),
        make_field_schema("title", DataType.VARCHAR, max_length=64),
        make_field_schema("embedding", DataType.FLOAT_VECTOR, dim=2),
    ]


def make_mutation_response(insert_cnt=0, int_ids=None, str_ids=None, delete_cnt=0, upsert_cnt=0, timestamp=0):
    resp = milvus_pb2.MutationResult(
        status=make_status(),
        insert_cnt=insert_cnt,
        delete_cnt=delete_cnt,
        upsert_cnt=upsert_cnt,
        timestamp=timestamp,
    )
    if int_ids is not None:
        resp.IDs.int_id.data.extend(int_ids)
    if str_ids is not None:
        resp.IDs.str_id.data.extend(str_ids)
    return resp


def make_search_result_data(topks, int_ids=None, str_ids=None, scores=None, columns=None):
    """``columns`` maps field name to (DataType, values) laid out one value per hit."""
    data = schema_pb2.SearchResultData(
        num_queries=len(topks),
        top_k=max(topks) if topks else 0,
        topks=topks,
        scores=scores or [],
    )
    if int_ids is not None:
        data.ids.int_id.data.extend(int_ids)
    if str_ids is not None:
        data.ids.str_id.data.extend(str_ids)
    for name, (dtype, values) in (columns or {}).items():
        data.fields_data.append(entity_to_field_data(name, dtype, values))
    data.output_fields.extend((columns or {}).keys())
    return data


def make_search_response(**kwargs):
    return milvus_pb2.SearchResults(status=make_status(), results=make_search_result_data(**kwargs))
