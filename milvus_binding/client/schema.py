"""Validation and translation of field/collection descriptors into wire schemas."""

import dataclasses
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from milvus_binding.exceptions import ExceptionsMessage, InvalidFieldSpec, ParamError
from milvus_binding.settings import Config
from pymilvus.grpc_gen import schema_pb2

from . import utils
from .types import ConsistencyLevel, DataType

DIM = "dim"
MAX_LENGTH = Config.MaxVarCharLengthKey
MAX_CAPACITY = "max_capacity"

# type params carried as named descriptor attributes, in wire order
_NAMED_TYPE_PARAMS = (DIM, MAX_LENGTH, MAX_CAPACITY)

_PRIMARY_KEY_TYPES = (DataType.INT64, DataType.VARCHAR)
_ARRAY_ELEMENT_TYPES = (
    DataType.BOOL,
    DataType.INT8,
    DataType.INT16,
    DataType.INT32,
    DataType.INT64,
    DataType.FLOAT,
    DataType.DOUBLE,
    DataType.VARCHAR,
    DataType.STRING,
)

_FIELD_KEY_ALIASES = {
    "dtype": "data_type",
    "type": "data_type",
    "dimension": DIM,
    "primary_key": "is_primary",
    "is_primary_key": "is_primary",
    "partition_key": "is_partition_key",
    "params": "type_params",
}


@dataclasses.dataclass(frozen=True)
class FieldDescriptor:
    name: str
    data_type: Union[str, DataType]
    is_primary: bool = False
    auto_id: bool = False
    is_partition_key: bool = False
    dim: Optional[int] = None
    max_length: Optional[int] = None
    element_type: Optional[Union[str, DataType]] = None
    max_capacity: Optional[int] = None
    description: str = ""
    type_params: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FieldDescriptor":
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs = {}
        for key, value in raw.items():
            key = _FIELD_KEY_ALIASES.get(key, key)
            if key not in known:
                raise InvalidFieldSpec(raw.get("name"), key)
            kwargs[key] = value
        for required in ("name", "data_type"):
            if required not in kwargs:
                raise InvalidFieldSpec(raw.get("name"), required)
        return cls(**kwargs)

    @classmethod
    def from_field_schema(cls, raw: schema_pb2.FieldSchema) -> "FieldDescriptor":
        named, extra = {}, {}
        for kv in raw.type_params:
            if kv.key in _NAMED_TYPE_PARAMS:
                named[kv.key] = int(kv.value)
            else:
                extra[kv.key] = kv.value
        element_type = None
        if raw.data_type == DataType.ARRAY:
            element_type = DataType(raw.element_type)
        return cls(
            name=raw.name,
            data_type=DataType(raw.data_type),
            is_primary=raw.is_primary_key,
            auto_id=raw.autoID,
            is_partition_key=raw.is_partition_key,
            dim=named.get(DIM),
            max_length=named.get(MAX_LENGTH),
            element_type=element_type,
            max_capacity=named.get(MAX_CAPACITY),
            description=raw.description,
            type_params=extra,
        )


@dataclasses.dataclass(frozen=True)
class CollectionDescriptor:
    name: str
    fields: Sequence[Any]
    description: str = ""
    shards_num: Optional[int] = None
    num_partitions: Optional[int] = None
    consistency_level: Optional[Union[str, ConsistencyLevel]] = None
    enable_dynamic_field: bool = False


def _as_descriptor(descriptor: Any) -> FieldDescriptor:
    if isinstance(descriptor, FieldDescriptor):
        return descriptor
    if isinstance(descriptor, schema_pb2.FieldSchema):
        return FieldDescriptor.from_field_schema(descriptor)
    if isinstance(descriptor, Mapping):
        return FieldDescriptor.from_dict(descriptor)
    raise ParamError(message=ExceptionsMessage.FieldsType)


def _positive_int(name: str, attribute: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidFieldSpec(name, attribute) from e
    if number <= 0:
        raise InvalidFieldSpec(name, attribute)
    return number


def _merge_named_params(desc: FieldDescriptor) -> Dict[str, Any]:
    named = {DIM: desc.dim, MAX_LENGTH: desc.max_length, MAX_CAPACITY: desc.max_capacity}
    for key in _NAMED_TYPE_PARAMS:
        if key in desc.type_params:
            if named[key] is not None:
                raise InvalidFieldSpec(
                    desc.name, key, message=f"{key} of field {desc.name!r} is given twice"
                )
            named[key] = desc.type_params[key]
    return named


def normalize_field(descriptor: Any) -> schema_pb2.FieldSchema:
    """Validate one field descriptor and compile it into a wire ``FieldSchema``.

    ``descriptor`` may be a ``FieldDescriptor``, a dict with the same keys, or
    a ``FieldSchema`` produced by an earlier call, in which case an equal
    ``FieldSchema`` is returned.

    :raises InvalidFieldSpec: a kind-specific attribute is missing, or present
        on a kind that does not take it.
    :raises UnknownDataType: the data type token is not a known data type.
    """
    desc = _as_descriptor(descriptor)
    name = desc.name
    if not isinstance(name, str) or not name:
        raise InvalidFieldSpec(name, "name")

    dtype = DataType.from_token(desc.data_type, field=name)
    named = _merge_named_params(desc)

    element_type = None
    if dtype == DataType.ARRAY:
        if desc.element_type is None:
            raise InvalidFieldSpec(name, "element_type")
        element_type = DataType.from_token(desc.element_type, field=name)
        if element_type not in _ARRAY_ELEMENT_TYPES:
            raise InvalidFieldSpec(name, "element_type")
        if named[MAX_CAPACITY] is None:
            raise InvalidFieldSpec(name, MAX_CAPACITY)
        named[MAX_CAPACITY] = _positive_int(name, MAX_CAPACITY, named[MAX_CAPACITY])
    else:
        if desc.element_type is not None:
            raise InvalidFieldSpec(name, "element_type")
        if named[MAX_CAPACITY] is not None:
            raise InvalidFieldSpec(name, MAX_CAPACITY)

    if dtype.is_dense_vector:
        if named[DIM] is None:
            raise InvalidFieldSpec(name, DIM)
        named[DIM] = _positive_int(name, DIM, named[DIM])
    elif named[DIM] is not None:
        raise InvalidFieldSpec(name, DIM)

    needs_max_length = dtype.is_string or (element_type is not None and element_type.is_string)
    if needs_max_length:
        if named[MAX_LENGTH] is None:
            raise InvalidFieldSpec(name, MAX_LENGTH)
        named[MAX_LENGTH] = _positive_int(name, MAX_LENGTH, named[MAX_LENGTH])
    elif named[MAX_LENGTH] is not None:
        raise InvalidFieldSpec(name, MAX_LENGTH)

    if desc.auto_id and not desc.is_primary:
        raise InvalidFieldSpec(name, "auto_id")
    if desc.is_primary and dtype not in _PRIMARY_KEY_TYPES:
        raise InvalidFieldSpec(name, "is_primary")

    field_schema = schema_pb2.FieldSchema(
        name=name,
        is_primary_key=bool(desc.is_primary),
        description=desc.description or "",
        data_type=dtype,
        autoID=bool(desc.auto_id),
        is_partition_key=bool(desc.is_partition_key),
    )
    if element_type is not None:
        field_schema.element_type = element_type

    for key in _NAMED_TYPE_PARAMS:
        if named[key] is not None:
            field_schema.type_params.add(key=key, value=str(named[key]))
    for key, value in desc.type_params.items():
        if key in _NAMED_TYPE_PARAMS:
            continue
        field_schema.type_params.add(key=str(key), value=utils.dumps(value))
    return field_schema


def normalize_collection(descriptor: CollectionDescriptor) -> schema_pb2.CollectionSchema:
    """Normalize every field in order and check collection-wide rules."""
    if not isinstance(descriptor.name, str) or not descriptor.name:
        raise ParamError(message=ExceptionsMessage.CollectionNameType)
    if isinstance(descriptor.fields, (str, bytes, Mapping)) or not descriptor.fields:
        raise ParamError(message=ExceptionsMessage.FieldsType)

    fields: List[schema_pb2.FieldSchema] = []
    seen = set()
    for raw in descriptor.fields:
        field_schema = normalize_field(raw)
        if field_schema.name in seen:
            raise ParamError(message=ExceptionsMessage.DuplicateFieldName % field_schema.name)
        seen.add(field_schema.name)
        fields.append(field_schema)

    primaries = [f for f in fields if f.is_primary_key]
    if not primaries:
        raise ParamError(message=ExceptionsMessage.PrimaryKeyNotExist)
    if len(primaries) > 1:
        raise ParamError(message=ExceptionsMessage.PrimaryKeyOnlyOne % len(primaries))

    return schema_pb2.CollectionSchema(
        name=descriptor.name,
        description=descriptor.description or "",
        autoID=primaries[0].autoID,
        fields=fields,
        enable_dynamic_field=bool(descriptor.enable_dynamic_field),
    )
