# Copyright (C) 2019-2021 Zilliz. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not use this file except
# in compliance with the License. You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software distributed under the License
# is distributed on an "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express
# or implied. See the License for the specific language governing permissions and limitations under
# the License.

from .client import __version__
from .client.abstract import (
    AnnSearchRequest,
    CollectionSchema,
    FieldSchema,
    MutationResult,
    RRFRanker,
    WeightedRanker,
)
from .client.grpc_handler import GrpcHandler
from .client.json_codec import row_to_wire_json, to_wire_json
from .client.schema import (
    CollectionDescriptor,
    FieldDescriptor,
    normalize_collection,
    normalize_field,
)
from .client.search_result import Hit, Hits, SearchResult
from .client.types import (
    ConsistencyLevel,
    DataType,
    IndexType,
    LogLevel,
    MetricType,
    Status,
)
from .exceptions import (
    DataNotMatchException,
    InvalidFieldSpec,
    MilvusException,
    ParamError,
    ServiceError,
    SyncWaitTimeout,
    TransportError,
    UnknownDataType,
    UnknownEnumValue,
)
from .settings import Config

__all__ = [
    "AnnSearchRequest",
    "CollectionDescriptor",
    "CollectionSchema",
    "Config",
    "ConsistencyLevel",
    "DataNotMatchException",
    "DataType",
    "FieldDescriptor",
    "FieldSchema",
    "GrpcHandler",
    "Hit",
    "Hits",
    "IndexType",
    "InvalidFieldSpec",
    "LogLevel",
    "MetricType",
    "MilvusException",
    "MutationResult",
    "ParamError",
    "RRFRanker",
    "SearchResult",
    "ServiceError",
    "Status",
    "SyncWaitTimeout",
    "TransportError",
    "UnknownDataType",
    "UnknownEnumValue",
    "WeightedRanker",
    "__version__",
    "normalize_collection",
    "normalize_field",
    "row_to_wire_json",
    "to_wire_json",
]
