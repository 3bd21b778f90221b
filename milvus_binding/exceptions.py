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

from enum import IntEnum
from typing import Any, Optional


class ErrorCode(IntEnum):
    SUCCESS = 0
    UNEXPECTED_ERROR = 1
    CONNECT_FAILED = 2
    ILLEGAL_ARGUMENT = 5
    TIMEOUT = 6
    COLLECTION_NOT_FOUND = 100
    INDEX_NOT_FOUND = 700


class MilvusException(Exception):
    def __init__(
        self,
        code: int = ErrorCode.UNEXPECTED_ERROR,
        message: str = "",
    ) -> None:
        super().__init__()
        self._code = code
        self._message = message

    @property
    def code(self):
        return self._code

    @property
    def message(self):
        return self._message

    def __str__(self) -> str:
        return f"<{type(self).__name__}: (code={self.code}, message={self.message})>"


class ParamError(MilvusException):
    """Raise when params are incorrect"""

    def __init__(self, code: int = ErrorCode.ILLEGAL_ARGUMENT, message: str = "") -> None:
        super().__init__(code=code, message=message)


class InvalidFieldSpec(ParamError):
    """Raise when a field descriptor misses a required attribute or carries one
    that its data type does not accept"""

    def __init__(self, field: str, attribute: str, message: str = "") -> None:
        self.field = field
        self.attribute = attribute
        super().__init__(
            message=message or ExceptionsMessage.InvalidFieldSpec % (field, attribute)
        )


class UnknownDataType(ParamError):
    """Raise when a field's data type token is not a known data type"""

    def __init__(self, field: str, token: Any) -> None:
        self.field = field
        self.token = token
        super().__init__(message=ExceptionsMessage.UnknownDataType % (token, field))


class UnknownEnumValue(ParamError):
    """Raise when an enumeration option is given a token outside its table"""

    def __init__(self, field: str, token: Any) -> None:
        self.field = field
        self.token = token
        super().__init__(message=ExceptionsMessage.UnknownEnumValue % (token, field))


class DataNotMatchException(ParamError):
    """Raise when insert data isn't match with schema"""


class TransportError(MilvusException):
    """Raise when the underlying RPC could not complete"""

    def __init__(self, message: str = "", grpc_code: Optional[Any] = None) -> None:
        self.grpc_code = grpc_code
        super().__init__(code=ErrorCode.CONNECT_FAILED, message=message)


class ServiceError(MilvusException):
    """Raise when the service executed the call and answered with a non-zero status"""

    @property
    def status(self):
        return self._code


class SyncWaitTimeout(MilvusException):
    """Raise when waiting for load, index building or flush exceeds its timeout"""

    def __init__(self, message: str = "") -> None:
        super().__init__(code=ErrorCode.TIMEOUT, message=message)


class ExceptionsMessage:
    CollectionNameType = "collection_name must be a non-empty str."
    InvalidFieldSpec = "invalid field spec: field %r, attribute %r"
    UnknownDataType = "unknown data type %r for field %r"
    UnknownEnumValue = "unknown value %r for option %r"
    PrimaryKeyOnlyOne = "Expected only one primary key field, got %s."
    PrimaryKeyNotExist = "Schema must have a primary key field."
    DuplicateFieldName = "Duplicated field name %r."
    FieldsType = "fields must be a list of field descriptors."
    FieldDataInconsistent = (
        "The Input data type is inconsistent with defined schema, {%s} field should be a %s, "
        "but got a {%s} instead."
    )
    InsertMissedField = "Insert missed an field `%s` to collection without set nullable==true or set default_value"
    InsertUnexpectedField = "Attempt to insert an unexpected field `%s` to collection without enabling dynamic field"
    InsertColumnLength = "The data of field %r has %s entities, expected %s."
    InsertBothColumnsAndRows = "Use either fields or rows for one insert, not both."
    InsertNoData = "No data to insert, provide fields or rows."
    RowNotMapping = "Row must be a dict, got %s."
    VectorKindCount = "Exactly one vector kind must be given, got %s."
    HybridVectorCountMismatch = (
        "All sub-requests of a hybrid search must carry the same number of vectors, got %s."
    )
    RankerType = "ranker must be RRFRanker or WeightedRanker."
    NoSubRequest = "hybrid search needs at least one sub-request."
    InconsistentFieldLength = "The length of fields data is inconsistent."
    SearchResultLength = "Search result carries %s hits but only %s ids and %s scores."
