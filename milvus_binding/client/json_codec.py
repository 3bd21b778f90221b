"""Conversion between Python values and the service's dynamic JSON columns.

JSON-typed fields and whole rows are carried on the wire as UTF-8 JSON
documents (``FieldData.scalars.json_data``). ``to_wire_json`` turns an
arbitrary nested Python value into the JSON value model (string-keyed
objects, arrays, strings, numbers, booleans, null); ``encode_json`` and
``decode_json`` move that model to and from bytes.
"""

from typing import Any, Dict, Mapping

import numpy as np
import orjson

from milvus_binding.exceptions import DataNotMatchException, ExceptionsMessage


def to_wire_json(value: Any) -> Any:
    """Recursively convert ``value`` into the JSON value model.

    Mappings become ``dict`` objects whose keys are stringified and whose
    values are converted. Lists and tuples are walked element-wise so that
    mappings nested in arrays are converted too. numpy scalars and arrays
    become their native Python counterparts. Everything else is returned as is,
    which makes the conversion idempotent.
    """
    if isinstance(value, Mapping):
        return {str(k): to_wire_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire_json(v) for v in value]
    if isinstance(value, np.ndarray):
        return to_wire_json(value.tolist())
    if isinstance(value, np.generic):
        return value.item()
    return value


def row_to_wire_json(row: Mapping) -> Dict[str, Any]:
    if not isinstance(row, Mapping):
        raise DataNotMatchException(message=ExceptionsMessage.RowNotMapping % type(row).__name__)
    return to_wire_json(row)


def encode_json(value: Any) -> bytes:
    return orjson.dumps(to_wire_json(value))


def decode_json(raw: bytes) -> Any:
    return orjson.loads(raw)
