from typing import Any, Dict, List, Optional, Sequence, Union

from milvus_binding.exceptions import ExceptionsMessage, MilvusException
from pymilvus.grpc_gen import schema_pb2

from .entity_helper import fields_data_to_rows


class Hit:
    def __init__(self, id: Union[int, str], distance: float, entity: Dict[str, Any]) -> None:
        self._id = id
        self._distance = distance
        self._entity = entity

    @property
    def id(self) -> Union[int, str]:
        return self._id

    @property
    def distance(self) -> float:
        return self._distance

    @property
    def score(self) -> float:
        return self._distance

    @property
    def entity(self) -> Dict[str, Any]:
        return self._entity

    @property
    def fields(self) -> Dict[str, Any]:
        return self._entity

    def get(self, field_name: str, default: Any = None) -> Any:
        return self._entity.get(field_name, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self._id, "distance": self._distance, "entity": self._entity}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Hit):
            return self.to_dict() == other.to_dict()
        if isinstance(other, dict):
            return self.to_dict() == other
        return NotImplemented

    def __str__(self) -> str:
        return str(self.to_dict())

    __repr__ = __str__


class Hits(list):
    """Ranked hits answering one query vector, in the order the service returned them."""

    @property
    def ids(self) -> List[Union[int, str]]:
        return [hit.id for hit in self]

    @property
    def distances(self) -> List[float]:
        return [hit.distance for hit in self]


class SearchResult(list):
    """One ``Hits`` group per query vector, group i answering vector i.

    :param res: the ``SearchResultData`` payload of a search response.
    :param nq: expected number of groups. Groups the service did not return
        decode as empty. Defaults to ``res.num_queries``.
    :param output_fields: entity fields to keep on each hit.
    :param round_decimal: when >= 0, scores are rounded to this many digits.
    """

    def __init__(
        self,
        res: schema_pb2.SearchResultData,
        nq: Optional[int] = None,
        output_fields: Optional[Sequence[str]] = None,
        round_decimal: int = -1,
    ) -> None:
        super().__init__()
        self._id_kind = res.ids.WhichOneof("id_field")
        if self._id_kind == "int_id":
            all_ids = list(res.ids.int_id.data)
        elif self._id_kind == "str_id":
            all_ids = list(res.ids.str_id.data)
        else:
            all_ids = []

        all_scores = list(res.scores)
        if round_decimal is not None and round_decimal >= 0:
            all_scores = [round(s, round_decimal) for s in all_scores]

        entities = fields_data_to_rows(res.fields_data, output_fields) if res.fields_data else []

        group_count = res.num_queries if nq is None else nq
        total = sum(res.topks[:group_count])
        if len(all_ids) < total or len(all_scores) < total:
            raise MilvusException(
                message=ExceptionsMessage.SearchResultLength
                % (total, len(all_ids), len(all_scores))
            )

        start = 0
        for i in range(group_count):
            topk = res.topks[i] if i < len(res.topks) else 0
            end = start + topk
            hits = Hits()
            for j in range(start, end):
                entity = entities[j] if j < len(entities) else {}
                hits.append(Hit(all_ids[j], all_scores[j], entity))
            self.append(hits)
            start = end

    @property
    def id_kind(self) -> Optional[str]:
        """``"int_id"`` or ``"str_id"``, whichever identifier variant is populated."""
        return self._id_kind

    def __str__(self) -> str:
        return f"data: {list(self)}"

    __repr__ = __str__
