"""
Schema-scoped record validation that collects every violation.
"""
import math
from functools import lru_cache
from typing import Annotated, Any, Dict, List, Optional, Sequence, Tuple, Type, Union

from loguru import logger
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    StrictBool,
    StringConstraints,
    ValidationError,
    create_model,
)

from ..models import FieldKind, Record, field_kind
from ..utils.formatting import parse_money_text

CNPJ_PATTERN = r"^\d{2}\.?\d{3}\.?\d{3}/?\d{4}-?\d{2}$"
UF_PATTERN = r"^[A-Za-z]{2}$"
DATE_PATTERN = r"^\d{2}/\d{2}/\d{4}$"


def _normalize_money(value: Any) -> Any:
    """
    Locale-normalize money strings; other values pass through to float validation.

    The whole string must be an amount: "1O0,00" or "12abc" are rejected.
    """
    if isinstance(value, str):
        parsed = parse_money_text(value)
        if parsed is None:
            raise ValueError(f"valor monetário inválido: {value!r}")
        return parsed
    return value


def _require_finite(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("valor monetário deve ser finito")
    return value


MoneyValue = Annotated[float, BeforeValidator(_normalize_money), AfterValidator(_require_finite)]

_RULES: Dict[FieldKind, Any] = {
    FieldKind.IDENTIFIER: Annotated[str, StringConstraints(pattern=CNPJ_PATTERN)],
    FieldKind.REGION: Annotated[str, StringConstraints(pattern=UF_PATTERN)],
    FieldKind.DATE: Annotated[str, StringConstraints(pattern=DATE_PATTERN)],
    FieldKind.MONEY: MoneyValue,
    FieldKind.BOOLEAN: StrictBool,
    FieldKind.FLAG: Union[StrictBool, str],
    FieldKind.TEXT: str,
}


class RecordValidator:
    """
    Validates only the fields of the active schema and records what failed.

    Field values are never changed; the returned record is a copy of the
    input with its ``errors`` list replaced.
    """

    def __init__(self, cache_size: int = 32):
        # Layouts change rarely; only the most recent ones keep a model
        self._model_for = lru_cache(maxsize=cache_size)(self._build_model)

    @staticmethod
    def _build_model(schema: Tuple[str, ...]) -> Type[BaseModel]:
        definitions = {
            name: (Optional[_RULES[field_kind(name)]], None)
            for name in schema
        }
        return create_model("RecordSchema", **definitions)

    def check(self, record: Record, schema: Sequence[str]) -> List[str]:
        """List of ``"<field>: <message>"`` for every violation"""
        model = self._model_for(tuple(schema))
        try:
            model(**record.values_for(schema))
        except ValidationError as e:
            return [self._format_error(err) for err in e.errors()]
        return []

    def validate(self, record: Record, schema: Sequence[str]) -> Record:
        errors = self.check(record, schema)
        if errors:
            logger.debug(f"{record.origin.arquivo}: {len(errors)} validation error(s)")
        return record.model_copy(update={"errors": errors})

    def validate_all(self, records: List[Record], schema: Sequence[str]) -> List[Record]:
        return [self.validate(record, schema) for record in records]

    @staticmethod
    def _format_error(err: Dict[str, Any]) -> str:
        # Union rules add the member type to loc; keep the field name only
        field = str(err["loc"][0]) if err.get("loc") else "?"
        return f"{field}: {err['msg']}"
