# ABOUTME: TypeAdapter-backed JSON column type for list- and dict-valued record fields
# ABOUTME: Validates values on the way in and out of JSON columns using Pydantic

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import JSON, TypeDecorator
from sqlalchemy.engine import Dialect


class PydanticJson(TypeDecorator[Any]):
    """
    A SQLAlchemy TypeDecorator that validates JSON column values with a Pydantic
    TypeAdapter. ``None`` is stored as SQL NULL rather than JSON ``null`` so that
    ``IS NULL`` filters behave.

    See: https://github.com/fastapi/sqlmodel/issues/63#issuecomment-2727480036
    """

    impl = JSON(none_as_null=True)
    cache_ok = True

    def __init__(self, pydantic_type: Any) -> None:
        super().__init__()
        self.type_adapter = TypeAdapter(pydantic_type)

    def coerce_compared_value(self, op: Any, value: Any) -> Any:
        return self.impl.coerce_compared_value(op, value)  # type: ignore[misc]

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        return self.type_adapter.dump_python(self.type_adapter.validate_python(value), mode="json")

    def process_result_value(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        return self.type_adapter.validate_python(value)
