"""Shared schema base.

Learn: The public API speaks camelCase (fullName, maxSlots, ...) while
Python code stays snake_case. One alias generator does the mapping;
populate_by_name lets tests and services build models by field name.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class MessageResponse(CamelModel):
    message: str
