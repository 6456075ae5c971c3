"""Shared pydantic base for the JSON API.

Learn: Python attributes stay snake_case while the wire format is
camelCase (conversationId, createAt, ...). populate_by_name lets
services construct schemas with Python names; FastAPI serializes
response models by alias.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
