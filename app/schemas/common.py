"""
Shared schema base: snake_case in Python, camelCase on the wire.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AckResponse(CamelModel):
    """Plain acknowledgement."""
    message: str = Field(..., description="Human readable result")
