from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base class for every schema.

    Python code uses snake_case; JSON payloads are accepted and emitted
    in camelCase through the alias generator.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


class FrozenSchema(BaseSchema):
    """Immutable value object. Use ``model_copy(update=...)`` to derive a changed copy."""
    model_config = ConfigDict(frozen=True)
