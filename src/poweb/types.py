"""Reusable, strict base model for wire structures."""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """
    A strict, immutable pydantic base model.

    Wire structures are built once, from already-typed values, and never
    mutated afterwards. Strict mode refuses silent coercions such as ``str``
    to ``bytes``, so a field always holds exactly what the codec produced.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        strict=True,
        validate_default=True,
        arbitrary_types_allowed=True,
    )
