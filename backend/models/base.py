"""
Base model configuration
Shared pydantic base and the response envelopes every handler returns
"""

from typing import Any

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel


class BaseModel(PydanticBaseModel):
    """Model base for engine entities, request bodies and responses.

    Fields are snake_case in Python and camelCase on the wire; either
    spelling is accepted on input. Unknown keys are rejected so a misspelt
    request field fails validation instead of being dropped.
    """

    model_config = ConfigDict(
        # See: <https://docs.pydantic.dev/2.10/concepts/alias/#using-an-aliasgenerator>
        alias_generator=to_camel,
        populate_by_name=True,
        # See: <https://docs.pydantic.dev/2.10/concepts/models/#extra-data>
        extra="forbid",
    )

    def model_dump(self, **kwargs):
        """Dump with camelCase keys unless ``by_alias`` is given."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump(**kwargs)

    def model_dump_json(self, **kwargs):
        """JSON dump with camelCase keys unless ``by_alias`` is given."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)


class OperationResponse(BaseModel):
    """Outcome of a handler call; ``error`` holds the failure code."""

    success: bool
    message: str = ""
    error: str = ""


class OperationDataResponse(OperationResponse):
    """Outcome plus the entity or result the call produced."""

    data: Any | None = None


class TimedOperationResponse(OperationDataResponse):
    """Outcome stamped with the server time it was produced at."""

    timestamp: str = ""
