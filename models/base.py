"""Base model with camelCase serialization for API output."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every derived aggregate and request/response body.

    Accepts both ``total_score`` and ``totalScore`` on input; FastAPI
    responses serialize by alias, so the presentation tier sees camelCase.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
