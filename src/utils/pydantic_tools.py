from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseModelWithMethods(BaseModel):
    """Base model with the serialization helpers every response model shares."""

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self, **kwargs: Any) -> str:
        return self.model_dump_json(**kwargs)

    def to_dict(self, **kwargs: Any) -> dict[str, Any]:
        return self.model_dump(**kwargs)


class CamelModel(BaseModelWithMethods):
    """Model whose wire form uses camelCase keys (catalogId, titleMatchScore...).

    Python code constructs and reads snake_case field names; `to_api_dict`
    produces the JSON-ready camelCase form.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    def to_api_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
