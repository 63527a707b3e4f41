from typing import Any, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


# --------------------------------------------------
# BASE (camelCase on the wire, snake_case in Python)
# --------------------------------------------------
class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


# --------------------------------------------------
# RESPONSE ENVELOPE
# --------------------------------------------------
def to_json(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    return value


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    count: Optional[int] = None,
    include_data: bool = True,
) -> dict:
    body: dict[str, Any] = {"success": True}
    if include_data:
        body["data"] = to_json(data)
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    return body


def error_response(error: str, message: Any) -> dict:
    return {
        "success": False,
        "error": error,
        "message": message,
    }
