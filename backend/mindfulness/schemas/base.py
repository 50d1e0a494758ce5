# backend/mindfulness/schemas/base.py
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    API-facing schema: snake_case in Python, camelCase on the wire.
    Requests accept both spellings.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def strip_and_reject_blank(v: Optional[str], field_name: str) -> Optional[str]:
    """
    None -> None, "  " -> ValueError, otherwise stripped text.
    """
    if v is None:
        return None
    s = v.strip()
    if not s:
        raise ValueError(f"{field_name} must not be blank")
    return s


def check_string_list(v: Optional[List[Any]], field_name: str, max_items: int, max_len: int) -> List[str]:
    """
    Length-capped list of short strings; blank entries are dropped.
    """
    if v is None:
        return []
    if len(v) > max_items:
        raise ValueError(f"{field_name} cannot have more than {max_items} items")
    cleaned: List[str] = []
    for item in v:
        if not isinstance(item, str):
            raise ValueError(f"{field_name} must contain only strings")
        s = item.strip()
        if len(s) > max_len:
            raise ValueError(f"Each item in {field_name} cannot exceed {max_len} characters")
        if s:
            cleaned.append(s)
    return cleaned


class MessageResponse(CamelModel):
    message: str
