# backend/mindfulness/models/base.py
from typing import Annotated, Any, Optional

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _object_id_to_str(v: Any) -> Any:
    return str(v) if isinstance(v, ObjectId) else v


# Mongo `_id` (ObjectId) exposed as a plain string
ObjectIdStr = Annotated[str, BeforeValidator(_object_id_to_str)]


class MongoModel(BaseModel):
    """
    Base of every document model. `_id` maps onto `id`.
    """
    id: Optional[ObjectIdStr] = Field(default=None, alias="_id")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    def to_document(self) -> dict:
        """Dict ready for insert_one (no `_id`, Mongo generates it)."""
        return self.model_dump(exclude={"id"}, mode="python")
