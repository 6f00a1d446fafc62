"""
Shared plumbing for the document models.

Account, refresh-credential and OTP documents all carry a BSON ObjectId
primary key; PyObjectId teaches pydantic how to accept and serialise it, and
MongoBaseModel converts between model instances and raw pymongo dicts.
"""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Coerce a user id taken from a token claim into an ObjectId.

    Returns None for anything that is not a valid id, so a forged ``sub``
    claim reads as "no such account" rather than raising.
    """
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


class PyObjectId(ObjectId):
    """ObjectId field type: accepts an ObjectId or its hex string, dumps as str in JSON."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="json"
            ),
        )

    @classmethod
    def _coerce(cls, value: Any) -> ObjectId:
        oid = to_object_id(value)
        if oid is None:
            raise ValueError(f"Invalid ObjectId: {value!r}")
        return oid


class MongoBaseModel(BaseModel):
    """
    Common base of every stored document.

    The Mongo ``_id`` is exposed as ``id``. Documents are written with
    to_mongo() and read back with from_mongo().
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        """Dict for insert_one(); ``_id`` is left out until Mongo assigns one."""
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[dict]) -> Optional["MongoBaseModel"]:
        # find_one() returns None for a miss
        if data is None:
            return None
        return cls.model_validate(data)
