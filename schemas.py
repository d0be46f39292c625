"""
Database Schemas for the Thoughts API

Each Pydantic model represents a collection in MongoDB. The collection name is the
lowercased class name. Reaction is embedded inside Thought and has no collection.
"""
from datetime import datetime, timezone
from typing import List, Optional

from bson.objectid import ObjectId
from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _utcnow():
    return datetime.now(timezone.utc)


def _new_reaction_id():
    return str(ObjectId())


class User(BaseModel):
    """
    Users of the tracker
    Collection: "user"
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=1, description="Unique public username")
    email: str = Field(..., pattern=EMAIL_PATTERN, description="Unique email address")
    thoughts: List[str] = Field(default_factory=list, description="Ids of owned thoughts, in creation order")
    friends: List[str] = Field(default_factory=list, description="Ids of befriended users")


class Reaction(BaseModel):
    """
    Short reply embedded in a thought. reactionId is generated here so it never
    collides with the parent thought's _id.
    """
    reactionId: str = Field(default_factory=_new_reaction_id)
    reactionBody: str = Field(..., min_length=1, max_length=280)
    username: str = Field(..., min_length=1)
    createdAt: datetime = Field(default_factory=_utcnow)


class Thought(BaseModel):
    """
    A thought authored by a user
    Collection: "thought"
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    thoughtText: str = Field(..., min_length=1, description="Thought body")
    username: str = Field(..., min_length=1, description="Author username")
    createdAt: datetime = Field(default_factory=_utcnow)
    reactions: List[Reaction] = Field(default_factory=list)


COLLECTIONS = {
    "user": User,
    "thought": Thought,
}


# Request bodies

class CreateUser(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL_PATTERN)


class UpdateUser(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)


class CreateThought(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    thoughtText: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    userId: str = Field(..., description="Owner user id")


class UpdateThought(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    thoughtText: str = Field(..., min_length=1)


class CreateReaction(BaseModel):
    reactionBody: str = Field(..., min_length=1, max_length=280)
    username: str = Field(..., min_length=1)
