"""
Keeps parent -> child reference lists consistent (user.thoughts,
thought.reactions, user.friends).

Creating a thought and linking it to its owner are two separate atomic
updates. If the link fails the thought is left in place, unreachable from
any user, and OrphanedChild is raised. There is no rollback.
"""
import logging
from typing import Any, Dict

from database import (
    append_reference,
    create_entity,
    delete_entity,
    find_entity,
    object_id,
    remove_reference,
)
from errors import NotFound, OrphanedChild
from schemas import CreateReaction, CreateThought, Reaction, Thought

logger = logging.getLogger(__name__)


def add_thought(payload: CreateThought) -> Dict[str, Any]:
    """Create the thought, then push its id onto the owner's list. Returns the user."""
    object_id(payload.userId)
    thought = Thought(thoughtText=payload.thoughtText, username=payload.username)
    thought_id = create_entity("thought", thought)
    try:
        return append_reference("user", payload.userId, "thoughts", thought_id)
    except NotFound as e:
        logger.warning("Thought %s created but user %s does not exist; left orphaned", thought_id, payload.userId)
        raise OrphanedChild(e.message, thought_id)


def remove_thought(user_id: str, thought_id: str) -> Dict[str, Any]:
    """Delete the thought, then pull its id from the owner's list. Returns the user.

    The thought stays deleted even when the user lookup fails; the NotFound
    raised in that case only concerns the reference removal.
    """
    delete_entity("thought", thought_id)
    try:
        return remove_reference("user", user_id, "thoughts", thought_id)
    except NotFound:
        logger.warning("Thought %s deleted but owner %s not found", thought_id, user_id)
        raise


def add_reaction(thought_id: str, payload: CreateReaction) -> Dict[str, Any]:
    reaction = Reaction(reactionBody=payload.reactionBody, username=payload.username)
    return append_reference("thought", thought_id, "reactions", reaction.model_dump())


def remove_reaction(thought_id: str, reaction_id: str) -> Dict[str, Any]:
    # match on the generated id, never on position
    return remove_reference("thought", thought_id, "reactions", {"reactionId": reaction_id})


def add_friend(user_id: str, friend_id: str) -> Dict[str, Any]:
    find_entity("user", friend_id)
    return append_reference("user", user_id, "friends", friend_id, unique=True)


def remove_friend(user_id: str, friend_id: str) -> Dict[str, Any]:
    return remove_reference("user", user_id, "friends", friend_id)
