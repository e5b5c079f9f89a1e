"""Optimistic like/dislike state for a single review on the client side.

``toggle`` applies the expected outcome locally, calls the server, then either
adopts the authoritative counts it returns or restores the exact pre-call state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from dovi.client.api import APIError, DoviAPI

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReactionState:
    likes_count: int
    dislikes_count: int
    user_reaction: int | None = None


def tentative(state: ReactionState, value: int) -> ReactionState:
    """Local guess of what ``react(value)`` will do to ``state``."""
    likes, dislikes = state.likes_count, state.dislikes_count
    current = state.user_reaction

    if current == value:
        if value == 1:
            likes = max(0, likes - 1)
        else:
            dislikes = max(0, dislikes - 1)
        return ReactionState(likes, dislikes, None)

    if current is not None:
        if value == 1:
            likes, dislikes = likes + 1, max(0, dislikes - 1)
        else:
            likes, dislikes = max(0, likes - 1), dislikes + 1
    elif value == 1:
        likes += 1
    else:
        dislikes += 1
    return ReactionState(likes, dislikes, value)


class OptimisticReaction:
    def __init__(self, api: DoviAPI, review_id: str, initial: ReactionState):
        self.api = api
        self.review_id = review_id
        self.state = initial
        self.in_flight = False

    def toggle(self, value: int) -> ReactionState:
        """Raises ``APIError`` after rolling back when the server refuses or is unreachable."""
        if self.in_flight:
            return self.state

        previous = self.state
        self.state = tentative(previous, value)
        self.in_flight = True
        try:
            result = self.api.react(self.review_id, value)
        except APIError as e:
            logger.info("Reaction on %s rolled back: %s", self.review_id, e)
            self.state = previous
            raise
        finally:
            self.in_flight = False

        self.state = replace(
            self.state,
            likes_count=int(result["likesCount"]),
            dislikes_count=int(result["dislikesCount"]),
            user_reaction=result.get("userReaction"),
        )
        return self.state
