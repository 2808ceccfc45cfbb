"""Compensating actions for multi-step filesystem changes."""

from dataclasses import dataclass
from typing import Callable, List

from loguru import logger


@dataclass
class RollbackAction:
    """A named step that undoes one side effect."""

    description: str
    undo: Callable[[], None]


class RollbackStack:
    """
    LIFO of compensating actions.

    Actions are pushed as side effects happen. ``rollback()`` runs them newest
    first and keeps going when one of them fails, so every step that can be
    undone is undone. ``clear()`` discards the stack once the change is
    committed.
    """

    def __init__(self) -> None:
        self._actions: List[RollbackAction] = []

    def push(self, description: str, undo: Callable[[], None]) -> None:
        self._actions.append(RollbackAction(description, undo))

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def descriptions(self) -> List[str]:
        return [action.description for action in self._actions]

    def rollback(self) -> List[str]:
        """Run every action in reverse order and return the ones that failed."""
        failed: List[str] = []
        while self._actions:
            action = self._actions.pop()
            logger.debug(f"Rollback: {action.description}")
            try:
                action.undo()
            except Exception as e:
                logger.warning(f"Rollback step failed ({action.description}): {e}")
                failed.append(action.description)
        return failed

    def clear(self) -> None:
        self._actions.clear()
