"""Identifier generation for users, workspaces and expenses."""

from typing import Callable
from uuid import uuid4


class IdGenerator:
    """
    Produces prefixed, collision-free ids.

    The token source is injectable so tests can get predictable ids.
    """

    USER_PREFIX = "u"
    WORKSPACE_PREFIX = "w"
    EXPENSE_PREFIX = "e"

    def __init__(self, token_factory: Callable[[], str] = lambda: uuid4().hex):
        self._token_factory = token_factory

    def _new(self, prefix: str) -> str:
        return f"{prefix}-{self._token_factory()}"

    def new_user_id(self) -> str:
        return self._new(self.USER_PREFIX)

    def new_workspace_id(self) -> str:
        return self._new(self.WORKSPACE_PREFIX)

    def new_expense_id(self) -> str:
        return self._new(self.EXPENSE_PREFIX)


class SequentialIdGenerator(IdGenerator):
    """Deterministic ids (u-1, e-2, ...) for tests and seeding."""

    def __init__(self, start: int = 1):
        self._counter = start - 1
        super().__init__(self._next)

    def _next(self) -> str:
        self._counter += 1
        return str(self._counter)
