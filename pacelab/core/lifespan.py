"""
Lifespan manager for FastAPI.
Lets each core module register its own startup/shutdown context.
"""

from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Callable

from fastapi import FastAPI


class LifespanManager:
    """Runs registered lifespan contexts in order and merges their state."""

    def __init__(self):
        self._lifespans: list[Callable] = []

    def add(self, lifespan: Callable) -> Callable:
        """
        Register a lifespan context (usable as a decorator).

        Usage:
            @manager.add
            @asynccontextmanager
            async def database_lifespan():
                yield {"session_maker": session_maker}
        """
        self._lifespans.append(lifespan)
        return lifespan

    @asynccontextmanager
    async def __call__(self, app: FastAPI) -> AsyncIterator[dict[str, Any]]:
        """Enter every registered context; state dicts end up on request.state."""
        async with AsyncExitStack() as stack:
            combined_state: dict[str, Any] = {}

            for lifespan_func in self._lifespans:
                try:
                    context = lifespan_func(app)
                except TypeError:
                    context = lifespan_func()

                state = await stack.enter_async_context(context)
                if state:
                    combined_state.update(state)

            yield combined_state


manager = LifespanManager()
