"""Ordered hook pipeline with continuation and early exit."""

import asyncio
import inspect
from typing import Any, Callable, Protocol

from ..errors import ConfigError, HandlerError

Piece = Callable[[dict, Callable[..., None], Callable[..., None]], Any]


class IErrorSink(Protocol):
    """Owner of a middleware stack, notified when a piece fails."""

    def emit_error(self, error: Exception, response: Any = None) -> None:
        """Route an error to observers."""
        ...


class Middleware:
    """
    Execute pieces in registration order.

    Each piece is called with `(context, next, done)`. Calling `next()`
    continues to the following piece, optionally with a new `done` that wraps
    the given one. Calling `done()` interrupts the stack. When every piece
    calls through, the final `next` is given the context and the latest
    `done`.
    """

    def __init__(self, instance: IErrorSink):
        self.instance = instance
        self.stack: list[Piece] = []

    def register(self, piece: Piece) -> None:
        """Add a piece to the stack, which must accept exactly 3 arguments."""
        try:
            count = len(inspect.signature(piece).parameters)
        except (TypeError, ValueError):
            count = -1
        if count != 3:
            raise ConfigError(
                "Incorrect number of arguments for middleware callback "
                f"(expected 3, got {count})"
            )
        self.stack.append(piece)

    async def execute(
        self,
        context: dict,
        next_: Callable[[dict, Callable[..., None]], Any],
        done: Callable[[dict], Any] | None = None,
    ) -> dict:
        """
        Run the stack against a context.

        Args:
            context: Passed through every piece
            next_: Called with context and the latest done when all pieces
                call through
            done: Initial completion callback, called with the context when
                the pipeline is interrupted or completed

        Returns:
            The context, after the stack completes or is interrupted

        Raises:
            HandlerError: A piece raised, after the error was emitted and
                `done` forced
        """
        # Never run pieces inside the caller's frame
        await asyncio.sleep(0)

        loop = asyncio.get_running_loop()
        finished = loop.create_future()

        def piece_done(*_: Any) -> None:
            if finished.done():
                return
            outcome = done(context) if done is not None else None
            if inspect.isawaitable(outcome):
                outcome = asyncio.ensure_future(outcome)
            finished.set_result(outcome)

        done_func: Callable[..., None] = piece_done
        for piece in list(self.stack):
            step = loop.create_future()

            def next_func(new_done=None, step=step, current=done_func) -> None:
                if not step.done():
                    step.set_result(new_done or current)

            try:
                result = piece(context, next_func, done_func)
                if inspect.isawaitable(result):
                    await result
            except Exception as err:
                self.instance.emit_error(err, context.get("response"))
                done_func()
                raise HandlerError(
                    f"Middleware piece {getattr(piece, '__name__', piece)!r} "
                    f"failed: {err}",
                    context,
                ) from err

            if not step.done() and not finished.done():
                await asyncio.wait({step, finished}, return_when=asyncio.FIRST_COMPLETED)
            if finished.done():
                await self._conclude(finished)
                return context
            done_func = step.result()

        outcome = next_(context, done_func)
        if inspect.isawaitable(outcome):
            await outcome
        if finished.done():
            await self._conclude(finished)
        return context

    @staticmethod
    async def _conclude(finished: asyncio.Future) -> None:
        outcome = finished.result()
        if inspect.isawaitable(outcome):
            await outcome
