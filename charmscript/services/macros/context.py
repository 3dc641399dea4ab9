"""
ExecutionContext
================
Per-request evaluation state.  One context is created for each top-level
request (one command run, one event dispatch) and passed by reference
through every nested ``evaluate()`` call, so loop, condition and error
state is visible across nesting but never shared between requests.

Owns:
  * engine / store           — handler registry (via engine) and variables
  * bindings                 — ambient ``$$name`` values (ChainMap scopes),
                               consulted before the store
  * args                     — positional request arguments (``$$1``, ``$$*``)
  * loop_stack               — active LoopFrames, innermost last
  * last_condition           — True / False / None (unset) for if-chains
  * responses                — messages produced by ``$say``
"""

from __future__ import annotations

import logging
from collections import ChainMap
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator, Optional

from .errors import EvaluationLimitError

if TYPE_CHECKING:
    from charmscript.services.variables import VariableStore
    from .engine import MacroEngine

logger = logging.getLogger(__name__)

Sender = Callable[[Any], Awaitable[Any]]


class LoopKind(str, Enum):
    TIMES = "times"
    ARRAY = "array"
    WHILE = "while"


@dataclass
class LoopFrame:
    """
    Mutable state of one running loop.

    ``$break`` / ``$continue`` set flags here instead of unwinding the call
    stack; the engine stops a fragment as soon as its frame becomes interrupted
    during that fragment and the owning loop polls the flags after each
    iteration.
    """

    kind: LoopKind
    total: Optional[int] = None
    index: int = 0
    value: Any = None
    break_requested: bool = False
    continue_requested: bool = False
    reason: str = ""

    @property
    def interrupted(self) -> bool:
        return self.break_requested or self.continue_requested

    def begin(self, index: int, value: Any = None) -> None:
        self.index = index
        self.value = value
        self.continue_requested = False


class ExecutionContext:
    def __init__(
        self,
        engine: "MacroEngine",
        store: "VariableStore | None" = None,
        *,
        args: list[str] | tuple[str, ...] = (),
        bindings: dict[str, Any] | None = None,
        sender: Sender | None = None,
    ) -> None:
        if store is None:
            from charmscript.services.variables import MemoryVariableStore
            store = MemoryVariableStore()

        self.engine = engine
        self.store = store
        self.args: list[str] = [str(a) for a in args]
        self.bindings: ChainMap = ChainMap(dict(bindings or {}))
        self.sender = sender
        self.loop_stack: list[LoopFrame] = []
        self.last_condition: Optional[bool] = None
        self.responses: list[Any] = []
        self.depth = 0

    # ------------------------------------------------------------------ loops

    @property
    def current_frame(self) -> LoopFrame | None:
        return self.loop_stack[-1] if self.loop_stack else None

    @contextmanager
    def loop(self, kind: LoopKind, total: int | None = None) -> Iterator[LoopFrame]:
        """Push a LoopFrame for the duration of a loop macro."""
        frame = LoopFrame(kind=kind, total=total)
        self.loop_stack.append(frame)
        try:
            yield frame
        finally:
            self.loop_stack.pop()

    # --------------------------------------------------------------- bindings

    @contextmanager
    def scope(self, **bindings: Any) -> Iterator[None]:
        """Expose *bindings* as ``$$name`` values until the block exits."""
        previous = self.bindings
        self.bindings = previous.new_child(bindings)
        try:
            yield
        finally:
            self.bindings = previous

    @contextmanager
    def nested(self, limit: int) -> Iterator[None]:
        self.depth += 1
        try:
            if self.depth > limit:
                raise EvaluationLimitError(f"Maximum evaluation depth ({limit}) exceeded")
            yield
        finally:
            self.depth -= 1

    # ------------------------------------------------------------ evaluation

    async def evaluate(self, fragment: str) -> Any:
        return await self.engine.evaluate(fragment, self)

    async def evaluate_value(self, fragment: Any, *, raw: bool = False) -> Any:
        return await self.engine.evaluate_value(fragment, self, raw=raw)

    def fork(self) -> "ExecutionContext":
        """
        Child context for one concurrently running iteration.

        Store, sender and responses are shared; bindings get their own
        scope chain and the loop stack and condition flag are copied, so
        parallel iterations cannot see each other's frames.
        """
        child = ExecutionContext.__new__(ExecutionContext)
        child.engine = self.engine
        child.store = self.store
        child.args = self.args
        child.bindings = self.bindings.new_child()
        child.sender = self.sender
        child.loop_stack = list(self.loop_stack)
        child.last_condition = self.last_condition
        child.responses = self.responses
        child.depth = self.depth
        return child

    # -------------------------------------------------------------- messages

    async def send(self, message: Any) -> Any:
        self.responses.append(message)
        if self.sender is not None:
            return await self.sender(message)
        logger.debug("No sender attached; message recorded only")
        return None
