"""
Completion primitives for callback-driven request/reply flows.

A CompletionSignal fires once with an Outcome. A CountingBarrier fires its
signal when a (possibly lazily known) number of arrivals has been reached.
JoinAll runs a fixed set of named operations and fires when every one of
them has arrived, whether it succeeded or not.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from tgsync.lib.errors import (
    BarrierOverflowError,
    BarrierStateError,
    DoubleFireError,
    TGSyncError,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Result carried by a fired signal."""
    success: bool
    error: Optional[BaseException] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls) -> "Outcome":
        return cls(success=True)

    @classmethod
    def failed(cls, error: BaseException) -> "Outcome":
        return cls(success=False, error=error)


Reaction = Callable[[Outcome], None]


class CompletionSignal:
    """Single-fire event; reactions attached late run immediately."""

    def __init__(self, name: str = "signal"):
        self.name = name
        self._outcome: Optional[Outcome] = None
        self._reactions: List[Reaction] = []

    def __repr__(self) -> str:
        state = "pending" if self._outcome is None else f"fired success={self._outcome.success}"
        return f"<CompletionSignal {self.name} {state}>"

    @property
    def fired(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> Optional[Outcome]:
        """The stored outcome, or None while pending."""
        return self._outcome

    def fire(self, success: bool = True, error: Optional[BaseException] = None) -> None:
        """Fire the signal and run pending reactions in attach order.

        Every pending reaction runs even if an earlier one raises; the
        first exception is re-raised once all of them have run.

        Raises:
            DoubleFireError: if the signal has already fired
        """
        if self._outcome is not None:
            raise DoubleFireError(f"Signal {self.name} has already fired")

        self._outcome = Outcome(success=success, error=error)
        reactions, self._reactions = self._reactions, []
        first_error: Optional[Exception] = None
        for reaction in reactions:
            try:
                reaction(self._outcome)
            except Exception as e:
                logger.error(f"Reaction on signal {self.name} raised {e!r}")
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error

    def fail(self, error: BaseException) -> None:
        """Fire with a failed outcome."""
        self.fire(False, error)

    def on_complete(self, reaction: Reaction) -> "CompletionSignal":
        """Attach a reaction, running it right away if already fired."""
        if self._outcome is not None:
            reaction(self._outcome)
        else:
            self._reactions.append(reaction)
        return self

    async def wait(self) -> Outcome:
        """Suspend the current task until the signal fires."""
        future = asyncio.get_running_loop().create_future()

        def resolve(outcome: Outcome) -> None:
            if not future.done():
                future.set_result(outcome)

        self.on_complete(resolve)
        return await future


class CountingBarrier:
    """Fires its signal once ``arrived`` reaches a known ``expected`` count.

    ``expected`` can be given to the constructor or later through
    ``set_expected``; arrivals may happen before it is known.
    """

    def __init__(self, expected: Optional[int] = None, name: str = "barrier",
                 signal: Optional[CompletionSignal] = None):
        self.name = name
        self.signal = signal or CompletionSignal(name)
        self._expected: Optional[int] = None
        self._arrived = 0

        if expected is not None:
            self.set_expected(expected)

    @property
    def expected(self) -> Optional[int]:
        return self._expected

    @property
    def arrived(self) -> int:
        return self._arrived

    @property
    def is_complete(self) -> bool:
        return self._expected is not None and self._arrived == self._expected

    def set_expected(self, count: int) -> None:
        """Fix the number of arrivals to wait for; zero fires immediately."""
        if self._expected is not None:
            raise BarrierStateError(f"Barrier {self.name} already expects {self._expected} arrivals")
        if count < 0:
            raise BarrierStateError(f"Barrier {self.name} cannot expect {count} arrivals")
        if self._arrived > count:
            raise BarrierOverflowError(
                f"Barrier {self.name} already saw {self._arrived} arrivals, cannot expect {count}"
            )

        self._expected = count
        self._check()

    def arrive(self) -> None:
        """Record one arrival."""
        if self._expected is not None and self._arrived >= self._expected:
            raise BarrierOverflowError(
                f"Barrier {self.name} expects {self._expected} arrivals, got one more"
            )

        self._arrived += 1
        self._check()

    def fail(self, error: BaseException) -> None:
        """Force-fail the signal so waiters are released instead of hanging."""
        if self.signal.fired:
            logger.debug(f"Barrier {self.name} already fired, ignoring failure: {error}")
            return
        self.signal.fail(error)

    def _check(self) -> None:
        if self.is_complete and not self.signal.fired:
            self.signal.fire(True)


Initiator = Callable[[Reaction], None]


class JoinAll:
    """Waits for a fixed set of named operations to arrive.

    Each initiator receives an ``arrived`` callback that it must call
    exactly once with the operation's Outcome.
    """

    def __init__(self, members: Dict[str, Initiator], name: str = "join"):
        self.name = name
        self.signal = CompletionSignal(name)
        self.results: Dict[str, Outcome] = {}
        self._members = dict(members)
        self._barrier: Optional[CountingBarrier] = None

    @property
    def names(self) -> List[str]:
        return list(self._members)

    @property
    def pending(self) -> List[str]:
        """Members that have not arrived yet."""
        return [name for name in self._members if name not in self.results]

    def perform(self) -> CompletionSignal:
        """Start every member operation."""
        if self._barrier is not None:
            raise BarrierStateError(f"Join {self.name} has already been performed")

        self._barrier = CountingBarrier(len(self._members), name=f"{self.name}.barrier")
        self._barrier.signal.on_complete(self._finish)

        names = list(self._members)
        for index, name in enumerate(names):
            try:
                self._members[name](self._arrival(name))
            except TGSyncError as e:
                logger.error(f"Join {self.name}: member {name} could not start: {e}")
                for skipped in names[index:]:
                    if skipped not in self.results:
                        self._arrival(skipped)(Outcome.failed(e))
                break

        return self.signal

    def _arrival(self, name: str) -> Reaction:
        def arrived(outcome: Outcome) -> None:
            if name in self.results:
                raise BarrierOverflowError(f"Join {self.name}: member {name} arrived twice")
            self.results[name] = outcome
            logger.debug(f"Join {self.name}: {name} arrived (success={outcome.success})")
            self._barrier.arrive()
        return arrived

    def _finish(self, _barrier_outcome: Outcome) -> None:
        for name in self._members:
            outcome = self.results[name]
            if not outcome.success:
                self.signal.fail(outcome.error)
                return
        self.signal.fire(True)
