"""Device layer — DeviceExecutor interface and executor registry.

Every trigger kind has exactly one executor.  The orchestrator never looks
at kind-specific fields; it asks the :class:`ExecutorRegistry` for the
executor matching ``trigger.kind`` and awaits ``execute(trigger)``.

Design principles:
  - ``execute`` returns ``None`` on success and raises a
    :class:`~maze_control.exceptions.DispatchError` subclass on failure.
  - Executors hold no per-activation state; shared resources (HTTP client,
    UDP endpoint) are injected at construction.
  - An unknown kind is a typed error, never a silent default.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, TypeVar

from maze_control.exceptions import DispatchError, UnknownTriggerTypeError
from maze_control.logging import get_logger
from maze_control.triggers.models import Trigger

log = get_logger(__name__)

T = TypeVar("T", bound=Trigger)


class DeviceExecutor(ABC):
    """Abstract base class for trigger executors.

    Subclasses set ``KIND`` to the wire tag they handle and implement
    :meth:`execute`.
    """

    KIND: str = ""

    @abstractmethod
    async def execute(self, trigger: Trigger) -> None:
        """Fire *trigger*.  Raise ``DispatchError`` on failure."""

    async def aclose(self) -> None:
        """Release resources owned by the executor (none by default)."""

    def _expect(self, trigger: Trigger, model: type[T]) -> T:
        if not isinstance(trigger, model):
            raise DispatchError(
                f"Executor '{self.KIND}' cannot handle {type(trigger).__name__}",
                context={"trigger_id": trigger.id, "kind": trigger.kind},
            )
        return trigger

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.KIND!r})"


class ExecutorRegistry:
    """Map trigger kind tags to executors.

    Usage::

        executors = ExecutorRegistry([
            HttpDeviceExecutor(http_client),
            LightStatusExecutor(lan_client),
        ])
        await executors.get(trigger.kind).execute(trigger)
    """

    def __init__(self, executors: Iterable[DeviceExecutor] = ()) -> None:
        self._executors: dict[str, DeviceExecutor] = {}
        for executor in executors:
            self.register(executor)

    def register(self, executor: DeviceExecutor) -> None:
        if not executor.KIND:
            raise ValueError(f"Executor {executor.__class__.__name__} has no KIND.")
        if executor.KIND in self._executors:
            log.warning("executor_replaced", kind=executor.KIND)
        self._executors[executor.KIND] = executor
        log.debug("executor_registered", kind=executor.KIND, executor=repr(executor))

    def get(self, kind: str) -> DeviceExecutor:
        """Return the executor for *kind*.

        Raises:
            UnknownTriggerTypeError: No executor handles this kind.
        """
        try:
            return self._executors[kind]
        except KeyError:
            raise UnknownTriggerTypeError(kind) from None

    def kinds(self) -> list[str]:
        return sorted(self._executors)

    async def dispatch(self, trigger: Trigger) -> None:
        await self.get(trigger.kind).execute(trigger)

    async def aclose(self) -> None:
        for executor in self._executors.values():
            await executor.aclose()

    def __contains__(self, kind: object) -> bool:
        return kind in self._executors

    def __len__(self) -> int:
        return len(self._executors)
