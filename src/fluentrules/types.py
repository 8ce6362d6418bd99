"""
Contains the types used in the validation engine
"""
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Protocol, Sequence, TypeAlias, TypeVar

if TYPE_CHECKING:
    from .context import PropertyContext, ValidationContext
    from .errors import ValidationFailure
    from .rules import Rule


class CancellationSignal(Protocol):
    """
    A protocol for cooperative cancellation. Both `asyncio.Event` and `threading.Event` fulfill it.
    """

    def is_set(self) -> bool:
        ...


InstanceT = TypeVar("InstanceT")
ValueAccessor: TypeAlias = Callable[[Any], Any]
Transformer: TypeAlias = Callable[[Any, Any], Any]
Condition: TypeAlias = Callable[["ValidationContext"], bool]
AsyncCondition: TypeAlias = Callable[["ValidationContext"], Awaitable[bool]]
SyncValidateFunction: TypeAlias = Callable[["PropertyContext"], None]
AsyncValidateFunction: TypeAlias = Callable[["PropertyContext"], Awaitable[None]]
ValidateFunction: TypeAlias = SyncValidateFunction | AsyncValidateFunction
FailureCallback: TypeAlias = Callable[[Any, list["ValidationFailure"]], None]
DisplayNameResolver: TypeAlias = Callable[["Rule", "ValidationContext"], Optional[str]]
IndexBuilder: TypeAlias = Callable[[Any, Sequence[Any], Any, int], str]
ElementFilter: TypeAlias = Callable[[Any], bool]
MessageFormatter: TypeAlias = Callable[[str, Mapping[str, Any]], str]
