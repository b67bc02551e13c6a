"""
Per-file option values.

Every per-file option is either a fixed value or a function of the request
and the incoming file. Both variants are resolved through the same
``resolve`` coroutine, so callers never branch on the option kind.
"""
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable


class OptionValue(ABC):
    """Abstract base class for option values."""
    
    @abstractmethod
    async def resolve(self, request: Any, file: Any) -> Any:
        """Return the option value for one file."""
        pass


@dataclass(frozen=True)
class StaticValue(OptionValue):
    """Option with a value fixed at configuration time."""
    value: Any
    
    async def resolve(self, request: Any, file: Any) -> Any:
        return self.value


@dataclass(frozen=True)
class DynamicValue(OptionValue):
    """
    Option computed per file.
    
    The function is called as ``func(request, file)`` and may be a plain
    function or a coroutine function.
    """
    func: Callable[..., Any]
    
    async def resolve(self, request: Any, file: Any) -> Any:
        result = self.func(request, file)
        if inspect.isawaitable(result):
            result = await result
        return result


def to_option_value(value: Any) -> OptionValue:
    """Wrap a raw option in the matching OptionValue variant."""
    if isinstance(value, OptionValue):
        return value
    if callable(value):
        return DynamicValue(value)
    return StaticValue(value)
