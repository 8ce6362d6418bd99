"""
Contains the process-wide configuration of the validation engine
"""
import dataclasses
import re
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Sequence

from .types import DisplayNameResolver, IndexBuilder, MessageFormatter


class CascadeMode(str, Enum):
    """
    Decides whether the remaining checks of a rule are executed after one of its checks failed.
    """

    CONTINUE = "continue"
    STOP = "stop"


def default_index_builder(_instance: Any, _sequence: Sequence[Any], _element: Any, index: int) -> str:
    """Builds the default name segment of a collection element, e.g. `[2]`"""
    return f"[{index}]"


_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def format_message(template: str, format_args: Mapping[str, Any]) -> str:
    """
    Replaces the `{name}` placeholders of a message template with the matching format arguments.
    Any other text, including unknown placeholders and stray braces, is kept as it is.
    """

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in format_args:
            return match.group(0)
        return str(format_args[name])

    return _PLACEHOLDER.sub(substitute, template)


@dataclass
class ValidatorOptions:
    """
    Defaults which are used if neither a rule nor its validator configured them explicitly.
    """

    cascade_mode: CascadeMode = CascadeMode.CONTINUE
    display_name_resolver: Optional[DisplayNameResolver] = None
    index_builder: IndexBuilder = default_index_builder
    default_message: str = "The specified condition was not met for '{property_name}'."
    message_formatter: MessageFormatter = format_message

    @contextmanager
    def override(self, **changes: Any) -> Iterator["ValidatorOptions"]:
        """
        Temporarily changes some options. The previous values are restored when the block is left.
        """
        unknown = set(changes) - {option.name for option in dataclasses.fields(self)}
        if unknown:
            raise AttributeError(f"ValidatorOptions has no option(s) {unknown}")
        previous = {name: getattr(self, name) for name in changes}
        for name, value in changes.items():
            setattr(self, name, value)
        try:
            yield self
        finally:
            for name, value in previous.items():
                setattr(self, name, value)


global_options = ValidatorOptions()
