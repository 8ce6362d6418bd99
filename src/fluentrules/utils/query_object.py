"""
Contains functions to read (nested) attributes from the validated objects. They are used to create value accessors
from attribute paths like `"customer.address.city"`.
"""
from typing import Any, Callable, Optional

from typeguard import TypeCheckError, check_type

_MISSING = object()


def required_field(obj: Any, attribute_path: str, attribute_type: Any = Any) -> Any:
    """
    Reads the dotted `attribute_path` from `obj`. If a segment is missing, an AttributeError names the path up to
    that segment and the type of the object which lacks it, e.g. `address.city: Not found on NoneType`.
    A value which does not match `attribute_type` raises a TypeCheckError prefixed with the full path.
    """
    current_obj: Any = obj
    segments = attribute_path.split(".")
    for depth, segment in enumerate(segments, start=1):
        next_obj = getattr(current_obj, segment, _MISSING)
        if next_obj is _MISSING:
            raise AttributeError(f"{'.'.join(segments[:depth])}: Not found on {type(current_obj).__name__}")
        current_obj = next_obj
    try:
        check_type(current_obj, attribute_type)
    except TypeCheckError as error:
        raise TypeCheckError(f"{attribute_path}: {error}") from error
    return current_obj


def optional_field(obj: Any, attribute_path: str, attribute_type: Any = Any) -> Optional[Any]:
    """
    Like `required_field` but returns `None` if a segment of the path does not exist.
    """
    try:
        return required_field(obj, attribute_path, attribute_type)
    except AttributeError:
        return None


def path_accessor(attribute_path: str, attribute_type: Any = Any, required: bool = True) -> Callable[[Any], Any]:
    """
    Creates a value accessor for a rule which reads `attribute_path` from the validated instance.
    A required accessor raises if the path does not exist, an optional one returns `None` instead.
    In both cases a value of the wrong type raises a `TypeCheckError`.
    """
    if not attribute_path:
        raise ValueError("The attribute path must not be empty")
    read = required_field if required else optional_field

    def accessor(instance: Any) -> Any:
        return read(instance, attribute_path, attribute_type)

    accessor.__name__ = f"path_accessor({attribute_path})"
    return accessor
