"""
Ordered-strategy helpers.

Every cascading lookup in the pipeline (payload paths, field aliases, CSS
selector fallbacks) is a tuple of small accessor functions evaluated in
order, stopping at the first one that produces a value.
"""
from typing import Any, Callable, Iterable, Optional, Sequence, Tuple

from ..core.text import has_value

Accessor = Callable[..., Any]


def dig(obj: Any, *path: str) -> Any:
    """Walk nested dicts by key; None as soon as a step is missing or not a dict."""
    current = obj
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def key(*path: str) -> Accessor:
    """Accessor reading a (possibly nested) key."""
    def accessor(obj: Any) -> Any:
        return dig(obj, *path)
    accessor.__name__ = '.'.join(path)
    return accessor


def flag(name: str, literal: str) -> Accessor:
    """Accessor yielding `literal` when boolean field `name` is true."""
    def accessor(obj: Any) -> Any:
        return literal if dig(obj, name) is True else None
    accessor.__name__ = f"{name}?{literal}"
    return accessor


def first_defined(obj: Any, accessors: Iterable[Accessor]) -> Any:
    """First accessor result that is not None."""
    for accessor in accessors:
        value = accessor(obj)
        if value is not None:
            return value
    return None


def first_success(strategies: Sequence[Accessor], *args: Any) -> Any:
    """First strategy result that carries a value (non-blank, non-empty)."""
    for strategy in strategies:
        value = strategy(*args)
        if has_value(value):
            return value
    return None


def first_match(named: Sequence[Tuple[str, Accessor]], *args: Any) -> Tuple[Optional[str], Any]:
    """Like first_success, but also reports which named strategy matched."""
    for name, strategy in named:
        value = strategy(*args)
        if has_value(value):
            return name, value
    return None, None
