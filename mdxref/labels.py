"""Label keys and their display formatting."""

from dataclasses import dataclass
from typing import AbstractSet, Optional, Union


@dataclass(frozen=True)
class LabelKey:
    """
    A label identified by an optional enumeration name plus an id.

    The canonical form is ``name:id``, or the bare ``id`` for the global
    enumeration. Keys are always built through the canonical string so
    that equal strings give equal keys; the enumeration name is whatever
    precedes the first colon (ids may contain further colons).
    """
    name: Optional[str]
    id: str

    @classmethod
    def parse(cls, text: str) -> 'LabelKey':
        name, sep, rest = text.partition(':')
        if sep:
            return cls(name, rest)
        return cls(None, text)

    @property
    def namespace(self) -> Optional[str]:
        """Enumeration this key counts in; None is the global enumeration."""
        return self.name

    def __str__(self) -> str:
        return to_id(self.name, self.id)


LabelLike = Union[LabelKey, str]


def as_key(label: LabelLike) -> LabelKey:
    if isinstance(label, LabelKey):
        return label
    return LabelKey.parse(label)


def to_id(name: Optional[str], id: str) -> str:
    """Join an optional enumeration name and an id into ``name:id`` or ``id``."""
    return f"{name}:{id}" if name else id


def format_label(name: Optional[str], n: Union[int, str], taggable: AbstractSet[str],
                 raw: bool = False) -> str:
    """
    Format a label number for display.

    References into a taggable enumeration render parenthesized, ``(3)``;
    definitions (``raw=True``) render bare, so the text around the label
    decides how the number is shown next to its equation, for example
    ``$$ E = mc^2 $$ (@eq:energy)``. Other enumerations always render bare.
    """
    if name and name.lower() in taggable:
        return f"{n}" if raw else f"({n})"
    return f"{n}"


def duplicate_marker(key: LabelLike) -> str:
    return f"⚠️ {{duplicate: {key}}}"


def undefined_marker(key: LabelLike) -> str:
    return f"⚠️ {{undefined: {key}}}"


__all__ = [
    'LabelKey',
    'LabelLike',
    'as_key',
    'to_id',
    'format_label',
    'duplicate_marker',
    'undefined_marker',
]
