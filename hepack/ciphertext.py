"""
TypedCiphertext - a packed ciphertext tagged with its encoding scheme.

The scheme is a type parameter only: ``TypedCiphertext[Packed]`` and
``TypedCiphertext[Scalar]`` are the same class at runtime, carry the same two
fields, and serialize identically. The tag lets a type checker reject passing
a ciphertext produced under one encoding to code expecting another. When a
record is loaded, the scheme has to be supplied again by the caller.
"""

from __future__ import annotations

import json
import operator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Generic, Type, TypeVar, Union

import gmpy2

from .bigint import from_decimal, to_bigint, to_decimal

__all__ = ["Scheme", "Scalar", "Packed", "TypedCiphertext"]


class Scheme:
    """Base class for scheme markers. Markers are never instantiated."""


class Scalar(Scheme):
    """A single component encrypted on its own."""


class Packed(Scheme):
    """Several components packed into one plaintext before encryption."""


SchemeT = TypeVar("SchemeT", bound=Scheme)
_T = TypeVar("_T", bound="TypedCiphertext")

_RECORD_FIELDS = ("raw", "components")


@dataclass(frozen=True)
class TypedCiphertext(Generic[SchemeT]):
    """A (possibly encrypted) packed integer and its component count.

    Attributes:
        raw: The packed plaintext or its encryption.
        components: Number of components needed to unpack ``raw``.

    Example:
        >>> ct = TypedCiphertext[Packed](raw=12345, components=3)
        >>> ct.to_dict()
        {'raw': '12345', 'components': 3}
    """

    raw: gmpy2.mpz
    components: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "raw", to_bigint(self.raw))
        try:
            components = operator.index(self.components)
        except TypeError:
            raise TypeError(
                f"components must be an integer, got {type(self.components).__name__}"
            ) from None
        if components < 0:
            raise ValueError(f"components must be non-negative, got {components}")
        object.__setattr__(self, "components", components)

    def to_dict(self) -> Dict[str, Any]:
        """Wire record: ``raw`` as a decimal string and ``components``."""
        return {"raw": to_decimal(self.raw), "components": self.components}

    @classmethod
    def from_dict(cls: Type[_T], record: Dict[str, Any]) -> _T:
        missing = [name for name in _RECORD_FIELDS if name not in record]
        if missing:
            raise ValueError(f"Ciphertext record is missing fields: {missing}")
        extra = sorted(set(record) - set(_RECORD_FIELDS))
        if extra:
            raise ValueError(f"Ciphertext record has unexpected fields: {extra}")
        return cls(raw=from_decimal(record["raw"]), components=record["components"])

    def save(self, path: Union[str, Path]) -> None:
        """Save the ciphertext record as JSON."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f)

    @classmethod
    def load(cls: Type[_T], path: Union[str, Path]) -> _T:
        """Load a ciphertext record saved with ``save``.

        The record holds no scheme tag; use e.g.
        ``TypedCiphertext[Packed].load(path)`` to restore it for the type
        checker.
        """
        with open(path, "r", encoding="utf-8") as f:
            record = json.load(f)
        if not isinstance(record, dict):
            raise ValueError(f"Cannot load ciphertext: expected a JSON object in {path}")
        return cls.from_dict(record)
