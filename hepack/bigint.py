"""
Arbitrary-precision integer capability.

Packed values and ciphertexts are carried as ``gmpy2.mpz``. Shifts, addition,
modulo and bitwise operators are the ``mpz`` operators; this module only
covers construction from fixed-width integers and the decimal wire encoding.
"""

from __future__ import annotations

import operator
from typing import Any

import gmpy2
import torch

ONE = gmpy2.mpz(1)


def to_bigint(value: Any) -> gmpy2.mpz:
    """Convert a fixed-width integer into an ``mpz``.

    Accepts Python ints, numpy integer scalars, single-element integer
    tensors and ``mpz`` values. Floating point input is rejected rather
    than rounded.

    Raises:
        TypeError: If ``value`` is not integral.
        ValueError: If a tensor holds more than one element.
    """
    if isinstance(value, gmpy2.mpz):
        return value
    if isinstance(value, torch.Tensor):
        if value.numel() != 1:
            raise ValueError(
                f"Expected a single-element tensor, got shape {tuple(value.shape)}"
            )
        if value.is_floating_point() or value.is_complex():
            raise TypeError(f"Cannot convert tensor of dtype {value.dtype} to a big integer")
        value = value.item()
    try:
        return gmpy2.mpz(operator.index(value))
    except TypeError:
        raise TypeError(
            f"Cannot convert {type(value).__name__} to a big integer"
        ) from None


def to_decimal(value: Any) -> str:
    """Encode a big integer for the wire as a base-10 string."""
    return gmpy2.digits(to_bigint(value), 10)


def from_decimal(text: Any) -> gmpy2.mpz:
    """Decode a big integer from its wire form.

    Integers are passed through so that records produced by encoders that
    emit native JSON numbers still load.
    """
    if isinstance(text, str):
        try:
            return gmpy2.mpz(text.strip(), 10)
        except ValueError:
            raise ValueError(f"Invalid decimal big integer: {text!r}") from None
    return to_bigint(text)
