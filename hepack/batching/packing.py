"""
Component packing for batched additively homomorphic encryption.

This module concatenates several fixed-width components into one big integer
so that a single encryption covers all of them, and splits a decrypted big
integer back into its components.

Layout: component 0 occupies the most significant slot. With bit-size ``w``,
``pack([a, b, c], w) == a * 2**(2*w) + b * 2**w + c``.

Caller contract:
    Every component must satisfy ``0 <= component < 2**component_bitsize``.
    ``pack`` does not check this. An oversized component carries into the
    neighbouring slot and the round trip silently returns different values.
    ``ComponentPacker(strict=True)`` checks the bound before packing.
"""

from __future__ import annotations

import logging
import operator
import warnings
from typing import Any, Iterable, List, Optional

import gmpy2
import numpy as np
import torch

from ..bigint import ONE, to_bigint
from ..conversion import ComponentConverter, get_converter

logger = logging.getLogger(__name__)


def _check_bitsize(component_bitsize: int) -> int:
    try:
        component_bitsize = operator.index(component_bitsize)
    except TypeError:
        raise ValueError(
            f"component_bitsize must be an integer, got {type(component_bitsize).__name__}"
        ) from None
    if component_bitsize <= 0:
        raise ValueError(f"component_bitsize must be positive, got {component_bitsize}")
    return component_bitsize


def as_component_list(components: Iterable[Any]) -> List[Any]:
    """Flatten sequences, integer tensors and integer arrays into a list."""
    if isinstance(components, torch.Tensor):
        if components.is_floating_point() or components.is_complex() or components.dtype == torch.bool:
            raise TypeError(f"Components must be integers, got tensor of dtype {components.dtype}")
        return components.detach().cpu().reshape(-1).tolist()
    if isinstance(components, np.ndarray):
        if components.dtype.kind not in "ui":
            raise TypeError(f"Components must be integers, got array of dtype {components.dtype}")
        return components.reshape(-1).tolist()
    return list(components)


def validate_components(components: Iterable[Any], component_bitsize: int) -> None:
    """Raise ``ValueError`` if any component does not fit its slot."""
    component_bitsize = _check_bitsize(component_bitsize)
    limit = ONE << component_bitsize
    for i, component in enumerate(as_component_list(components)):
        value = to_bigint(component)
        if value < 0 or value >= limit:
            raise ValueError(
                f"Component {i} ({value}) does not fit in {component_bitsize} bits"
            )


def pack(components: Iterable[Any], component_bitsize: int) -> gmpy2.mpz:
    """Pack components into one big integer, first component most significant.

    Args:
        components: Non-empty sequence (or 1-D integer tensor/array) of
            unsigned components.
        component_bitsize: Bits reserved for each component.

    Returns:
        The packed value.

    Raises:
        IndexError: If ``components`` is empty.
        ValueError: If ``component_bitsize`` is not a positive integer.
    """
    component_bitsize = _check_bitsize(component_bitsize)
    values = as_component_list(components)
    if not values:
        raise IndexError("Cannot pack empty sequence of components")

    packed = to_bigint(values[0])
    for component in values[1:]:
        packed = packed << component_bitsize
        packed = packed + to_bigint(component)

    logger.debug("Packed %d components of %d bits", len(values), component_bitsize)
    return packed


def unpack(
    packed: Any,
    component_bitsize: int,
    component_count: int,
    dtype: Any = int,
) -> List[Any]:
    """Split a packed value into ``component_count`` components.

    Slots are read least significant first and the result is reversed, so
    the order matches the one given to ``pack``. Asking for more components
    than the value holds yields leading zero components.

    Note:
        Each component is passed through the converter for ``dtype``, which
        keeps only the low bits of its input. A ``component_bitsize`` wider
        than ``dtype`` therefore truncates components.

    Args:
        packed: The packed (decrypted) big integer.
        component_bitsize: Bits reserved for each component.
        component_count: Number of components to extract.
        dtype: Target component type, see ``hepack.conversion.get_converter``.

    Returns:
        List of components in packing order.
    """
    component_bitsize = _check_bitsize(component_bitsize)
    try:
        component_count = operator.index(component_count)
    except TypeError:
        raise ValueError(
            f"component_count must be an integer, got {type(component_count).__name__}"
        ) from None
    if component_count < 0:
        raise ValueError(f"component_count must be non-negative, got {component_count}")
    converter = get_converter(dtype)

    remaining = to_bigint(packed)
    mask = (ONE << component_bitsize) - ONE
    components: List[Any] = []
    for _ in range(component_count):
        components.append(converter.convert(remaining & mask))
        remaining = remaining >> component_bitsize
    components.reverse()

    logger.debug("Unpacked %d components of %d bits", component_count, component_bitsize)
    return components


class ComponentPacker:
    """Packs fixed-width components into a single plaintext integer.

    A plaintext of ``plaintext_bits`` bits holds up to
    ``plaintext_bits // component_bitsize`` components. Packing them into one
    plaintext lets a single encryption (and every later homomorphic addition)
    cover all of them at once.

    Example:
        >>> packer = ComponentPacker(component_bitsize=16, plaintext_bits=2048)
        >>> packed = packer.pack([7, 8, 9])
        >>> packer.unpack(packed, 3)
        [7, 8, 9]
    """

    def __init__(
        self,
        component_bitsize: int,
        plaintext_bits: Optional[int] = None,
        dtype: Any = int,
        strict: bool = False,
    ):
        """Initialize the ComponentPacker.

        Args:
            component_bitsize: Bits reserved for each component.
            plaintext_bits: Size of the plaintext space in bits, or None
                for no capacity limit.
            dtype: Type produced by ``unpack``.
            strict: Reject components that do not fit their slot and dtypes
                that would truncate components, instead of silently
                corrupting them.

        Raises:
            ValueError: If ``component_bitsize`` <= 0 or ``plaintext_bits``
                cannot hold a single component.
            TypeError: If ``dtype`` has no registered converter.
        """
        self.component_bitsize = _check_bitsize(component_bitsize)
        if plaintext_bits is not None and plaintext_bits < self.component_bitsize:
            raise ValueError(
                f"plaintext_bits ({plaintext_bits}) cannot hold one "
                f"{self.component_bitsize}-bit component"
            )
        self.plaintext_bits = plaintext_bits
        self.strict = strict
        self._converter: ComponentConverter = get_converter(dtype)

        if self._converter.truncates(self.component_bitsize):
            message = (
                f"{self._converter.name} holds {self._converter.bits} bits but "
                f"components are {self.component_bitsize} bits wide; unpacked "
                f"components will be truncated"
            )
            if strict:
                raise ValueError(message)
            warnings.warn(message, RuntimeWarning, stacklevel=2)

    @property
    def dtype(self) -> Any:
        return self._converter.dtype

    @property
    def max_components(self) -> Optional[int]:
        """Maximum number of components per plaintext, None if unbounded."""
        if self.plaintext_bits is None:
            return None
        return self.plaintext_bits // self.component_bitsize

    def pack(self, components: Iterable[Any]) -> gmpy2.mpz:
        """Pack components into a single plaintext integer.

        Raises:
            IndexError: If ``components`` is empty.
            ValueError: If there are more components than ``max_components``.
            ValueError: In strict mode, if a component does not fit its slot.
        """
        values = as_component_list(components)
        capacity = self.max_components
        if capacity is not None and len(values) > capacity:
            raise ValueError(
                f"Number of components ({len(values)}) exceeds max components "
                f"({capacity}) for a {self.plaintext_bits}-bit plaintext"
            )
        if self.strict:
            validate_components(values, self.component_bitsize)
        return pack(values, self.component_bitsize)

    def unpack(self, packed: Any, component_count: int) -> List[Any]:
        """Unpack ``component_count`` components from a packed value.

        Asking for more components than ``max_components`` yields leading
        zeros, like ``unpack``; strict mode rejects it instead.

        Raises:
            ValueError: If ``component_count`` is negative, or in strict mode
                exceeds ``max_components``.
        """
        capacity = self.max_components
        if self.strict and capacity is not None and component_count > capacity:
            raise ValueError(
                f"component_count ({component_count}) exceeds max components ({capacity})"
            )
        return unpack(packed, self.component_bitsize, component_count, self._converter)

    def unpack_tensor(self, packed: Any, component_count: int) -> Any:
        """Like ``unpack`` but returns a tensor (torch dtypes) or array (numpy dtypes)."""
        return self._converter.collate(self.unpack(packed, component_count))

    def __repr__(self) -> str:
        return (
            f"ComponentPacker(component_bitsize={self.component_bitsize}, "
            f"plaintext_bits={self.plaintext_bits}, dtype={self._converter.name}, "
            f"max_components={self.max_components}, strict={self.strict})"
        )
