"""
Conversion of big integers into fixed-width component types.

Every numeric type that ``unpack`` can produce has one ``ComponentConverter``.
A converter keeps only the low ``bits`` bits of its input, so unpacking with a
``component_bitsize`` wider than the target type silently truncates each
component. ``ComponentPacker`` warns about that combination at construction
time; the free ``unpack`` function does not.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import torch

__all__ = [
    "ComponentConverter",
    "get_converter",
    "register_converter",
    "registered_dtypes",
]


class ComponentConverter:
    """Truncating conversion from a big integer to one numeric type.

    Args:
        dtype: The key the converter is registered under (``int``, a numpy
            scalar type or a ``torch.dtype``).
        bits: Width of the target type, or None for unbounded Python ints.
        scalar: Builds one component from a non-negative Python int that
            already fits in ``bits``.
        collate: Builds an array-like from a list of converted components.
            None when the type has no array form.
    """

    def __init__(
        self,
        dtype: Any,
        bits: Optional[int],
        scalar: Callable[[int], Any],
        collate: Optional[Callable[[List[Any]], Any]] = None,
    ):
        if bits is not None and bits <= 0:
            raise ValueError(f"bits must be positive, got {bits}")
        self.dtype = dtype
        self.bits = bits
        self._scalar = scalar
        self._collate = collate
        self._mask = (1 << bits) - 1 if bits is not None else None

    @property
    def name(self) -> str:
        return getattr(self.dtype, "__name__", str(self.dtype))

    def truncates(self, component_bitsize: int) -> bool:
        """Whether components of ``component_bitsize`` bits lose high bits."""
        return self.bits is not None and component_bitsize > self.bits

    def convert(self, value: Any) -> Any:
        """Keep the low-order ``bits`` bits of ``value`` and build the component."""
        raw = int(value)
        if self._mask is not None:
            raw &= self._mask
        return self._scalar(raw)

    def collate(self, components: Sequence[Any]) -> Any:
        if self._collate is None:
            raise TypeError(
                f"{self.name} components have no array form; use a fixed-width dtype"
            )
        return self._collate(list(components))

    def __repr__(self) -> str:
        return f"ComponentConverter(dtype={self.name}, bits={self.bits})"


_CONVERTERS: Dict[Any, ComponentConverter] = {}


def register_converter(converter: ComponentConverter) -> ComponentConverter:
    """Register ``converter`` under its dtype, replacing any previous one."""
    _CONVERTERS[converter.dtype] = converter
    return converter


def registered_dtypes() -> List[Any]:
    return list(_CONVERTERS)


def _numpy_converter(scalar_type: type) -> ComponentConverter:
    bits = np.dtype(scalar_type).itemsize * 8
    return ComponentConverter(
        scalar_type,
        bits,
        scalar=scalar_type,
        collate=lambda values: np.array(values, dtype=scalar_type),
    )


def _torch_converter(dtype: torch.dtype, bits: int) -> ComponentConverter:
    return ComponentConverter(
        dtype,
        bits,
        scalar=lambda value: torch.tensor(value, dtype=dtype),
        collate=lambda values: torch.stack(values) if values else torch.empty(0, dtype=dtype),
    )


register_converter(ComponentConverter(int, None, scalar=int))
for _scalar_type in (np.uint8, np.uint16, np.uint32, np.uint64):
    register_converter(_numpy_converter(_scalar_type))
register_converter(_torch_converter(torch.uint8, 8))


def get_converter(dtype: Any) -> ComponentConverter:
    """Resolve the converter for ``dtype``.

    ``dtype`` may be a converter, ``int``, a ``torch.dtype``, or anything
    ``numpy.dtype`` understands (``np.uint32``, ``np.dtype("uint32")``,
    ``"uint32"``).

    Raises:
        TypeError: If no converter is registered for ``dtype``.
    """
    if isinstance(dtype, ComponentConverter):
        return dtype
    if dtype is int or (isinstance(dtype, str) and dtype == "int"):
        return _CONVERTERS[int]
    if isinstance(dtype, torch.dtype):
        key = dtype
    else:
        try:
            key = np.dtype(dtype).type
        except TypeError:
            raise TypeError(f"Unknown component dtype: {dtype!r}") from None
    converter = _CONVERTERS.get(key)
    if converter is None:
        raise TypeError(
            f"No component converter registered for {dtype!r}. "
            f"Registered: {[getattr(d, '__name__', str(d)) for d in _CONVERTERS]}"
        )
    return converter
