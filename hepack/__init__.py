"""
hepack: Component packing for batched homomorphic encryption.

This library packs several small fixed-width integers into one big integer so
that an additively homomorphic scheme (e.g. Paillier) encrypts, adds and
scales all of them with a single ciphertext operation.

Quick Start:
    >>> import hepack
    >>>
    >>> # 1. Pack and unpack plaintexts directly
    >>> packed = hepack.pack([1, 2, 3], component_bitsize=64)
    >>> hepack.unpack(packed, component_bitsize=64, component_count=3)
    [1, 2, 3]
    >>>
    >>> # 2. Or go through an encryption backend
    >>> ctx = hepack.PackingContext(hepack.PackingConfig(component_bitsize=32), backend=paillier)
    >>> ct = ctx.encrypt([1, 2, 3])          # TypedCiphertext[Packed]
    >>> ct = ctx.add(ct, ctx.encrypt([4, 5, 6]))
    >>> ctx.decrypt(ct)

The library handles:
    - Big-endian packing of components into ``gmpy2.mpz`` values
    - Truncating conversion into numpy / torch unsigned types
    - Scheme-tagged ciphertext records with a two-field wire format

Components must fit in ``component_bitsize`` bits. Oversized components are
not rejected by default; they corrupt neighbouring slots. Pass
``strict=True`` to ``ComponentPacker`` or ``PackingConfig`` to reject them.
"""

__version__ = "0.1.0"

from .batching import ComponentPacker, pack, unpack, validate_components
from .bigint import from_decimal, to_bigint, to_decimal
from .ciphertext import Packed, Scalar, Scheme, TypedCiphertext
from .context import EncryptionBackend, PackingConfig, PackingContext
from .conversion import ComponentConverter, get_converter, register_converter

from . import batching
from . import conversion

__all__ = [
    # Version
    "__version__",
    # Codec
    "pack",
    "unpack",
    "validate_components",
    "ComponentPacker",
    # Conversion
    "ComponentConverter",
    "get_converter",
    "register_converter",
    # Big integers
    "to_bigint",
    "to_decimal",
    "from_decimal",
    # Ciphertexts
    "TypedCiphertext",
    "Scheme",
    "Scalar",
    "Packed",
    # Context
    "PackingConfig",
    "PackingContext",
    "EncryptionBackend",
    # Submodules
    "batching",
    "conversion",
    # Utility
    "get_backend_info",
]


def get_backend_info() -> dict:
    """Get information about the arithmetic and conversion backends.

    Returns:
        Dictionary with keys:
            bigint (str):           Big-integer implementation ("gmpy2")
            gmpy2_version (str):    Installed gmpy2 version
            gmp_version (str):      Version of the underlying GMP/MPIR library
            converters (list[str]): Registered component dtypes
    """
    import gmpy2

    from .conversion import registered_dtypes

    return {
        "bigint": "gmpy2",
        "gmpy2_version": gmpy2.version(),
        "gmp_version": gmpy2.mp_version(),
        "converters": [getattr(d, "__name__", str(d)) for d in registered_dtypes()],
    }
