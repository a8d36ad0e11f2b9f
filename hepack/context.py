"""
Packing Context - batch components through an additively homomorphic scheme.

This module pairs a ``PackingConfig`` with an external encryption backend.
The backend is treated as a black box over big integers; this module only
packs before encryption and unpacks after decryption.
"""

from __future__ import annotations

import logging
import math
import pickle
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Protocol, Union

import gmpy2

from .batching.packing import ComponentPacker, as_component_list
from .bigint import to_bigint
from .ciphertext import Packed, Scalar, SchemeT, TypedCiphertext
from .conversion import get_converter

logger = logging.getLogger(__name__)


class EncryptionBackend(Protocol):
    """Additively homomorphic scheme operating on big-integer plaintexts.

    Paillier-style schemes fit directly: ``add`` of two ciphertexts decrypts
    to the sum of their plaintexts and ``mul`` by a plain scalar decrypts to
    the scaled plaintext.
    """

    def encrypt(self, plaintext: gmpy2.mpz) -> gmpy2.mpz: ...

    def decrypt(self, ciphertext: gmpy2.mpz) -> gmpy2.mpz: ...

    def add(self, left: gmpy2.mpz, right: gmpy2.mpz) -> gmpy2.mpz: ...

    def mul(self, ciphertext: gmpy2.mpz, scalar: gmpy2.mpz) -> gmpy2.mpz: ...


def _smallest_dtype(bits: int) -> str:
    for width in (8, 16, 32, 64):
        if bits <= width:
            return f"uint{width}"
    return "int"


@dataclass
class PackingConfig:
    """Configuration for component packing.

    Attributes:
        component_bitsize: Bits reserved per component slot.
        plaintext_bits: Usable plaintext size of the encryption scheme in
            bits (e.g. the bit length of a Paillier modulus minus one).
            None for no capacity check.
        dtype: Component type produced when unpacking. Any value accepted
            by ``hepack.conversion.get_converter``; strings keep the config
            picklable.
        strict: Validate components and dtype width instead of silently
            corrupting out-of-range values.
    """
    component_bitsize: int = 64
    plaintext_bits: Optional[int] = None
    dtype: Any = "uint64"
    strict: bool = False

    def __post_init__(self) -> None:
        if self.component_bitsize <= 0:
            raise ValueError(f"component_bitsize must be positive, got {self.component_bitsize}")
        if self.plaintext_bits is not None and self.plaintext_bits <= 0:
            raise ValueError(f"plaintext_bits must be positive, got {self.plaintext_bits}")
        get_converter(self.dtype)

    @property
    def max_components(self) -> Optional[int]:
        """Number of components that fit in one plaintext."""
        if self.plaintext_bits is None:
            return None
        return self.plaintext_bits // self.component_bitsize

    @classmethod
    def for_dtype(cls, dtype: Any, **kwargs: Any) -> "PackingConfig":
        """Create a config whose slots are exactly as wide as ``dtype``."""
        converter = get_converter(dtype)
        if converter.bits is None:
            raise ValueError(f"{converter.name} has no fixed width; pass component_bitsize explicitly")
        return cls(component_bitsize=converter.bits, dtype=dtype, **kwargs)

    @classmethod
    def for_additions(cls, value_bits: int, add_ops: int, **kwargs: Any) -> "PackingConfig":
        """Create a config that survives ``add_ops`` homomorphic additions.

        Summing ``add_ops`` values of ``value_bits`` bits needs
        ``value_bits + ceil(log2(add_ops))`` bits per slot to avoid a carry
        into the neighbouring slot.

        Args:
            value_bits: Bit length of each input component.
            add_ops: Number of packed plaintexts that will be summed.
            **kwargs: Overrides forwarded to __init__. ``dtype`` defaults to
                the smallest unsigned type that holds a slot.
        """
        if value_bits <= 0:
            raise ValueError(f"value_bits must be positive, got {value_bits}")
        if add_ops < 1:
            raise ValueError(f"add_ops must be at least 1, got {add_ops}")
        component_bitsize = value_bits + math.ceil(math.log2(add_ops))
        dtype = kwargs.pop("dtype", _smallest_dtype(component_bitsize))
        return cls(component_bitsize=component_bitsize, dtype=dtype, **kwargs)

    def packer(self) -> ComponentPacker:
        return ComponentPacker(
            self.component_bitsize,
            plaintext_bits=self.plaintext_bits,
            dtype=self.dtype,
            strict=self.strict,
        )


class PackingContext:
    """Encrypt and decrypt batches of components as single ciphertexts.

    Example:
        >>> ctx = PackingContext(PackingConfig(component_bitsize=32, dtype=int), backend=paillier)
        >>> ct = ctx.encrypt([1, 2, 3])
        >>> total = ctx.add(ct, ctx.encrypt([10, 20, 30]))
        >>> ctx.decrypt(total)
        [11, 22, 33]
    """

    def __init__(
        self,
        config: Optional[PackingConfig] = None,
        *,
        backend: Optional[EncryptionBackend] = None,
    ):
        self.config = config or PackingConfig()
        self._backend = backend
        self._packer = self.config.packer()

    @property
    def backend(self) -> EncryptionBackend:
        """The encryption backend."""
        if self._backend is None:
            raise RuntimeError(
                "No encryption backend configured. Pass backend=... to PackingContext "
                "or call set_backend()."
            )
        return self._backend

    def set_backend(self, backend: EncryptionBackend) -> None:
        self._backend = backend

    @property
    def packer(self) -> ComponentPacker:
        return self._packer

    @property
    def max_components(self) -> Optional[int]:
        return self._packer.max_components

    def encrypt(self, components: Iterable[Any]) -> TypedCiphertext[Packed]:
        """Pack ``components`` and encrypt them as one ciphertext.

        Raises:
            IndexError: If ``components`` is empty.
            ValueError: If the components exceed the plaintext capacity.
        """
        values = as_component_list(components)
        packed = self._packer.pack(values)
        raw = self.backend.encrypt(packed)
        logger.debug("Encrypted %d packed components", len(values))
        return TypedCiphertext[Packed](raw=raw, components=len(values))

    def decrypt(self, ciphertext: TypedCiphertext[Packed]) -> List[Any]:
        """Decrypt ``ciphertext`` and unpack its components."""
        packed = self.backend.decrypt(ciphertext.raw)
        return self._packer.unpack(packed, ciphertext.components)

    def decrypt_tensor(self, ciphertext: TypedCiphertext[Packed]) -> Any:
        """Like ``decrypt`` but returns a tensor or array of the configured dtype."""
        packed = self.backend.decrypt(ciphertext.raw)
        return self._packer.unpack_tensor(packed, ciphertext.components)

    def encrypt_scalar(self, value: Any) -> TypedCiphertext[Scalar]:
        packed = self._packer.pack([value])
        return TypedCiphertext[Scalar](raw=self.backend.encrypt(packed), components=1)

    def decrypt_scalar(self, ciphertext: TypedCiphertext[Scalar]) -> Any:
        packed = self.backend.decrypt(ciphertext.raw)
        return self._packer.unpack(packed, 1)[0]

    def add(
        self,
        left: TypedCiphertext[SchemeT],
        right: TypedCiphertext[SchemeT],
    ) -> TypedCiphertext[SchemeT]:
        """Homomorphically add two ciphertexts slot by slot.

        Slots only stay independent while every slot sum fits in
        ``component_bitsize`` bits; see ``PackingConfig.for_additions``.

        Raises:
            ValueError: If the ciphertexts hold different component counts.
        """
        if left.components != right.components:
            raise ValueError(
                f"Component count mismatch in add: {left.components} vs {right.components}"
            )
        raw = self.backend.add(left.raw, right.raw)
        return TypedCiphertext(raw=raw, components=left.components)

    def mul(self, ciphertext: TypedCiphertext[SchemeT], scalar: Any) -> TypedCiphertext[SchemeT]:
        """Homomorphically multiply every slot by a plain non-negative integer."""
        factor = to_bigint(scalar)
        if factor < 0:
            raise ValueError(f"scalar must be non-negative, got {factor}")
        raw = self.backend.mul(ciphertext.raw, factor)
        return TypedCiphertext(raw=raw, components=ciphertext.components)

    def __repr__(self) -> str:
        status = "ready" if self._backend is not None else "no backend"
        return (
            f"PackingContext("
            f"component_bitsize={self.config.component_bitsize}, "
            f"max_components={self.max_components}, "
            f"dtype={self.config.dtype!r}, "
            f"status={status})"
        )

    def save_context(self, path: Union[str, Path]) -> None:
        """Save the packing configuration to a file.

        Only the configuration is saved. The backend holds key material and
        has to be supplied again after loading.

        Args:
            path: Path to save the context configuration.
        """
        config_data = {
            "component_bitsize": self.config.component_bitsize,
            "plaintext_bits": self.config.plaintext_bits,
            "dtype": self.config.dtype,
            "strict": self.config.strict,
        }
        with open(path, "wb") as f:
            pickle.dump(config_data, f)

    @classmethod
    def load_context(
        cls,
        path: Union[str, Path],
        backend: Optional[EncryptionBackend] = None,
    ) -> "PackingContext":
        """Load a context configuration saved with ``save_context``.

        Args:
            path: Path to the saved context configuration.
            backend: Encryption backend for the new context.

        Returns:
            A new PackingContext with the loaded configuration.
        """
        with open(path, "rb") as f:
            config_data = pickle.load(f)
        warnings.warn(
            "PackingContext.load_context() uses pickle deserialization which can "
            "execute arbitrary code. Only load context files from trusted sources.",
            stacklevel=2,
        )

        config = PackingConfig(
            component_bitsize=config_data["component_bitsize"],
            plaintext_bits=config_data["plaintext_bits"],
            dtype=config_data["dtype"],
            strict=config_data["strict"],
        )
        return cls(config, backend=backend)

    load = load_context
