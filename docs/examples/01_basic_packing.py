#!/usr/bin/env python3
"""
Basic packing example

Shows how component packing batches several values into one ciphertext.
- Packing and unpacking plaintexts
- Encrypting a batch through an additively homomorphic backend
- Slot-wise addition and scalar multiplication
- Saving and loading a ciphertext record

The backend below only passes plaintexts through. Replace it with a real
Paillier implementation for actual encryption.
"""

import gmpy2
import numpy as np

import hepack


class PlaintextBackend:
    """Stand-in backend: no encryption, same homomorphic behaviour."""

    def encrypt(self, plaintext):
        return gmpy2.mpz(plaintext)

    def decrypt(self, ciphertext):
        return gmpy2.mpz(ciphertext)

    def add(self, left, right):
        return left + right

    def mul(self, ciphertext, scalar):
        return ciphertext * scalar


def main():
    # 1. Plain packing
    packed = hepack.pack([1, 2, 3], component_bitsize=64)
    print(f"packed value: {packed}")
    print(f"unpacked:     {hepack.unpack(packed, 64, 3)}")

    # 2. Config sized for 10 additions of 16-bit values in a 2048-bit plaintext
    config = hepack.PackingConfig.for_additions(value_bits=16, add_ops=10, plaintext_bits=2048)
    ctx = hepack.PackingContext(config, backend=PlaintextBackend())
    print(f"\n{ctx}")

    values = np.arange(1, 9, dtype=np.uint16)
    total = ctx.encrypt(values)
    for _ in range(9):
        total = ctx.add(total, ctx.encrypt(values))
    print(f"\n=== sum of 10 batches ===")
    print(f"expected:  {(values.astype(np.uint64) * 10).tolist()}")
    print(f"decrypted: {ctx.decrypt_tensor(total).tolist()}")

    # 3. Scalar multiplication
    doubled = ctx.mul(ctx.encrypt(values), 2)
    print(f"\n=== x * 2 ===")
    print(f"decrypted: {ctx.decrypt_tensor(doubled).tolist()}")

    # 4. Wire record
    print(f"\n=== record ===")
    print(total.to_dict())


if __name__ == "__main__":
    main()
