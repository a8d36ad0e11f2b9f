"""
Component packing for batched encryption.

Functions:
    pack: Concatenate fixed-width components into one big integer.
    unpack: Split a packed big integer back into components.

Classes:
    ComponentPacker: Pack/unpack with a fixed bit-size, dtype and capacity.
"""

from .packing import ComponentPacker, pack, unpack, validate_components

__all__ = ["ComponentPacker", "pack", "unpack", "validate_components"]
