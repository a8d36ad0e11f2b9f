"""Tests for component pack/unpack."""

import gmpy2
import numpy as np
import pytest
import torch

from hepack import ComponentPacker, pack, unpack, validate_components


class TestPack:

    def test_pack_three_components_64_bits(self):
        packed = pack([1, 2, 3], 64)

        assert packed == 1 * 2**128 + 2 * 2**64 + 3

    @pytest.mark.parametrize("width", [1, 8, 13, 64, 130])
    def test_packing_formula(self, width):
        a, b, c = 1, (1 << width) - 1, (1 << (width - 1))

        assert pack([a, b, c], width) == a * 2 ** (2 * width) + b * 2 ** width + c

    def test_pack_returns_mpz(self):
        assert isinstance(pack([7], 8), gmpy2.mpz)

    def test_pack_singleton(self):
        assert pack([42], 16) == 42

    def test_pack_empty_raises(self):
        with pytest.raises(IndexError, match="Cannot pack empty"):
            pack([], 64)

    def test_pack_empty_tensor_raises(self):
        with pytest.raises(IndexError):
            pack(torch.tensor([], dtype=torch.int64), 8)

    @pytest.mark.parametrize("bitsize", [0, -3])
    def test_pack_non_positive_bitsize_raises(self, bitsize):
        with pytest.raises(ValueError, match="component_bitsize must be positive"):
            pack([1, 2], bitsize)

    def test_pack_accepts_tensor(self):
        assert pack(torch.tensor([1, 2, 3]), 8) == pack([1, 2, 3], 8)

    def test_pack_accepts_numpy_array(self):
        values = np.array([1, 2, 3], dtype=np.uint64)

        assert pack(values, 64) == pack([1, 2, 3], 64)

    def test_pack_accepts_numpy_scalars(self):
        values = [np.uint32(5), np.uint32(6)]

        assert pack(values, 32) == (5 << 32) + 6

    def test_pack_rejects_float_tensor(self):
        with pytest.raises(TypeError, match="must be integers"):
            pack(torch.tensor([1.0, 2.0]), 8)

    def test_pack_rejects_bool_tensor(self):
        with pytest.raises(TypeError, match="must be integers"):
            pack(torch.tensor([True, False]), 8)

    def test_pack_rejects_bool_array(self):
        with pytest.raises(TypeError, match="must be integers"):
            pack(np.array([True, False]), 8)

    def test_pack_rejects_float_values(self):
        with pytest.raises(TypeError, match="big integer"):
            pack([1.5, 2.0], 8)

    def test_pack_leading_zeros_not_represented(self):
        packed = pack([0, 0, 5], 8)

        assert packed == 5
        assert packed.bit_length() <= 3 * 8


class TestUnpack:

    def test_unpack_three_components_64_bits(self):
        packed = 1 * 2**128 + 2 * 2**64 + 3

        assert unpack(packed, 64, 3) == [1, 2, 3]

    def test_unpack_singleton(self):
        assert unpack(42, 16, 1) == [42]

    def test_unpack_float_count_raises(self):
        with pytest.raises(ValueError, match="component_count must be an integer"):
            unpack(5, 8, 2.0)

    def test_unpack_numpy_count(self):
        assert unpack(pack([1, 2], 8), 8, np.int64(2)) == [1, 2]

    def test_unpack_zero_count(self):
        assert unpack(12345, 8, 0) == []

    def test_unpack_negative_count_raises(self):
        with pytest.raises(ValueError, match="component_count must be non-negative"):
            unpack(1, 8, -1)

    def test_unpack_over_count_yields_zeros(self):
        packed = pack([5, 6], 8)

        assert unpack(packed, 8, 4) == [0, 0, 5, 6]

    def test_unpack_zero_packed_value(self):
        assert unpack(0, 32, 3) == [0, 0, 0]

    def test_unpack_under_count_keeps_low_slots(self):
        packed = pack([1, 2, 3], 8)

        assert unpack(packed, 8, 2) == [2, 3]

    def test_unpack_numpy_dtype(self):
        packed = pack([1, 2, 3], 32)

        result = unpack(packed, 32, 3, dtype=np.uint32)

        assert all(isinstance(c, np.uint32) for c in result)
        assert [int(c) for c in result] == [1, 2, 3]

    def test_unpack_dtype_by_name(self):
        result = unpack(pack([9, 10], 16), 16, 2, dtype="uint16")

        assert all(isinstance(c, np.uint16) for c in result)

    def test_unpack_torch_dtype(self):
        result = unpack(pack([200, 17], 8), 8, 2, dtype=torch.uint8)

        assert all(c.dtype == torch.uint8 for c in result)
        assert [int(c) for c in result] == [200, 17]

    def test_unpack_unknown_dtype_raises(self):
        with pytest.raises(TypeError):
            unpack(1, 8, 1, dtype=np.float32)

    def test_unpack_truncates_to_narrow_dtype(self):
        packed = pack([0x1FF, 0x2AB], 16)

        result = unpack(packed, 16, 2, dtype=np.uint8)

        assert [int(c) for c in result] == [0xFF, 0xAB]

    def test_unpack_64_bit_components_into_uint32_truncates(self):
        big = (1 << 40) + 7
        packed = pack([big, 3], 64)

        result = unpack(packed, 64, 2, dtype=np.uint32)

        assert [int(c) for c in result] == [7, 3]


class TestRoundTrip:

    @pytest.mark.parametrize("bitsize", [1, 7, 8, 31, 64, 100, 257])
    @pytest.mark.parametrize("count", [1, 2, 17])
    def test_round_trip_in_range_values(self, rng, bitsize, count):
        values = [rng.randrange(1 << bitsize) for _ in range(count)]

        packed = pack(values, bitsize)

        assert packed.bit_length() <= count * bitsize
        assert unpack(packed, bitsize, count) == values

    def test_round_trip_boundary_values(self):
        values = [0, (1 << 64) - 1, 0, (1 << 64) - 1]

        assert unpack(pack(values, 64), 64, len(values)) == values

    def test_round_trip_uint64_dtype(self, rng):
        values = [rng.randrange(1 << 64) for _ in range(5)]

        result = unpack(pack(values, 64), 64, 5, dtype=np.uint64)

        assert [int(c) for c in result] == values

    def test_overflowing_component_does_not_round_trip(self):
        values = [1, 1 << 8, 3]

        result = unpack(pack(values, 8), 8, 3)

        assert result != values
        assert result == [2, 0, 3]

    @pytest.mark.parametrize("bitsize", [4, 16, 64])
    def test_overflowing_component_corrupts_silently(self, rng, bitsize):
        values = [rng.randrange(1 << bitsize) for _ in range(4)]
        values[2] = (1 << bitsize) + rng.randrange(1, 1 << bitsize)

        result = unpack(pack(values, bitsize), bitsize, len(values))

        assert result != values


class TestValidateComponents:

    def test_in_range_passes(self):
        validate_components([0, 255, 17], 8)

    def test_too_large_raises(self):
        with pytest.raises(ValueError, match="Component 1 .* does not fit in 8 bits"):
            validate_components([0, 256], 8)

    def test_negative_raises(self):
        with pytest.raises(ValueError, match="does not fit"):
            validate_components([-1], 8)


class TestComponentPacker:

    def test_pack_unpack(self):
        packer = ComponentPacker(component_bitsize=16, plaintext_bits=2048)

        packed = packer.pack([7, 8, 9])

        assert packer.unpack(packed, 3) == [7, 8, 9]

    def test_max_components(self):
        packer = ComponentPacker(component_bitsize=64, plaintext_bits=2047)

        assert packer.max_components == 31

    def test_max_components_unbounded(self):
        packer = ComponentPacker(component_bitsize=64)

        assert packer.max_components is None

    def test_pack_exceeds_capacity_raises(self):
        packer = ComponentPacker(component_bitsize=8, plaintext_bits=16)

        with pytest.raises(ValueError, match="exceeds max components"):
            packer.pack([1, 2, 3])

    def test_unpack_over_capacity_yields_zeros(self):
        packer = ComponentPacker(component_bitsize=8, plaintext_bits=16)

        assert packer.unpack(packer.pack([5, 6]), 3) == [0, 5, 6]

    def test_strict_unpack_exceeds_capacity_raises(self):
        packer = ComponentPacker(component_bitsize=8, plaintext_bits=16, strict=True)

        with pytest.raises(ValueError, match="exceeds max components"):
            packer.unpack(0, 3)

    def test_plaintext_too_small_raises(self):
        with pytest.raises(ValueError, match="cannot hold one"):
            ComponentPacker(component_bitsize=64, plaintext_bits=32)

    def test_invalid_bitsize_raises(self):
        with pytest.raises(ValueError, match="component_bitsize must be positive"):
            ComponentPacker(component_bitsize=0)

    def test_pack_empty_raises(self):
        packer = ComponentPacker(component_bitsize=8)

        with pytest.raises(IndexError, match="Cannot pack empty"):
            packer.pack([])

    def test_non_strict_allows_overflow(self):
        packer = ComponentPacker(component_bitsize=8)

        packed = packer.pack([1, 300])

        assert packer.unpack(packed, 2) != [1, 300]

    def test_strict_rejects_overflow(self):
        packer = ComponentPacker(component_bitsize=8, strict=True)

        with pytest.raises(ValueError, match="does not fit in 8 bits"):
            packer.pack([1, 300])

    def test_narrow_dtype_warns(self):
        with pytest.warns(RuntimeWarning, match="truncated"):
            packer = ComponentPacker(component_bitsize=16, dtype=np.uint8)

        assert [int(c) for c in packer.unpack(packer.pack([0x1234]), 1)] == [0x34]

    def test_narrow_dtype_strict_raises(self):
        with pytest.raises(ValueError, match="truncated"):
            ComponentPacker(component_bitsize=16, dtype=np.uint8, strict=True)

    def test_unpack_tensor_torch(self):
        packer = ComponentPacker(component_bitsize=8, dtype=torch.uint8)

        result = packer.unpack_tensor(packer.pack([1, 2, 255]), 3)

        assert isinstance(result, torch.Tensor)
        assert result.dtype == torch.uint8
        assert torch.equal(result, torch.tensor([1, 2, 255], dtype=torch.uint8))

    def test_unpack_tensor_numpy(self):
        packer = ComponentPacker(component_bitsize=32, dtype=np.uint32)

        result = packer.unpack_tensor(packer.pack([4, 5, 6]), 3)

        assert result.dtype == np.uint32
        np.testing.assert_array_equal(result, np.array([4, 5, 6], dtype=np.uint32))

    def test_unpack_tensor_int_dtype_raises(self):
        packer = ComponentPacker(component_bitsize=8)

        with pytest.raises(TypeError, match="no array form"):
            packer.unpack_tensor(packer.pack([1]), 1)

    def test_repr(self):
        packer = ComponentPacker(component_bitsize=16, plaintext_bits=64, dtype=np.uint16)

        text = repr(packer)

        assert "component_bitsize=16" in text
        assert "max_components=4" in text
        assert "uint16" in text
