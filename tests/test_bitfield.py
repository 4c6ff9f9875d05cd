import numpy as np
import pytest
from hypothesis import given
from hypothesis.strategies import booleans, data, integers, lists, sampled_from

from pseudoclock.bitfield import pack_bits, unpack_bit
from pseudoclock.types import BitfieldWidthError, InvalidValueError


def test_pack_bits():
    packed = pack_bits({0: [1, 0, 1], 3: [0, 1, 1]}, np.uint8)

    assert packed.dtype == np.uint8
    assert packed.tolist() == [0b0001, 0b1000, 0b1001]


def test_pack_sequence_skips_none():
    packed = pack_bits([[True, False], None, [True, True]])

    assert packed.dtype == np.uint32
    assert packed.tolist() == [0b101, 0b100]


def test_highest_bit():
    packed = pack_bits({31: [True]}, np.uint32)

    assert packed.tolist() == [2**31]
    assert unpack_bit(packed, 31).tolist() == [True]


@given(data())
def test_unpack_packed_bits(data):
    dtype = data.draw(sampled_from([np.uint8, np.uint16, np.uint32, np.uint64]))
    width = np.dtype(dtype).itemsize * 8
    length = data.draw(integers(min_value=0, max_value=20))
    bits = data.draw(
        lists(integers(min_value=0, max_value=width - 1), min_size=1, unique=True)
    )
    arrays = {
        bit: np.array(
            data.draw(lists(booleans(), min_size=length, max_size=length)),
            dtype=bool,
        )
        for bit in bits
    }

    packed = pack_bits(arrays, dtype)

    for bit in range(width):
        expected = arrays.get(bit, np.zeros(length, dtype=bool))
        assert np.array_equal(unpack_bit(packed, bit), expected)


def test_bit_does_not_fit():
    with pytest.raises(BitfieldWidthError):
        pack_bits({8: [True]}, np.uint8)


def test_negative_bit():
    with pytest.raises(BitfieldWidthError):
        pack_bits({-1: [True]}, np.uint8)


def test_signed_type():
    with pytest.raises(BitfieldWidthError):
        pack_bits({0: [True]}, np.int32)


def test_different_lengths():
    with pytest.raises(BitfieldWidthError):
        pack_bits({0: [True, False], 1: [True]})


def test_no_arrays():
    with pytest.raises(BitfieldWidthError):
        pack_bits({})


def test_not_one_dimensional():
    with pytest.raises(BitfieldWidthError):
        pack_bits({0: [[True]]})


def test_non_binary_values():
    with pytest.raises(InvalidValueError):
        pack_bits({0: [0, 2]})


def test_unpack_from_signed_type():
    with pytest.raises(BitfieldWidthError):
        unpack_bit(np.array([1], dtype=np.int32), 0)
