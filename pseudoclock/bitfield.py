"""Packing of boolean arrays into the bits of unsigned integers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Optional

import numpy as np
from numpy.typing import ArrayLike, DTypeLike, NDArray

from .types.exceptions import BitfieldWidthError, InvalidValueError


def pack_bits(
    arrays: Mapping[int, ArrayLike] | Sequence[Optional[ArrayLike]],
    dtype: DTypeLike = np.uint32,
) -> NDArray[np.unsignedinteger]:
    """Packs boolean arrays into an array of unsigned integers.

    Bit `i` of element `j` of the result is `arrays[i][j]`.

    Args:
        arrays: The arrays to pack, indexed by bit position.
            If a sequence is given, None entries leave their bit unset.
            All arrays must have the same length and contain only 0 and 1.
        dtype: An unsigned integer type wide enough for all the bit positions.

    Raises:
        BitfieldWidthError: If the arrays have different lengths, a bit position
            doesn't fit in the type or the type is not an unsigned integer.
        InvalidValueError: If an array contains a value other than 0 or 1.
    """

    dtype = np.dtype(dtype)
    if dtype.kind != "u":
        raise BitfieldWidthError(f"Can't pack bits into non unsigned type {dtype}")
    width = dtype.itemsize * 8

    if isinstance(arrays, Mapping):
        items = list(arrays.items())
    else:
        items = [(bit, array) for bit, array in enumerate(arrays) if array is not None]
    if not items:
        raise BitfieldWidthError("At least one array must be given to pack")

    length: Optional[int] = None
    result: Optional[NDArray] = None
    for bit, array in items:
        if not 0 <= bit < width:
            raise BitfieldWidthError(
                f"Bit {bit} doesn't fit in {dtype}, which has {width} bits"
            )
        array = np.asarray(array)
        if array.ndim != 1:
            raise BitfieldWidthError(f"Bit {bit} must be a 1D array, got {array.shape}")
        if length is None:
            length = len(array)
            result = np.zeros(length, dtype=dtype)
        elif len(array) != length:
            raise BitfieldWidthError(
                f"Bit {bit} has length {len(array)}, but the previous bits have "
                f"length {length}"
            )
        if not np.all((array == 0) | (array == 1)):
            raise InvalidValueError(f"Bit {bit} contains values other than 0 and 1")
        result |= array.astype(dtype) << dtype.type(bit)
    return result


def unpack_bit(packed: ArrayLike, bit: int) -> NDArray[np.bool_]:
    """Extracts the value of a bit from an array of unsigned integers."""

    packed = np.asarray(packed)
    if packed.dtype.kind != "u":
        raise BitfieldWidthError(f"Can't unpack bits from type {packed.dtype}")
    width = packed.dtype.itemsize * 8
    if not 0 <= bit < width:
        raise BitfieldWidthError(
            f"Bit {bit} doesn't fit in {packed.dtype}, which has {width} bits"
        )
    return ((packed >> packed.dtype.type(bit)) & packed.dtype.type(1)).astype(np.bool_)
