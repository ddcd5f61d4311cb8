"""Embedding BLOB codec: little-endian float32, no header."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

_DTYPE = np.dtype("<f4")


def encode_vector(vector: Sequence[float] | npt.NDArray[np.floating]) -> bytes:
    """Pack a vector as contiguous little-endian float32 bytes."""
    return np.asarray(vector, dtype=_DTYPE).tobytes()


def decode_vector(blob: bytes) -> npt.NDArray[np.float32]:
    """Unpack a BLOB written by encode_vector()."""
    if len(blob) % _DTYPE.itemsize:
        raise ValueError(f"Vector blob length {len(blob)} is not a multiple of 4")
    return np.frombuffer(blob, dtype=_DTYPE).astype(np.float32)
