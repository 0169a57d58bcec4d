"""
Vector similarity helpers.
"""

from collections.abc import Sequence

import numpy as np

from contextindex.utils.exceptions import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns NaN when either vector has zero magnitude.

    Raises:
        DimensionMismatchError: If the vectors have different lengths
    """
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Vector dimensions don't match: {len(a)} vs {len(b)}",
            {"left": len(a), "right": len(b)},
        )

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denominator = np.linalg.norm(va) * np.linalg.norm(vb)

    if denominator == 0:
        return float("nan")
    return float(np.dot(va, vb) / denominator)
