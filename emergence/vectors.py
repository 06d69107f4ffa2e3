# emergence/vectors.py
import hashlib
from typing import Iterable, Union

import numpy as np

Vector = np.ndarray
VectorLike = Union[np.ndarray, Iterable[float]]


# --- Utility functions ---
def as_vector(v: VectorLike) -> Vector:
    """Copy into a float64 3-vector."""
    arr = np.array(v, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-D vector; got shape {arr.shape!r}")
    return arr


def dot(a: Vector, b: Vector) -> float:
    return float(np.dot(a, b))


def magnitude(v: Vector) -> float:
    return float(np.sqrt(dot(v, v)))


def squash(x: float) -> float:
    """Bounded squashing used for every derived score: maps R onto (-1, 1)."""
    return float(np.tanh(x))


# --- Content hashing ---
def hash_text(text: str, digest_size: int = 4) -> str:
    return hashlib.blake2b(text.encode("utf-8"), digest_size=digest_size).hexdigest()


def hash_vector(v: Vector, digest_size: int = 4) -> str:
    """
    Hash the exact float64 bytes of a vector.

    Two vectors hash equal only when they are bit-identical, so a
    perturbation of any size in any component changes the digest.
    """
    raw = np.ascontiguousarray(v, dtype="<f8").tobytes()
    return hashlib.blake2b(raw, digest_size=digest_size).hexdigest()


def char_jaccard(s1: str, s2: str) -> float:
    """Jaccard similarity of the character sets of two strings."""
    set1, set2 = set(s1), set(s2)
    union = set1 | set2
    if not union:
        return 0.0
    return len(set1 & set2) / len(union)
