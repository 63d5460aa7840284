"""Conversions between nested parameter maps and the flat vectors consumed by optimizers.

A model exposes its weights as a nested mapping (see `Parameters`). Optimizers only ever see a
single 1-D vector. Both directions walk the mapping in insertion order, so a vector produced by
`flatten_parameters` can be loaded back with `unflatten_parameters` using the same template.
"""

from typing import Iterator

import numpy as np

from descent.constants import BaseParameter, DType, DEFAULT_DTYPE, Parameters


def _iter_leaves(params: Parameters) -> Iterator[BaseParameter]:
    for value in params.values():
        if isinstance(value, BaseParameter):
            yield value
        else:
            yield from _iter_leaves(value)


def count_parameters(params: Parameters) -> int:
    """Return the total number of scalars stored in a parameter map."""
    return sum(leaf.size for leaf in _iter_leaves(params))


def flatten_parameters(params: Parameters, dtype: DType = DEFAULT_DTYPE) -> np.ndarray:
    """Concatenate every array of a parameter map into a new 1-D vector."""
    leaves = [np.ravel(leaf) for leaf in _iter_leaves(params)]
    if not leaves:
        return np.zeros(shape=(0,), dtype=dtype)
    return np.concatenate(leaves).astype(dtype, copy=False)


def unflatten_parameters(vector: np.ndarray, template: Parameters) -> Parameters:
    """Split a 1-D vector into a new parameter map shaped like `template`."""
    if vector.ndim != 1:
        raise ValueError(f"Expected a 1-D parameter vector, got shape {vector.shape}")
    expected = count_parameters(template)
    if vector.size != expected:
        raise ValueError(f"Parameter vector has {vector.size} entries but the template needs {expected}")

    offset = 0

    def _build(node: Parameters) -> Parameters:
        nonlocal offset
        out: dict = {}
        for key, value in node.items():
            if isinstance(value, BaseParameter):
                out[key] = np.reshape(vector[offset : offset + value.size], value.shape).astype(value.dtype)
                offset += value.size
            else:
                out[key] = _build(value)
        return out

    return _build(template)
