"""Scatter expansion: one step invocation per element combination."""

from __future__ import annotations

import itertools
from typing import Any, NamedTuple

from cwlkit.contracts.common import ScatterError
from cwlkit.contracts.document import ScatterMethod


class ScatterInstance(NamedTuple):
    params: dict[str, Any]
    index: list[int]


def _arrays(params: dict[str, Any], variables: list[str]) -> list[list[Any]]:
    arrays = []
    for name in variables:
        value = params.get(name)
        if not isinstance(value, list):
            raise ScatterError(
                f"Scattered input '{name}' must be an array, got {type(value).__name__}",
                details={"input": name},
            )
        arrays.append(value)
    return arrays


def _method(variables: list[str], method: ScatterMethod | None) -> ScatterMethod:
    if method is not None:
        return method
    if len(variables) > 1:
        raise ScatterError(
            "Scattering over several inputs needs an explicit scatterMethod",
            details={"scatter": variables},
        )
    return ScatterMethod.DOTPRODUCT


def scatter_shape(params: dict[str, Any], variables: list[str], method: ScatterMethod | None) -> list[int]:
    """Shape of the scattered output arrays."""
    if not variables:
        return []
    method = _method(variables, method)
    lengths = [len(a) for a in _arrays(params, variables)]
    if method == ScatterMethod.DOTPRODUCT:
        return lengths[:1]
    if method == ScatterMethod.NESTED_CROSSPRODUCT:
        return lengths
    total = 1
    for length in lengths:
        total *= length
    return [total]


def expand_scatter(
    params: dict[str, Any],
    variables: list[str],
    method: ScatterMethod | None,
) -> list[ScatterInstance]:
    """Expand ``params`` over the scattered ``variables``.

    Unscattered parameters are shared by every instance.  Dot products
    require equal lengths; an empty scattered array yields no instances.
    """
    if not variables:
        return [ScatterInstance(dict(params), [])]
    method = _method(variables, method)
    arrays = _arrays(params, variables)

    if method == ScatterMethod.DOTPRODUCT:
        lengths = {name: len(a) for name, a in zip(variables, arrays)}
        if len(set(lengths.values())) > 1:
            raise ScatterError(
                "dotproduct scatter needs arrays of equal length",
                details={"lengths": lengths},
            )
        combos = [([i], [a[i] for a in arrays]) for i in range(len(arrays[0]))]
    else:
        combos = []
        ranges = [range(len(a)) for a in arrays]
        for flat, picks in enumerate(itertools.product(*ranges)):
            index = list(picks) if method == ScatterMethod.NESTED_CROSSPRODUCT else [flat]
            combos.append((index, [a[i] for a, i in zip(arrays, picks)]))

    instances = []
    for index, values in combos:
        bound = dict(params)
        bound.update(zip(variables, values))
        instances.append(ScatterInstance(bound, index))
    return instances
