"""Scalar type aliases shared by the qutility type annotations.

Extended Summary
----------------
Union aliases that accept either a Python number or a zero-dimensional JAX
array, so functions can be called eagerly with plain floats and traced under
``jax.jit`` with the same signature.

Routine Listings
----------------
scalar_float : type alias
    Python float or 0-d floating JAX array
scalar_num : type alias
    Any of the above
non_jax_number : type alias
    Python int or float
matrix_like : type alias
    Array-like or nested sequence of Python numbers
"""

from beartype.typing import Sequence, Union
from jax.typing import ArrayLike
from jaxtyping import Array, Float, Num

scalar_float = Union[float, Float[Array, " "]]
scalar_num = Union[int, float, Num[Array, " "]]
non_jax_number = Union[int, float]
matrix_like = Union[ArrayLike, Sequence[Sequence[non_jax_number]]]

__all__ = [
    "scalar_float",
    "scalar_num",
    "non_jax_number",
    "matrix_like",
]
