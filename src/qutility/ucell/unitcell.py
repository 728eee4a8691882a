"""Functions for unit cell calculations and transformations.

Extended Summary
----------------
This module provides the lattice geometry used by the structure readers and
the diffraction engine: conversion between cell parameters and cell vectors,
cell volumes, fractional to Cartesian coordinates, and the reciprocal
lattice.

Routine Listings
----------------
build_cell_vectors : function
    Construct unit cell vectors from lengths and angles
compute_lengths_angles : function
    Compute unit cell lengths and angles from lattice vectors
cell_volume : function
    Signed volume of the cell spanned by three lattice vectors
frac_to_cart : function
    Convert fractional coordinates to Cartesian coordinates
reciprocal_basis : function
    Reciprocal lattice vectors with the 2π convention (no validation)
reciprocal_lattice_vectors : function
    Validated reciprocal lattice vectors of a direct lattice

Notes
-----
Lattice vectors are stored as matrix rows [a, b, c]. All array functions are
JAX-compatible; `reciprocal_lattice_vectors` additionally inspects the
determinant eagerly and therefore is not meant to be traced.
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Tuple
from jaxtyping import Array, Float, jaxtyped

from qutility.errors import DegenerateLatticeError
from qutility.types import LATTICE_EPSILON, scalar_float

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def build_cell_vectors(
    a: scalar_float,
    b: scalar_float,
    c: scalar_float,
    alpha: scalar_float,
    beta: scalar_float,
    gamma: scalar_float,
) -> Float[Array, "3 3"]:
    r"""Construct unit cell vectors from lengths and angles.

    Parameters
    ----------
    a, b, c : scalar_float
        Direct cell lengths in angstroms.
    alpha, beta, gamma : scalar_float
        Direct cell angles in degrees.

    Returns
    -------
    Float[Array, "3 3"]
        Unit cell vectors as rows of 3x3 matrix.

    Algorithm
    ---------
    - Convert angles to radians
    - Build first vector along x-axis
    - Build second vector in x-y plane
    - Build third vector from the remaining two angles
    - Return 3x3 matrix of vectors

    Examples
    --------
    >>> vectors = build_cell_vectors(3.0, 3.0, 3.0, 90.0, 90.0, 90.0)
    >>> volume = jnp.linalg.det(vectors)
    """
    alpha_rad: Float[Array, " "] = jnp.radians(alpha)
    beta_rad: Float[Array, " "] = jnp.radians(beta)
    gamma_rad: Float[Array, " "] = jnp.radians(gamma)
    a_vec: Float[Array, "3"] = jnp.array([a, 0.0, 0.0], dtype=jnp.float64)
    b_vec: Float[Array, "3"] = jnp.array(
        [b * jnp.cos(gamma_rad), b * jnp.sin(gamma_rad), 0.0], dtype=jnp.float64
    )
    c_x: Float[Array, " "] = c * jnp.cos(beta_rad)
    c_y: Float[Array, " "] = c * (
        (jnp.cos(alpha_rad) - jnp.cos(beta_rad) * jnp.cos(gamma_rad))
        / jnp.sin(gamma_rad)
    )
    c_z_sq: Float[Array, " "] = (c**2) - (c_x**2) - (c_y**2)
    c_z: Float[Array, " "] = jnp.sqrt(jnp.maximum(c_z_sq, 0.0))
    c_vec: Float[Array, "3"] = jnp.array([c_x, c_y, c_z], dtype=jnp.float64)
    cell_vectors: Float[Array, "3 3"] = jnp.stack([a_vec, b_vec, c_vec], axis=0)
    return cell_vectors


@jaxtyped(typechecker=beartype)
def compute_lengths_angles(
    vectors: Float[Array, "3 3"],
) -> Tuple[Float[Array, "3"], Float[Array, "3"]]:
    """Compute unit cell lengths and angles from lattice vectors.

    Parameters
    ----------
    vectors : Float[Array, "3 3"]
        Unit cell vectors as rows of 3x3 matrix.

    Returns
    -------
    Tuple[Float[Array, "3"], Float[Array, "3"]]
        Unit cell lengths [a, b, c] in angstroms and unit cell angles
        [α, β, γ] in degrees, where α is the angle between b and c, β
        between a and c and γ between a and b.
    """
    lengths: Float[Array, "3"] = jnp.linalg.norm(vectors, axis=1)
    pairs = ((1, 2), (0, 2), (0, 1))
    cosines: Float[Array, "3"] = jnp.stack(
        [
            jnp.dot(vectors[i], vectors[j]) / (lengths[i] * lengths[j])
            for i, j in pairs
        ]
    )
    angles: Float[Array, "3"] = jnp.degrees(jnp.arccos(jnp.clip(cosines, -1.0, 1.0)))
    return lengths, angles


@jaxtyped(typechecker=beartype)
def cell_volume(vectors: Float[Array, "3 3"]) -> Float[Array, " "]:
    """Signed volume a · (b × c) of the cell in Å³."""
    return jnp.dot(vectors[0], jnp.cross(vectors[1], vectors[2]))


@jaxtyped(typechecker=beartype)
def frac_to_cart(
    frac: Float[Array, "N 3"],
    lattice: Float[Array, "3 3"],
) -> Float[Array, "N 3"]:
    """Convert fractional coordinates to Cartesian coordinates in Å."""
    return frac @ lattice


@jaxtyped(typechecker=beartype)
def reciprocal_basis(lattice: Float[Array, "3 3"]) -> Float[Array, "3 3"]:
    r"""Reciprocal lattice vectors with the crystallographic 2π convention.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Direct lattice vectors as rows.

    Returns
    -------
    Float[Array, "3 3"]
        Reciprocal vectors as rows, :math:`B = 2\pi (A^{-1})^T`, so that
        :math:`a_i \cdot b_j = 2\pi \delta_{ij}`.

    Notes
    -----
    No degeneracy check is made here so the function can be traced; call
    `reciprocal_lattice_vectors` for validated input.
    """
    return 2.0 * jnp.pi * jnp.transpose(jnp.linalg.inv(lattice))


@jaxtyped(typechecker=beartype)
def reciprocal_lattice_vectors(lattice: Float[Array, "3 3"]) -> Float[Array, "3 3"]:
    """Validated reciprocal lattice vectors of a direct lattice.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Direct lattice vectors as rows, in Å.

    Returns
    -------
    Float[Array, "3 3"]
        Reciprocal lattice vectors as rows, in 1/Å.

    Raises
    ------
    DegenerateLatticeError
        If |det(lattice)| is below `LATTICE_EPSILON` or the inverse is not
        finite.
    """
    determinant = float(jnp.linalg.det(lattice))
    if abs(determinant) < LATTICE_EPSILON:
        raise DegenerateLatticeError(
            f"lattice is degenerate (det = {determinant:.3e} Å³)"
        )
    reciprocal: Float[Array, "3 3"] = reciprocal_basis(lattice)
    if not bool(jnp.all(jnp.isfinite(reciprocal))):
        raise DegenerateLatticeError("reciprocal lattice is not finite")
    return reciprocal
