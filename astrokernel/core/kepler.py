# astrokernel/core/kepler.py
"""
Two-body relations: Kepler's equation, elements ⇄ state vector.

Angles are degrees at the interface, radians inside.  Vectors are numpy
arrays in whatever inertial frame the caller supplies; the reference plane
is that frame's xy-plane.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple
import math

import numpy as np

from .errors import ConvergenceFailure

__all__ = ["Conic", "solve_kepler", "elements_to_state", "state_to_elements", "orbit_point"]

KEPLER_MAX_ITERS = 50
KEPLER_TOL = 1e-14
DEGENERATE_TOL = 1e-11


def solve_kepler(mean_anomaly: float, e: float) -> float:
    """Eccentric anomaly (radians) for an elliptic orbit, Newton iteration."""
    m = math.fmod(mean_anomaly, 2.0 * math.pi)
    ecc = m if e < 0.8 else math.pi
    for _ in range(KEPLER_MAX_ITERS):
        f = ecc - e * math.sin(ecc) - m
        step = f / (1.0 - e * math.cos(ecc))
        ecc -= step
        if abs(step) < KEPLER_TOL:
            return ecc
    raise ConvergenceFailure("Kepler equation did not converge", e=e, mean_anomaly=m)


def _rotation(node: float, incl: float, peri: float) -> np.ndarray:
    """Perifocal → reference-frame rotation R3(−Ω)·R1(−i)·R3(−ω)."""
    co, so = math.cos(node), math.sin(node)
    ci, si = math.cos(incl), math.sin(incl)
    cw, sw = math.cos(peri), math.sin(peri)
    return np.array([
        [co * cw - so * sw * ci, -co * sw - so * cw * ci, so * si],
        [so * cw + co * sw * ci, -so * sw + co * cw * ci, -co * si],
        [sw * si, cw * si, ci],
    ])


def elements_to_state(a: float, e: float, incl: float, node: float, peri: float,
                      mean_anomaly: float, mu: float) -> Tuple[np.ndarray, np.ndarray]:
    """Elliptic elements (AU, degrees) → (position, velocity) in AU, AU/day."""
    ecc = solve_kepler(math.radians(mean_anomaly), e)
    n = math.sqrt(mu / a ** 3)
    ce, se = math.cos(ecc), math.sin(ecc)
    b = a * math.sqrt(1.0 - e * e)
    edot = n / (1.0 - e * ce)
    p_orb = np.array([a * (ce - e), b * se, 0.0])
    v_orb = np.array([-a * se * edot, b * ce * edot, 0.0])
    rot = _rotation(math.radians(node), math.radians(incl), math.radians(peri))
    return rot @ p_orb, rot @ v_orb


@dataclass(frozen=True)
class Conic:
    """Osculating conic; angles in degrees, distances in AU, times in days."""
    a: float
    e: float
    i: float
    node: float
    peri: float
    mean_anomaly: float
    true_anomaly: float
    eccentric_anomaly: float
    mean_motion: float          # deg/day (NaN for hyperbolic)
    ecc_vector: Tuple[float, float, float]
    node_vector: Tuple[float, float, float]


def state_to_elements(pos: np.ndarray, vel: np.ndarray, mu: float) -> Conic:
    """
    Classical elements from a state vector.

    Degenerate geometry: with i < 1e-11 the node is set to 0 (x-axis); with
    e < 1e-11 the periapsis is put at the node, so anomalies are measured from
    the node.  Those angles then carry no precision of their own.
    """
    r_vec = np.asarray(pos, dtype=float)
    v_vec = np.asarray(vel, dtype=float)
    r = float(np.linalg.norm(r_vec))
    v2 = float(v_vec @ v_vec)
    h_vec = np.cross(r_vec, v_vec)
    h = float(np.linalg.norm(h_vec))

    energy = v2 / 2.0 - mu / r
    a = -mu / (2.0 * energy) if energy != 0.0 else math.inf
    e_vec = ((v2 - mu / r) * r_vec - float(r_vec @ v_vec) * v_vec) / mu
    e = float(np.linalg.norm(e_vec))

    incl = math.acos(max(-1.0, min(1.0, h_vec[2] / h)))
    n_vec = np.array([-h_vec[1], h_vec[0], 0.0])
    n_norm = float(np.linalg.norm(n_vec))
    if incl < DEGENERATE_TOL or n_norm < DEGENERATE_TOL * h:
        node = 0.0
        n_hat = np.array([1.0, 0.0, 0.0])
    else:
        n_hat = n_vec / n_norm
        node = math.atan2(n_hat[1], n_hat[0])

    # in-plane axis 90° ahead of the node, in the direction of motion
    m_hat = np.cross(h_vec / h, n_hat)
    if e < DEGENERATE_TOL:
        peri = 0.0
        e_hat = n_hat
    else:
        e_hat = e_vec / e
        peri = math.atan2(float(e_hat @ m_hat), float(e_hat @ n_hat))

    q_hat = np.cross(h_vec / h, e_hat)
    nu = math.atan2(float(r_vec @ q_hat), float(r_vec @ e_hat))

    if e < 1.0:
        ecc_anom = 2.0 * math.atan2(math.sqrt(1.0 - e) * math.sin(nu / 2.0),
                                    math.sqrt(1.0 + e) * math.cos(nu / 2.0))
        mean_anom = ecc_anom - e * math.sin(ecc_anom)
        n = math.degrees(math.sqrt(mu / a ** 3))
    else:
        ecc_anom = 2.0 * math.atanh(math.sqrt((e - 1.0) / (e + 1.0)) * math.tan(nu / 2.0)) \
            if abs(nu) < math.pi else math.nan
        mean_anom = e * math.sinh(ecc_anom) - ecc_anom
        n = math.nan

    return Conic(
        a=a,
        e=e,
        i=math.degrees(incl),
        node=math.degrees(node) % 360.0,
        peri=math.degrees(peri) % 360.0,
        mean_anomaly=math.degrees(mean_anom) % 360.0 if e < 1.0 else math.degrees(mean_anom),
        true_anomaly=math.degrees(nu) % 360.0,
        eccentric_anomaly=math.degrees(ecc_anom) % 360.0 if e < 1.0 else math.degrees(ecc_anom),
        mean_motion=n,
        ecc_vector=tuple(float(x) for x in e_vec),
        node_vector=tuple(float(x) for x in n_hat),
    )


def orbit_point(a: float, e: float, incl: float, node: float, peri: float,
                true_anomaly: float) -> np.ndarray:
    """Position on the conic at a given true anomaly (degrees)."""
    nu = math.radians(true_anomaly)
    r = a * (1.0 - e * e) / (1.0 + e * math.cos(nu))
    rot = _rotation(math.radians(node), math.radians(incl), math.radians(peri))
    return rot @ np.array([r * math.cos(nu), r * math.sin(nu), 0.0])
