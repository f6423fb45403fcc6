# astrokernel/core/constants.py
# -*- coding: utf-8 -*-
"""
Core constants & name tables

Purpose
-------
Single source of truth for:
- body identifiers and display names
- calculation flag bits (classic SEFLG_* numbering, kept for interop)
- sidereal (ayanamsa) mode identifiers
- house system codes & display names
- event / eclipse / split-degree bit masks
- physical constants shared by the position model and the event solvers

Design
------
- Pure-Python, no external dependencies.
- Safe to import from any core module.
- Numbering follows the long-standing public C API so numeric ids supplied by
  external callers keep their meaning.
"""

from __future__ import annotations
from typing import Dict, Tuple

__all__ = [
    # bodies
    "SUN", "MOON", "MERCURY", "VENUS", "MARS", "JUPITER", "SATURN", "URANUS",
    "NEPTUNE", "PLUTO", "MEAN_NODE", "TRUE_NODE", "MEAN_APOG", "OSCU_APOG",
    "EARTH", "CHIRON", "PHOLUS", "CERES", "PALLAS", "JUNO", "VESTA",
    "MAJOR_BODIES", "LUNAR_POINTS", "MINOR_BODIES", "SUPPORTED_BODIES", "BODY_NAMES",
    # flags
    "FLG_JPLEPH", "FLG_SWIEPH", "FLG_MOSEPH", "FLG_HELCTR", "FLG_TRUEPOS",
    "FLG_J2000", "FLG_NONUT", "FLG_SPEED3", "FLG_SPEED", "FLG_NOGDEFL",
    "FLG_NOABERR", "FLG_EQUATORIAL", "FLG_XYZ", "FLG_RADIANS", "FLG_BARYCTR",
    "FLG_TOPOCTR", "FLG_SIDEREAL", "FLG_ICRS", "EPHE_MASK",
    # sidereal modes
    "SIDM_FAGAN_BRADLEY", "SIDM_LAHIRI", "SIDM_USER", "AYANAMSA_NAMES",
    # houses
    "HOUSE_SYSTEM_NAMES",
    # events
    "CALC_RISE", "CALC_SET", "CALC_MTRANSIT", "CALC_ITRANSIT",
    "BIT_DISC_CENTER", "BIT_DISC_BOTTOM", "BIT_GEOCTR_NO_ECL_LAT",
    "BIT_NO_REFRACTION", "BIT_HINDU_RISING",
    "ECL2HOR", "EQU2HOR", "TRUE_TO_APP", "APP_TO_TRUE",
    "ECL_CENTRAL", "ECL_NONCENTRAL", "ECL_TOTAL", "ECL_ANNULAR", "ECL_PARTIAL",
    "ECL_ANNULAR_TOTAL", "ECL_PENUMBRAL", "ECL_ALLTYPES_SOLAR", "ECL_ALLTYPES_LUNAR",
    "NODBIT_MEAN", "NODBIT_OSCU",
    # split_degrees
    "SPLIT_DEG_ROUND_SEC", "SPLIT_DEG_ROUND_MIN", "SPLIT_DEG_ROUND_DEG",
    "SPLIT_DEG_ZODIACAL", "SPLIT_DEG_NAKSHATRA", "SPLIT_DEG_KEEP_SIGN",
    "SPLIT_DEG_KEEP_DEG",
    # calendars
    "GREG_CAL", "JUL_CAL",
    # physics
    "J2000", "J1900", "B1950", "AU_KM", "C_AU_PER_DAY", "EARTH_RADIUS_KM",
    "MOON_RADIUS_KM", "SUN_RADIUS_KM", "GAUSS_K", "EARTH_MOON_MRAT",
]

# ── bodies ───────────────────────────────────────────────────────────────────
SUN, MOON, MERCURY, VENUS, MARS = 0, 1, 2, 3, 4
JUPITER, SATURN, URANUS, NEPTUNE, PLUTO = 5, 6, 7, 8, 9
MEAN_NODE, TRUE_NODE, MEAN_APOG, OSCU_APOG = 10, 11, 12, 13
EARTH = 14
CHIRON, PHOLUS, CERES, PALLAS, JUNO, VESTA = 15, 16, 17, 18, 19, 20

MAJOR_BODIES: Tuple[int, ...] = (
    SUN, MOON, MERCURY, VENUS, MARS, JUPITER, SATURN, URANUS, NEPTUNE, PLUTO,
)
LUNAR_POINTS: Tuple[int, ...] = (MEAN_NODE, TRUE_NODE, MEAN_APOG, OSCU_APOG)
MINOR_BODIES: Tuple[int, ...] = (CHIRON, PHOLUS, CERES, PALLAS, JUNO, VESTA)
SUPPORTED_BODIES: Tuple[int, ...] = MAJOR_BODIES + LUNAR_POINTS + (EARTH,) + MINOR_BODIES

BODY_NAMES: Dict[int, str] = {
    SUN: "Sun",
    MOON: "Moon",
    MERCURY: "Mercury",
    VENUS: "Venus",
    MARS: "Mars",
    JUPITER: "Jupiter",
    SATURN: "Saturn",
    URANUS: "Uranus",
    NEPTUNE: "Neptune",
    PLUTO: "Pluto",
    MEAN_NODE: "mean Node",
    TRUE_NODE: "true Node",
    MEAN_APOG: "mean Apogee",
    OSCU_APOG: "osc. Apogee",
    EARTH: "Earth",
    CHIRON: "Chiron",
    PHOLUS: "Pholus",
    CERES: "Ceres",
    PALLAS: "Pallas",
    JUNO: "Juno",
    VESTA: "Vesta",
}

# ── calculation flags ────────────────────────────────────────────────────────
FLG_JPLEPH = 1
FLG_SWIEPH = 2
FLG_MOSEPH = 4
FLG_HELCTR = 8
FLG_TRUEPOS = 16
FLG_J2000 = 32
FLG_NONUT = 64
FLG_SPEED3 = 128
FLG_SPEED = 256
FLG_NOGDEFL = 512
FLG_NOABERR = 1024
FLG_EQUATORIAL = 2 * 1024
FLG_XYZ = 4 * 1024
FLG_RADIANS = 8 * 1024
FLG_BARYCTR = 16 * 1024
FLG_TOPOCTR = 32 * 1024
FLG_SIDEREAL = 64 * 1024
FLG_ICRS = 128 * 1024

EPHE_MASK = FLG_JPLEPH | FLG_SWIEPH | FLG_MOSEPH

# ── sidereal modes ───────────────────────────────────────────────────────────
SIDM_FAGAN_BRADLEY = 0
SIDM_LAHIRI = 1
SIDM_USER = 255

AYANAMSA_NAMES: Dict[int, str] = {
    0: "Fagan/Bradley",
    1: "Lahiri",
    2: "De Luce",
    3: "Raman",
    4: "Usha/Shashi",
    5: "Krishnamurti",
    6: "Djwhal Khul",
    7: "Yukteshwar",
    8: "J.N. Bhasin",
    9: "Babylonian/Kugler 1",
    10: "Babylonian/Kugler 2",
    11: "Babylonian/Kugler 3",
    12: "Babylonian/Huber",
    13: "Babylonian/Eta Piscium",
    14: "Babylonian/Aldebaran = 15 Tau",
    15: "Hipparchos",
    16: "Sassanian",
    17: "Galact. Center = 0 Sag",
    18: "J2000",
    19: "J1900",
    20: "B1950",
    SIDM_USER: "User-defined",
}

# ── house systems ────────────────────────────────────────────────────────────
HOUSE_SYSTEM_NAMES: Dict[str, str] = {
    "A": "equal",
    "B": "Alcabitius",
    "C": "Campanus",
    "D": "equal (MC)",
    "E": "equal",
    "H": "horizon/azimut",
    "I": "Sunshine",
    "K": "Koch",
    "M": "Morinus",
    "N": "equal/1=Aries",
    "O": "Porphyry",
    "P": "Placidus",
    "R": "Regiomontanus",
    "S": "Sripati",
    "T": "Polich/Page",
    "V": "equal/Vehlow",
    "W": "equal/ whole sign",
    "X": "axial rotation system/Meridian houses",
}

# ── rise / transit ───────────────────────────────────────────────────────────
CALC_RISE = 1
CALC_SET = 2
CALC_MTRANSIT = 4
CALC_ITRANSIT = 8
BIT_DISC_CENTER = 256
BIT_DISC_BOTTOM = 8192
BIT_GEOCTR_NO_ECL_LAT = 128
BIT_NO_REFRACTION = 512
BIT_HINDU_RISING = BIT_DISC_CENTER | BIT_NO_REFRACTION | BIT_GEOCTR_NO_ECL_LAT

# horizontal transforms / refraction direction
ECL2HOR = 0
EQU2HOR = 1
TRUE_TO_APP = 0
APP_TO_TRUE = 1

# ── eclipses ─────────────────────────────────────────────────────────────────
ECL_CENTRAL = 1
ECL_NONCENTRAL = 2
ECL_TOTAL = 4
ECL_ANNULAR = 8
ECL_PARTIAL = 16
ECL_ANNULAR_TOTAL = 32
ECL_PENUMBRAL = 64
ECL_ALLTYPES_SOLAR = (
    ECL_CENTRAL | ECL_NONCENTRAL | ECL_TOTAL | ECL_ANNULAR | ECL_PARTIAL | ECL_ANNULAR_TOTAL
)
ECL_ALLTYPES_LUNAR = ECL_TOTAL | ECL_PARTIAL | ECL_PENUMBRAL

# nodes & apsides
NODBIT_MEAN = 1
NODBIT_OSCU = 2

# ── split_degrees ────────────────────────────────────────────────────────────
SPLIT_DEG_ROUND_SEC = 1
SPLIT_DEG_ROUND_MIN = 2
SPLIT_DEG_ROUND_DEG = 4
SPLIT_DEG_ZODIACAL = 8
SPLIT_DEG_KEEP_SIGN = 16
SPLIT_DEG_KEEP_DEG = 32
SPLIT_DEG_NAKSHATRA = 1024

# ── calendars ────────────────────────────────────────────────────────────────
GREG_CAL = 1
JUL_CAL = 0

# ── physics ──────────────────────────────────────────────────────────────────
J2000 = 2451545.0
J1900 = 2415020.0
B1950 = 2433282.42345905

AU_KM = 149597870.700
C_AU_PER_DAY = 299792.458 * 86400.0 / AU_KM   # ≈ 173.1446 AU/day
EARTH_RADIUS_KM = 6378.1366
MOON_RADIUS_KM = 1737.4
SUN_RADIUS_KM = 696000.0
GAUSS_K = 0.01720209895
EARTH_MOON_MRAT = 81.30056907419062           # Earth / Moon mass ratio (DE431)
