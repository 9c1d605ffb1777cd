# pass_trigger/orbit_engine.py

import logging
import math
import time
from dataclasses import dataclass, field

import numpy as np
from sgp4.api import Satrec, WGS72

from pass_trigger.time_utils import to_julian

logger = logging.getLogger(__name__)

# --- WGS-72 CONSTANTS (the set SGP4 element sets are fitted with) ---
XKMPER = 6378.135              # Earth equatorial radius, km
FLATTENING = 1.0 / 298.26
XKE = 0.0743669161             # sqrt(GM) in earth radii^1.5 / min
CK2 = 5.413080e-4              # J2 / 2
OMEGA_E = 7.292115e-5          # Earth rotation, rad/s

TWO_PI = 2.0 * math.pi
MINUTES_PER_DAY = 1440.0
DEEP_SPACE_PERIOD = 225.0      # minutes

# SGP4 counts epochs in days from 1949 December 31 00:00 UT
SGP4_EPOCH_JD = 2433281.5

_NAN_VECTOR = np.full(3, np.nan)


@dataclass(frozen=True)
class OrbitalElements:
    """
    Mean orbital elements of one satellite, as carried by a TLE.
    Angles are radians, mean motion is rad/min and the epoch is a Julian date (UTC).
    """
    satellite_number: int
    epoch: float
    mean_motion: float
    mean_motion_dot: float
    mean_motion_ddot: float
    eccentricity: float
    inclination: float
    raan: float
    argument_of_perigee: float
    mean_anomaly: float
    bstar: float
    name: str = ""
    deep_space: bool = field(init=False, default=False)

    def __post_init__(self):
        object.__setattr__(self, "deep_space", self.period_minutes >= DEEP_SPACE_PERIOD)

    @classmethod
    def from_satrec(cls, satrec, name=""):
        return cls(
            satellite_number=int(satrec.satnum),
            epoch=satrec.jdsatepoch + satrec.jdsatepochF,
            mean_motion=satrec.no_kozai,
            mean_motion_dot=satrec.ndot,
            mean_motion_ddot=satrec.nddot,
            eccentricity=satrec.ecco,
            inclination=satrec.inclo,
            raan=satrec.nodeo,
            argument_of_perigee=satrec.argpo,
            mean_anomaly=satrec.mo,
            bstar=satrec.bstar,
            name=name,
        )

    @classmethod
    def from_tle(cls, line1, line2, name=""):
        """
        Builds the element set from the two data lines of a TLE.
        Raises ValueError when the lines are not TLE lines.
        """
        line1, line2 = line1.rstrip(), line2.rstrip()
        if not (line1.startswith("1 ") and line2.startswith("2 ")):
            raise ValueError("TLE lines must start with '1 ' and '2 '")
        if len(line1) < 69 or len(line2) < 69:
            raise ValueError("TLE lines must be at least 69 characters long")
        return cls.from_satrec(Satrec.twoline2rv(line1, line2), name=name.strip())

    @property
    def brouwer_mean_motion(self):
        """
        Recovers the Brouwer mean motion (rad/min) from the Kozai mean motion
        of the TLE by removing the J2 contribution.
        """
        n = self.mean_motion
        e = self.eccentricity
        if n <= 0.0 or not 0.0 <= e < 1.0:
            return n
        cosio = math.cos(self.inclination)
        x3thm1 = 3.0 * cosio * cosio - 1.0
        betao2 = 1.0 - e * e
        betao = math.sqrt(betao2)
        a1 = (XKE / n) ** (2.0 / 3.0)
        del1 = 1.5 * CK2 * x3thm1 / (a1 * a1 * betao * betao2)
        ao = a1 * (1.0 - del1 * (1.0 / 3.0 + del1 * (1.0 + 134.0 / 81.0 * del1)))
        delo = 1.5 * CK2 * x3thm1 / (ao * ao * betao * betao2)
        return n / (1.0 + delo)

    @property
    def period_minutes(self):
        n = self.brouwer_mean_motion
        if n <= 0.0:
            return math.inf
        return TWO_PI / n


@dataclass(frozen=True)
class Observer:
    """Geodetic ground station: radians (east-positive longitude) and meters."""
    latitude: float
    longitude: float
    altitude: float = 0.0

    @classmethod
    def from_degrees(cls, latitude, longitude, altitude=0.0):
        return cls(math.radians(latitude), math.radians(longitude), altitude)


@dataclass(frozen=True, eq=False)
class OrbitState:
    """TEME position (km) and velocity (km/s) at a Julian date. NaN when SGP4 failed."""
    time: float
    position: np.ndarray
    velocity: np.ndarray
    error: int = 0

    @property
    def is_valid(self):
        return bool(np.all(self.error == 0)) and bool(np.all(np.isfinite(self.position)))


@dataclass(frozen=True)
class Observation:
    time: float
    azimuth: float
    elevation: float
    range: float
    range_rate: float

    @property
    def azimuth_degrees(self):
        return math.degrees(self.azimuth)

    @property
    def elevation_degrees(self):
        return math.degrees(self.elevation)

    def above(self, threshold=0.0):
        # NaN elevations compare False
        return self.elevation > threshold


def _satrec(elements):
    """Fresh SGP4 record for every call, so nothing carries over between propagations."""
    satrec = Satrec()
    satrec.sgp4init(
        WGS72,
        'i',
        elements.satellite_number,
        elements.epoch - SGP4_EPOCH_JD,
        elements.bstar,
        elements.mean_motion_dot,
        elements.mean_motion_ddot,
        elements.eccentricity,
        elements.argument_of_perigee,
        elements.inclination,
        elements.mean_anomaly,
        elements.mean_motion,
        elements.raan,
    )
    return satrec


def propagate(elements, julian_date):
    """
    Advances the element set to `julian_date` with SGP4 (near earth) or SDP4
    (deep space, chosen by the sgp4 library from the same period rule).
    Decayed or otherwise invalid orbits give NaN vectors and the SGP4 error code.
    """
    satrec = _satrec(elements)
    error, position, velocity = satrec.sgp4(julian_date, 0.0)
    if error != 0:
        logger.debug("SGP4 error %d for satellite %d at JD %.6f",
                     error, elements.satellite_number, julian_date)
        return OrbitState(julian_date, _NAN_VECTOR.copy(), _NAN_VECTOR.copy(), error)
    return OrbitState(julian_date, np.array(position), np.array(velocity), 0)


def propagate_many(elements, julian_dates):
    """Vectorised propagate(): one OrbitState holding (N, 3) arrays."""
    jd = np.asarray(julian_dates, dtype=float)
    satrec = _satrec(elements)
    errors, positions, velocities = satrec.sgp4_array(jd, np.zeros_like(jd))
    failed = errors != 0
    positions[failed] = np.nan
    velocities[failed] = np.nan
    return OrbitState(jd, positions, velocities, errors)


def gmst(julian_date):
    """Greenwich mean sidereal time in radians (IAU 1982)."""
    t = (np.asarray(julian_date) - 2451545.0) / 36525.0
    seconds = (67310.54841
               + (876600.0 * 3600.0 + 8640184.812866) * t
               + 0.093104 * t ** 2
               - 6.2e-6 * t ** 3)
    return np.mod(seconds, 86400.0) / 86400.0 * TWO_PI


def observer_eci(observer, julian_date):
    """
    Observer position (km) and velocity (km/s) in the same inertial frame as
    the propagated satellite, on the WGS-72 ellipsoid.
    """
    theta = gmst(julian_date) + observer.longitude
    sin_lat = math.sin(observer.latitude)
    cos_lat = math.cos(observer.latitude)
    c = 1.0 / math.sqrt(1.0 + FLATTENING * (FLATTENING - 2.0) * sin_lat * sin_lat)
    sq = (1.0 - FLATTENING) ** 2 * c
    alt_km = observer.altitude / 1000.0

    achcp = (XKMPER * c + alt_km) * cos_lat
    x = achcp * np.cos(theta)
    y = achcp * np.sin(theta)
    z = np.full_like(x, (XKMPER * sq + alt_km) * sin_lat)

    position = np.stack([x, y, z], axis=-1)
    velocity = np.stack([-OMEGA_E * y, OMEGA_E * x, np.zeros_like(x)], axis=-1)
    return position, velocity, theta


def look_angles(observer, julian_date, position, velocity):
    """
    Azimuth, elevation, range and range rate of a TEME state seen from the observer.
    Works on scalars or on (N, 3) arrays of states.
    """
    obs_pos, obs_vel, theta = observer_eci(observer, julian_date)
    range_vec = position - obs_pos
    rate_vec = velocity - obs_vel
    rx, ry, rz = np.moveaxis(range_vec, -1, 0)

    sin_lat = math.sin(observer.latitude)
    cos_lat = math.cos(observer.latitude)
    sin_theta = np.sin(theta)
    cos_theta = np.cos(theta)

    # South-East-Zenith
    top_s = sin_lat * cos_theta * rx + sin_lat * sin_theta * ry - cos_lat * rz
    top_e = -sin_theta * rx + cos_theta * ry
    top_z = cos_lat * cos_theta * rx + cos_lat * sin_theta * ry + sin_lat * rz

    distance = np.sqrt(rx * rx + ry * ry + rz * rz)
    elevation = np.arcsin(np.clip(top_z / distance, -1.0, 1.0))
    azimuth = np.mod(np.arctan2(top_e, -top_s), TWO_PI)
    azimuth = np.where(azimuth >= TWO_PI, 0.0, azimuth)
    range_rate = np.sum(range_vec * rate_vec, axis=-1) / distance
    return azimuth, elevation, distance, range_rate


def observe(observer, state):
    azimuth, elevation, distance, range_rate = look_angles(
        observer, state.time, state.position, state.velocity)
    return Observation(
        time=state.time,
        azimuth=float(azimuth),
        elevation=float(elevation),
        range=float(distance),
        range_rate=float(range_rate),
    )


class OrbitEngine:
    def __init__(self, elements, observer, clock=time.time):
        """
        :param elements: OrbitalElements of the tracked satellite
        :param observer: Observer (the ground station)
        :param clock: Unix time source, only read by get_position()
        """
        self.elements = elements
        self.observer = observer
        self.clock = clock

        model = "SDP4 (deep space)" if elements.deep_space else "SGP4 (near earth)"
        logger.info("Tracking %s (%d), period %.1f min, %s",
                    elements.name or "satellite", elements.satellite_number,
                    elements.period_minutes, model)
        logger.info("Station at %.4fN, %.4fE, %.0f m",
                    math.degrees(observer.latitude), math.degrees(observer.longitude),
                    observer.altitude)

    def state_at(self, julian_date):
        return propagate(self.elements, julian_date)

    def observe_at(self, julian_date):
        return observe(self.observer, self.state_at(julian_date))

    def elevation_at(self, julian_date):
        return self.observe_at(julian_date).elevation

    def get_position(self):
        """
        Returns the Observation of the satellite right now.
        """
        return self.observe_at(to_julian(self.clock()))


# --- TEST BLOCK ---
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    iss = OrbitalElements.from_tle(
        "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991",
        "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482",
        name="ISS (ZARYA)",
    )
    engine = OrbitEngine(iss, Observer.from_degrees(63.42, 10.39, 50.0))
    obs = engine.observe_at(iss.epoch)

    print(f"Azimuth:    {obs.azimuth_degrees:.2f} deg")
    print(f"Elevation:  {obs.elevation_degrees:.2f} deg")
    print(f"Distance:   {obs.range:.2f} km")
