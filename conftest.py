import pytest

from pass_trigger.orbit_engine import Observer, OrbitalElements

ISS_TLE = (
    "ISS (ZARYA)",
    "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991",
    "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482",
)

# Inclined geosynchronous orbit (1 rev/day)
IGSO_TLE = (
    "1 36395U 10005A   25168.45492097 -.00000067  00000-0  00000+0 0  9997",
    "2 36395  33.8852  91.9242 0000558  95.8239 140.0671  1.00270500 56373",
)

# Vallado's SGP4 verification object 00005
VANGUARD_TLE = (
    "1 00005U 58002B   00179.78495062  .00000023  00000-0  28098-4 0  4753",
    "2 00005  34.2682 348.7242 1859667 331.7664  19.3264 10.82419157413667",
)

EPOCH = 2460000.5  # 2023-02-25 00:00 UTC


@pytest.fixture
def iss():
    name, line1, line2 = ISS_TLE
    return OrbitalElements.from_tle(line1, line2, name=name)


@pytest.fixture
def igso():
    return OrbitalElements.from_tle(*IGSO_TLE)


@pytest.fixture
def equatorial():
    """Circular ~500 km equatorial orbit, period about 95 minutes, no drag."""
    return OrbitalElements(
        satellite_number=90001,
        epoch=EPOCH,
        mean_motion=0.0664,
        mean_motion_dot=0.0,
        mean_motion_ddot=0.0,
        eccentricity=0.0001,
        inclination=0.001,
        raan=0.0,
        argument_of_perigee=0.0,
        mean_anomaly=0.0,
        bstar=0.0,
        name="EQUATOR TEST",
    )


@pytest.fixture
def decayed():
    # mean motion far too high: the orbit lies inside the Earth
    return OrbitalElements(
        satellite_number=90002,
        epoch=EPOCH,
        mean_motion=1.0,
        mean_motion_dot=0.0,
        mean_motion_ddot=0.0,
        eccentricity=0.0001,
        inclination=0.5,
        raan=0.0,
        argument_of_perigee=0.0,
        mean_anomaly=0.0,
        bstar=0.0,
    )


@pytest.fixture
def equator_station():
    return Observer.from_degrees(0.0, 0.0, 0.0)


@pytest.fixture
def arctic_station():
    # too far north to ever see an equatorial LEO satellite
    return Observer.from_degrees(70.0, 20.0, 0.0)


class FakeClock:
    """Unix clock advanced only by sleep()."""

    def __init__(self, start):
        self.t = float(start)
        self.sleeps = []

    def time(self):
        return self.t

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.t += seconds

