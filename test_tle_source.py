"""
Tests for TLE file lookup and refresh
"""

import os
import time

import pytest
import requests

from conftest import IGSO_TLE, ISS_TLE
from pass_trigger import tle_source
from pass_trigger.tle_source import TleSource


@pytest.fixture
def tle_file(tmp_path):
    path = tmp_path / "active_tles.txt"
    path.write_text("\n".join(ISS_TLE + IGSO_TLE) + "\n")
    return path


class FakeResponse:
    def __init__(self, status_code, content=b""):
        self.status_code = status_code
        self.content = content


def test_find_named_satellite(tle_file):
    elements = TleSource(tle_file).find(25544)
    assert elements is not None
    assert elements.satellite_number == 25544
    assert elements.name == "ISS (ZARYA)"
    assert not elements.deep_space


def test_find_unnamed_satellite(tle_file):
    elements = TleSource(tle_file).find("36395")
    assert elements is not None
    assert elements.satellite_number == 36395
    assert elements.deep_space


def test_unknown_satellite_returns_none(tle_file):
    assert TleSource(tle_file).find(99999) is None


def test_missing_file_returns_none(tmp_path):
    assert TleSource(tmp_path / "missing.txt").find(25544) is None


def test_refresh_without_url_keeps_local_file(tle_file, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("no download expected")

    monkeypatch.setattr(tle_source.requests, "get", fail)
    assert TleSource(tle_file).refresh() is False


def test_fresh_file_is_not_downloaded(tle_file, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("no download expected")

    monkeypatch.setattr(tle_source.requests, "get", fail)
    assert TleSource(tle_file, tle_url="https://example.invalid/tle").refresh() is False


def test_stale_file_is_replaced(tle_file, monkeypatch):
    old = time.time() - 2 * 86400
    os.utime(tle_file, (old, old))
    new_content = ("\n".join(ISS_TLE) + "\n").encode()
    monkeypatch.setattr(tle_source.requests, "get", lambda url, timeout: FakeResponse(200, new_content))

    source = TleSource(tle_file, tle_url="https://example.invalid/tle")
    assert source.is_stale()
    assert source.refresh() is True
    assert tle_file.read_bytes() == new_content
    assert source.find(36395) is None


def test_missing_file_is_downloaded(tmp_path, monkeypatch):
    target = tmp_path / "config" / "active_tles.txt"
    content = ("\n".join(ISS_TLE) + "\n").encode()
    monkeypatch.setattr(tle_source.requests, "get", lambda url, timeout: FakeResponse(200, content))

    source = TleSource(target, tle_url="https://example.invalid/tle")
    assert source.refresh() is True
    assert source.find(25544).satellite_number == 25544


def test_network_error_keeps_cached_file(tle_file, monkeypatch):
    old = time.time() - 2 * 86400
    os.utime(tle_file, (old, old))
    before = tle_file.read_bytes()

    def offline(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(tle_source.requests, "get", offline)
    assert TleSource(tle_file, tle_url="https://example.invalid/tle").refresh() is False
    assert tle_file.read_bytes() == before


def test_http_error_keeps_cached_file(tle_file, monkeypatch):
    old = time.time() - 2 * 86400
    os.utime(tle_file, (old, old))
    monkeypatch.setattr(tle_source.requests, "get", lambda url, timeout: FakeResponse(503))
    assert TleSource(tle_file, tle_url="https://example.invalid/tle").refresh() is False
    assert TleSource(tle_file).find(36395) is not None


def test_first_entry_wins_for_a_repeated_number(tmp_path):
    name, line1, line2 = ISS_TLE
    path = tmp_path / "duplicates.txt"
    path.write_text("\n".join([name, line1, line2, "ISS (OLDER COPY)", line1, line2]) + "\n")

    elements = TleSource(path).find(25544)
    assert elements.name == "ISS (ZARYA)"
