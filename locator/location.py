"""Location permission handling and single-shot position fixes."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Dict, Mapping, Optional

from .exceptions import FixUnavailable, PermissionDenied

try:
    from plyer import gps as plyer_gps
except Exception:
    plyer_gps = None
try:
    # Available only on Android
    from android.permissions import request_permissions, Permission, check_permission
except Exception:
    request_permissions = None
    Permission = None
    check_permission = None


logger = logging.getLogger(__name__)


class PermissionStatus(enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"


class LocationSample:
    """A single fix, keeping the provider's mapping exactly as delivered."""

    def __init__(self, data: Mapping[str, Any]):
        lat = data.get("lat", data.get("latitude"))
        lon = data.get("lon", data.get("longitude"))
        if lat is None or lon is None:
            raise FixUnavailable("Provider returned a location without coordinates")
        try:
            self.latitude = float(lat)
            self.longitude = float(lon)
        except (TypeError, ValueError) as exc:
            raise FixUnavailable(f"Invalid coordinates: {lat!r}, {lon!r}") from exc
        self._data: Dict[str, Any] = dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def __eq__(self, other):
        if not isinstance(other, LocationSample):
            return NotImplemented
        return self._data == other._data

    def __repr__(self):
        return f"LocationSample({self._data!r})"


class LocationProvider:
    """Interface implemented by the location sources."""

    def request_permission(self) -> PermissionStatus:
        raise NotImplementedError

    def has_permission(self) -> bool:
        raise NotImplementedError

    def get_current_fix(self, timeout: Optional[float] = None) -> LocationSample:
        raise NotImplementedError

    def ensure_permission(self) -> None:
        if self.request_permission() is not PermissionStatus.GRANTED:
            raise PermissionDenied("Location permission was denied")


class FixedLocationProvider(LocationProvider):
    """Always reports the same coordinates; used on desktops without GPS."""

    def __init__(self, lat: float, lon: float, **extra: Any):
        self._data = {"lat": float(lat), "lon": float(lon), **extra}

    @classmethod
    def from_string(cls, value: str) -> "FixedLocationProvider":
        try:
            lat, lon = (float(part) for part in value.split(","))
        except ValueError as exc:
            raise ValueError(f"Expected 'lat,lon', got {value!r}") from exc
        return cls(lat, lon)

    def request_permission(self) -> PermissionStatus:
        return PermissionStatus.GRANTED

    def has_permission(self) -> bool:
        return True

    def get_current_fix(self, timeout: Optional[float] = None) -> LocationSample:
        return LocationSample(self._data)


class PlyerLocationProvider(LocationProvider):
    """GPS fixes through plyer, runtime permissions through ``android.permissions``."""

    def __init__(self, gps=None, platform: Optional[str] = None, permission_timeout: Optional[float] = None):
        self.gps = gps if gps is not None else plyer_gps
        if platform is None:
            from kivy.utils import platform as kivy_platform
            platform = kivy_platform
        self.platform = platform
        self.permission_timeout = permission_timeout

    def _wanted_permissions(self):
        return [Permission.ACCESS_FINE_LOCATION, Permission.ACCESS_COARSE_LOCATION]

    def _on_android(self) -> bool:
        return self.platform == "android" and request_permissions is not None and check_permission is not None

    def has_permission(self) -> bool:
        if not self._on_android():
            return True
        try:
            return all(check_permission(p) for p in self._wanted_permissions())
        except Exception:
            logger.exception("Permission check failed")
            return False

    def request_permission(self) -> PermissionStatus:
        if self.has_permission():
            return PermissionStatus.GRANTED

        answered = threading.Event()
        result = {"granted": False}

        def _on_result(permissions, grants):
            result["granted"] = bool(grants) and all(grants)
            answered.set()

        try:
            request_permissions(self._wanted_permissions(), _on_result)
        except Exception:
            logger.exception("Permission request failed")
            return PermissionStatus.DENIED

        if not answered.wait(self.permission_timeout):
            logger.warning("No answer to the location permission prompt")
            return PermissionStatus.DENIED
        return PermissionStatus.GRANTED if result["granted"] else PermissionStatus.DENIED

    def get_current_fix(self, timeout: Optional[float] = None) -> LocationSample:
        if self.gps is None:
            raise FixUnavailable("No GPS facade available")

        received = threading.Event()
        fix: Dict[str, LocationSample] = {}

        def _on_location(**kwargs):
            if received.is_set():
                return
            try:
                fix["sample"] = LocationSample(kwargs)
            except FixUnavailable:
                # Ignore invalid fix
                return
            received.set()

        def _on_status(status_type, status):
            logger.debug("GPS status %s: %s", status_type, status)

        try:
            self.gps.configure(on_location=_on_location, on_status=_on_status)
            # minTime in ms, minDistance in meters
            self.gps.start(minTime=1000, minDistance=0)
        except NotImplementedError as exc:
            raise FixUnavailable("GPS is not supported on this platform") from exc
        except Exception as exc:
            raise FixUnavailable(f"Could not start GPS: {exc}") from exc

        try:
            if not received.wait(timeout):
                raise FixUnavailable(f"No fix within {timeout} seconds")
        finally:
            try:
                self.gps.stop()
            except Exception:
                logger.warning("Could not stop GPS", exc_info=True)
        return fix["sample"]
