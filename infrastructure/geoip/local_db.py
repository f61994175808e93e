"""Local MaxMind database implementation of GeoProvider.

geoip2 reads from local .mmdb files and is sync.
Calls are wrapped in asyncio.to_thread() to avoid blocking the event loop.

- The reader is opened lazily on first use (double-checked locking with
  asyncio.Lock) and reused for every lookup after that.
- A missing file is not remembered as a permanent failure: the next lookup
  checks again, so a database installed while the app runs is picked up.
- Both City and Country editions are supported; the edition is read from
  the database metadata.
"""

from __future__ import annotations

import asyncio
import ipaddress
import os
from datetime import datetime, timezone
from typing import Optional

import geoip2.database
import geoip2.errors
import maxminddb
from pydantic import BaseModel

from infrastructure.geoip.protocol import GeoErrorCode, GeoLookupResult
from schemas.models.geo import GeoLocation
from schemas.models.settings import LOCAL_DB
from shared.datetime_utils import most_recent_weekday
from shared.ip_utils import is_private_ip
from shared.logging import get_logger

log = get_logger(__name__)

# GeoLite2 databases are republished weekly on Tuesdays
_RELEASE_WEEKDAY = 1


class LocalDatabaseStatus(BaseModel):
    installed: bool
    path: str
    size_bytes: Optional[int] = None
    modified_at: Optional[datetime] = None
    outdated: bool = False
    message: str


class LocalDatabaseProvider:
    name = LOCAL_DB

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._reader: Optional[geoip2.database.Reader] = None
        self._is_city_db = True
        self._lock = asyncio.Lock()

    @property
    def db_path(self) -> str:
        return self._db_path

    async def _get_reader(self) -> Optional[geoip2.database.Reader]:
        if self._reader is None:
            async with self._lock:
                if self._reader is None:
                    try:
                        reader = await asyncio.to_thread(
                            geoip2.database.Reader, self._db_path
                        )
                    except (OSError, maxminddb.InvalidDatabaseError) as e:
                        log.warning(
                            "geoip_local_db_unavailable",
                            path=self._db_path,
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                        return None
                    self._is_city_db = "City" in reader.metadata().database_type
                    self._reader = reader
        return self._reader

    async def is_available(self) -> bool:
        return await self._get_reader() is not None

    async def lookup(self, ip: str) -> GeoLookupResult:
        try:
            ipaddress.ip_address(ip)
        except ValueError:
            return GeoLookupResult.fail(
                self.name, GeoErrorCode.INVALID_IP, "Not a valid IP address"
            )
        if is_private_ip(ip):
            return GeoLookupResult.fail(
                self.name,
                GeoErrorCode.PRIVATE_IP,
                "Cannot geolocate private IP addresses",
            )

        reader = await self._get_reader()
        if reader is None:
            return GeoLookupResult.fail(
                self.name,
                GeoErrorCode.DATABASE_NOT_FOUND,
                f"GeoIP database not found at {self._db_path}",
            )

        try:
            if self._is_city_db:
                response = await asyncio.to_thread(reader.city, ip)
            else:
                response = await asyncio.to_thread(reader.country, ip)
        except geoip2.errors.AddressNotFoundError:
            return GeoLookupResult.fail(
                self.name, GeoErrorCode.LOOKUP_FAILED, "No data found for IP"
            )
        except ValueError as e:
            return GeoLookupResult.fail(self.name, GeoErrorCode.INVALID_IP, str(e))
        except Exception as e:
            log.warning(
                "geoip_local_lookup_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return GeoLookupResult.fail(self.name, GeoErrorCode.LOOKUP_FAILED, str(e))

        return GeoLookupResult.ok(self.name, _to_location(response, self._is_city_db))

    async def check_database(self, now: Optional[datetime] = None) -> LocalDatabaseStatus:
        """Report presence, size, age and staleness of the database file."""
        now = now or datetime.now(timezone.utc)
        try:
            stat = await asyncio.to_thread(os.stat, self._db_path)
        except OSError:
            return LocalDatabaseStatus(
                installed=False,
                path=self._db_path,
                message="GeoIP database not found. Download GeoLite2-City.mmdb.",
            )

        modified_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        outdated = modified_at < most_recent_weekday(now, _RELEASE_WEEKDAY)
        return LocalDatabaseStatus(
            installed=True,
            path=self._db_path,
            size_bytes=stat.st_size,
            modified_at=modified_at,
            outdated=outdated,
            message=(
                "GeoIP database may be outdated (updated weekly on Tuesdays)"
                if outdated
                else "GeoIP database is installed and up to date"
            ),
        )

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None


def _to_location(response, is_city: bool) -> GeoLocation:
    fields = {
        "country_code": response.country.iso_code,
        "country_name": response.country.name or "Unknown",
    }
    if is_city:
        subdivision = response.subdivisions[0] if response.subdivisions else None
        fields.update(
            city=response.city.name,
            region=subdivision.name if subdivision is not None else None,
            latitude=response.location.latitude,
            longitude=response.location.longitude,
            timezone=response.location.time_zone,
        )
    return GeoLocation(**fields)
