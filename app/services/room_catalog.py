"""Room lookups owned by the listing service.

Bookings only need to know who hosts a room and whether it takes bookings.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import httpx

from app.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomInfo:
    room_id: uuid.UUID
    host_id: uuid.UUID
    is_bookable: bool = True
    available_from: datetime | None = None
    available_until: datetime | None = None


class RoomCatalog(Protocol):
    async def get_room(self, room_id: uuid.UUID) -> RoomInfo | None: ...


class InMemoryRoomCatalog:
    """Catalog filled by tests and local scripts."""

    def __init__(self, rooms: list[RoomInfo] | None = None) -> None:
        self._rooms = {room.room_id: room for room in rooms or []}

    def add(self, room: RoomInfo) -> RoomInfo:
        self._rooms[room.room_id] = room
        return room

    async def get_room(self, room_id: uuid.UUID) -> RoomInfo | None:
        return self._rooms.get(room_id)


class HttpRoomCatalog:
    """Reads rooms from the listing service's internal API."""

    def __init__(self, base_url: str, timeout: float = 5.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()

    async def get_room(self, room_id: uuid.UUID) -> RoomInfo | None:
        try:
            response = await self.http_client.get(f"/rooms/{room_id}")
        except httpx.HTTPError as e:
            logger.error(f"Listing service unreachable: {e}")
            raise PersistenceError("listing service unreachable") from e

        if response.status_code == 404:
            return None
        if response.is_error:
            logger.error(f"Listing service returned {response.status_code} for room {room_id}")
            raise PersistenceError(f"listing service returned {response.status_code}")

        data = response.json()
        return RoomInfo(
            room_id=room_id,
            host_id=uuid.UUID(data["host_id"]),
            is_bookable=data.get("is_bookable", True),
            available_from=_parse_datetime(data.get("available_from")),
            available_until=_parse_datetime(data.get("available_until")),
        )


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)
