"""Shared test fixtures."""

from dataclasses import dataclass, field
from io import BytesIO

import pytest
from PIL import Image

from geotag_bot.adapters.google_maps_client import GeocodingClient, StaticMapClient
from geotag_bot.adapters.telegram_client import TelegramClient
from geotag_bot.config import Settings
from geotag_bot.containers import AppContainer, assemble_container
from geotag_bot.domain.activity import ActivityEvent
from geotag_bot.domain.errors import ExternalServiceError
from geotag_bot.services.activity import ActivityRepository, ActivityService


def make_jpeg(width: int = 320, height: int = 240) -> bytes:
    image = Image.new("RGB", (width, height), (30, 120, 200))
    output = BytesIO()
    image.save(output, format="JPEG")
    return output.getvalue()


def make_png(width: int = 200, height: int = 200) -> bytes:
    image = Image.new("RGB", (width, height), (200, 220, 180))
    output = BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages and uploaded photos."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    photos: list[tuple[int, bytes, str | None]] = field(default_factory=list)
    commands: list[dict[str, str]] | None = None
    menu_button: dict[str, object] | None = None

    async def send_message(self, chat_id: int, text: str) -> None:
        self.messages.append((chat_id, text))

    async def send_photo(
        self, chat_id: int, photo: bytes, caption: str | None = None
    ) -> None:
        self.photos.append((chat_id, photo, caption))

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        self.menu_button = menu_button

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.messages]


@dataclass
class FakeTelegramFileClient:
    """Fake Telegram file client that returns a real JPEG."""

    content: bytes = field(default_factory=make_jpeg)
    failing_ids: set[str] = field(default_factory=set)
    downloads: list[str] = field(default_factory=list)

    async def download_file_bytes(self, file_id: str) -> bytes:
        self.downloads.append(file_id)
        if file_id in self.failing_ids:
            raise ExternalServiceError(f"download failed for {file_id}")
        return self.content


@dataclass
class FakeGeocodingClient(GeocodingClient):
    """Geocoding fake keyed by query text."""

    addresses: dict[str, tuple[float, float]] = field(default_factory=dict)
    reverse_address: str | None = "Jl. Tunjungan No.1, Surabaya"
    fail: bool = False
    forward_calls: list[str] = field(default_factory=list)
    reverse_calls: list[tuple[float, float]] = field(default_factory=list)

    async def geocode(self, address: str, language: str) -> dict[str, object]:
        self.forward_calls.append(address)
        if self.fail:
            raise ExternalServiceError("geocoding down")
        point = self.addresses.get(address)
        if point is None:
            return {"status": "ZERO_RESULTS", "results": []}
        return {
            "status": "OK",
            "results": [{"geometry": {"location": {"lat": point[0], "lng": point[1]}}}],
        }

    async def reverse_geocode(
        self, latitude: float, longitude: float, language: str
    ) -> dict[str, object]:
        self.reverse_calls.append((latitude, longitude))
        if self.fail:
            raise ExternalServiceError("geocoding down")
        if self.reverse_address is None:
            return {"status": "ZERO_RESULTS", "results": []}
        return {
            "status": "OK",
            "results": [{"formatted_address": self.reverse_address}],
        }


@dataclass
class FakeStaticMapClient(StaticMapClient):
    """Static map fake returning a plain PNG."""

    fail: bool = False
    calls: list[tuple[float, float, int, int, int]] = field(default_factory=list)

    async def static_map(  # noqa: PLR0913
        self,
        latitude: float,
        longitude: float,
        zoom: int,
        width: int,
        height: int,
    ) -> bytes:
        self.calls.append((latitude, longitude, zoom, width, height))
        if self.fail:
            raise ExternalServiceError("maps down")
        return make_png(width, height)


@dataclass
class InMemoryActivityRepository(ActivityRepository):
    """In-memory activity repository for tests."""

    events: list[ActivityEvent] = field(default_factory=list)
    fail: bool = False

    def create_event(self, event: ActivityEvent) -> None:
        if self.fail:
            raise RuntimeError("database unavailable")
        self.events.append(event)

    def list_events(self, telegram_user_id: int) -> list[ActivityEvent]:
        if self.fail:
            raise RuntimeError("database unavailable")
        return [
            event for event in self.events if event.telegram_user_id == telegram_user_id
        ]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="test-token",
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        maps_api_key="maps-key",
        batch_delay_seconds=0.05,
        environment="test",
    )


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def file_client() -> FakeTelegramFileClient:
    return FakeTelegramFileClient()


@pytest.fixture
def geocoding_client() -> FakeGeocodingClient:
    return FakeGeocodingClient()


@pytest.fixture
def static_map_client() -> FakeStaticMapClient:
    return FakeStaticMapClient()


@pytest.fixture
def activity_repository() -> InMemoryActivityRepository:
    return InMemoryActivityRepository()


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    telegram_client: FakeTelegramClient,
    file_client: FakeTelegramFileClient,
    geocoding_client: FakeGeocodingClient,
    static_map_client: FakeStaticMapClient,
    activity_repository: InMemoryActivityRepository,
) -> AppContainer:
    return assemble_container(
        settings=settings,
        telegram_client=telegram_client,
        telegram_file_client=file_client,
        geocoding_client=geocoding_client,
        static_map_client=static_map_client,
        activity_service=ActivityService(
            repository=activity_repository,
            timezone_name=settings.display_timezone,
        ),
    )
