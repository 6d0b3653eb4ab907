"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from supabase import create_client

from geotag_bot.adapters.google_maps_client import (
    GeocodingClient,
    HttpxGoogleMapsClient,
    StaticMapClient,
)
from geotag_bot.adapters.supabase_activity_repository import (
    SupabaseActivityRepository,
)
from geotag_bot.adapters.telegram_client import (
    HttpxTelegramClient,
    TelegramClient,
)
from geotag_bot.adapters.telegram_file_client import (
    HttpxTelegramFileClient,
    TelegramFileClient,
)
from geotag_bot.config import Settings
from geotag_bot.services.activity import ActivityService
from geotag_bot.services.batch import BatchCoordinator
from geotag_bot.services.cache import TtlCache
from geotag_bot.services.compositor import Compositor
from geotag_bot.services.geocoding import LocationResolver
from geotag_bot.services.maps import MapImageProvider
from geotag_bot.services.pairing import PairingStateMachine
from geotag_bot.services.pipeline import GeotagPipeline
from geotag_bot.services.session_store import InMemorySessionStore, SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    telegram_file_client: TelegramFileClient
    session_store: SessionStore
    activity_service: ActivityService
    pairing: PairingStateMachine
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    activity_service = ActivityService(
        repository=SupabaseActivityRepository(supabase_client),
        timezone_name=resolved_settings.display_timezone,
    )
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    telegram_file_client = HttpxTelegramFileClient.create(
        resolved_settings.telegram_bot_token
    )
    maps_client = HttpxGoogleMapsClient.create(
        api_key=resolved_settings.maps_api_key,
        base_url=resolved_settings.maps_base_url,
        geocode_timeout=resolved_settings.geocode_timeout_seconds,
        map_timeout=resolved_settings.map_timeout_seconds,
    )
    return assemble_container(
        settings=resolved_settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        geocoding_client=maps_client,
        static_map_client=maps_client,
        activity_service=activity_service,
        close_resources=_closer(telegram_client, telegram_file_client, maps_client),
    )


def assemble_container(  # noqa: PLR0913
    settings: Settings,
    telegram_client: TelegramClient,
    telegram_file_client: TelegramFileClient,
    geocoding_client: GeocodingClient,
    static_map_client: StaticMapClient,
    activity_service: ActivityService,
    close_resources: Callable[[], Awaitable[None]] | None = None,
) -> AppContainer:
    """Wire the geotag services around already-built adapters."""
    timezone = ZoneInfo(settings.display_timezone)
    session_store = InMemorySessionStore()
    resolver = LocationResolver(
        client=geocoding_client,
        cache=TtlCache(),
        language=settings.maps_language,
        cache_ttl_seconds=settings.geocode_cache_ttl_seconds,
    )
    pipeline = GeotagPipeline(
        file_client=telegram_file_client,
        resolver=resolver,
        map_provider=MapImageProvider(
            client=static_map_client,
            default_size=settings.map_size_px,
            default_zoom=settings.map_zoom,
        ),
        compositor=Compositor(timezone=timezone),
        map_size=settings.map_size_px,
        map_zoom=settings.map_zoom,
    )
    batch_coordinator = BatchCoordinator(
        pipeline=pipeline,
        telegram_client=telegram_client,
        activity_service=activity_service,
        delay_seconds=settings.batch_delay_seconds,
    )
    pairing = PairingStateMachine(
        store=session_store,
        pipeline=pipeline,
        batch_coordinator=batch_coordinator,
        telegram_client=telegram_client,
        resolver=resolver,
        activity_service=activity_service,
        timezone=timezone,
        timezone_label=settings.display_timezone_label,
        coordinate_filter=settings.coordinate_filter(),
        debug=settings.environment == "local",
    )

    async def _noop() -> None:
        return None

    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        session_store=session_store,
        activity_service=activity_service,
        pairing=pairing,
        close_resources=close_resources or _noop,
    )


def _closer(
    telegram_client: HttpxTelegramClient,
    telegram_file_client: HttpxTelegramFileClient,
    maps_client: HttpxGoogleMapsClient,
) -> Callable[[], Awaitable[None]]:
    async def close_resources() -> None:
        await telegram_client.close()
        await telegram_file_client.close()
        await maps_client.close()

    return close_resources
