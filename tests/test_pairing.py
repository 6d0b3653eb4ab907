"""Tests for photo/location pairing."""

import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from geotag_bot.containers import AppContainer
from geotag_bot.domain.geo import GeoPoint
from geotag_bot.domain.sessions import (
    AwaitingLocation,
    AwaitingPhoto,
    AwaitingStickyLocation,
    Idle,
    PhotoRef,
    StickyActive,
)
from geotag_bot.services.activity import GENERATE_GEOTAG, RECEIVE_PHOTO
from tests.conftest import (
    FakeGeocodingClient,
    FakeStaticMapClient,
    FakeTelegramClient,
    FakeTelegramFileClient,
    InMemoryActivityRepository,
)

USER_ID = 123
CHAT_ID = 99
POINT = GeoPoint(-7.2, 112.7)


def _photo(file_id: str, chat_id: int = CHAT_ID) -> PhotoRef:
    return PhotoRef(file_id=file_id, chat_id=chat_id)


def test_photo_then_location_produces_one_composite(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    activity_repository: InMemoryActivityRepository,
) -> None:
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_enter(USER_ID, CHAT_ID)
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_location(USER_ID, CHAT_ID, POINT)

    asyncio.run(scenario())

    assert len(telegram_client.photos) == 1
    chat_id, composite, caption = telegram_client.photos[0]
    assert chat_id == CHAT_ID
    assert composite[:2] == b"\xff\xd8"
    assert caption == POINT.short_label()
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == Idle()
    assert [(e.action, e.success) for e in activity_repository.events] == [
        (RECEIVE_PHOTO, True),
        (GENERATE_GEOTAG, True),
    ]


def test_pairing_is_order_independent(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    pairing = container.pairing
    first_user, second_user = 1, 2

    async def scenario() -> None:
        for user_id in (first_user, second_user):
            await pairing.on_enter(user_id, CHAT_ID)
            await pairing.on_set_custom_time(user_id, CHAT_ID, "2025-06-07 18:16")
        await pairing.on_photo(first_user, CHAT_ID, _photo("F1"))
        await pairing.on_location(first_user, CHAT_ID, POINT)
        await pairing.on_location(second_user, CHAT_ID, POINT)
        await pairing.on_photo(second_user, CHAT_ID, _photo("F1"))

    asyncio.run(scenario())

    assert len(telegram_client.photos) == 2
    assert telegram_client.photos[0][1] == telegram_client.photos[1][1]
    for user_id in (first_user, second_user):
        session = container.session_store.get(user_id)
        assert session is not None
        assert session.state == Idle()


def test_newer_location_replaces_pending_location(container: AppContainer) -> None:
    pairing = container.pairing
    newer = GeoPoint(-6.2, 106.8)

    async def scenario() -> None:
        await pairing.on_location(USER_ID, CHAT_ID, POINT)
        await pairing.on_location(USER_ID, CHAT_ID, newer)

    asyncio.run(scenario())

    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == AwaitingPhoto(point=newer)


def test_newer_photo_replaces_pending_photo(container: AppContainer) -> None:
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F2"))

    asyncio.run(scenario())

    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == AwaitingLocation(photo=_photo("F2"))


async def _to_idle(container: AppContainer) -> None:
    await container.pairing.on_enter(USER_ID, CHAT_ID)


async def _to_awaiting_location(container: AppContainer) -> None:
    await container.pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))


async def _to_awaiting_photo(container: AppContainer) -> None:
    await container.pairing.on_location(USER_ID, CHAT_ID, POINT)


async def _to_awaiting_sticky(container: AppContainer) -> None:
    await container.pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
    await container.pairing.on_toggle_sticky(USER_ID, CHAT_ID)


async def _to_sticky_with_live_timer(container: AppContainer) -> None:
    await container.pairing.on_toggle_sticky(USER_ID, CHAT_ID)
    await container.pairing.on_location(USER_ID, CHAT_ID, POINT)
    await container.pairing.on_photo(USER_ID, CHAT_ID, _photo("F2"))
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.has_live_timer


@pytest.mark.parametrize(
    "arrange",
    [
        _to_idle,
        _to_awaiting_location,
        _to_awaiting_photo,
        _to_awaiting_sticky,
        _to_sticky_with_live_timer,
    ],
)
def test_clear_resets_from_any_state(
    arrange, container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    async def scenario() -> None:
        await arrange(container)
        timer = None
        session = container.session_store.get(USER_ID)
        if session is not None:
            timer = session.batch_timer
        await container.pairing.on_clear(USER_ID, CHAT_ID)
        await container.pairing.on_clear(USER_ID, CHAT_ID)
        await asyncio.sleep(0.2)
        if timer is not None:
            assert timer.cancelled()

    asyncio.run(scenario())

    assert container.session_store.get(USER_ID) is None
    fresh = container.session_store.get_or_create(USER_ID, CHAT_ID)
    assert fresh.state == Idle()
    assert fresh.pending_photo is None
    assert fresh.sticky_location is None
    assert not fresh.has_live_timer
    assert telegram_client.photos == []


def test_invalid_timestamp_rejected_when_never_set(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    accepted = asyncio.run(
        container.pairing.on_set_custom_time(USER_ID, CHAT_ID, "2024-13-40 25:99")
    )

    assert accepted is False
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.custom_timestamp is None
    assert telegram_client.texts[-1].startswith("Invalid time")


def test_invalid_timestamp_keeps_previous_value(container: AppContainer) -> None:
    pairing = container.pairing

    async def scenario() -> tuple[bool, bool]:
        first = await pairing.on_set_custom_time(USER_ID, CHAT_ID, "2025-06-07 18:16")
        second = await pairing.on_set_custom_time(USER_ID, CHAT_ID, "2024-13-40 25:99")
        return first, second

    first, second = asyncio.run(scenario())

    assert (first, second) == (True, False)
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.custom_timestamp == datetime(
        2025, 6, 7, 18, 16, tzinfo=ZoneInfo("Asia/Jakarta")
    )


@pytest.mark.parametrize("text", ["1899-12-31 10:00", "2101-01-01 00:00", "tomorrow"])
def test_out_of_range_or_malformed_timestamp(
    text: str, container: AppContainer
) -> None:
    accepted = asyncio.run(container.pairing.on_set_custom_time(USER_ID, CHAT_ID, text))

    assert accepted is False


def test_set_time_reset_and_usage(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    pairing = container.pairing

    async def scenario() -> tuple[bool, bool, bool]:
        set_ok = await pairing.on_set_custom_time(USER_ID, CHAT_ID, "2025-06-07 18:16")
        reset_ok = await pairing.on_set_custom_time(USER_ID, CHAT_ID, "reset")
        empty = await pairing.on_set_custom_time(USER_ID, CHAT_ID, "  ")
        return set_ok, reset_ok, empty

    assert asyncio.run(scenario()) == (True, True, False)
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.custom_timestamp is None
    assert telegram_client.texts[-1].startswith("Usage: /set_time")


def test_end_to_end_sticky_batch(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    static_map_client: FakeStaticMapClient,
) -> None:
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_enter(USER_ID, CHAT_ID)
        await pairing.on_toggle_sticky(USER_ID, CHAT_ID)
        await pairing.on_location(USER_ID, CHAT_ID, POINT)
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await asyncio.sleep(0.01)
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F2"))
        await asyncio.sleep(0.5)

    asyncio.run(scenario())

    assert len(telegram_client.photos) == 2
    assert "Done: 2/2 photos geotagged." in telegram_client.texts
    assert all(call[:2] == (-7.2, 112.7) for call in static_map_client.calls)
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == StickyActive(point=POINT)
    assert not session.has_live_timer


def test_sticky_location_photo_pending_is_consumed(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_toggle_sticky(USER_ID, CHAT_ID)
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_location(USER_ID, CHAT_ID, POINT)

    asyncio.run(scenario())

    assert len(telegram_client.photos) == 1
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == StickyActive(point=POINT)


def test_sticky_location_can_be_updated(container: AppContainer) -> None:
    pairing = container.pairing
    newer = GeoPoint(-6.2, 106.8)

    async def scenario() -> None:
        await pairing.on_toggle_sticky(USER_ID, CHAT_ID)
        await pairing.on_location(USER_ID, CHAT_ID, POINT)
        await pairing.on_location(USER_ID, CHAT_ID, newer)

    asyncio.run(scenario())

    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.sticky_location == newer


def test_toggle_off_flushes_pending_batch(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_toggle_sticky(USER_ID, CHAT_ID)
        await pairing.on_location(USER_ID, CHAT_ID, POINT)
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_toggle_sticky(USER_ID, CHAT_ID)
        await asyncio.sleep(0.2)

    asyncio.run(scenario())

    assert len(telegram_client.photos) == 1
    assert telegram_client.texts.count("Done: 1/1 photos geotagged.") == 1
    assert telegram_client.texts[-1] == "Sticky location off."
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == Idle()


def test_toggle_off_while_armed_keeps_pending_photo(container: AppContainer) -> None:
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_toggle_sticky(USER_ID, CHAT_ID)
        await pairing.on_toggle_sticky(USER_ID, CHAT_ID)

    asyncio.run(scenario())

    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == AwaitingLocation(photo=_photo("F1"))


def test_toggle_on_keeps_pending_photo(container: AppContainer) -> None:
    async def scenario() -> None:
        await container.pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await container.pairing.on_toggle_sticky(USER_ID, CHAT_ID)

    asyncio.run(scenario())

    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == AwaitingStickyLocation(photo=_photo("F1"))


def test_render_failure_apologises_and_drops_photo(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    file_client: FakeTelegramFileClient,
    activity_repository: InMemoryActivityRepository,
) -> None:
    file_client.failing_ids.add("broken")
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("broken"))
        await pairing.on_location(USER_ID, CHAT_ID, POINT)

    asyncio.run(scenario())

    assert telegram_client.photos == []
    assert telegram_client.texts[-1].startswith("Sorry, I couldn't create the geotag")
    assert "debug" not in telegram_client.texts[-1]
    session = container.session_store.get(USER_ID)
    assert session is not None
    assert session.state == Idle()
    assert activity_repository.events[-1].action == GENERATE_GEOTAG
    assert activity_repository.events[-1].success is False


def test_geocoding_failures_still_produce_composite(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    geocoding_client: FakeGeocodingClient,
    static_map_client: FakeStaticMapClient,
) -> None:
    geocoding_client.fail = True
    static_map_client.fail = True
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_location(USER_ID, CHAT_ID, POINT)

    asyncio.run(scenario())

    assert len(telegram_client.photos) == 1


def test_typed_coordinates_pair_with_photo(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_text(USER_ID, CHAT_ID, "-7.2575, 112.7521")

    asyncio.run(scenario())

    assert telegram_client.photos[0][2] == "-7.25750, 112.75210"


def test_typed_address_is_geocoded_when_location_expected(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    geocoding_client: FakeGeocodingClient,
) -> None:
    geocoding_client.addresses["Tugu Pahlawan, Surabaya"] = (-7.2458, 112.7378)
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_text(USER_ID, CHAT_ID, "Atlantis")
        await pairing.on_text(USER_ID, CHAT_ID, "Tugu Pahlawan, Surabaya")

    asyncio.run(scenario())

    assert any(text.startswith("Address not found") for text in telegram_client.texts)
    assert len(telegram_client.photos) == 1


def test_text_in_idle_sends_hint_without_geocoding(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    geocoding_client: FakeGeocodingClient,
) -> None:
    asyncio.run(container.pairing.on_text(USER_ID, CHAT_ID, "hello"))

    assert geocoding_client.forward_calls == []
    assert "/help" in telegram_client.texts[-1]


def test_stats_reports_session_and_usage(
    container: AppContainer, telegram_client: FakeTelegramClient
) -> None:
    pairing = container.pairing

    async def scenario() -> None:
        await pairing.on_photo(USER_ID, CHAT_ID, _photo("F1"))
        await pairing.on_location(USER_ID, CHAT_ID, POINT)
        await pairing.on_stats(USER_ID, CHAT_ID)

    asyncio.run(scenario())

    report = telegram_client.texts[-1]
    assert "Mode: idle" in report
    assert "Geotags created: 1" in report
    assert "Photos received: 1" in report


def test_stats_without_session(
    container: AppContainer,
    telegram_client: FakeTelegramClient,
    activity_repository: InMemoryActivityRepository,
) -> None:
    activity_repository.fail = True

    asyncio.run(container.pairing.on_stats(USER_ID, CHAT_ID))

    assert "No active session." in telegram_client.texts[-1]
    assert "unavailable" in telegram_client.texts[-1]
    assert container.session_store.get(USER_ID) is None
