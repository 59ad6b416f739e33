from unittest.mock import AsyncMock

import pytest

from eywa.exceptions.custom import (
    AlreadyLinkedError,
    HotelNotFoundError,
    ListingNotFoundError,
    NotConfiguredError,
    UnsupportedSourceError,
)
from eywa.schemas.google_places import GooglePlace, PlaceVerification
from eywa.schemas.reviews import Hotel, ReviewSource, SyncStatus
from eywa.services.hotel_matching import HotelMatcher
from eywa.services.linking import LinkingService
from eywa.services.scoring import ScoreService
from eywa.store import ReviewStore

EXACT = GooglePlace(
    id="exact",
    displayName={"text": "Grand Hotel Paris"},
    formattedAddress="1 Rue de Rivoli, 75001 Paris, France",
    rating=4.4,
    userRatingCount=1520,
    reviews=[{"name": "places/exact/reviews/r1", "rating": 5, "publishTime": "2024-05-25T08:30:00Z"}],
)
PARTIAL = GooglePlace(
    id="partial",
    displayName={"text": "Grand Hotel Paris - City Center"},
    formattedAddress="5 Rue X, Paris, France",
)


def _places(search_results=None, details=EXACT) -> AsyncMock:
    places = AsyncMock()
    places.is_configured = True
    places.search_hotel = AsyncMock(return_value=search_results or [])
    places.get_place_details = AsyncMock(return_value=details)
    return places


def _service(places: AsyncMock, store: ReviewStore | None = None) -> tuple[LinkingService, ReviewStore]:
    if store is None:
        store = ReviewStore()
        store.add_hotel(Hotel(id="h1", name="Grand Hotel Paris", city="Paris", country="France"))
    service = LinkingService(
        store, places, HotelMatcher(places), ScoreService(store), inter_hotel_delay=0,
    )
    return service, store


async def test_auto_link_confident_match():
    service, store = _service(_places([EXACT, PARTIAL]))

    result = await service.auto_link("h1")

    assert result.matched is True
    assert result.auto_linked is True
    assert result.best_match.external_id == "exact"
    assert result.linked_source.external_id == "exact"

    link = store.get_link("h1", ReviewSource.google)
    assert link.is_verified is True
    assert link.last_sync_status == SyncStatus.success
    assert len(store.reviews_for_hotel("h1")) == 1
    assert store.latest_score("h1").eywa_score == 8.8


async def test_auto_link_below_threshold_needs_review():
    places = _places([PARTIAL])
    service, store = _service(places)

    result = await service.auto_link("h1")

    assert result.matched is True
    assert result.auto_linked is False
    assert "below auto-link threshold (85%)" in result.message
    assert store.get_link("h1", ReviewSource.google) is None
    places.get_place_details.assert_not_called()


async def test_force_links_weak_match_unverified():
    service, store = _service(_places([PARTIAL]))

    result = await service.auto_link("h1", force=True)

    assert result.auto_linked is True
    assert store.get_link("h1", ReviewSource.google).is_verified is False


async def test_auto_link_no_match():
    service, _ = _service(_places([]))

    result = await service.auto_link("h1")

    assert result.matched is False
    assert result.search_query == "Grand Hotel Paris Paris France"


async def test_auto_link_refuses_existing_link():
    service, store = _service(_places([EXACT]))
    store.upsert_link("h1", ReviewSource.google, "old")

    with pytest.raises(AlreadyLinkedError):
        await service.auto_link("h1")

    result = await service.auto_link("h1", force=True)
    assert store.get_link("h1", ReviewSource.google).external_id == "exact"
    assert result.auto_linked is True


async def test_auto_link_unknown_hotel():
    service, _ = _service(_places())
    with pytest.raises(HotelNotFoundError):
        await service.auto_link("missing")


async def test_auto_link_requires_configured_provider():
    places = _places()
    places.is_configured = False
    service, _ = _service(places)
    with pytest.raises(NotConfiguredError):
        await service.auto_link("h1")


async def test_match_does_not_link():
    service, store = _service(_places([EXACT]))

    result = await service.match("h1")

    assert result.best_match.external_id == "exact"
    assert store.get_link("h1", ReviewSource.google) is None


async def test_link_source_manual():
    places = _places()
    places.verify_place_id = AsyncMock(
        return_value=PlaceVerification(valid=True, match_score=0.7, actual_name="Grand Hotel Paris Opera")
    )
    service, store = _service(places)

    link = await service.link_source("h1", ReviewSource.google, "exact")

    assert link.is_verified is True
    assert link.name == "Grand Hotel Paris Opera"
    assert store.latest_score("h1") is not None


async def test_link_source_unverified_name():
    places = _places()
    places.verify_place_id = AsyncMock(
        return_value=PlaceVerification(valid=True, match_score=0.3, actual_name="Le Meurice")
    )
    service, _ = _service(places)

    link = await service.link_source("h1", ReviewSource.google, "exact")
    assert link.is_verified is False


async def test_link_source_invalid_place():
    places = _places()
    places.verify_place_id = AsyncMock(return_value=PlaceVerification(valid=False, match_score=0.0))
    service, store = _service(places)

    with pytest.raises(ListingNotFoundError):
        await service.link_source("h1", ReviewSource.google, "gone")
    assert store.get_link("h1", ReviewSource.google) is None


async def test_link_source_tripadvisor_not_available():
    service, _ = _service(_places())
    with pytest.raises(UnsupportedSourceError):
        await service.link_source("h1", ReviewSource.tripadvisor, "123")


async def test_batch_limit():
    service, _ = _service(_places())
    with pytest.raises(ValueError):
        await service.auto_link_batch([f"h{i}" for i in range(21)])


async def test_batch_collects_outcomes():
    store = ReviewStore()
    store.add_hotel(Hotel(id="h1", name="Grand Hotel Paris", city="Paris", country="France"))
    store.add_hotel(Hotel(id="h2", name="Grand Hotel Paris", city="Paris", country="France"))
    places = _places()
    places.search_hotel = AsyncMock(side_effect=[[EXACT], [PARTIAL]])
    service, _ = _service(places, store)

    response = await service.auto_link_batch(["h1", "h2", "missing"])

    assert [r.status for r in response.results] == ["linked", "needs_review", "error"]
    assert (response.linked, response.needs_review, response.errors) == (1, 1, 1)
    assert response.results[0].confidence == "95%"
