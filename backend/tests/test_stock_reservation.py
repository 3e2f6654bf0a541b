"""
Tests for the stock reservation coordinator.

Tests: in-order reservation, reverse compensation, best-effort release.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from types import SimpleNamespace

from domain.errors import CatalogUnavailableError, InsufficientStockError, ProductNotFoundError
from services.stock_reservation import CompensationFailure, StockReservationCoordinator
from tests.conftest import PRODUCT_A, PRODUCT_B, PRODUCT_C


@pytest.fixture
def coordinator(catalog, metrics):
    return StockReservationCoordinator(catalog, metrics)


class TestReserve:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reserves_in_order_with_snapshots(self, coordinator, catalog):
        reservations = await coordinator.reserve([(PRODUCT_B, 2), (PRODUCT_A, 1)])

        assert [(r.product_id, r.quantity) for r in reservations] == [(PRODUCT_B, 2), (PRODUCT_A, 1)]
        assert reservations[0].snapshot.name == "Widget B"
        assert catalog.calls == [
            ("get", PRODUCT_B), ("adjust", PRODUCT_B, -2),
            ("get", PRODUCT_A), ("adjust", PRODUCT_A, -1),
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_snapshot_shortfall_never_calls_adjust(self, coordinator, catalog):
        with pytest.raises(InsufficientStockError) as exc_info:
            await coordinator.reserve([(PRODUCT_C, 4)])
        assert exc_info.value.details["available"] == 3
        assert catalog.adjustments == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_compensates_prefix_newest_first(self, coordinator, catalog):
        with pytest.raises(ProductNotFoundError):
            await coordinator.reserve([(PRODUCT_A, 1), (PRODUCT_B, 2), (PRODUCT_C, 3), (999, 1)])

        assert catalog.adjustments == [
            (PRODUCT_A, -1), (PRODUCT_B, -2), (PRODUCT_C, -3),
            (PRODUCT_C, 3), (PRODUCT_B, 2), (PRODUCT_A, 1),
        ]
        assert (catalog.stock(PRODUCT_A), catalog.stock(PRODUCT_B), catalog.stock(PRODUCT_C)) == (10, 5, 3)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_first_line_failure_has_nothing_to_compensate(self, coordinator, catalog):
        catalog.failures[(PRODUCT_A, -1)] = CatalogUnavailableError()
        with pytest.raises(CatalogUnavailableError):
            await coordinator.reserve([(PRODUCT_A, 1), (PRODUCT_B, 1)])
        assert catalog.adjustments == [(PRODUCT_A, -1)]


class TestCompensate:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_release_is_recorded_and_next_is_tried(self, coordinator, catalog, metrics):
        reservations = await coordinator.reserve([(PRODUCT_A, 2), (PRODUCT_B, 1)])
        catalog.failures[(PRODUCT_B, 1)] = CatalogUnavailableError("timed out")

        failures = await coordinator.compensate(reservations)

        assert failures == [CompensationFailure(product_id=PRODUCT_B, delta=1, reason="timed out")]
        assert catalog.stock(PRODUCT_A) == 10
        assert metrics.compensation_failures == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_works_without_metrics(self, catalog):
        coordinator = StockReservationCoordinator(catalog)
        catalog.failures[(PRODUCT_A, 1)] = CatalogUnavailableError()
        result = await coordinator.restock([SimpleNamespace(product_id=PRODUCT_A, quantity=1)])
        assert len(result.failures) == 1
        assert result.restocked == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unreleased_reservations_are_logged_on_reserve_failure(self, coordinator, catalog, caplog):
        catalog.failures[(PRODUCT_A, 1)] = CatalogUnavailableError()

        with caplog.at_level("ERROR", logger="services.stock_reservation"):
            with pytest.raises(ProductNotFoundError):
                await coordinator.reserve([(PRODUCT_A, 1), (999, 1)])

        assert "1 reservation(s) could not be released" in caplog.text
        assert f"({PRODUCT_A}, 1)" in caplog.text


class TestRestock:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_restocks_lines_in_reverse(self, coordinator, catalog):
        lines = [
            SimpleNamespace(product_id=PRODUCT_A, quantity=2),
            SimpleNamespace(product_id=PRODUCT_B, quantity=1),
        ]
        result = await coordinator.restock(lines)

        assert result.failures == []
        assert result.restocked == [(PRODUCT_B, 1), (PRODUCT_A, 2)]
        assert catalog.adjustments == [(PRODUCT_B, 1), (PRODUCT_A, 2)]
        assert catalog.stock(PRODUCT_A) == 12

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_skips_failed_lines_in_restocked(self, coordinator, catalog):
        catalog.failures[(PRODUCT_B, 1)] = CatalogUnavailableError()
        lines = [
            SimpleNamespace(product_id=PRODUCT_A, quantity=2),
            SimpleNamespace(product_id=PRODUCT_B, quantity=1),
        ]
        result = await coordinator.restock(lines)

        assert result.restocked == [(PRODUCT_A, 2)]
        assert [f.product_id for f in result.failures] == [PRODUCT_B]


class TestTakeBack:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_re_reserves_in_reverse_of_restock(self, coordinator, catalog):
        failures = await coordinator.take_back([(PRODUCT_B, 1), (PRODUCT_A, 2)])

        assert failures == []
        assert catalog.adjustments == [(PRODUCT_A, -2), (PRODUCT_B, -1)]
        assert catalog.stock(PRODUCT_A) == 8

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_recorded_with_negative_delta(self, coordinator, catalog, metrics):
        catalog.failures[(PRODUCT_A, -2)] = CatalogUnavailableError("timed out")

        failures = await coordinator.take_back([(PRODUCT_A, 2)])

        assert failures == [CompensationFailure(product_id=PRODUCT_A, delta=-2, reason="timed out")]
        assert metrics.compensation_failures == 1
