"""
Tests for BatchService against a real (in-memory SQLite) database.

Covers:
- Creation: price snapshots, received defaults, cached totals, paper ids
- Reference data checks (inactive/missing client and categories)
- Amendment: in-place update, insert, delete, snapshot retention, versioning
- Status changes and the derived read models
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from linen_kernel.domain.status import BatchStatus
from linen_kernel.exceptions import (
    BatchNotFoundError,
    BatchValidationError,
    CategoryInactiveError,
    CategoryNotFoundError,
    ClientInactiveError,
    ClientNotFoundError,
    DuplicatePaperBatchIdError,
    InvalidTransitionError,
    OptimisticLockError,
)
from linen_services import BatchItemRequest, BatchService, CreateBatchRequest

PICKUP = date(2024, 3, 14)


@pytest.fixture
def service(session, deterministic_clock):
    return BatchService(session, clock=deterministic_clock)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def sheets(make_category):
    return make_category("Sheets", "5.00", section="Bedding")


@pytest.fixture
def towels(make_category):
    return make_category("Towels", "2.50", section="Bathroom")


def _request(client, *items, paper_batch_id=None, notes=None, pickup_date=PICKUP):
    return CreateBatchRequest(
        client_id=client.id,
        pickup_date=pickup_date,
        items=list(items),
        paper_batch_id=paper_batch_id,
        notes=notes,
    )


class TestCreateBatch:
    def test_snapshot_and_cached_totals(self, service, client, sheets, test_actor_id):
        info = service.create_batch(
            _request(
                client,
                BatchItemRequest(sheets.id, 10, 8, express_delivery=True),
            ),
            test_actor_id,
        )

        assert info.status == BatchStatus.PICKUP
        assert info.version == 1
        assert info.total_amount == Decimal("80.50")
        assert info.has_discrepancy is True
        (item,) = info.items
        assert item.price_per_item == Decimal("5.00")
        assert item.subtotal == Decimal("40.00")
        assert item.category_name == "Sheets"
        assert item.line_number == 1

    def test_received_defaults_to_sent(self, service, client, sheets, test_actor_id):
        info = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 6)), test_actor_id
        )
        assert info.items[0].quantity_received == 6
        assert info.has_discrepancy is False
        # 6 * 5.00 = 30.00 + 15% VAT
        assert info.total_amount == Decimal("34.50")

    def test_explicit_price_overrides_category(self, service, client, sheets, test_actor_id):
        info = service.create_batch(
            _request(client, {"linen_category_id": str(sheets.id), "quantity_sent": 2,
                              "price_per_item": "4.00"}),
            test_actor_id,
        )
        assert info.items[0].price_per_item == Decimal("4.00")

    def test_paper_id_assigned_for_pickup_month(self, service, client, sheets, test_actor_id):
        first = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1)), test_actor_id
        )
        second = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1)), test_actor_id
        )
        assert first.paper_batch_id == "PB-2024-03-001"
        assert second.paper_batch_id == "PB-2024-03-002"
        assert first.system_batch_id != second.system_batch_id

    def test_assigned_id_follows_explicit_ids(self, service, client, sheets, test_actor_id):
        service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1), paper_batch_id="PB-2024-03-007"),
            test_actor_id,
        )
        info = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1), paper_batch_id="   "),
            test_actor_id,
        )
        assert info.paper_batch_id == "PB-2024-03-008"

    def test_duplicate_explicit_paper_id(self, service, client, sheets, test_actor_id):
        request = _request(client, BatchItemRequest(sheets.id, 1), paper_batch_id="PB-7")
        service.create_batch(request, test_actor_id)
        with pytest.raises(DuplicatePaperBatchIdError) as exc_info:
            service.create_batch(request, test_actor_id)
        assert exc_info.value.paper_batch_id == "PB-7"

    def test_validation_errors_collected(self, service, client, test_actor_id):
        with pytest.raises(BatchValidationError) as exc_info:
            service.create_batch(
                _request(client, pickup_date=None, notes="x" * 1001), test_actor_id
            )
        messages = [e.message for e in exc_info.value.errors]
        assert "pickup_date is required" in messages
        assert "Notes cannot exceed 1000 characters" in messages
        assert "At least one item is required" in messages

    def test_sub_cent_price_rejected(self, service, client, sheets, test_actor_id):
        with pytest.raises(BatchValidationError) as exc_info:
            service.create_batch(
                _request(client, BatchItemRequest(sheets.id, 1000, 999, price_per_item="5.555")),
                test_actor_id,
            )
        (error,) = exc_info.value.errors
        assert error.field == "items[0].price_per_item"
        assert "at most 2 decimal places" in error.message

    def test_system_id_clash_draws_fresh_id(
        self, service, client, sheets, test_actor_id, monkeypatch
    ):
        ids = iter(["18e3a-aaaaaa-bbbbbb", "18e3a-aaaaaa-bbbbbb", "18e3a-cccccc-dddddd"])
        monkeypatch.setattr(
            "linen_services.batch_service.generate_system_batch_id", lambda now: next(ids)
        )
        service.create_batch(_request(client, BatchItemRequest(sheets.id, 1)), test_actor_id)

        info = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1), paper_batch_id="PB-2024-03-050"),
            test_actor_id,
        )
        assert info.paper_batch_id == "PB-2024-03-050"
        assert info.system_batch_id == "18e3a-cccccc-dddddd"

    def test_persistent_system_id_clash_is_not_a_duplicate(
        self, service, client, sheets, test_actor_id, monkeypatch
    ):
        monkeypatch.setattr(
            "linen_services.batch_service.generate_system_batch_id",
            lambda now: "18e3a-aaaaaa-bbbbbb",
        )
        service.create_batch(_request(client, BatchItemRequest(sheets.id, 1)), test_actor_id)

        with pytest.raises(IntegrityError):
            service.create_batch(
                _request(client, BatchItemRequest(sheets.id, 1), paper_batch_id="PB-2024-03-050"),
                test_actor_id,
            )

    def test_item_errors_reported_by_position(self, service, client, sheets, towels, test_actor_id):
        with pytest.raises(BatchValidationError) as exc_info:
            service.create_batch(
                _request(
                    client,
                    BatchItemRequest(sheets.id, 1),
                    BatchItemRequest(towels.id, 20_000),
                ),
                test_actor_id,
            )
        (error,) = exc_info.value.errors
        assert error.field == "items[1].quantity_sent"

    def test_inactive_client(self, service, make_client, sheets, test_actor_id):
        inactive = make_client("Closed Lodge", is_active=False)
        with pytest.raises(ClientInactiveError):
            service.create_batch(_request(inactive, BatchItemRequest(sheets.id, 1)), test_actor_id)

    def test_missing_client(self, service, sheets, test_actor_id):
        request = CreateBatchRequest(uuid4(), PICKUP, [BatchItemRequest(sheets.id, 1)])
        with pytest.raises(ClientNotFoundError):
            service.create_batch(request, test_actor_id)

    def test_missing_category(self, service, client, test_actor_id):
        with pytest.raises(CategoryNotFoundError):
            service.create_batch(_request(client, BatchItemRequest(uuid4(), 1)), test_actor_id)

    def test_inactive_category(self, service, client, make_category, test_actor_id):
        retired = make_category("Blankets", "12.00", is_active=False)
        with pytest.raises(CategoryInactiveError):
            service.create_batch(_request(client, BatchItemRequest(retired.id, 1)), test_actor_id)

    def test_logs_creation(self, service, client, sheets, test_actor_id, captured_logs):
        service.create_batch(_request(client, BatchItemRequest(sheets.id, 1)), test_actor_id)
        created = [r for r in captured_logs() if r["message"] == "batch_created"]
        assert created[0]["paper_batch_id"] == "PB-2024-03-001"
        assert created[0]["actor_id"] == str(test_actor_id)


class TestAmendItems:
    def setup_batch(self, service, client, sheets, towels, actor_id):
        return service.create_batch(
            _request(
                client,
                BatchItemRequest(sheets.id, 10, 8),
                BatchItemRequest(towels.id, 5, 5),
            ),
            actor_id,
        )

    def test_update_insert_delete(
        self, service, session, client, sheets, towels, make_category, test_actor_id
    ):
        batch = self.setup_batch(service, client, sheets, towels, test_actor_id)
        pillows = make_category("Pillow cases", "1.50")
        sheets.price_per_item = Decimal("9.00")
        session.flush()

        info = service.amend_items(
            batch.id,
            [BatchItemRequest(sheets.id, 10, 10), BatchItemRequest(pillows.id, 4, 3)],
            test_actor_id,
            expected_version=1,
        )

        assert info.version == 2
        by_name = {item.category_name: item for item in info.items}
        assert set(by_name) == {"Sheets", "Pillow cases"}
        assert by_name["Sheets"].price_per_item == Decimal("5.00")
        assert by_name["Sheets"].id == batch.items[0].id
        assert by_name["Pillow cases"].price_per_item == Decimal("1.50")
        # 50.00 + 4.50 received, 1.50 shortfall -> 56.00 + VAT 8.40
        assert info.total_amount == Decimal("64.40")
        assert info.has_discrepancy is True

    def test_inactive_category_already_on_batch(
        self, service, session, client, sheets, towels, test_actor_id
    ):
        batch = self.setup_batch(service, client, sheets, towels, test_actor_id)
        towels.is_active = False
        session.flush()

        info = service.amend_items(
            batch.id,
            [BatchItemRequest(sheets.id, 10, 10), BatchItemRequest(towels.id, 6, 6)],
            test_actor_id,
        )
        assert info.has_discrepancy is False

    def test_stale_version_rejected(self, service, client, sheets, towels, test_actor_id):
        batch = self.setup_batch(service, client, sheets, towels, test_actor_id)
        service.amend_items(batch.id, [BatchItemRequest(sheets.id, 1)], test_actor_id)

        with pytest.raises(OptimisticLockError):
            service.amend_items(
                batch.id, [BatchItemRequest(sheets.id, 2)], test_actor_id, expected_version=1
            )

    def test_notes_and_pickup_date(self, service, client, sheets, towels, test_actor_id):
        batch = self.setup_batch(service, client, sheets, towels, test_actor_id)
        info = service.amend_items(
            batch.id,
            [BatchItemRequest(sheets.id, 1)],
            test_actor_id,
            notes="  bag torn  ",
            pickup_date=date(2024, 3, 16),
        )
        assert info.notes == "bag torn"
        assert info.pickup_date == date(2024, 3, 16)
        assert info.paper_batch_id == batch.paper_batch_id

    def test_unknown_batch(self, service, test_actor_id):
        with pytest.raises(BatchNotFoundError):
            service.amend_items(uuid4(), [], test_actor_id)


class TestChangeStatus:
    def test_forward_step(self, service, client, sheets, test_actor_id, captured_logs):
        batch = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1)), test_actor_id
        )
        info = service.change_status(batch.id, "washing", test_actor_id, expected_version=1)

        assert info.status == BatchStatus.WASHING
        assert info.version == 2
        assert any(r["message"] == "batch_status_changed" for r in captured_logs())

    def test_skip_rejected(self, service, client, sheets, test_actor_id):
        batch = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1)), test_actor_id
        )
        with pytest.raises(InvalidTransitionError):
            service.change_status(batch.id, BatchStatus.DELIVERED, test_actor_id)
        assert service.get_batch(batch.id).status == BatchStatus.PICKUP

    def test_full_lifecycle(self, service, client, sheets, test_actor_id):
        batch = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1)), test_actor_id
        )
        for status in ("washing", "completed", "delivered"):
            info = service.change_status(batch.id, status, test_actor_id)
        assert info.status == BatchStatus.DELIVERED

        with pytest.raises(InvalidTransitionError):
            service.change_status(batch.id, "washing", test_actor_id)


class TestReadModels:
    def test_summary_matches_cached_total(self, service, client, sheets, towels, test_actor_id):
        batch = service.create_batch(
            _request(
                client,
                BatchItemRequest(sheets.id, 10, 8, express_delivery=True),
                BatchItemRequest(towels.id, 4, 4),
            ),
            test_actor_id,
        )
        summary = service.get_summary(batch.id)
        assert summary.grand_total == batch.total_amount
        assert summary.total_items_sent == 14

    def test_persisted_total_matches_summary_after_reload(
        self, service, session, client, sheets, test_actor_id
    ):
        batch = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 1000, 999, price_per_item="5.55")),
            test_actor_id,
        )
        session.expire_all()

        summary = service.get_summary(batch.id)
        assert summary.grand_total == service.get_batch(batch.id).total_amount
        # 5544.45 received + 5.55 shortfall = 5550.00 + VAT 832.50
        assert summary.grand_total == Decimal("6382.50")

    def test_invoice(self, service, client, sheets, test_actor_id):
        batch = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 10, 8)), test_actor_id
        )
        invoice = service.get_invoice(batch.id)
        assert invoice.client_name == "Seaside Hotel"
        assert invoice.paper_batch_id == "PB-2024-03-001"
        assert invoice.lines[0].category_name == "Sheets"
        assert invoice.total == batch.total_amount

    def test_statistics(self, service, client, sheets, towels, test_actor_id):
        batch = service.create_batch(
            _request(client, BatchItemRequest(sheets.id, 3), BatchItemRequest(towels.id, 9)),
            test_actor_id,
        )
        assert service.get_statistics(batch.id).top_category == "Towels"

    def test_unknown_batch(self, service):
        with pytest.raises(BatchNotFoundError):
            service.get_summary(uuid4())
