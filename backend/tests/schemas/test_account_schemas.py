"""Tests for profile, address, order and avatar schemas."""
from datetime import UTC, datetime

import pytest

from schemas.address import Address, AddressForm, AddressPayload
from schemas.avatar import DEFAULT_AVATAR_ID, resolve_avatar
from schemas.order import Order, OrderStatus, status_display
from schemas.profile import Profile
from schemas.session import Session
from tests.conftest import address_json


class TestStatusDisplay:
    """Tests for order status presentation."""

    @pytest.mark.parametrize("status", ["paid", "shipped", "delivered", "sige_registered", "confirmed"])
    def test__status_display__trackable_statuses(self, status: str) -> None:
        assert status_display(status).is_trackable

    @pytest.mark.parametrize("status", ["awaiting_payment", "pending"])
    def test__status_display__in_progress_statuses(self, status: str) -> None:
        display = status_display(status)
        assert display.category == "in_progress"
        assert not display.is_trackable

    def test__status_display__cancelled(self) -> None:
        display = status_display("cancelled")
        assert display.category == "cancelled"
        assert display.label == "Cancelado"

    @pytest.mark.parametrize("status", ["refunded", "", None])
    def test__status_display__unknown_falls_back_to_pending(self, status: str | None) -> None:
        display = status_display(status)
        assert display.status == OrderStatus.PENDING
        assert display.label == "Pendente"

    def test__order__keeps_raw_status_and_exposes_display(self) -> None:
        order = Order.model_validate({
            "localOrderId": "o-1",
            "status": "chargeback",
            "createdAt": "2026-01-02T10:00:00Z",
            "paymentMethod": "pix",
        })
        assert order.status == "chargeback"
        assert order.display.label == "Pendente"
        assert order.payment_label == "PIX"


class TestResolveAvatar:
    """Tests for avatar display resolution."""

    def test__resolve_avatar__custom_photo_wins(self) -> None:
        display = resolve_avatar("robot4", "https://cdn.example.com/a.png")
        assert display.kind == "custom"
        assert display.source == "https://cdn.example.com/a.png"

    def test__resolve_avatar__stock_avatar(self) -> None:
        display = resolve_avatar("robot4", None)
        assert (display.kind, display.source) == ("stock", "robot4")

    @pytest.mark.parametrize("avatar_id", [None, "", "robot99"])
    def test__resolve_avatar__unknown_falls_back_to_default(self, avatar_id: str | None) -> None:
        assert resolve_avatar(avatar_id, None).source == DEFAULT_AVATAR_ID


class TestProfile:
    """Tests for the Profile model."""

    def test__profile__parses_wire_names(self, sample_profile: dict) -> None:
        profile = Profile.model_validate(sample_profile)
        assert profile.tax_id == "52998224725"
        assert profile.avatar_id == "robot3"
        assert profile.first_name == "Maria"
        assert not profile.is_incomplete

    @pytest.mark.parametrize("missing", ["name", "phone", "cpf"])
    def test__profile__incomplete_without_required_data(
        self, sample_profile: dict, missing: str,
    ) -> None:
        sample_profile[missing] = ""
        assert Profile.model_validate(sample_profile).is_incomplete


class TestAddress:
    """Tests for address schemas."""

    def test__address__display_lines(self) -> None:
        address = Address.model_validate(address_json(complement="Apto 2"))
        assert address.display_line == "Avenida Brasil, 100 - Apto 2 - Centro"
        assert address.city_state_line == "Maringá - PR - 87020-025"

    def test__address_payload__serializes_camel_case(self) -> None:
        payload = AddressPayload(
            cep="87020025", street="Rua A", number="1", neighborhood="Centro",
            city="Maringá", state="PR", is_default=True,
        )
        assert payload.to_wire()["isDefault"] is True

    def test__address_form__from_address_masks_cep(self) -> None:
        form = AddressForm.from_address(Address.model_validate(address_json()))
        assert form.cep == "87020-025"
        assert form.street == "Avenida Brasil"


class TestSession:
    """Tests for token response parsing."""

    def test__from_token_response__uses_absolute_expiry(self) -> None:
        session = Session.from_token_response({
            "access_token": "a",
            "refresh_token": "r",
            "expires_at": 1_800_000_000,
            "user": {"id": "u-1", "email": "maria@example.com"},
        })
        assert session.expires_at == datetime.fromtimestamp(1_800_000_000, UTC)
        assert session.user_id == "u-1"

    def test__from_token_response__falls_back_to_expires_in(self) -> None:
        now = datetime(2026, 1, 1, tzinfo=UTC)
        session = Session.from_token_response(
            {"access_token": "a", "refresh_token": "r", "expires_in": 120, "user": {"id": "u"}},
            now=now,
        )
        assert session.expires_within(120, now)
        assert not session.expires_within(60, now)
