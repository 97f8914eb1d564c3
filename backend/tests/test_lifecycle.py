# tests/test_lifecycle.py
from __future__ import annotations

from datetime import timedelta

import pytest

from salesdesk.core.lifecycle import apply_sale_update, can_set_status, plan_status_change
from salesdesk.core.results import ErrorKind
from salesdesk.core.statuses import SaleStatus
from salesdesk.schemas.records import ContactEvent

from factories import AFF1_ID, BASE_DATE, CARE_ID, LOGISTICS_ID, MANAGER_ID, ADMIN_ID, MemoryStore, make_sale

NOW = BASE_DATE + timedelta(hours=2)


@pytest.fixture()
def people():
    store = MemoryStore()
    return {u.id: u for u in store.users}


def test_customer_care_confirms_and_is_stamped_as_contact(people):
    care = people[CARE_ID]
    sale = make_sale("S1")

    result = plan_status_change(actor=care, sale=sale, target=SaleStatus.CONFERMATO, now=NOW)

    assert result.success
    update = result.value
    assert update.status == SaleStatus.CONFERMATO
    assert update.status_updated_at == NOW
    assert update.last_contacted_by == CARE_ID
    assert update.last_contacted_by_name == care.name
    assert update.contact_history is None


def test_shipping_requires_a_tracking_code(people):
    logistics = people[LOGISTICS_ID]
    sale = make_sale("S1", status=SaleStatus.CONFERMATO)

    missing = plan_status_change(actor=logistics, sale=sale, target=SaleStatus.SPEDITO, tracking_code="   ")
    assert not missing.success
    assert missing.error.kind == ErrorKind.VALIDATION
    assert missing.error.code == "tracking_code_required"

    shipped = plan_status_change(actor=logistics, sale=sale, target=SaleStatus.SPEDITO, tracking_code=" BRT123 ")
    assert shipped.success
    assert shipped.value.tracking_code == "BRT123"
    # logistics edits are not customer contacts
    assert shipped.value.last_contacted_by is None


def test_tracking_code_is_only_kept_for_shipped(people):
    result = plan_status_change(
        actor=people[ADMIN_ID],
        sale=make_sale("S1"),
        target=SaleStatus.CONSEGNATO,
        tracking_code="BRT123",
    )

    assert result.success
    assert result.value.tracking_code is None


@pytest.mark.parametrize(
    "actor_id,target",
    [
        (LOGISTICS_ID, SaleStatus.CONTATTATO),
        (CARE_ID, SaleStatus.SPEDITO),
        (CARE_ID, SaleStatus.CONSEGNATO),
        (AFF1_ID, SaleStatus.CONFERMATO),
    ],
)
def test_roles_outside_their_status_set_are_refused(people, actor_id, target):
    result = plan_status_change(actor=people[actor_id], sale=make_sale("S1"), target=target, tracking_code="X")

    assert not result.success
    assert result.error.kind == ErrorKind.FORBIDDEN
    assert result.error.code == "status_not_allowed"


@pytest.mark.parametrize("target", [SaleStatus.DUPLICATO, SaleStatus.TEST])
def test_system_statuses_cannot_be_set_by_anyone(people, target):
    result = plan_status_change(actor=people[ADMIN_ID], sale=make_sale("S1"), target=target)

    assert not result.success
    assert result.error.code == "status_system_only"
    assert not can_set_status(people[MANAGER_ID], target)


@pytest.mark.parametrize("locked", [SaleStatus.DUPLICATO, SaleStatus.TEST])
def test_sales_in_system_statuses_are_locked(people, locked):
    result = plan_status_change(actor=people[ADMIN_ID], sale=make_sale("S1", status=locked), target=SaleStatus.CONFERMATO)

    assert not result.success
    assert result.error.code == "sale_locked"


def test_note_appends_one_history_event(people):
    care = people[CARE_ID]
    earlier = ContactEvent(at=BASE_DATE, user_id=CARE_ID, user_name=care.name, status=SaleStatus.CONTATTATO, note="prima chiamata")
    sale = make_sale("S1", status=SaleStatus.CONTATTATO, contact_history=[earlier])

    result = plan_status_change(actor=care, sale=sale, target=SaleStatus.NON_RAGGIUNGIBILE, note=" non risponde ", now=NOW)

    update = result.value
    assert update.notes == "non risponde"
    assert len(update.contact_history) == 2
    assert update.contact_history[0] == earlier
    assert update.contact_history[1].note == "non risponde"
    assert update.contact_history[1].status == SaleStatus.NON_RAGGIUNGIBILE
    assert update.contact_history[1].at == NOW


def test_blank_note_leaves_notes_and_history_alone(people):
    result = plan_status_change(actor=people[CARE_ID], sale=make_sale("S1", notes="vecchia nota"), target=SaleStatus.CONTATTATO, note="  ")

    assert result.value.notes is None
    assert result.value.contact_history is None


def test_apply_sale_update_returns_a_new_record(people):
    sale = make_sale("S1", notes="vecchia nota")
    update = plan_status_change(
        actor=people[CARE_ID], sale=sale, target=SaleStatus.CONFERMATO, note="confermato al telefono", now=NOW
    ).value

    updated = apply_sale_update(sale, update)

    assert updated.status == SaleStatus.CONFERMATO
    assert updated.notes == "confermato al telefono"
    assert updated.last_contacted_by == CARE_ID
    assert isinstance(updated.contact_history[0], ContactEvent)
    # untouched fields survive, original is unchanged
    assert updated.customer_name == sale.customer_name
    assert sale.status == SaleStatus.IN_ATTESA
    assert sale.notes == "vecchia nota"
