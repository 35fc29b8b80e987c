"""Tests du moteur de voyages / Voyage engine tests."""

from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from conftest import as_principal, create_camion, create_society
from ltipn.models.booking import BookingStatus
from ltipn.models.voyage import DepartureType, VoyageStatus
from ltipn.schemas.booking import BookingCreate
from ltipn.schemas.voyage import (
    DepartInput,
    ExternalTruckInput,
    PricesInput,
    ReceptionInput,
    ReturnArrivalInput,
    ReturnDepartureInput,
    TruckSlotInput,
    VoyageCreate,
    VoyageUpdate,
)
from ltipn.services.booking_service import BookingService
from ltipn.services.errors import Conflict, Forbidden, InvalidState, QuotaExceeded, ValidationError
from ltipn.services.voyage_service import VoyageService, is_earlier

TODAY = date.today()


@pytest.fixture
async def booking(db, agent, validator, society):
    service = BookingService(db)
    booking = await service.create(
        BookingCreate(numero_bk="ORD-1", society_id=society.id, type_voyage="DRY", nbr_ltc=2),
        as_principal(agent),
    )
    return await service.validate(booking.id, as_principal(validator))


@pytest.fixture
def service(db):
    return VoyageService(db)


@pytest.fixture
def ops(validator):
    return as_principal(validator)


def depart_input(camion_id=None, **kwargs) -> DepartInput:
    values = {
        "departure_type": DepartureType.EMPTY,
        "departure_city": "Agadir",
        "departure_date": TODAY,
        "truck": TruckSlotInput(camion_id=camion_id),
    }
    values.update(kwargs)
    return DepartInput(**values)


def return_input(camion_id, day=TODAY, at=None, city="Casablanca") -> ReturnDepartureInput:
    return ReturnDepartureInput(
        return_departure_date=day,
        return_departure_time=at,
        return_arrival_city=city,
        truck=TruckSlotInput(camion_id=camion_id),
    )


# --- Chronologie / Chronology ---

def test_is_earlier_compares_dates_then_times():
    assert is_earlier(TODAY, None, TODAY + timedelta(days=1), None)
    assert not is_earlier(TODAY + timedelta(days=1), time(1, 0), TODAY, time(23, 0))
    assert is_earlier(TODAY, time(9, 0), TODAY, time(10, 0))
    assert not is_earlier(TODAY, time(10, 0), TODAY, time(10, 0))
    # Heure manquante : meme jour accepte / Missing time: same day accepted
    assert not is_earlier(TODAY, None, TODAY, time(10, 0))


# --- Creation et quota / Creation and quota ---

@pytest.mark.asyncio
async def test_quota_is_enforced(service, booking, ops):
    first = await service.create_voyage(booking.id, VoyageCreate(numero_tc=" TC-1 "), ops)
    second = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-2"), ops)

    assert (first.voyage_number, second.voyage_number) == (1, 2)
    assert first.numero_tc == "TC-1"
    assert first.status == VoyageStatus.PLANNED
    assert first.currency == "MAD"
    assert first.society_principale_id == booking.society_id

    with pytest.raises(QuotaExceeded) as exc:
        await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-3"), ops)
    assert exc.value.code == "quota_exceeded"

    plan = await service.list_voyages(booking.id, ops)
    assert len(plan.voyages) == 2
    assert plan.remaining_voyages == 0
    assert not plan.can_add_voyage


@pytest.mark.asyncio
async def test_delete_frees_a_slot(service, booking, ops, admin):
    await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    second = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-2"), ops)

    await service.delete(second.id, as_principal(admin))

    plan = await service.list_voyages(booking.id, ops)
    assert plan.remaining_voyages == 1
    assert plan.can_add_voyage
    again = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-3"), ops)
    assert again.voyage_number == 2


@pytest.mark.asyncio
async def test_create_requires_validated_booking(db, agent, society, ops, service):
    pending = await BookingService(db).create(
        BookingCreate(numero_bk="ORD-2", society_id=society.id, type_voyage="DRY", nbr_ltc=1),
        as_principal(agent),
    )
    assert pending.status == BookingStatus.PENDING
    with pytest.raises(InvalidState):
        await service.create_voyage(pending.id, VoyageCreate(numero_tc="TC-1"), ops)


@pytest.mark.asyncio
async def test_create_rejects_blank_tc(service, booking, ops):
    with pytest.raises(ValidationError) as exc:
        await service.create_voyage(booking.id, VoyageCreate(numero_tc="  "), ops)
    assert exc.value.field == "numero_tc"


@pytest.mark.asyncio
async def test_agent_can_not_create_voyage(service, booking, agent):
    with pytest.raises(Forbidden):
        await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), as_principal(agent))


# --- Depart / Departure ---

@pytest.mark.asyncio
async def test_empty_departure_clears_secondary_society(db, service, booking, ops, camion):
    other = await create_society(db, "Sud Pack")
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)

    voyage = await service.depart(
        voyage.id,
        depart_input(camion.id, society_secondaire_id=other.id, type_emballage="cartons", departure_time=time(8, 30)),
        ops,
    )

    assert voyage.status == VoyageStatus.IN_PROGRESS
    assert voyage.society_secondaire_id is None
    assert voyage.type_emballage is None
    assert voyage.camion_first.camion_matricule == "12345-A-1"
    assert voyage.departure_time == time(8, 30)


@pytest.mark.asyncio
async def test_emballage_departure_requires_secondary_society(db, service, booking, ops, camion):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    with pytest.raises(ValidationError) as exc:
        await service.depart(voyage.id, depart_input(camion.id, departure_type=DepartureType.EMBALLAGE), ops)
    assert exc.value.field == "society_secondaire_id"

    other = await create_society(db, "Sud Pack")
    voyage = await service.depart(
        voyage.id,
        depart_input(
            camion.id, departure_type=DepartureType.EMBALLAGE, society_secondaire_id=other.id, type_emballage="caisses"
        ),
        ops,
    )
    assert voyage.society_secondaire.society_name == "Sud Pack"
    assert voyage.type_emballage == "caisses"


@pytest.mark.asyncio
async def test_departure_collects_field_errors(service, booking, ops):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    with pytest.raises(ValidationError) as exc:
        await service.depart(voyage.id, depart_input(departure_city="Rabat", departure_date=None), ops)
    assert exc.value.field is None
    assert set(exc.value.errors) == {"departure_city", "departure_date", "camion_first"}

    voyage = await service.get(voyage.id, ops)
    assert voyage.status == VoyageStatus.PLANNED


@pytest.mark.asyncio
async def test_departure_with_external_truck(service, booking, ops):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    external = ExternalTruckInput(
        society_transp_name="Transports Atlas",
        camion_matricule="99999-B-7",
        driver_name="Youssef",
        driver_phone="0611111111",
    )

    voyage = await service.depart(voyage.id, depart_input(truck=TruckSlotInput(external=external)), ops)

    assert voyage.camion_first.camion_matricule == "99999-B-7"
    assert voyage.camion_first.driver_name == "Youssef"


@pytest.mark.asyncio
async def test_departure_with_incomplete_external_truck(service, booking, ops):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    external = ExternalTruckInput(society_transp_name="Transports Atlas", camion_matricule="99999-B-7")
    with pytest.raises(ValidationError) as exc:
        await service.depart(voyage.id, depart_input(truck=TruckSlotInput(external=external)), ops)
    assert set(exc.value.errors) == {"camion_first.driver_name", "camion_first.driver_phone"}


@pytest.mark.asyncio
async def test_inactive_truck_is_rejected(db, service, booking, ops):
    parked = await create_camion(db, "55555-C-3", is_active=False)
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    with pytest.raises(ValidationError) as exc:
        await service.depart(voyage.id, depart_input(parked.id), ops)
    assert exc.value.field == "camion_first"


@pytest.mark.asyncio
async def test_truck_is_exclusive_while_on_the_road(db, service, booking, ops, camion):
    first = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    second = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-2"), ops)
    await service.depart(first.id, depart_input(camion.id), ops)

    with pytest.raises(ValidationError) as exc:
        await service.depart(second.id, depart_input(camion.id), ops)
    assert "still on the road" in exc.value.message

    # Reception faite : le camion aller est libere / Reception recorded: the outbound truck is free
    await service.record_reception(first.id, ReceptionInput(reception_date=TODAY), ops)
    second = await service.depart(second.id, depart_input(camion.id), ops)
    assert second.camion_first_id == camion.id

    with pytest.raises(ValidationError):
        await service.record_return_departure(first.id, return_input(camion.id), ops)


@pytest.mark.asyncio
async def test_departure_twice_is_invalid_state(service, booking, ops, camion):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    await service.depart(voyage.id, depart_input(camion.id), ops)
    with pytest.raises(InvalidState):
        await service.depart(voyage.id, depart_input(camion.id), ops)


# --- Reception et retour / Reception and return ---

@pytest.mark.asyncio
async def test_full_round_trip(db, service, booking, ops, camion, carrier):
    return_truck = await create_camion(db, "67890-B-2", carrier)
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)

    await service.depart(voyage.id, depart_input(camion.id, departure_time=time(6, 0)), ops)
    voyage = await service.record_reception(
        voyage.id, ReceptionInput(reception_date=TODAY + timedelta(days=1), reception_time=time(14, 0)), ops
    )
    assert voyage.status == VoyageStatus.IN_PROGRESS

    voyage = await service.record_return_departure(
        voyage.id, return_input(return_truck.id, day=TODAY + timedelta(days=2), at=time(7, 0)), ops
    )
    assert voyage.camion_second.camion_matricule == "67890-B-2"
    assert voyage.return_arrival_city == "Casablanca"

    voyage = await service.record_return_arrival(
        voyage.id, ReturnArrivalInput(return_arrival_date=TODAY + timedelta(days=3)), ops
    )
    assert voyage.status == VoyageStatus.COMPLETED
    assert voyage.return_arrival_date == TODAY + timedelta(days=3)

    with pytest.raises(InvalidState):
        await service.record_return_arrival(
            voyage.id, ReturnArrivalInput(return_arrival_date=TODAY + timedelta(days=4)), ops
        )


@pytest.mark.asyncio
async def test_reception_before_departure_time_is_rejected(service, booking, ops, camion):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    await service.depart(voyage.id, depart_input(camion.id, departure_time=time(10, 0)), ops)

    with pytest.raises(ValidationError) as exc:
        await service.record_reception(
            voyage.id, ReceptionInput(reception_date=TODAY, reception_time=time(9, 0)), ops
        )
    assert exc.value.field == "reception_date"

    with pytest.raises(ValidationError):
        await service.record_reception(voyage.id, ReceptionInput(reception_date=TODAY - timedelta(days=1)), ops)

    voyage = await service.record_reception(voyage.id, ReceptionInput(reception_date=TODAY), ops)
    assert voyage.reception_date == TODAY


@pytest.mark.asyncio
async def test_reception_requires_departure(service, booking, ops):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    with pytest.raises(InvalidState):
        await service.record_reception(voyage.id, ReceptionInput(reception_date=TODAY), ops)


@pytest.mark.asyncio
async def test_return_steps_follow_their_predecessor(db, service, booking, ops, camion, carrier):
    return_truck = await create_camion(db, "67890-B-2", carrier)
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    await service.depart(voyage.id, depart_input(camion.id), ops)

    with pytest.raises(InvalidState):
        await service.record_return_departure(voyage.id, return_input(return_truck.id), ops)
    with pytest.raises(InvalidState):
        await service.record_return_arrival(voyage.id, ReturnArrivalInput(return_arrival_date=TODAY), ops)

    await service.record_reception(voyage.id, ReceptionInput(reception_date=TODAY), ops)
    await service.record_return_departure(voyage.id, return_input(return_truck.id), ops)

    # Reception figee apres le depart retour / Reception frozen once the return departure is recorded
    with pytest.raises(InvalidState):
        await service.record_reception(voyage.id, ReceptionInput(reception_date=TODAY), ops)


@pytest.mark.asyncio
async def test_return_arrival_earlier_than_return_departure(db, service, booking, ops, camion, carrier):
    return_truck = await create_camion(db, "67890-B-2", carrier)
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    await service.depart(voyage.id, depart_input(camion.id), ops)
    await service.record_reception(voyage.id, ReceptionInput(reception_date=TODAY), ops)
    await service.record_return_departure(
        voyage.id, return_input(return_truck.id, day=TODAY + timedelta(days=1)), ops
    )

    with pytest.raises(ValidationError) as exc:
        await service.record_return_arrival(voyage.id, ReturnArrivalInput(return_arrival_date=TODAY), ops)
    assert exc.value.field == "return_arrival_date"
    voyage = await service.get(voyage.id, ops)
    assert voyage.status == VoyageStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_return_departure_rejects_unknown_city(db, service, booking, ops, camion, carrier):
    return_truck = await create_camion(db, "67890-B-2", carrier)
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    await service.depart(voyage.id, depart_input(camion.id), ops)
    await service.record_reception(voyage.id, ReceptionInput(reception_date=TODAY), ops)
    with pytest.raises(ValidationError) as exc:
        await service.record_return_departure(voyage.id, return_input(return_truck.id, city="Dakhla"), ops)
    assert exc.value.field == "return_arrival_city"


# --- Prix / Prices ---

@pytest.mark.asyncio
async def test_assign_prices(service, booking, ops):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)

    voyage = await service.assign_prices(
        voyage.id, PricesInput(price_principale=Decimal("1500.50"), currency=" eur "), ops
    )
    assert voyage.price_principale == Decimal("1500.50")
    assert voyage.currency == "EUR"

    voyage = await service.assign_prices(voyage.id, PricesInput(price_principale=Decimal("10")), ops)
    assert voyage.currency == "MAD"


@pytest.mark.asyncio
async def test_assign_prices_rejects_invalid_values(service, booking, ops):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    with pytest.raises(ValidationError) as exc:
        await service.assign_prices(
            voyage.id,
            PricesInput(price_principale=Decimal("-1"), price_secondaire=Decimal("5"), currency="E1"),
            ops,
        )
    assert set(exc.value.errors) == {"price_principale", "price_secondaire", "currency"}


@pytest.mark.asyncio
async def test_secondary_price_with_secondary_society(db, service, booking, ops, camion):
    other = await create_society(db, "Sud Pack")
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    await service.depart(
        voyage.id,
        depart_input(camion.id, departure_type=DepartureType.EMBALLAGE, society_secondaire_id=other.id),
        ops,
    )
    voyage = await service.assign_prices(
        voyage.id, PricesInput(price_principale=Decimal("900"), price_secondaire=Decimal("300")), ops
    )
    assert voyage.price_secondaire == Decimal("300")


# --- Administration ---

@pytest.mark.asyncio
async def test_edit_voyage_number_collision(service, booking, ops, admin):
    first = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-2"), ops)

    with pytest.raises(Conflict):
        await service.edit(first.id, VoyageUpdate(voyage_number=2), as_principal(admin))

    edited = await service.edit(first.id, VoyageUpdate(numero_tc="TC-1B", voyage_number=5), as_principal(admin))
    assert (edited.numero_tc, edited.voyage_number) == ("TC-1B", 5)


@pytest.mark.asyncio
async def test_edit_and_delete_are_admin_only(service, booking, ops):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    with pytest.raises(Forbidden):
        await service.edit(voyage.id, VoyageUpdate(numero_tc="X"), ops)
    with pytest.raises(Forbidden):
        await service.delete(voyage.id, ops)


@pytest.mark.asyncio
async def test_departed_voyage_can_not_be_deleted(service, booking, ops, admin, camion):
    voyage = await service.create_voyage(booking.id, VoyageCreate(numero_tc="TC-1"), ops)
    await service.depart(voyage.id, depart_input(camion.id), ops)
    with pytest.raises(InvalidState):
        await service.delete(voyage.id, as_principal(admin))
