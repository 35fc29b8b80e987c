"""Tests des modèles / Model tests."""

from datetime import date, timedelta

from ltipn.models.booking import Booking, BookingStatus, BookingTemporisation, CreatorResponse
from ltipn.models.camion import Camion
from ltipn.models.user import User, UserRole
from ltipn.models.voyage import DepartureType, Voyage, VoyageStatus


def test_enums_persist_external_values():
    assert BookingStatus.TEMPORISED.value == "Temporised"
    assert CreatorResponse.REFUSED.value == "Refused"
    assert VoyageStatus.IN_PROGRESS.value == "InProgress"
    assert DepartureType.EMBALLAGE.value == "Emballage"
    assert UserRole.TRANS_RESPO.value == "Trans_Respo"


def test_repr():
    booking = Booking(booking_reference="BK20261019001", status=BookingStatus.PENDING)
    assert repr(booking) == "<Booking BK20261019001 - Pending>"
    voyage = Voyage(voyage_number=2, booking_id=7, status=VoyageStatus.PLANNED)
    assert "#2" in repr(voyage)
    assert "12345-A-1" in repr(Camion(camion_matricule="12345-A-1"))


def test_full_name_falls_back_to_username():
    assert User(username="sara", first_name="Sara", last_name="Alami").full_name == "Sara Alami"
    assert User(username="sara", first_name="", last_name="").full_name == "sara"


def test_temporisation_countdown_and_overdue():
    upcoming = BookingTemporisation(
        estimated_validation_date=date.today() + timedelta(days=3),
        creator_response=CreatorResponse.ACCEPTED,
    )
    assert upcoming.days_until_estimated_validation == 3
    assert not upcoming.is_overdue

    late = BookingTemporisation(
        estimated_validation_date=date.today() - timedelta(days=1),
        creator_response=CreatorResponse.ACCEPTED,
    )
    assert late.days_until_estimated_validation == -1
    assert late.is_overdue

    unanswered = BookingTemporisation(
        estimated_validation_date=date.today() - timedelta(days=1),
        creator_response=CreatorResponse.PENDING,
    )
    assert not unanswered.is_overdue
