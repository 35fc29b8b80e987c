"""
Generateur de references de reservation / Booking reference generator.

Format : BK{yyyyMMdd}{seq:03d}. Le compteur du jour est incremente par un
upsert atomique (INSERT ... ON CONFLICT DO UPDATE ... RETURNING) ; la premiere
ligne du jour part de 1 + max(suffixe existant).
Format: BK{yyyyMMdd}{seq:03d}. The day counter is advanced with an atomic
upsert; the first row of a day starts at 1 + max(existing suffix).
"""

from datetime import date

from sqlalchemy import Integer, cast, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.models.booking import Booking, BookingSequence

REFERENCE_PREFIX = "BK"


def reference_prefix(day: date) -> str:
    """Prefixe du jour / Day prefix, e.g. BK20261019."""
    return f"{REFERENCE_PREFIX}{day:%Y%m%d}"


def format_reference(day: date, sequence: int) -> str:
    return f"{reference_prefix(day)}{sequence:03d}"


def parse_sequence(reference: str, day: date) -> int | None:
    """Extraire le numero de sequence / Extract the sequence number (None if not that day)."""
    prefix = reference_prefix(day)
    if not reference.startswith(prefix):
        return None
    suffix = reference[len(prefix):]
    return int(suffix) if suffix.isdigit() else None


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Unsupported dialect for booking sequences: {dialect}")


async def next_booking_reference(db: AsyncSession, day: date | None = None) -> str:
    """Reserver la prochaine reference du jour / Reserve the next reference for the day."""
    day = day or date.today()
    prefix = reference_prefix(day)

    # Valeur initiale : 1 + max(suffixe) des references du jour / Seed: 1 + max(suffix) of the day
    seed = (
        select(
            func.coalesce(
                func.max(cast(func.substr(Booking.booking_reference, len(prefix) + 1), Integer)), 0
            ) + 1
        )
        .where(Booking.booking_reference.like(f"{prefix}%"))
        .scalar_subquery()
    )

    insert = _insert_for(db)
    stmt = (
        insert(BookingSequence)
        .values(day=f"{day:%Y%m%d}", last_value=seed)
        .on_conflict_do_update(
            index_elements=[BookingSequence.day],
            set_={"last_value": BookingSequence.last_value + 1},
        )
        .returning(BookingSequence.last_value)
    )
    result = await db.execute(stmt)
    return format_reference(day, result.scalar_one())
