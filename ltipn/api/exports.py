"""Routes Export CSV/Excel / Export API routes."""

import io
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ltipn.api.deps import require_roles
from ltipn.database import get_db
from ltipn.models.voyage import VoyageStatus
from ltipn.services.export_service import ExportService
from ltipn.services.identity import VALIDATORS, Principal
from ltipn.services.voyage_report import REPORT_COLUMNS, VoyageReportFilters, VoyageReportService

router = APIRouter()

_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@router.get("/voyages")
async def export_voyages(
    format: str = Query("xlsx", pattern="^(csv|xlsx)$"),
    date_from: date | None = None,
    date_to: date | None = None,
    booking_reference: str | None = None,
    numero_bk: str | None = None,
    numero_tc: str | None = None,
    camion_id: int | None = None,
    society_id: int | None = None,
    status: VoyageStatus | None = None,
    type_voyage: str | None = None,
    departure_city: str | None = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_roles(*VALIDATORS)),
):
    """Exporter l'état de suivi des voyages / Export the voyage tracking report."""
    filters = VoyageReportFilters(
        date_from=date_from,
        date_to=date_to,
        booking_reference=booking_reference,
        numero_bk=numero_bk,
        numero_tc=numero_tc,
        camion_id=camion_id,
        society_id=society_id,
        status=status,
        type_voyage=type_voyage,
        departure_city=departure_city,
    )
    voyages = await VoyageReportService.fetch(db, filters)
    rows = VoyageReportService.rows(voyages)

    if format == "csv":
        content = ExportService.to_csv(rows, REPORT_COLUMNS)
    else:
        content = ExportService.to_xlsx(rows, REPORT_COLUMNS, sheet_name="Etat Suivi Voyages")

    filename = f"etat_suivi_voyages_{date.today():%Y%m%d}.{format}"
    return StreamingResponse(
        io.BytesIO(content),
        media_type=_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
