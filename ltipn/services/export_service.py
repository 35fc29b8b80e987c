"""
Service d'export CSV/Excel / CSV/Excel export service.
Génère des fichiers CSV et XLSX à partir de listes de dictionnaires.
"""

import csv
import io
from datetime import date, time
from decimal import Decimal
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter


class ExportService:
    """Export de données vers CSV/XLSX / Data export to CSV/XLSX."""

    @staticmethod
    def format_value(value: Any) -> Any:
        """Valeur lisible pour une cellule / Cell-friendly value."""
        if value is None:
            return ""
        if isinstance(value, date):
            return value.strftime("%d/%m/%Y")
        if isinstance(value, time):
            return value.strftime("%H:%M")
        if isinstance(value, Decimal):
            return float(value)
        return value

    @staticmethod
    def to_csv(rows: list[dict], columns: dict[str, str]) -> bytes:
        """Générer un CSV UTF-8 BOM avec séparateur ';' / Generate UTF-8 BOM CSV with ';' separator."""
        output = io.StringIO()
        writer = csv.writer(output, delimiter=";")
        writer.writerow(columns.values())
        for row in rows:
            writer.writerow([ExportService.format_value(row.get(key)) for key in columns])
        return ("\ufeff" + output.getvalue()).encode("utf-8")

    @staticmethod
    def to_xlsx(rows: list[dict], columns: dict[str, str], sheet_name: str = "Data") -> bytes:
        """Générer un fichier Excel / Generate an Excel file."""
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name

        # En-têtes / Headers
        for col_idx, label in enumerate(columns.values(), 1):
            ws.cell(row=1, column=col_idx, value=label).font = Font(bold=True)
            ws.column_dimensions[get_column_letter(col_idx)].width = max(len(label) + 2, 12)
        ws.freeze_panes = "A2"

        # Données / Data rows
        for row_idx, row in enumerate(rows, 2):
            for col_idx, key in enumerate(columns, 1):
                ws.cell(row=row_idx, column=col_idx, value=ExportService.format_value(row.get(key)))

        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()
