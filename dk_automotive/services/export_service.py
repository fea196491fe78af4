"""
Service d'export CSV/Excel / CSV/Excel export service.
Génère des fichiers CSV et XLSX à partir de listes de dictionnaires (statistiques, missions).
"""

import csv
import io
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font


class ExportService:
    """Export de données vers CSV/XLSX / Data export to CSV/XLSX."""

    @staticmethod
    def model_to_dict(obj: Any, fields: list[str]) -> dict[str, Any]:
        """Extraire les attributs d'un modèle SQLAlchemy / Extract model attributes to dict."""
        result = {}
        for f in fields:
            val = getattr(obj, f, None)
            if hasattr(val, "value"):
                val = val.value
            elif hasattr(val, "tzinfo") and val is not None and val.tzinfo is not None:
                # openpyxl refuse les datetimes avec fuseau / openpyxl rejects tz-aware datetimes
                val = val.replace(tzinfo=None)
            result[f] = val
        return result

    @staticmethod
    def _write_sheet(ws, rows: list[dict], fields: list[str]) -> None:
        # En-têtes / Headers
        for col_idx, field in enumerate(fields, 1):
            ws.cell(row=1, column=col_idx, value=field).font = Font(bold=True)

        # Données / Data rows
        for row_idx, row in enumerate(rows, 2):
            for col_idx, field in enumerate(fields, 1):
                value = row.get(field)
                if hasattr(value, "as_tuple"):  # Decimal
                    value = float(value)
                ws.cell(row=row_idx, column=col_idx, value=value)

    @staticmethod
    def to_csv(rows: list[dict], fields: list[str]) -> bytes:
        """Générer un CSV UTF-8 BOM avec séparateur ';' / Generate UTF-8 BOM CSV with ';' separator."""
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=fields, delimiter=";", extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({f: row.get(f, "") for f in fields})
        return ("\ufeff" + output.getvalue()).encode("utf-8")

    @staticmethod
    def to_xlsx(rows: list[dict], fields: list[str], sheet_name: str = "Data") -> bytes:
        """Générer un fichier Excel / Generate an Excel file."""
        return ExportService.to_xlsx_sheets({sheet_name: (rows, fields)})

    @staticmethod
    def to_xlsx_sheets(sheets: dict[str, tuple[list[dict], list[str]]]) -> bytes:
        """Classeur multi-feuilles / Multi-sheet workbook: {title: (rows, fields)}."""
        wb = Workbook()
        wb.remove(wb.active)
        for title, (rows, fields) in sheets.items():
            ws = wb.create_sheet(title=title[:31])
            ExportService._write_sheet(ws, rows, fields)

        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()
