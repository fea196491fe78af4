"""
Génération PDF / PDF rendering (reportlab platypus).
Fiche de mission, devis, facture client et rapport statistique.
Mission sheet, quote, client invoice and statistics report.
"""

import io
from datetime import date
from decimal import Decimal
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from dk_automotive.config import settings
from dk_automotive.models.mission import Mission
from dk_automotive.models.user import Profile

_styles = getSampleStyleSheet()
STYLE_NORMAL = ParagraphStyle("dk_normal", parent=_styles["Normal"], fontSize=9.5, leading=12)
STYLE_RIGHT = ParagraphStyle("dk_right", parent=STYLE_NORMAL, alignment=TA_RIGHT)
STYLE_SUBTLE = ParagraphStyle("dk_subtle", parent=STYLE_NORMAL, fontSize=8, textColor=colors.grey)
STYLE_TITLE = ParagraphStyle("dk_title", parent=_styles["Heading1"], alignment=TA_CENTER, fontSize=16, spaceAfter=8)
STYLE_H2 = ParagraphStyle("dk_h2", parent=_styles["Heading2"], fontSize=11, textColor=colors.HexColor("#111827"))

HEADER_BG = colors.HexColor("#1f2937")
GRID_COLOR = colors.HexColor("#d1d5db")


def _p(text, style=STYLE_NORMAL) -> Paragraph:
    return Paragraph(escape("" if text is None else str(text)).replace("\n", "<br/>"), style)


def _money(value) -> str:
    amount = Decimal(value or 0).quantize(Decimal("0.01"))
    return f"{amount:,.2f} €".replace(",", " ")


def _address(address: dict | None) -> str:
    if not address:
        return "-"
    if address.get("formatted_address"):
        return address["formatted_address"]
    parts = [address.get("street"), " ".join(filter(None, [address.get("postal_code"), address.get("city")]))]
    return ", ".join(p for p in parts if p) or "-"


def _slot(day: str | None, start: str | None, end: str | None) -> str:
    if not day:
        return "Non planifié"
    if start and end:
        return f"{day} {start}-{end}"
    return day


def _grid(rows: list[list], col_widths: list[float], header: bool = True) -> Table:
    table = Table(rows, colWidths=col_widths, repeatRows=1 if header else 0)
    commands = [
        ("GRID", (0, 0), (-1, -1), 0.4, GRID_COLOR),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
    ]
    if header:
        commands += [
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ]
    table.setStyle(TableStyle(commands))
    return table


def _company_header(right_text: str) -> Table:
    company = Paragraph(
        f"<b>{escape(settings.COMPANY_NAME)}</b><br/>{escape(settings.COMPANY_ADDRESS)}"
        + (f"<br/>SIRET {escape(settings.COMPANY_SIRET)}" if settings.COMPANY_SIRET else "")
        + f"<br/>{escape(settings.COMPANY_EMAIL)}",
        STYLE_NORMAL,
    )
    header = Table([[company, _p(right_text, STYLE_RIGHT)]], colWidths=[9 * cm, 8 * cm])
    header.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    return header


def _build(elements: list) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4, leftMargin=2 * cm, rightMargin=2 * cm, topMargin=1.5 * cm, bottomMargin=1.5 * cm,
        title=settings.COMPANY_NAME,
    )
    doc.build(elements)
    return buf.getvalue()


def _vehicle_rows(mission: Mission) -> list[list]:
    return [
        ["Catégorie", mission.vehicle_category.value],
        ["Marque / Modèle", " ".join(filter(None, [mission.vehicle_make, mission.vehicle_model])) or "-"],
        ["Immatriculation", mission.vehicle_registration or "-"],
        ["VIN", mission.vehicle_vin or "-"],
        ["Année / Énergie", f"{mission.vehicle_year or '-'} / {mission.vehicle_fuel or '-'}"],
    ]


def _client_block(client: Profile | None) -> str:
    if client is None:
        return "-"
    lines = []
    if client.client and client.client.company_name:
        lines.append(client.client.company_name)
    lines.append(client.full_name or client.email)
    if client.client and client.client.billing_address:
        lines.append(_address(client.client.billing_address))
    if client.client and client.client.siret:
        lines.append(f"SIRET {client.client.siret}")
    return "\n".join(lines)


class PdfService:
    """Rendu des documents PDF / PDF document rendering."""

    @staticmethod
    def mission_sheet(mission: Mission) -> bytes:
        """Fiche de mission (usage opérationnel, sans prix) / Mission sheet, without prices."""
        elements = [
            _company_header(f"Fiche de mission\n{mission.full_number}"),
            Spacer(1, 0.4 * cm),
            Paragraph(f"Fiche de mission {escape(mission.full_number)}", STYLE_TITLE),
            _p(f"Statut : {mission.status.value}", STYLE_SUBTLE),
            Spacer(1, 0.3 * cm),
            Paragraph("Enlèvement / Livraison", STYLE_H2),
            _grid([
                ["", "Enlèvement", "Livraison"],
                ["Adresse", _p(_address(mission.pickup_address)), _p(_address(mission.delivery_address))],
                ["Créneau",
                 _slot(mission.d1_pec, mission.h1_pec, mission.h2_pec),
                 _slot(mission.d2_liv, mission.h1_liv, mission.h2_liv)],
                ["Contact", _p(mission.contact_pickup_name or "-"), _p(mission.contact_delivery_name or "-")],
                ["Téléphone", mission.contact_pickup_phone or "-", mission.contact_delivery_phone or "-"],
                ["Email", _p(mission.contact_pickup_email or "-"), _p(mission.contact_delivery_email or "-")],
            ], [3 * cm, 7 * cm, 7 * cm]),
            Spacer(1, 0.3 * cm),
            Paragraph("Véhicule", STYLE_H2),
            _grid(_vehicle_rows(mission), [5 * cm, 12 * cm], header=False),
            Spacer(1, 0.3 * cm),
            _p(f"Distance estimée : {mission.distance_km} km"),
            _p(f"Chauffeur : {(mission.chauffeur.full_name or mission.chauffeur.email) if mission.chauffeur else 'Non assigné'}"),
        ]
        if mission.notes:
            elements += [Spacer(1, 0.3 * cm), Paragraph("Notes", STYLE_H2), _p(mission.notes)]
        return _build(elements)

    @staticmethod
    def _priced_document(mission: Mission, title: str, number: str, client: Profile | None, issued: date) -> bytes:
        elements = [
            _company_header(f"{title} {number}\nDate : {issued.strftime('%d/%m/%Y')}"),
            Spacer(1, 0.5 * cm),
            Paragraph(f"{escape(title)} {escape(number)}", STYLE_TITLE),
            _grid([["Client"], [_p(_client_block(client))]], [17 * cm]),
            Spacer(1, 0.4 * cm),
            _grid([
                ["Désignation", "Distance", "Montant HT"],
                [
                    _p(
                        f"Convoyage {mission.full_number} ({mission.vehicle_category.value}) : "
                        f"{_address(mission.pickup_address)} → {_address(mission.delivery_address)}"
                    ),
                    f"{mission.distance_km} km",
                    _money(mission.price_ht),
                ],
            ], [11 * cm, 2.5 * cm, 3.5 * cm]),
            Spacer(1, 0.3 * cm),
            _grid([
                ["Total HT", _money(mission.price_ht)],
                [f"TVA {mission.vat_rate} %", _money(Decimal(mission.price_ttc) - Decimal(mission.price_ht))],
                ["Total TTC", _money(mission.price_ttc)],
            ], [13.5 * cm, 3.5 * cm], header=False),
        ]
        return _build(elements)

    @staticmethod
    def quote(mission: Mission, client: Profile | None = None, issued: date | None = None) -> bytes:
        """Devis / Quote."""
        return PdfService._priced_document(
            mission, "Devis", f"DEV-{mission.mission_number}", client or mission.client, issued or date.today()
        )

    @staticmethod
    def invoice(mission: Mission, client: Profile | None = None, issued: date | None = None) -> bytes:
        """Facture client (mission livrée ou terminée) / Client invoice (delivered or closed mission)."""
        issued = issued or (mission.completion_date.date() if mission.completion_date else date.today())
        return PdfService._priced_document(
            mission, "Facture", f"FAC-{mission.mission_number}", client or mission.client, issued
        )

    @staticmethod
    def statistics(stats: dict) -> bytes:
        """Rapport statistique / Statistics report from StatsService.admin_statistics."""
        totals = stats["totals"]
        period = f"{stats.get('date_from') or '...'} → {stats.get('date_to') or '...'}"
        elements = [
            _company_header(f"Rapport statistique\n{period}"),
            Spacer(1, 0.4 * cm),
            Paragraph("Statistiques", STYLE_TITLE),
            _grid([
                ["Missions", str(totals["missions"])],
                ["Réalisées", str(totals["completed"])],
                ["Annulées", str(totals["cancelled"])],
                ["CA HT", _money(totals["revenue_ht"])],
                ["CA TTC", _money(totals["revenue_ttc"])],
                ["Coût chauffeurs HT", _money(totals["driver_cost_ht"])],
                ["Marge HT", f"{_money(totals['margin_ht'])} ({totals['margin_rate']} %)"],
            ], [8 * cm, 9 * cm], header=False),
        ]
        sections = [
            ("Par catégorie", "by_category", "vehicle_category"),
            ("Par mois", "by_month", "month"),
            ("Par client", "by_client", "client"),
            ("Par chauffeur", "by_driver", "driver"),
        ]
        for title, key, label in sections:
            rows = stats.get(key) or []
            if not rows:
                continue
            elements += [Spacer(1, 0.4 * cm), Paragraph(title, STYLE_H2)]
            data = [["", "Missions", "CA HT", "Coût chauffeur", "Marge HT"]]
            for row in rows:
                data.append([
                    _p(row[label]), str(row["missions"]), _money(row["revenue_ht"]),
                    _money(row["driver_cost_ht"]), _money(row["margin_ht"]),
                ])
            elements.append(_grid(data, [5 * cm, 2 * cm, 3.3 * cm, 3.4 * cm, 3.3 * cm]))
        return _build(elements)
