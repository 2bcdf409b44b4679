"""
CCSA farmer certificate: page 1 certifies the farmer, pages 2..N render one
farm each with its boundary schematic.

Layout is written against the PageSink and TextMetrics protocols in
millimetres from the top-left corner of an A4 page; `render` replays it into
a PDF.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from fims.config import CertificateConfig
from fims.geometry import MIN_DRAWABLE_POINTS, Region, project_polygon
from fims.pdf import PAGE_HEIGHT_MM, PAGE_WIDTH_MM, ReportLabMetrics, render_pdf
from fims.polygon import Recognized, polygon_for_farm
from fims.qr import LocalQrProvider, QrCodeProvider, acquire_qr
from fims.schemas import ClusterLeadRecord, FarmerRecord, FarmRecord
from fims.sink import Font, PageSequence, PageSink, Stroke, TextMetrics
from fims.utils import (
    format_crop_name,
    format_date,
    format_full_name,
    format_location,
    format_number,
    to_title_case,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

NAVY = (0, 51, 102)
GREEN = (0, 102, 51)
RED = (255, 0, 0)
GRAY_TEXT = (80, 80, 80)
BODY_TEXT = (60, 60, 60)
LABEL_TEXT = (100, 100, 100)
MUTED_TEXT = (150, 150, 150)
RULE = (200, 200, 200)
BOX_EDGE = (220, 220, 220)
BOX_FILL = (245, 245, 245)
POLYGON_FILL = (0, 153, 76)

MARGIN = 20.0
CONTENT_WIDTH = PAGE_WIDTH_MM - MARGIN * 2
CENTER_X = PAGE_WIDTH_MM / 2

QR_SIZE = 25.0
QR_X = PAGE_WIDTH_MM - MARGIN - QR_SIZE
QR_Y = 15.0
QR_UNAVAILABLE = "QR Code Unavailable"

BOX_WIDTH = 53.0
BOX_HEIGHT = 45.0
BOX_GAP = 5.0
BOX_VALUE_MAX_WIDTH = BOX_WIDTH - 25.0

MAP_REGION = Region(x=MARGIN, y=140.0, width=CONTENT_WIDTH, height=125.0)
MAP_INNER_MARGIN = 10.0
NO_POLYGON = "No GPS polygon data available for map visualization."
POLYGON_CAPTION = "Polygon visualization based on GPS coordinates"

NOT_AVAILABLE = "N/A"


class CertificateBuildError(ValueError):
    """The farmer record cannot be certified (missing identity)."""


@dataclass(frozen=True)
class CertificateDocument:
    certificate_id: str
    verification_url: str
    issued_at: datetime
    filename: str
    page_count: int
    pdf: bytes


def certificate_id(farmer_id: str, year: int) -> str:
    return f"CCSA-{year}-{farmer_id[-6:].upper()}"


def verification_url(base_url: str, cert_id: str) -> str:
    return f"{base_url.rstrip('/')}/verify-certificate/{cert_id}"


def truncate_to_width(
    metrics: TextMetrics, text: str, max_width: float, font: Font, ellipsis: str = "..."
) -> str:
    if metrics.width(text, font) <= max_width:
        return text
    cut = text
    while cut and metrics.width(cut.rstrip() + ellipsis, font) > max_width:
        cut = cut[:-1]
    return cut.rstrip() + ellipsis


def _fit_font(metrics: TextMetrics, text: str, font: Font, max_width: float, min_size: float) -> Font:
    size = font.size
    while size > min_size and metrics.width(text, Font(font.name, size, font.color)) > max_width:
        size -= 1
    return Font(font.name, size, font.color)


def _or_na(value: Optional[str]) -> str:
    return value if value else NOT_AVAILABLE


def _secondary_crops(value) -> str:
    if not value:
        return ""
    crops = value if isinstance(value, list) else [value]
    return ", ".join(format_crop_name(c) for c in crops if c)


class CertificateDocumentBuilder:
    def __init__(
        self,
        config: CertificateConfig,
        *,
        clock: Clock | None = None,
        qr_provider: QrCodeProvider | None = None,
        metrics: TextMetrics | None = None,
    ):
        # DI
        self._config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._qr = qr_provider or LocalQrProvider()
        self._metrics = metrics or ReportLabMetrics()
        self._logo = self._load_logo(config.logo_path)

    @staticmethod
    def _load_logo(path: Optional[str]) -> Optional[bytes]:
        if not path:
            return None
        try:
            return Path(path).read_bytes()
        except OSError as e:
            logger.info("Logo not available at %s (%s); header will be text-only", path, e)
            return None

    # ---------- public API ----------

    async def build(
        self,
        farmer: Any,
        farms: Optional[Iterable[Any]] = None,
        cluster_lead: Any = None,
    ) -> PageSequence:
        """Fetch the verification QR once, then lay out every page."""
        return await self._build(self._farmer(farmer), farms, cluster_lead, self._clock())

    async def render(
        self,
        farmer: Any,
        farms: Optional[Iterable[Any]] = None,
        cluster_lead: Any = None,
    ) -> CertificateDocument:
        farmer_rec = self._farmer(farmer)
        # one reading of the clock for the QR link, the printed id and the returned id
        now = self._clock()
        cert_id = certificate_id(farmer_rec.id, now.year)
        pages = await self._build(farmer_rec, farms, cluster_lead, now)
        pdf = render_pdf(
            pages,
            title=f"{self._config.organization_short_name} Farmer Certificate",
            subject="Climate-Smart Agriculture Certificate",
            author=self._config.organization_name,
            creator=f"{self._config.organization_short_name} Certificate System",
        )
        suffix = "".join(ch for ch in (farmer_rec.nin or cert_id) if ch.isalnum() or ch == "-")
        return CertificateDocument(
            certificate_id=cert_id,
            verification_url=verification_url(self._config.base_url, cert_id),
            issued_at=now,
            filename=f"certificate-{suffix}.pdf",
            page_count=len(pages),
            pdf=pdf,
        )

    async def _build(self, farmer_rec: FarmerRecord, farms, cluster_lead, now: datetime) -> PageSequence:
        cert_id = certificate_id(farmer_rec.id, now.year)
        url = verification_url(self._config.base_url, cert_id)
        qr_image = await acquire_qr(self._qr, url, self._config.qr_timeout_seconds)
        return self.compose(farmer_rec, farms, cluster_lead, qr_image, now=now)

    def compose(
        self,
        farmer: Any,
        farms: Optional[Iterable[Any]] = None,
        cluster_lead: Any = None,
        qr_image: Optional[bytes] = None,
        *,
        now: Optional[datetime] = None,
    ) -> PageSequence:
        """Synchronous layout of all pages; `qr_image` None prints the fallback text."""
        farmer_rec = self._farmer(farmer)
        farm_recs = self._farms(farmer_rec, farms)
        lead = self._cluster_lead(cluster_lead)
        now = now or self._clock()
        cert_id = certificate_id(farmer_rec.id, now.year)

        pages = PageSequence()
        self._certificate_page(pages, farmer_rec, farm_recs, lead, cert_id, now, qr_image)
        for index, farm in enumerate(farm_recs, start=1):
            self._farm_page(pages, farm, index, len(farm_recs))
        return pages

    # ---------- input coercion ----------

    @staticmethod
    def _farmer(farmer: Any) -> FarmerRecord:
        rec = farmer if isinstance(farmer, FarmerRecord) else FarmerRecord.model_validate(farmer)
        missing = [
            name
            for name, value in (("id", rec.id), ("first_name", rec.first_name), ("last_name", rec.last_name))
            if not (value and value.strip())
        ]
        if missing:
            raise CertificateBuildError(f"Farmer record is missing {', '.join(missing)}")
        return rec

    @staticmethod
    def _farms(farmer: FarmerRecord, farms: Optional[Iterable[Any]]) -> list[FarmRecord]:
        if farms is None:
            return list(farmer.farms)
        return [f if isinstance(f, FarmRecord) else FarmRecord.model_validate(f) for f in farms]

    @staticmethod
    def _cluster_lead(lead: Any) -> Optional[ClusterLeadRecord]:
        if lead is None or isinstance(lead, ClusterLeadRecord):
            return lead
        return ClusterLeadRecord.model_validate(lead)

    # ---------- page 1 ----------

    def _certificate_page(self, sink: PageSink, farmer, farms, lead, cert_id, now, qr_image) -> None:
        sink.new_page()
        self._border(sink)
        self._header(sink)
        self._title(sink)
        self._farmer_information(sink, farmer, farms, now.year)
        self._signatures(sink, lead)
        self._footer(sink, cert_id, now)
        self._qr_code(sink, cert_id, qr_image)

    @staticmethod
    def _border(sink: PageSink) -> None:
        inset = 5.0
        width = PAGE_WIDTH_MM - inset * 2
        height = PAGE_HEIGHT_MM - inset * 2
        sink.rect(inset, inset, width, height, stroke=Stroke(NAVY, 1.0))
        sink.rect(inset + 2, inset + 2, width - 4, height - 4, stroke=Stroke(GREEN, 0.5))

    def _header(self, sink: PageSink) -> None:
        cfg = self._config
        if self._logo:
            logo_size = 25.0
            sink.image(self._logo, (PAGE_WIDTH_MM - logo_size) / 2, 15.0, logo_size, logo_size)

        # below the logo / QR band either way
        y = 45.0
        sink.text(CENTER_X, y, cfg.organization_name, Font("Helvetica-Bold", 22, GREEN), "center")
        y += 7
        sink.text(CENTER_X, y, cfg.university_name, Font("Helvetica-Bold", 16, NAVY), "center")
        y += 6
        sink.text(CENTER_X, y, cfg.contact_line, Font("Helvetica", 8, GRAY_TEXT), "center")
        y += 4
        sink.line(MARGIN, y, PAGE_WIDTH_MM - MARGIN, y, Stroke(RULE, 0.2))

    def _title(self, sink: PageSink) -> None:
        cfg = self._config
        y = 80.0
        sink.text(CENTER_X, y, "FARMER REGISTRATION CERTIFICATE", Font("Times-Bold", 26, NAVY), "center")
        sub = f"{cfg.organization_name} ({cfg.organization_short_name})"
        sink.text(CENTER_X, y + 6, sub, Font("Helvetica", 10, GREEN), "center")

    def _farmer_information(self, sink: PageSink, farmer: FarmerRecord, farms: list[FarmRecord], year: int) -> None:
        cfg = self._config
        y = 105.0

        certify = "This is to certify that"
        certify_font = Font("Times-Italic", 12)
        sink.text(CENTER_X, y, certify, certify_font, "center")
        half = self._metrics.width(certify, certify_font) / 2
        rule = Stroke((0, 0, 0), 0.2)
        sink.line(CENTER_X - half - 30, y - 1.5, CENTER_X - half - 5, y - 1.5, rule)
        sink.line(CENTER_X + half + 5, y - 1.5, CENTER_X + half + 30, y - 1.5, rule)

        y += 15
        full_name = format_full_name(farmer.first_name, farmer.middle_name, farmer.last_name).upper()
        name_font = _fit_font(
            self._metrics, full_name, Font("Helvetica-Bold", 28, NAVY), CONTENT_WIDTH, min_size=16
        )
        sink.text(CENTER_X, y, full_name, name_font, "center")

        y += 8
        sink.text(CENTER_X, y, f"NIN: {farmer.nin or 'xxxxxxxx'}", Font("Helvetica", 12, GRAY_TEXT), "center")

        y += 15
        body = (
            f"is a duly registered farmer with {cfg.organization_name} ({cfg.organization_short_name}), "
            f"{cfg.university_name}, and is hereby authorized to participate in "
            f"{cfg.organization_short_name} agricultural programs, initiatives, and benefits "
            f"for the {year} farming season."
        )
        body_font = Font("Times-Roman", 11, BODY_TEXT)
        for i, line in enumerate(self._metrics.split(body, body_font, 160.0)):
            sink.text(CENTER_X, y + i * 5, line, body_font, "center")

        y += 25
        self._info_boxes(sink, y, farmer, farms)

    def _info_boxes(self, sink: PageSink, box_y: float, farmer: FarmerRecord, farms: list[FarmRecord]) -> None:
        start_x = (PAGE_WIDTH_MM - (BOX_WIDTH * 3 + BOX_GAP * 2)) / 2
        farm = farms[0] if farms else None

        personal = [
            ("Phone:", _or_na(farmer.phone)),
            ("Gender:", _or_na(to_title_case(farmer.gender))),
            ("Status:", _or_na(to_title_case(farmer.status))),
            ("Reg. Date:", _or_na(format_date(farmer.registration_date))),
        ]
        location = [
            ("State:", _or_na(format_location(farmer.state))),
            ("LGA:", _or_na(format_location(farmer.lga))),
            ("Ward:", _or_na(format_location(farmer.ward))),
            ("Polling Unit:", _or_na(farmer.polling_unit)),
        ]
        farm_summary = [
            ("Farm Size:", f"{format_number(farm.farm_size) or 0} ha" if farm else NOT_AVAILABLE),
            ("Primary Crop:", _or_na(format_crop_name(farm.primary_crop)) if farm else NOT_AVAILABLE),
            ("Soil Type:", _or_na(to_title_case(farm.soil_type)) if farm else NOT_AVAILABLE),
            ("No. of Farms:", str(len(farms))),
        ]

        step = BOX_WIDTH + BOX_GAP
        self._info_box(sink, start_x, box_y, "Personal Information", personal)
        self._info_box(sink, start_x + step, box_y, "Location Details", location)
        self._info_box(sink, start_x + step * 2, box_y, "Farm Information", farm_summary)

    def _info_box(self, sink: PageSink, x: float, y: float, title: str, items: list[tuple[str, str]]) -> None:
        sink.rect(x, y, BOX_WIDTH, BOX_HEIGHT, stroke=Stroke(BOX_EDGE, 0.2), fill=BOX_FILL)
        sink.text(x + 3, y + 6, title, Font("Helvetica-Bold", 9, NAVY))
        sink.line(x, y + 9, x + BOX_WIDTH, y + 9, Stroke(BOX_EDGE, 0.2))

        label_font = Font("Helvetica", 8, LABEL_TEXT)
        value_font = Font("Helvetica-Bold", 8)
        item_y = y + 14
        for label, value in items[:4]:
            sink.text(x + 3, item_y, label, label_font)
            value = truncate_to_width(self._metrics, value, BOX_VALUE_MAX_WIDTH, value_font)
            sink.text(x + BOX_WIDTH - 3, item_y, value, value_font, "right")
            item_y += 6

    def _signatures(self, sink: PageSink, lead: Optional[ClusterLeadRecord]) -> None:
        y = 245.0
        sink.line(MARGIN, y - 5, PAGE_WIDTH_MM - MARGIN, y - 5, Stroke(NAVY, 0.5))

        section = CONTENT_WIDTH / 3
        lead_name = "UNKNOWN"
        if lead is not None:
            joined = f"{lead.cluster_lead_first_name or ''} {lead.cluster_lead_last_name or ''}".strip()
            lead_name = joined.upper() or lead_name

        blocks = [
            ("Cluster Lead", lead_name),
            ("District Head", "__________________"),
            ("Chief Executive Officer", self._config.ceo_name),
        ]
        for i, (title, name) in enumerate(blocks):
            cx = MARGIN + section * i + section / 2
            sink.line(cx - 25, y + 25, cx + 25, y + 25, Stroke((0, 0, 0), 0.3))
            sink.text(cx, y + 30, name, Font("Helvetica-Bold", 9), "center")
            sink.text(cx, y + 34, title, Font("Helvetica", 8, LABEL_TEXT), "center")

    @staticmethod
    def _footer(sink: PageSink, cert_id: str, now: datetime) -> None:
        line = f"Certificate ID: {cert_id} | Generated on {now.strftime('%d/%m/%Y')}"
        sink.text(CENTER_X, 285.0, line, Font("Helvetica", 7, MUTED_TEXT), "center")

    @staticmethod
    def _qr_code(sink: PageSink, cert_id: str, qr_image: Optional[bytes]) -> None:
        if not qr_image:
            sink.text(QR_X, QR_Y + 10, QR_UNAVAILABLE, Font("Helvetica", 8, RED))
            return
        sink.image(qr_image, QR_X, QR_Y, QR_SIZE, QR_SIZE)
        caption = Font("Helvetica", 6)
        sink.text(QR_X + QR_SIZE / 2, QR_Y + QR_SIZE + 3, "Scan to Verify", caption, "center")
        sink.text(QR_X + QR_SIZE / 2, QR_Y + QR_SIZE + 6, f"Cert ID: {cert_id}", caption, "center")

    # ---------- farm pages ----------

    def _farm_page(self, sink: PageSink, farm: FarmRecord, number: int, total: int) -> None:
        sink.new_page()
        self._border(sink)

        y = 40.0
        sink.text(CENTER_X, y, "FARM DETAILS & MAPPING", Font("Helvetica-Bold", 22, NAVY), "center")
        subtitle = f"Farm ID: {farm.id[-8:].upper()}" if farm.id else f"Farm {number} of {total}"
        sink.text(CENTER_X, y + 10, subtitle, Font("Helvetica-Bold", 14, NAVY), "center")

        self._farm_specifications(sink, farm)
        self._farm_polygon(sink, farm)

        sink.text(
            PAGE_WIDTH_MM - MARGIN,
            PAGE_HEIGHT_MM - 10,
            f"Page {number + 1}",
            Font("Helvetica-Oblique", 8, MUTED_TEXT),
            "right",
        )

    def _farm_specifications(self, sink: PageSink, farm: FarmRecord) -> None:
        y = 70.0
        sink.text(MARGIN, y, "FARM SPECIFICATIONS", Font("Helvetica-Bold", 16, NAVY))
        y += 15

        size = format_number(farm.farm_size) if farm.farm_size else None
        location = ", ".join(
            part
            for part in (
                format_location(farm.farm_state),
                format_location(farm.farm_local_government),
                format_location(farm.farm_ward),
            )
            if part
        )
        rows = [
            ("Farm Size:", f"{size} hectares" if size else "Not specified"),
            ("Primary Crop:", format_crop_name(farm.primary_crop) or "Not specified"),
            ("Secondary Crop:", _secondary_crops(farm.secondary_crop) or "None"),
            ("Location:", location or "Not specified"),
            ("Soil Type:", to_title_case(farm.soil_type) or "Not specified"),
            ("Experience:", f"{farm.farming_experience or 0} years"),
        ]
        if farm.farm_latitude is not None and farm.farm_longitude is not None:
            rows.append(("Centroid:", f"{farm.farm_latitude:.6f}, {farm.farm_longitude:.6f}"))

        label_font = Font("Helvetica-Bold", 11)
        value_font = Font("Helvetica", 11)
        value_x = MARGIN + 35
        for i, (label, value) in enumerate(rows):
            row_y = y + i * 8
            sink.text(MARGIN, row_y, label, label_font)
            value = truncate_to_width(self._metrics, value, PAGE_WIDTH_MM - MARGIN - value_x, value_font)
            sink.text(value_x, row_y, value, value_font)

    @staticmethod
    def _farm_polygon(sink: PageSink, farm: FarmRecord) -> None:
        region = MAP_REGION
        sink.rect(region.x, region.y, region.width, region.height, stroke=Stroke(RULE, 0.2))

        parsed = polygon_for_farm(farm)
        if not isinstance(parsed, Recognized) or len(parsed.points) < MIN_DRAWABLE_POINTS:
            sink.text(
                region.x + 10,
                region.y + region.height / 2,
                NO_POLYGON,
                Font("Helvetica-Oblique", 10, MUTED_TEXT),
            )
            return

        projection = project_polygon(parsed.points, region, MAP_INNER_MARGIN)
        if projection is None:
            logger.debug("Farm %s polygon collapses to a point; skipping schematic", farm.id)
            return

        outline = [(v.x, v.y) for v in projection.vertices]
        sink.path(outline, fill=POLYGON_FILL, fill_alpha=0.15)
        edge = Stroke(GREEN, 0.6)
        for seg in projection.segments:
            sink.line(seg.start.x, seg.start.y, seg.end.x, seg.end.y, edge)
        for v in projection.vertices:
            sink.circle(v.x, v.y, 1.0, GREEN)

        caption = Font("Helvetica", 8, LABEL_TEXT)
        area = format_number(farm.farm_size) if farm.farm_size else NOT_AVAILABLE
        sink.text(region.x + 5, region.y + region.height - 10, f"Mapped Area: {area} ha", caption)
        sink.text(region.x + 5, region.y + region.height - 5, POLYGON_CAPTION, caption)
