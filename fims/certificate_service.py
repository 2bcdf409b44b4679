# fims/certificate_service.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from fims import crud, schemas
from fims.certificate import CertificateDocument, CertificateDocumentBuilder
from fims.utils import format_full_name, to_title_case

logger = logging.getLogger(__name__)


class FarmerNotFoundError(LookupError):
    pass


class CertificateService:
    def __init__(self, builder: CertificateDocumentBuilder):
        # DI; the builder owns the clock so the stored id matches the printed one
        self._builder = builder

    async def generate(self, db: Session, farmer_id: str) -> CertificateDocument:
        farmer = crud.get_farmer(db, farmer_id)
        if not farmer:
            raise FarmerNotFoundError(farmer_id)

        record = schemas.FarmerRecord.model_validate(farmer)
        lead = schemas.ClusterLeadRecord.model_validate(farmer.cluster) if farmer.cluster else None

        doc = await self._builder.render(record, cluster_lead=lead)
        _, created = crud.upsert_certificate(
            db,
            certificate_id=doc.certificate_id,
            farmer_id=farmer.id,
            issued_at=doc.issued_at,
        )
        logger.info(
            "%s certificate %s for farmer %s (%d pages)",
            "Issued" if created else "Re-issued",
            doc.certificate_id,
            farmer.id,
            doc.page_count,
        )
        return doc

    @staticmethod
    def verify(db: Session, certificate_id: str) -> Optional[schemas.VerificationOut]:
        cert = crud.get_certificate(db, certificate_id)
        if not cert:
            return None

        farmer = cert.farmer
        based_in = ", ".join(p for p in (farmer.lga, farmer.state) if p) or None
        return schemas.VerificationOut(
            certificate_id=cert.certificate_id,
            issued_date=cert.issued_date,
            status=cert.status,
            farmer_name=format_full_name(farmer.first_name, farmer.middle_name, farmer.last_name),
            gender=to_title_case(farmer.gender) or None,
            nin=farmer.nin,
            based_in=based_in,
            ward=farmer.ward,
            farms_registered=len(farmer.farms),
            cluster=farmer.cluster.title if farmer.cluster else "No Cluster",
        )

    @staticmethod
    def list_candidates(
        db: Session,
        *,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        status: str = "all",
    ) -> schemas.CertificateListOut:
        farmers, total = crud.list_certificate_candidates(
            db, page=page, limit=limit, search=search, status=status
        )
        rows = []
        for f in farmers:
            latest = f.certificates[0] if f.certificates else None
            rows.append(
                schemas.CertificateCandidateOut(
                    id=f.id,
                    first_name=f.first_name,
                    middle_name=f.middle_name,
                    last_name=f.last_name,
                    nin=f.nin,
                    phone=f.phone,
                    farms=[schemas.FarmSummaryOut.model_validate(farm) for farm in f.farms],
                    latest_certificate=schemas.CertificateOut.model_validate(latest) if latest else None,
                )
            )
        pages = (total + limit - 1) // limit if limit else 0
        return schemas.CertificateListOut(
            farmers=rows,
            pagination=schemas.Pagination(total=total, pages=pages, page=page, limit=limit),
        )
