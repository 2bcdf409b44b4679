import logging
from typing import Literal

from fastapi import FastAPI, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from fims import schemas
from fims.certificate import CertificateBuildError
from fims.certificate_service import CertificateService, FarmerNotFoundError
from fims.config import configure_logging, get_settings
from fims.db import Base, engine, get_db
from fims.deps import get_certificate_service

logger = logging.getLogger(__name__)

app = FastAPI(title="CCSA FIMS Certificates")

# Create tables at startup
@app.on_event("startup")
def _init():
    configure_logging(get_settings().log_level)
    Base.metadata.create_all(bind=engine)

@app.post("/certificates/generate")
async def generate_certificate(
    body: schemas.GenerateCertificateIn,
    db: Session = Depends(get_db),
    svc: CertificateService = Depends(get_certificate_service),
):
    try:
        doc = await svc.generate(db, body.farmer_id)
    except FarmerNotFoundError:
        raise HTTPException(404, "Farmer not found")
    except CertificateBuildError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception("Certificate generation failed for farmer %s", body.farmer_id)
        raise HTTPException(status_code=500, detail=f"Unexpected error while generating certificate: {e}")

    return Response(
        content=doc.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{doc.filename}"',
            "X-Certificate-Id": doc.certificate_id,
        },
    )

@app.get("/certificates", response_model=schemas.CertificateListOut)
def list_certificates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = "",
    status: Literal["all", "generated", "pending"] = "all",
    db: Session = Depends(get_db),
):
    return CertificateService.list_candidates(db, page=page, limit=limit, search=search, status=status)

@app.get("/verify-certificate/{certificate_id}", response_model=schemas.VerificationOut)
def verify_certificate(certificate_id: str, db: Session = Depends(get_db)):
    result = CertificateService.verify(db, certificate_id)
    if not result:
        raise HTTPException(404, "Certificate not found")
    return result
