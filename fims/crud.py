from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from fims import models
from fims.utils import to_aware_utc

# ---------- tiny, single-purpose helpers ----------

def _aware(ts: Optional[datetime]) -> datetime:
    return to_aware_utc(ts) or datetime.now(timezone.utc)

def _insert_certificate(
    db: Session,
    certificate_id: str,
    farmer_id: str,
    issued_at: datetime,
) -> models.Certificate:
    obj = models.Certificate(
        certificate_id=certificate_id,
        farmer_id=farmer_id,
        issued_date=issued_at,
        status="active",
        qr_code=certificate_id,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def _reissue(obj: models.Certificate, issued_at: datetime) -> None:
    obj.issued_date = issued_at
    obj.status = "active"
    obj.qr_code = obj.certificate_id

def _search_filter(search: str):
    pattern = f"%{search.strip()}%"
    return or_(
        models.Farmer.first_name.ilike(pattern),
        models.Farmer.last_name.ilike(pattern),
        models.Farmer.nin.ilike(pattern),
        models.Farmer.phone.ilike(pattern),
    )

# ---------- queries ----------

def get_farmer(db: Session, farmer_id: str) -> Optional[models.Farmer]:
    return db.get(models.Farmer, farmer_id)

def get_certificate(db: Session, certificate_id: str) -> Optional[models.Certificate]:
    return (
        db.query(models.Certificate)
        .filter(models.Certificate.certificate_id == certificate_id)
        .one_or_none()
    )

def upsert_certificate(
    db: Session,
    *,
    certificate_id: str,
    farmer_id: str,
    issued_at: Optional[datetime] = None,
) -> tuple[models.Certificate, bool]:
    """
    Insert the certificate record, or re-issue it when the id already exists
    (same farmer, same year). Returns: (obj, created)
    """
    issued_at = _aware(issued_at)
    obj = get_certificate(db, certificate_id)

    if not obj:
        return _insert_certificate(db, certificate_id, farmer_id, issued_at), True

    _reissue(obj, issued_at)
    db.commit()
    db.refresh(obj)
    return obj, False

def list_certificate_candidates(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    search: str = "",
    status: str = "all",
) -> tuple[list[models.Farmer], int]:
    """Farmers for the certificates screen; status is all | generated | pending."""
    q = db.query(models.Farmer)
    if search and search.strip():
        q = q.filter(_search_filter(search))
    if status == "generated":
        q = q.filter(models.Farmer.certificates.any())
    elif status == "pending":
        q = q.filter(~models.Farmer.certificates.any())

    total = q.count()
    farmers = (
        q.order_by(models.Farmer.created_at.desc(), models.Farmer.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return farmers, total
