# fims/models.py
from datetime import timezone

from sqlalchemy import Column, String, Float, Integer, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship, validates

from .db import Base


class Cluster(Base):
    __tablename__ = "clusters"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    cluster_lead_first_name = Column(String, nullable=True)
    cluster_lead_last_name = Column(String, nullable=True)

    farmers = relationship("Farmer", back_populates="cluster")


class Farmer(Base):
    __tablename__ = "farmers"

    id = Column(String, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    middle_name = Column(String, nullable=True)
    last_name = Column(String, nullable=False)
    nin = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    state = Column(String, nullable=True)
    lga = Column(String, nullable=True)
    ward = Column(String, nullable=True)
    polling_unit = Column(String, nullable=True)
    status = Column(String, nullable=True)
    registration_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True, index=True)

    cluster_id = Column(String, ForeignKey("clusters.id"), nullable=True)
    cluster = relationship("Cluster", back_populates="farmers")

    # insertion order is the page order on the certificate
    farms = relationship("Farm", back_populates="farmer", order_by="Farm.position")
    certificates = relationship(
        "Certificate",
        back_populates="farmer",
        order_by="Certificate.issued_date.desc()",
    )


class Farm(Base):
    __tablename__ = "farms"

    id = Column(String, primary_key=True, index=True)
    farmer_id = Column(String, ForeignKey("farmers.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    farm_size = Column(Float, nullable=True)                    # hectares
    primary_crop = Column(String, nullable=True)
    secondary_crop = Column(JSON, nullable=True)                # list[str] or str
    farm_state = Column(String, nullable=True)
    farm_local_government = Column(String, nullable=True)
    farm_ward = Column(String, nullable=True)
    soil_type = Column(String, nullable=True)
    soil_ph = Column(Float, nullable=True)
    soil_fertility = Column(String, nullable=True)
    farming_experience = Column(Integer, nullable=True)

    # raw boundary as captured by the field app; shape varies
    farm_polygon = Column(JSON, nullable=True)
    farm_coordinates = Column(JSON, nullable=True)
    farm_latitude = Column(Float, nullable=True)
    farm_longitude = Column(Float, nullable=True)

    farmer = relationship("Farmer", back_populates="farms")


class Certificate(Base):
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    certificate_id = Column(String, unique=True, nullable=False, index=True)
    farmer_id = Column(String, ForeignKey("farmers.id"), nullable=False, index=True)
    issued_date = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String, nullable=False, default="active")
    qr_code = Column(String, nullable=True)

    farmer = relationship("Farmer", back_populates="certificates")

    @validates("issued_date")
    def _tz(self, _, v):
        # ensure aware timestamps
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)
