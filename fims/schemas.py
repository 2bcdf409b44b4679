# fims/schemas.py
from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Record(BaseModel):
    # accept snake_case, the camelCase names of the farmer database, and ORM rows
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class FarmRecord(_Record):
    id: Optional[str] = None
    farm_size: Optional[float] = None
    primary_crop: Optional[str] = None
    secondary_crop: Optional[Union[List[str], str]] = None
    farm_state: Optional[str] = None
    farm_local_government: Optional[str] = None
    farm_ward: Optional[str] = None
    soil_type: Optional[str] = None
    soil_ph: Optional[float] = None
    soil_fertility: Optional[str] = None
    farming_experience: Optional[int] = None
    farm_polygon: Optional[Any] = None
    farm_coordinates: Optional[Any] = None
    farm_latitude: Optional[float] = None
    farm_longitude: Optional[float] = None


class FarmerRecord(_Record):
    # identity is checked by the builder so a missing name is a build failure
    id: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    nin: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    state: Optional[str] = None
    lga: Optional[str] = None
    ward: Optional[str] = None
    polling_unit: Optional[str] = None
    registration_date: Optional[Union[datetime, str]] = None
    status: Optional[str] = None
    farms: List[FarmRecord] = Field(default_factory=list)


class ClusterLeadRecord(_Record):
    title: Optional[str] = None
    cluster_lead_first_name: Optional[str] = None
    cluster_lead_last_name: Optional[str] = None


class GenerateCertificateIn(BaseModel):
    farmer_id: str = Field(..., min_length=1)


class CertificateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    certificate_id: str
    farmer_id: str
    issued_date: datetime
    status: str


class FarmSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    farm_size: Optional[float] = None
    primary_crop: Optional[str] = None


class CertificateCandidateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    nin: Optional[str] = None
    phone: Optional[str] = None
    farms: List[FarmSummaryOut] = Field(default_factory=list)
    latest_certificate: Optional[CertificateOut] = None


class Pagination(BaseModel):
    total: int
    pages: int
    page: int
    limit: int


class CertificateListOut(BaseModel):
    farmers: List[CertificateCandidateOut]
    pagination: Pagination


class VerificationOut(BaseModel):
    valid: bool = True
    certificate_id: str
    issued_date: datetime
    status: str
    farmer_name: str
    gender: Optional[str] = None
    nin: Optional[str] = None
    based_in: Optional[str] = None
    ward: Optional[str] = None
    farms_registered: int
    cluster: str
