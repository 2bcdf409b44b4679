from datetime import datetime, timezone, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fims import models, crud
from fims.db import Base


UTC = timezone.utc


def same_moment(a: datetime, b: datetime) -> bool:
    """Compare datetimes ignoring tz-awareness differences."""
    if a.tzinfo is None:
        a = a.replace(tzinfo=timezone.utc)
    if b.tzinfo is None:
        b = b.replace(tzinfo=timezone.utc)
    return a == b


@pytest.fixture(scope="function")
def db_session():
    """Fresh in-memory SQLite session per test."""
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def mk_farmer(db, farmer_id: str, first: str, last: str, *, created_days_ago: int = 0, **extra) -> models.Farmer:
    farmer = models.Farmer(
        id=farmer_id,
        first_name=first,
        last_name=last,
        created_at=datetime(2025, 5, 1, tzinfo=UTC) - timedelta(days=created_days_ago),
        **extra,
    )
    db.add(farmer)
    db.commit()
    return farmer


def test_upsert_inserts_new_certificate(db_session):
    mk_farmer(db_session, "farmer-001", "Amina", "Bello")
    issued = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)

    obj, created = crud.upsert_certificate(
        db_session, certificate_id="CCSA-2025-ER-001", farmer_id="farmer-001", issued_at=issued
    )

    assert created is True
    assert isinstance(obj, models.Certificate)
    assert obj.status == "active"
    assert obj.qr_code == "CCSA-2025-ER-001"
    assert same_moment(obj.issued_date, issued)


def test_upsert_reissues_existing_certificate(db_session):
    """Same id again (same farmer, same year): one row, issued date moves forward."""
    mk_farmer(db_session, "farmer-001", "Amina", "Bello")
    crud.upsert_certificate(
        db_session,
        certificate_id="CCSA-2025-ER-001",
        farmer_id="farmer-001",
        issued_at=datetime(2025, 6, 1, tzinfo=UTC),
    )
    later = datetime(2025, 7, 15, tzinfo=UTC)

    obj, created = crud.upsert_certificate(
        db_session, certificate_id="CCSA-2025-ER-001", farmer_id="farmer-001", issued_at=later
    )

    assert created is False
    assert same_moment(obj.issued_date, later)
    assert db_session.query(models.Certificate).count() == 1


def test_upsert_accepts_naive_timestamp_as_utc(db_session):
    mk_farmer(db_session, "farmer-001", "Amina", "Bello")

    obj, _ = crud.upsert_certificate(
        db_session,
        certificate_id="CCSA-2025-ER-001",
        farmer_id="farmer-001",
        issued_at=datetime(2025, 6, 1, 12, 0),
    )

    assert same_moment(obj.issued_date, datetime(2025, 6, 1, 12, 0, tzinfo=UTC))


def test_get_certificate_by_public_id(db_session):
    mk_farmer(db_session, "farmer-001", "Amina", "Bello")
    crud.upsert_certificate(db_session, certificate_id="CCSA-2025-ER-001", farmer_id="farmer-001")

    assert crud.get_certificate(db_session, "CCSA-2025-ER-001").farmer.first_name == "Amina"
    assert crud.get_certificate(db_session, "CCSA-2025-NOPE00") is None


def test_farms_load_in_position_order(db_session):
    farmer = mk_farmer(db_session, "farmer-001", "Amina", "Bello")
    db_session.add_all(
        [
            models.Farm(id="farm-b", farmer_id=farmer.id, position=1, primary_crop="rice"),
            models.Farm(id="farm-a", farmer_id=farmer.id, position=0, primary_crop="maize"),
        ]
    )
    db_session.commit()
    db_session.expire_all()

    assert [f.id for f in crud.get_farmer(db_session, "farmer-001").farms] == ["farm-a", "farm-b"]


@pytest.fixture
def roster(db_session):
    mk_farmer(db_session, "farmer-001", "Amina", "Bello", created_days_ago=3, nin="11111111111")
    mk_farmer(db_session, "farmer-002", "Musa", "Ibrahim", created_days_ago=2, phone="08030000002")
    mk_farmer(db_session, "farmer-003", "Ngozi", "Okafor", created_days_ago=1)
    crud.upsert_certificate(db_session, certificate_id="CCSA-2025-ER-001", farmer_id="farmer-001")
    return db_session


def test_list_candidates_newest_first(roster):
    farmers, total = crud.list_certificate_candidates(roster)

    assert total == 3
    assert [f.id for f in farmers] == ["farmer-003", "farmer-002", "farmer-001"]


def test_list_candidates_paginates(roster):
    farmers, total = crud.list_certificate_candidates(roster, page=2, limit=2)

    assert total == 3
    assert [f.id for f in farmers] == ["farmer-001"]


@pytest.mark.parametrize(
    "status, expected",
    [
        ("generated", ["farmer-001"]),
        ("pending", ["farmer-003", "farmer-002"]),
        ("all", ["farmer-003", "farmer-002", "farmer-001"]),
    ],
)
def test_list_candidates_by_certificate_status(roster, status, expected):
    farmers, total = crud.list_certificate_candidates(roster, status=status)

    assert [f.id for f in farmers] == expected
    assert total == len(expected)


@pytest.mark.parametrize(
    "search, expected",
    [
        ("amina", ["farmer-001"]),
        ("OKAF", ["farmer-003"]),
        ("11111", ["farmer-001"]),
        ("0803", ["farmer-002"]),
        ("   ", ["farmer-003", "farmer-002", "farmer-001"]),
    ],
)
def test_list_candidates_search(roster, search, expected):
    farmers, _ = crud.list_certificate_candidates(roster, search=search)

    assert [f.id for f in farmers] == expected
