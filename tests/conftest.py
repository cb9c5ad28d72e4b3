import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import types
from decimal import Decimal

import pytest
from fieldservice import create_app
from fieldservice.extensions import db
from fieldservice.models import (
    Customer,
    Equipment,
    LaborRateProfile,
    Org,
    OrgMembership,
    Part,
    User,
    ROLE_MEMBER,
    ROLE_OWNER,
)
from fieldservice.services.session_context import SessionContext


@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        WTF_CSRF_ENABLED=False,
        DEFAULT_TAX_RATE=0,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


def _user(org_id, email, role, password="testpass"):
    u = User(email=email, full_name=email.split("@")[0].title(), org_id=org_id, is_active=True)
    u.set_password(password)
    db.session.add(u)
    db.session.flush()
    db.session.add(OrgMembership(org_id=org_id, user_id=u.id, role=role))
    return u


@pytest.fixture()
def seed(app):
    """One org with an owner, a member, a customer and the editor catalogs."""
    with app.app_context():
        org = Org(name="Northside Heating")
        other = Org(name="Elsewhere HVAC")
        db.session.add_all([org, other])
        db.session.flush()

        owner = _user(org.id, "owner@example.com", ROLE_OWNER)
        member = _user(org.id, "tech@example.com", ROLE_MEMBER)
        outsider = _user(other.id, "outsider@example.com", ROLE_OWNER)

        cust = Customer(org_id=org.id, name="Jane Homeowner", email="jane@example.com")
        db.session.add(cust)
        db.session.flush()

        part = Part(org_id=org.id, name="Flame sensor", part_number="FS-100", cost=Decimal("24.50"))
        equip = Equipment(org_id=org.id, customer_id=cust.id, manufacturer="Carrier", model_number="59SC5")
        rates = LaborRateProfile(
            org_id=org.id,
            standard_rate=Decimal("100.00"),
            after_hours_rate=Decimal("150.00"),
            emergency_rate=Decimal("200.00"),
        )
        db.session.add_all([part, equip, rates])
        db.session.commit()

        return types.SimpleNamespace(
            org_id=org.id,
            other_org_id=other.id,
            owner_id=owner.id,
            member_id=member.id,
            outsider_id=outsider.id,
            customer_id=cust.id,
            part_id=part.id,
            equipment_id=equip.id,
        )


@pytest.fixture()
def owner_ctx(seed):
    return SessionContext(user_id=seed.owner_id, org_id=seed.org_id, role=ROLE_OWNER, email="owner@example.com")


@pytest.fixture()
def member_ctx(seed):
    return SessionContext(user_id=seed.member_id, org_id=seed.org_id, role=ROLE_MEMBER, email="tech@example.com")


@pytest.fixture()
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture()
def login_as(client):
    def _login(user_id: int, org_id: int):
        # Simulate Flask-Login session + the org stashed at login
        with client.session_transaction() as sess:
            sess["_user_id"] = str(user_id)
            sess["current_org_id"] = org_id
    return _login
