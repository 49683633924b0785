"""
Pytest configuration and shared fixtures for the PhysioCare API tests.

Every test runs against a private in-memory SQLite database. Tables are
recreated for each test, and sample-row fixtures return primary keys rather
than ORM instances so tests never hold objects from a closed session.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from flask import Flask

from main import create_app
from physiocare.config import is_production_database
from physiocare.extensions import db as database
from physiocare.models import (
    AssignedExercise,
    Base,
    Exercise,
    Invoice,
    InvoiceItem,
    Patient,
    Product,
    Settings,
    Staff,
)
from physiocare.services.identity import hash_password
from physiocare.services.store import ClinicStore
from physiocare.utils.timestamps import utcnow

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SECRET_KEY": "test-secret-key-for-testing-only-0123456789",
    "CLINIC_UTC_OFFSET": "+07:00",
    "INVOICE_ATOMIC_WRITES": True,
    "INVOICE_ALLOW_TOTAL_OVERRIDE": False,
    "ENABLE_SCHEDULER": False,
    "S3_BUCKET_NAME": "physiocare-test-bucket",
    "S3_BASE_URL": "https://physiocare-test-bucket.s3.amazonaws.com",
    "LOG_LEVEL": "WARNING",
}

ADMIN_EMAIL = "admin@physiocare.test"
ADMIN_PASSWORD = "admin-password-123"
PATIENT_EMAIL = "dara@example.com"
PATIENT_PASSWORD = "patient-password-123"


@pytest.fixture(scope="session")
def app():
    """Create and configure a test app instance."""
    app = create_app(config_overrides=TEST_CONFIG)

    if is_production_database(app.config["SQLALCHEMY_DATABASE_URI"]):
        pytest.exit("Refusing to run tests against a production database")

    yield app


@pytest.fixture
def db(app: Flask):
    """Fresh tables for every test."""
    with app.app_context():
        Base.metadata.create_all(bind=database.engine)

    yield database

    with app.app_context():
        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def client(app, db):
    return app.test_client()


@pytest.fixture
def in_store(app, db):
    """Run ``action(store)`` in a short-lived app context and return its result.

    Pull plain values out inside ``action``; the session closes afterwards.
    """

    def _run(action):
        with app.app_context():
            try:
                return action(ClinicStore(database.session))
            finally:
                database.session.remove()

    return _run


def _add(app, row):
    with app.app_context():
        database.session.add(row)
        database.session.commit()
        return row.id


def _account(app, email, password, role):
    with app.app_context():
        store = ClinicStore(database.session)
        user = store.add_auth_user(email, hash_password(password), role)
        store.commit()
        return user.id


@pytest.fixture
def sample_staff(app, db):
    return _add(
        app,
        Staff(
            full_name="Sokha Chan",
            email="sokha@physiocare.test",
            phone_number="012 345 678",
            role="Therapist",
        ),
    )


@pytest.fixture
def sample_patient(app, db, sample_staff):
    return _add(
        app,
        Patient(
            full_name="Dara Lim",
            email=PATIENT_EMAIL,
            phone_number="098 765 432",
            gender="Female",
            date_of_birth=date(1990, 5, 17),
            staff_id=sample_staff,
        ),
    )


@pytest.fixture
def sample_product(app, db):
    return _add(
        app,
        Product(
            name="Resistance Band",
            sku="RB-001",
            category="Equipment",
            unit_price=Decimal("12.50"),
            stock_level=10,
        ),
    )


@pytest.fixture
def sample_exercise(app, db):
    return _add(
        app,
        Exercise(
            title="Wall Squat",
            description="Quadriceps strengthening",
            instructions="Hold for 30 seconds, 3 sets.",
        ),
    )


@pytest.fixture
def sample_assignment(app, db, sample_patient, sample_exercise):
    return _add(
        app,
        AssignedExercise(
            patient_id=sample_patient,
            exercise_id=sample_exercise,
            frequency_per_week=3,
            completed_dates=[],
        ),
    )


@pytest.fixture
def sample_invoice(app, db, sample_patient):
    """Unpaid invoice: 2 x 10.00 consultation, 10% discount, total 18.00."""
    with app.app_context():
        invoice = Invoice(
            patient_id=sample_patient,
            status="Unpaid",
            diagnostic="Lower back pain",
            subtotal=Decimal("20.00"),
            discount_type="percent",
            discount_value=Decimal("10.00"),
            discount_amount=Decimal("2.00"),
            total_amount=Decimal("18.00"),
        )
        database.session.add(invoice)
        database.session.flush()
        database.session.add(
            InvoiceItem(
                invoice_id=invoice.id,
                service_name="Consultation",
                quantity=Decimal("2"),
                unit_price=Decimal("10.00"),
            )
        )
        database.session.commit()
        return invoice.id


@pytest.fixture
def sample_settings(app, db):
    return _add(
        app,
        Settings(
            id=1,
            clinic_name="PhysioCare Phnom Penh",
            phone_number="023 123 456",
            email="hello@physiocare.test",
            address="12 Norodom Blvd",
            currency="USD",
        ),
    )


@pytest.fixture
def admin_headers(app, client):
    """Bearer headers for a staff account that logged in through the API."""
    user_id = _account(app, ADMIN_EMAIL, ADMIN_PASSWORD, "ADMIN")
    _add(
        app,
        Staff(full_name="Clinic Admin", email=ADMIN_EMAIL, role="Admin", auth_user_id=user_id),
    )

    response = client.post(
        "/api/admin/login", json={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200, response.data
    return {"Authorization": f"Bearer {response.get_json()['token']}"}


@pytest.fixture
def patient_headers(app, client, sample_patient):
    """Bearer headers for the portal account linked to ``sample_patient``."""
    user_id = _account(app, PATIENT_EMAIL, PATIENT_PASSWORD, "PATIENT")
    with app.app_context():
        database.session.get(Patient, sample_patient).auth_user_id = user_id
        database.session.commit()

    response = client.post(
        "/api/patient/login", json={"email": PATIENT_EMAIL, "password": PATIENT_PASSWORD}
    )
    assert response.status_code == 200, response.data
    return {"Authorization": f"Bearer {response.get_json()['token']}"}


@pytest.fixture
def today_start():
    now = utcnow()
    return datetime(now.year, now.month, now.day)
