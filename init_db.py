import os

from main import create_app
from physiocare.extensions import db
from physiocare.models import Base
from physiocare.services.identity import IdentityProvider
from physiocare.services.store import ClinicStore

app = create_app()

with app.app_context():
    Base.metadata.create_all(db.engine)
    store = ClinicStore(db.session)

    if store.get_settings() is None:
        store.upsert_settings(
            {
                "clinic_name": os.environ.get("CLINIC_NAME", "PhysioCare Clinic"),
                "currency": os.environ.get("CLINIC_CURRENCY", "USD"),
            }
        )
        print("Seeded clinic settings row")

    # ADMIN_EMAIL / ADMIN_PASSWORD create the first staff login
    admin_email = os.environ.get("ADMIN_EMAIL")
    admin_password = os.environ.get("ADMIN_PASSWORD")
    if admin_email and admin_password and not store.find_auth_user_by_email(admin_email):
        user = IdentityProvider.from_app(app).create_user(store, admin_email, admin_password, "ADMIN")
        store.add_staff(
            full_name=os.environ.get("ADMIN_NAME", "Clinic Admin"),
            email=admin_email,
            role="Admin",
            auth_user_id=user.id,
        )
        print(f"Created admin account for {admin_email}")

    store.commit()

print("Database initialized successfully!")
