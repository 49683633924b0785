"""Data access adapter.

``ClinicStore`` wraps one SQLAlchemy session and is built per request by the
factory registered on the app (see ``get_store``). Route handlers never touch
``db.session`` directly; they go through the store, which translates database
failures into the ``physiocare.errors`` taxonomy. Nothing here commits on its
own: handlers decide where a unit of work ends with ``commit()``.
"""

from datetime import date

from flask import current_app, g
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from ..errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from ..extensions import db
from ..models import (
    AssignedExercise,
    Appointment,
    AuthUser,
    ClinicalNote,
    Exercise,
    Invoice,
    InvoiceItem,
    Patient,
    Product,
    STAFF_ROLES,
    Settings,
    Staff,
)

SETTINGS_ID = 1
STORE_FACTORY_KEY = "physiocare.store_factory"


class ClinicStore:
    def __init__(self, session):
        self.session = session

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------
    def commit(self):
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ValidationError(f"Database integrity error: {e.orig}")
        except SQLAlchemyError as e:
            self.session.rollback()
            raise UpstreamError(f"Database error: {e}")

    def rollback(self):
        self.session.rollback()

    def flush(self):
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise ValidationError(f"Database integrity error: {e.orig}")
        except SQLAlchemyError as e:
            self.session.rollback()
            raise UpstreamError(f"Database error: {e}")

    def _fetch(self, stmt):
        try:
            return self.session.scalars(stmt)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise UpstreamError(f"Database error: {e}")

    def _scalar(self, stmt):
        try:
            return self.session.scalar(stmt)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise UpstreamError(f"Database error: {e}")

    def _get(self, model, row_id, message, options=()):
        stmt = select(model).where(model.id == row_id)
        if options:
            stmt = stmt.options(*options)
        row = self._fetch(stmt).first()
        if row is None:
            raise NotFoundError(message)
        return row

    def _add(self, row):
        self.session.add(row)
        self.flush()
        return row

    def _update(self, row, fields):
        for key, value in fields.items():
            setattr(row, key, value)
        self.flush()
        return row

    def _delete(self, model, condition, conflict_message, not_found_message=None):
        try:
            result = self.session.execute(delete(model).where(condition))
        except IntegrityError:
            self.session.rollback()
            raise ConflictError(conflict_message)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise UpstreamError(f"Database error: {e}")
        if not_found_message and result.rowcount == 0:
            raise NotFoundError(not_found_message)
        return result.rowcount

    def _count(self, stmt):
        return self._scalar(stmt) or 0

    # ------------------------------------------------------------------
    # Identity accounts
    # ------------------------------------------------------------------
    def get_auth_user(self, user_id):
        return self._fetch(select(AuthUser).where(AuthUser.id == user_id)).first()

    def find_auth_user_by_email(self, email):
        return self._fetch(select(AuthUser).where(AuthUser.email == email)).first()

    def add_auth_user(self, email, password_hash, role):
        return self._add(AuthUser(email=email, password_hash=password_hash, role=role))

    def _delete_account(self, condition):
        self._delete(AuthUser, condition, "Cannot delete the linked login account.")

    # ------------------------------------------------------------------
    # Staff
    # ------------------------------------------------------------------
    def list_staff(self):
        return self._fetch(select(Staff).order_by(Staff.full_name.asc())).all()

    def get_staff(self, staff_id):
        return self._get(Staff, staff_id, "Staff member not found.")

    def find_staff_by_email(self, email):
        return self._fetch(select(Staff).where(Staff.email == email)).first()

    def find_staff_for_account(self, user):
        """The staff profile linked to ``user``, or sharing its email."""
        return self._fetch(
            select(Staff).where(
                (Staff.auth_user_id == user.id) | (Staff.email == user.email)
            )
        ).first()

    def add_staff(self, **fields):
        return self._add(Staff(**fields))

    def update_staff(self, staff_id, fields):
        return self._update(self.get_staff(staff_id), fields)

    def delete_staff(self, staff_id):
        """Delete the profile and its login account in the same unit of work."""
        staff = self.get_staff(staff_id)
        account_id, email = staff.auth_user_id, staff.email
        self._delete(
            Staff,
            Staff.id == staff_id,
            "Cannot delete staff member with assigned patients or appointments.",
            "Staff member not found.",
        )
        if account_id is not None:
            self._delete_account(AuthUser.id == account_id)
        elif email:
            self._delete_account((AuthUser.email == email) & AuthUser.role.in_(STAFF_ROLES))

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------
    def list_patients_with_last_visit(self):
        """Patients ordered by id, each paired with their latest appointment start."""
        last_visit = (
            select(Appointment.patient_id, func.max(Appointment.start_time).label("last_visit"))
            .group_by(Appointment.patient_id)
            .subquery()
        )
        stmt = (
            select(Patient, last_visit.c.last_visit)
            .outerjoin(last_visit, last_visit.c.patient_id == Patient.id)
            .options(joinedload(Patient.staff))
            .order_by(Patient.id.asc())
        )
        try:
            return self.session.execute(stmt).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise UpstreamError(f"Database error: {e}")

    def get_patient(self, patient_id):
        return self._get(
            Patient, patient_id, "Patient not found.", options=(joinedload(Patient.staff),)
        )

    def find_patient_by_auth_user(self, auth_user_id):
        return self._fetch(
            select(Patient).where(Patient.auth_user_id == auth_user_id)
        ).first()

    def add_patient(self, **fields):
        return self._add(Patient(**fields))

    def update_patient(self, patient_id, fields):
        return self._update(self.get_patient(patient_id), fields)

    def delete_patient(self, patient_id):
        account_id = self.get_patient(patient_id).auth_user_id
        self._delete(
            Patient,
            Patient.id == patient_id,
            "Cannot delete patient with existing invoices/appointments.",
            "Patient not found.",
        )
        if account_id is not None:
            self._delete_account(AuthUser.id == account_id)

    def count_patients_created(self, start, end):
        return self._count(
            select(func.count(Patient.id)).where(
                Patient.created_at >= start, Patient.created_at < end
            )
        )

    def patient_birth_dates(self):
        return self._fetch(select(Patient.date_of_birth)).all()

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------
    def list_appointments(self, patient_id=None):
        stmt = select(Appointment).options(joinedload(Appointment.staff))
        if patient_id is not None:
            stmt = stmt.where(Appointment.patient_id == patient_id)
        return self._fetch(stmt.order_by(Appointment.start_time.desc())).all()

    def get_appointment(self, appointment_id):
        return self._get(
            Appointment,
            appointment_id,
            "Appointment not found.",
            options=(joinedload(Appointment.staff),),
        )

    def add_appointment(self, **fields):
        return self._add(Appointment(**fields))

    def update_appointment(self, appointment_id, fields):
        return self._update(self.get_appointment(appointment_id), fields)

    def delete_appointment(self, appointment_id):
        self._delete(
            Appointment,
            Appointment.id == appointment_id,
            "Cannot delete appointment that is referenced by other records.",
            "Appointment not found.",
        )

    def count_appointments(self, start, end, status=None):
        stmt = select(func.count(Appointment.id)).where(
            Appointment.start_time >= start, Appointment.start_time < end
        )
        if status:
            stmt = stmt.where(Appointment.status == status)
        return self._count(stmt)

    def appointments_between(self, start, end):
        stmt = (
            select(Appointment)
            .options(joinedload(Appointment.staff))
            .where(Appointment.start_time >= start, Appointment.start_time < end)
            .order_by(Appointment.start_time.asc())
        )
        return self._fetch(stmt).all()

    def appointment_start_times(self, start, end):
        return self._fetch(
            select(Appointment.start_time).where(
                Appointment.start_time >= start, Appointment.start_time < end
            )
        ).all()

    def complete_past_appointments(self, now):
        """Mark Scheduled/Confirmed appointments that ended before ``now`` as Completed."""
        rows = self._fetch(
            select(Appointment).where(
                Appointment.status.in_(["Scheduled", "Confirmed"]),
                Appointment.end_time.is_not(None),
                Appointment.end_time < now,
            )
        ).all()
        for appointment in rows:
            appointment.status = "Completed"
        return len(rows)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------
    def list_invoices(self, patient_id=None):
        stmt = select(Invoice).options(joinedload(Invoice.patient))
        if patient_id is not None:
            stmt = stmt.where(Invoice.patient_id == patient_id)
        return self._fetch(stmt.order_by(Invoice.id.desc())).all()

    def get_invoice(self, invoice_id, with_items=False):
        options = [joinedload(Invoice.patient)]
        if with_items:
            options.append(selectinload(Invoice.items))
        return self._get(Invoice, invoice_id, "Invoice not found.", options=options)

    def add_invoice(self, **fields):
        return self._add(Invoice(**fields))

    def update_invoice(self, invoice_id, fields):
        return self._update(self.get_invoice(invoice_id), fields)

    def list_invoice_items(self, invoice_id):
        return self._fetch(
            select(InvoiceItem)
            .where(InvoiceItem.invoice_id == invoice_id)
            .order_by(InvoiceItem.id.asc())
        ).all()

    def insert_invoice_items(self, invoice_id, items):
        rows = [
            InvoiceItem(
                invoice_id=invoice_id,
                service_name=item.service_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in items
        ]
        self.session.add_all(rows)
        self.flush()
        return rows

    def delete_invoice_items(self, invoice_id):
        return self._delete(
            InvoiceItem,
            InvoiceItem.invoice_id == invoice_id,
            "Could not delete invoice items.",
        )

    def delete_invoice(self, invoice_id):
        self._delete(
            Invoice,
            Invoice.id == invoice_id,
            "Cannot delete invoice that is referenced by other records.",
            "Invoice not found.",
        )

    def paid_invoice_totals(self, start, end):
        return self._fetch(
            select(Invoice.total_amount).where(
                Invoice.status == "Paid",
                Invoice.created_at >= start,
                Invoice.created_at < end,
            )
        ).all()

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    def list_products(self):
        return self._fetch(select(Product).order_by(Product.name.asc())).all()

    def get_product(self, product_id):
        return self._get(Product, product_id, "Product not found.")

    def add_product(self, **fields):
        return self._add(Product(**fields))

    def update_product(self, product_id, fields):
        return self._update(self.get_product(product_id), fields)

    def delete_product(self, product_id):
        self._delete(
            Product,
            Product.id == product_id,
            "Cannot delete product that is referenced by other records.",
            "Product not found.",
        )

    def decrease_stock(self, product_id, quantity_sold):
        """Take ``quantity_sold`` units off the shelf, never going below zero."""
        product = self.get_product(product_id)
        product.stock_level = max(0, (product.stock_level or 0) - quantity_sold)
        self.flush()
        return product

    # ------------------------------------------------------------------
    # Exercise catalog and assignments
    # ------------------------------------------------------------------
    def list_exercises(self):
        return self._fetch(select(Exercise).order_by(Exercise.title.asc())).all()

    def get_exercise(self, exercise_id):
        return self._get(Exercise, exercise_id, "Exercise not found.")

    def add_exercise(self, **fields):
        return self._add(Exercise(**fields))

    def update_exercise(self, exercise_id, fields):
        return self._update(self.get_exercise(exercise_id), fields)

    def delete_exercise(self, exercise_id):
        self._delete(
            Exercise,
            Exercise.id == exercise_id,
            "Cannot delete an exercise that is assigned to patients.",
            "Exercise not found.",
        )

    def list_assignments(self, patient_id):
        stmt = (
            select(AssignedExercise)
            .options(joinedload(AssignedExercise.exercise))
            .where(AssignedExercise.patient_id == patient_id)
            .order_by(AssignedExercise.id.asc())
        )
        return self._fetch(stmt).all()

    def get_assignment(self, assignment_id):
        return self._get(
            AssignedExercise,
            assignment_id,
            "Exercise assignment not found.",
            options=(
                joinedload(AssignedExercise.exercise),
                joinedload(AssignedExercise.patient),
            ),
        )

    def add_assignment(self, **fields):
        return self._add(AssignedExercise(**fields))

    def delete_assignment(self, assignment_id):
        self._delete(
            AssignedExercise,
            AssignedExercise.id == assignment_id,
            "Cannot delete exercise assignment.",
            "Exercise assignment not found.",
        )

    def mark_assignment_complete(self, assignment, day: date):
        completed = list(assignment.completed_dates or [])
        if day.isoformat() not in completed:
            completed.append(day.isoformat())
        # reassign so the JSON column is flagged dirty
        assignment.completed_dates = completed
        self.flush()
        return assignment

    # ------------------------------------------------------------------
    # Clinical notes
    # ------------------------------------------------------------------
    def list_notes(self, patient_id):
        stmt = (
            select(ClinicalNote)
            .options(joinedload(ClinicalNote.staff))
            .where(ClinicalNote.patient_id == patient_id)
            .order_by(ClinicalNote.note_date.desc(), ClinicalNote.id.desc())
        )
        return self._fetch(stmt).all()

    def get_note(self, note_id):
        return self._get(
            ClinicalNote,
            note_id,
            "Clinical note not found.",
            options=(joinedload(ClinicalNote.staff),),
        )

    def add_note(self, **fields):
        return self._add(ClinicalNote(**fields))

    def update_note(self, note_id, fields):
        return self._update(self.get_note(note_id), fields)

    def delete_note(self, note_id):
        self._delete(
            ClinicalNote,
            ClinicalNote.id == note_id,
            "Cannot delete clinical note.",
            "Clinical note not found.",
        )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def get_settings(self):
        return self._fetch(select(Settings).where(Settings.id == SETTINGS_ID)).first()

    def upsert_settings(self, fields):
        settings = self.get_settings()
        if settings is None:
            return self._add(Settings(id=SETTINGS_ID, **fields))
        return self._update(settings, fields)

    # ------------------------------------------------------------------
    # Principal-scoped view
    # ------------------------------------------------------------------
    def for_patient(self, patient):
        return PatientScope(self, patient)


class PatientScope:
    """Reads restricted to one patient's own rows, used by the patient portal."""

    def __init__(self, store, patient):
        self.store = store
        self.patient = patient

    def appointments(self):
        return self.store.list_appointments(patient_id=self.patient.id)

    def assignments(self):
        return self.store.list_assignments(self.patient.id)

    def assignment(self, assignment_id):
        assignment = self.store.get_assignment(assignment_id)
        if assignment.patient_id != self.patient.id:
            raise AuthorizationError("This exercise is not assigned to you.")
        return assignment


def default_store_factory(session):
    return ClinicStore(session)


def get_store() -> ClinicStore:
    """Return the request's store, building it on first use."""
    if "store" not in g:
        factory = current_app.extensions.get(STORE_FACTORY_KEY, default_store_factory)
        g.store = factory(db.session)
    return g.store
