from typing import List, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum,
    ForeignKeyConstraint,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()
metadata = Base.metadata

APPOINTMENT_STATUSES = ("Scheduled", "Confirmed", "Completed", "Cancelled", "No Show")
INVOICE_STATUSES = ("Unpaid", "Paid")
DISCOUNT_TYPES = ("none", "percent", "flat")
AUTH_ROLES = ("ADMIN", "STAFF", "PATIENT")
STAFF_ROLES = ("ADMIN", "STAFF")


class AuthUser(Base):
    __tablename__ = "auth_user"
    __table_args__ = (Index("ix_auth_user_email", "email", unique=True),)

    id = mapped_column(Integer, primary_key=True)
    email = mapped_column(String(255), nullable=False)
    password_hash = mapped_column(LargeBinary(72), nullable=False)
    role = mapped_column(Enum(*AUTH_ROLES, name="auth_role"), nullable=False)
    created_at = mapped_column(DateTime, server_default=text("CURRENT_TIMESTAMP"))

    staff: Mapped[List["Staff"]] = relationship(
        "Staff", uselist=True, back_populates="user"
    )
    patients: Mapped[List["Patient"]] = relationship(
        "Patient", uselist=True, back_populates="user"
    )


class Staff(Base):
    __tablename__ = "staff"
    __table_args__ = (
        ForeignKeyConstraint(
            ["auth_user_id"], ["auth_user.id"], ondelete="SET NULL", name="fk_staff_auth_user"
        ),
        Index("ix_staff_email", "email", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    full_name = mapped_column(String(150), nullable=False)
    email = mapped_column(String(255), nullable=False)
    phone_number = mapped_column(String(50))
    role = mapped_column(String(50))
    avatar_url = mapped_column(String(512))
    auth_user_id = mapped_column(Integer)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    user: Mapped[Optional["AuthUser"]] = relationship("AuthUser", back_populates="staff")
    patients: Mapped[List["Patient"]] = relationship(
        "Patient", uselist=True, back_populates="staff"
    )
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", uselist=True, back_populates="staff"
    )
    clinical_notes: Mapped[List["ClinicalNote"]] = relationship(
        "ClinicalNote", uselist=True, back_populates="staff"
    )


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (
        ForeignKeyConstraint(["staff_id"], ["staff.id"], name="fk_patient_staff"),
        ForeignKeyConstraint(
            ["auth_user_id"], ["auth_user.id"], ondelete="SET NULL", name="fk_patient_auth_user"
        ),
        Index("ix_patients_auth_user_id", "auth_user_id", unique=True),
    )

    id = mapped_column(Integer, primary_key=True)
    full_name = mapped_column(String(150), nullable=False)
    email = mapped_column(String(255))
    phone_number = mapped_column(String(50))
    gender = mapped_column(String(20))
    date_of_birth = mapped_column(Date)
    address = mapped_column(String(255))
    medical_history = mapped_column(Text)
    avatar_url = mapped_column(String(512))
    staff_id = mapped_column(Integer)
    auth_user_id = mapped_column(Integer)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    staff: Mapped[Optional["Staff"]] = relationship("Staff", back_populates="patients")
    user: Mapped[Optional["AuthUser"]] = relationship("AuthUser", back_populates="patients")
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment", uselist=True, back_populates="patient"
    )
    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice", uselist=True, back_populates="patient"
    )
    assigned_exercises: Mapped[List["AssignedExercise"]] = relationship(
        "AssignedExercise", uselist=True, back_populates="patient"
    )
    clinical_notes: Mapped[List["ClinicalNote"]] = relationship(
        "ClinicalNote", uselist=True, back_populates="patient"
    )


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        ForeignKeyConstraint(["patient_id"], ["patients.id"], name="fk_appt_patient"),
        ForeignKeyConstraint(["staff_id"], ["staff.id"], name="fk_appt_staff"),
        Index("ix_appointments_start_time", "start_time"),
        Index("ix_appointments_patient", "patient_id", "start_time"),
    )

    id = mapped_column(Integer, primary_key=True)
    title = mapped_column(String(200))
    start_time = mapped_column(DateTime)
    end_time = mapped_column(DateTime)
    status = mapped_column(
        Enum(*APPOINTMENT_STATUSES, name="appointment_status"),
        nullable=False,
        server_default=text("'Scheduled'"),
    )
    notes = mapped_column(Text)
    patient_id = mapped_column(Integer, nullable=False)
    staff_id = mapped_column(Integer)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    patient: Mapped["Patient"] = relationship("Patient", back_populates="appointments")
    staff: Mapped[Optional["Staff"]] = relationship("Staff", back_populates="appointments")


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        ForeignKeyConstraint(["patient_id"], ["patients.id"], name="fk_inv_patient"),
        ForeignKeyConstraint(
            ["appointment_id"], ["appointments.id"], ondelete="SET NULL", name="fk_inv_appt"
        ),
        Index("ix_invoices_status_created", "status", "created_at"),
    )

    id = mapped_column(Integer, primary_key=True)
    patient_id = mapped_column(Integer, nullable=False)
    appointment_id = mapped_column(Integer)
    status = mapped_column(
        Enum(*INVOICE_STATUSES, name="invoice_status"),
        nullable=False,
        server_default=text("'Unpaid'"),
    )
    diagnostic = mapped_column(Text)
    subtotal = mapped_column(Numeric(10, 2), nullable=False, server_default=text("0"))
    discount_type = mapped_column(
        Enum(*DISCOUNT_TYPES, name="discount_type"),
        nullable=False,
        server_default=text("'none'"),
    )
    discount_value = mapped_column(Numeric(10, 2), nullable=False, server_default=text("0"))
    discount_amount = mapped_column(Numeric(10, 2), nullable=False, server_default=text("0"))
    total_amount = mapped_column(Numeric(10, 2), nullable=False, server_default=text("0"))
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at = mapped_column(DateTime, onupdate=func.now())

    patient: Mapped["Patient"] = relationship("Patient", back_populates="invoices")
    appointment: Mapped[Optional["Appointment"]] = relationship("Appointment")
    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem", uselist=True, back_populates="invoice", order_by="InvoiceItem.id"
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"
    __table_args__ = (
        ForeignKeyConstraint(["invoice_id"], ["invoices.id"], name="fk_item_invoice"),
        Index("ix_invoice_items_invoice", "invoice_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    invoice_id = mapped_column(Integer, nullable=False)
    service_name = mapped_column(String(200), nullable=False)
    quantity = mapped_column(Numeric(10, 2), nullable=False)
    unit_price = mapped_column(Numeric(10, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (Index("ix_products_sku", "sku", unique=True),)

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(150), nullable=False)
    sku = mapped_column(String(64))
    category = mapped_column(String(100))
    unit_price = mapped_column(Numeric(10, 2), nullable=False, server_default=text("0"))
    stock_level = mapped_column(Integer, nullable=False, server_default=text("0"))


class Exercise(Base):
    __tablename__ = "exercises"

    id = mapped_column(Integer, primary_key=True)
    title = mapped_column(String(200), nullable=False)
    description = mapped_column(Text)
    instructions = mapped_column(Text)
    video_url = mapped_column(String(512))

    assignments: Mapped[List["AssignedExercise"]] = relationship(
        "AssignedExercise", uselist=True, back_populates="exercise"
    )


class AssignedExercise(Base):
    __tablename__ = "assigned_exercises"
    __table_args__ = (
        ForeignKeyConstraint(["patient_id"], ["patients.id"], name="fk_assign_patient"),
        ForeignKeyConstraint(["exercise_id"], ["exercises.id"], name="fk_assign_exercise"),
        Index("ix_assigned_exercises_patient", "patient_id"),
    )

    id = mapped_column(Integer, primary_key=True)
    patient_id = mapped_column(Integer, nullable=False)
    exercise_id = mapped_column(Integer, nullable=False)
    notes = mapped_column(Text)
    frequency_per_week = mapped_column(Integer)
    completed_dates = mapped_column(JSON)
    assigned_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    patient: Mapped["Patient"] = relationship("Patient", back_populates="assigned_exercises")
    exercise: Mapped["Exercise"] = relationship("Exercise", back_populates="assignments")


class ClinicalNote(Base):
    __tablename__ = "clinical_notes"
    __table_args__ = (
        ForeignKeyConstraint(["patient_id"], ["patients.id"], name="fk_note_patient"),
        ForeignKeyConstraint(
            ["staff_id"], ["staff.id"], ondelete="SET NULL", name="fk_note_staff"
        ),
        Index("ix_clinical_notes_patient", "patient_id", "note_date"),
    )

    id = mapped_column(Integer, primary_key=True)
    patient_id = mapped_column(Integer, nullable=False)
    staff_id = mapped_column(Integer)
    note_date = mapped_column(Date, nullable=False)
    title = mapped_column(String(200))
    content = mapped_column(Text, nullable=False)
    created_at = mapped_column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    patient: Mapped["Patient"] = relationship("Patient", back_populates="clinical_notes")
    staff: Mapped[Optional["Staff"]] = relationship("Staff", back_populates="clinical_notes")


class Settings(Base):
    __tablename__ = "settings"
    __table_args__ = {"comment": "Singleton row, always id = 1."}

    id = mapped_column(Integer, primary_key=True)
    clinic_name = mapped_column(String(150))
    phone_number = mapped_column(String(50))
    email = mapped_column(String(255))
    address = mapped_column(String(255))
    currency = mapped_column(String(10), server_default=text("'USD'"))
