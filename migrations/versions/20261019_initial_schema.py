"""create visa reference, trip, application and notification tables

Revision ID: initial_20261019
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "initial_20261019"
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    "continent_enum": (
        "AFRICA",
        "ASIA",
        "EUROPE",
        "NORTH_AMERICA",
        "SOUTH_AMERICA",
        "OCEANIA",
        "ANTARCTICA",
    ),
    "travel_purpose_enum": (
        "TOURISM",
        "BUSINESS",
        "TRANSIT",
        "STUDY",
        "WORK",
        "DIPLOMATIC",
        "MEDICAL",
    ),
    "visa_type_enum": (
        "VISA_FREE",
        "E_VISA",
        "VISA_ON_ARRIVAL",
        "EMBASSY_VISA",
        "TRANSIT_VISA",
        "ETA",
        "TRAVEL_AUTH",
    ),
    "application_method_enum": (
        "ONLINE",
        "EMBASSY",
        "VFS_GLOBAL",
        "TLS_CONTACT",
        "ON_ARRIVAL",
        "MOBILE_APP",
        "NONE",
    ),
    "yellow_fever_mode_enum": ("ALWAYS", "CONDITIONAL", "NOT_REQUIRED"),
    "document_type_enum": (
        "PASSPORT",
        "PHOTO",
        "FLIGHT_RESERVATION",
        "HOTEL_BOOKING",
        "BANK_STATEMENT",
        "INVITATION_LETTER",
        "TRAVEL_INSURANCE",
        "EMPLOYMENT_LETTER",
        "STUDENT_LETTER",
        "YELLOW_FEVER_CERTIFICATE",
        "OTHER",
    ),
    "trip_status_enum": ("PLANNING", "IN_PROGRESS", "COMPLETED", "CANCELLED"),
    "feasibility_status_enum": ("FEASIBLE", "RISKY", "IMPOSSIBLE"),
    "application_channel_enum": (
        "EMBASSY",
        "VFS_GLOBAL",
        "TLS_CONTACT",
        "EVISA_PORTAL",
        "ETA_PORTAL",
        "MOBILE_APP",
        "VISA_ON_ARRIVAL",
        "AGENCY",
        "OTHER",
    ),
    "application_status_enum": (
        "NOT_STARTED",
        "DOCUMENTS_IN_PROGRESS",
        "APPOINTMENT_BOOKED",
        "SUBMITTED",
        "UNDER_REVIEW",
        "ADDITIONAL_DOCS_REQUESTED",
        "APPROVED",
        "REJECTED",
        "CANCELLED",
        "EXPIRED",
    ),
    "notification_type_enum": (
        "DEADLINE_APPROACHING",
        "DECISION_EXPECTED",
        "STATUS_UPDATE",
        "VISA_APPLY_NOW",
        "VISA_TIMELINE_TIGHT",
        "VISA_HIGH_RISK",
    ),
}


def _enum(name):
    # Shared Postgres types are created once up front, not per table.
    if op.get_bind().dialect.name == "postgresql":
        return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)
    return sa.Enum(*ENUMS[name], name=name)


def _created_at():
    return sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now())


def upgrade():
    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("passport_country_code", sa.String(length=2), nullable=True),
        sa.Column("passport_expiry_date", sa.Date(), nullable=True),
        sa.Column("valid_visa_countries", sa.JSON(), nullable=False),
        sa.Column("valid_visa_expiry_dates", sa.JSON(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "countries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("iso_code", sa.String(length=2), nullable=False),
        sa.Column("iso_code3", sa.String(length=3), nullable=True),
        sa.Column("continent", _enum("continent_enum"), nullable=True),
        sa.Column("regional_blocs", sa.JSON(), nullable=False),
        sa.Column(
            "default_passport_validity_days",
            sa.Integer(),
            nullable=False,
            server_default="180",
        ),
        sa.Column("has_evisa_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_eta_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_voa", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("yellow_fever_endemic", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("immigration_portal_url", sa.String(length=512), nullable=True),
        sa.Column("evisa_portal_url", sa.String(length=512), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=False, server_default="USD"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index("ix_countries_iso_code", "countries", ["iso_code"], unique=True)

    op.create_table(
        "visa_requirements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "passport_country_id", sa.Integer(), sa.ForeignKey("countries.id"), nullable=True
        ),
        sa.Column(
            "destination_country_id", sa.Integer(), sa.ForeignKey("countries.id"), nullable=False
        ),
        sa.Column("travel_purpose", _enum("travel_purpose_enum"), nullable=False),
        sa.Column("visa_type", _enum("visa_type_enum"), nullable=False),
        sa.Column("application_method", _enum("application_method_enum"), nullable=False),
        sa.Column("visa_free_days", sa.Integer(), nullable=True),
        sa.Column("allowed_stay_days", sa.Integer(), nullable=True),
        sa.Column("validity_period_days", sa.Integer(), nullable=True),
        sa.Column("processing_time_min", sa.Integer(), nullable=False),
        sa.Column("processing_time_max", sa.Integer(), nullable=False),
        sa.Column("visa_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=False, server_default="USD"),
        sa.Column("additional_fees", sa.JSON(), nullable=False),
        sa.Column("passport_validity_days", sa.Integer(), nullable=False, server_default="180"),
        sa.Column("blank_pages_required", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("eligibility_conditions", sa.JSON(), nullable=False),
        sa.Column("pre_arrival_requirements", sa.JSON(), nullable=False),
        sa.Column("yellow_fever_required", _enum("yellow_fever_mode_enum"), nullable=False),
        sa.Column("yellow_fever_conditions", sa.JSON(), nullable=False),
        sa.Column("application_url", sa.String(length=512), nullable=True),
        sa.Column("official_guidelines_url", sa.String(length=512), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("restrictions", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("deprecated_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_verified_date", sa.Date(), nullable=True),
        sa.Column("last_verified_source", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "uq_visa_requirements_active_key",
        "visa_requirements",
        ["passport_country_id", "destination_country_id", "travel_purpose"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active"),
    )
    op.create_index(
        "uq_visa_requirements_active_default",
        "visa_requirements",
        ["destination_country_id", "travel_purpose"],
        unique=True,
        sqlite_where=sa.text("passport_country_id IS NULL AND is_active = 1"),
        postgresql_where=sa.text("passport_country_id IS NULL AND is_active"),
    )
    op.create_index(
        "ix_visa_requirements_destination_active",
        "visa_requirements",
        ["destination_country_id", "is_active"],
    )

    op.create_table(
        "visa_required_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "visa_requirement_id",
            sa.Integer(),
            sa.ForeignKey("visa_requirements.id"),
            nullable=False,
        ),
        sa.Column("document_type", _enum("document_type_enum"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("mandatory", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_visa_required_documents_visa_requirement_id",
        "visa_required_documents",
        ["visa_requirement_id"],
    )

    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", _enum("trip_status_enum"), nullable=False),
        sa.Column("feasibility_status", _enum("feasibility_status_enum"), nullable=False),
        sa.Column("feasibility_issues", sa.JSON(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_trips_user_id", "trips", ["user_id"])

    op.create_table(
        "trip_destinations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("country_id", sa.Integer(), sa.ForeignKey("countries.id"), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("exit_date", sa.Date(), nullable=False),
        sa.Column("travel_purpose", _enum("travel_purpose_enum"), nullable=False),
        sa.Column("visa_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("visa_type", sa.String(length=32), nullable=True),
        sa.Column("processing_time_min", sa.Integer(), nullable=True),
        sa.Column("processing_time_max", sa.Integer(), nullable=True),
        sa.Column("feasibility_status", _enum("feasibility_status_enum"), nullable=False),
        sa.Column("feasibility_reason", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_trip_destinations_trip_id", "trip_destinations", ["trip_id"])

    op.create_table(
        "visa_applications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id"), nullable=True),
        sa.Column(
            "trip_destination_id",
            sa.Integer(),
            sa.ForeignKey("trip_destinations.id"),
            nullable=False,
        ),
        sa.Column(
            "visa_requirement_id",
            sa.Integer(),
            sa.ForeignKey("visa_requirements.id"),
            nullable=True,
        ),
        sa.Column("destination_iso_code", sa.String(length=2), nullable=True),
        sa.Column("application_channel", _enum("application_channel_enum"), nullable=False),
        sa.Column("reference_number", sa.String(length=64), nullable=True),
        sa.Column("status", _enum("application_status_enum"), nullable=False),
        sa.Column("application_date", sa.Date(), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=True),
        sa.Column("submission_date", sa.Date(), nullable=True),
        sa.Column("decision_date", sa.Date(), nullable=True),
        sa.Column("expected_decision_date", sa.Date(), nullable=True),
        sa.Column("latest_submission_date", sa.Date(), nullable=True),
        sa.Column("recommended_submission_date", sa.Date(), nullable=True),
        sa.Column("checklist_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("checklist_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "user_id", "trip_destination_id", name="uq_visa_applications_user_destination"
        ),
    )
    op.create_index("ix_visa_applications_user_id", "visa_applications", ["user_id"])
    op.create_index("ix_visa_applications_trip_id", "visa_applications", ["trip_id"])
    op.create_index(
        "ix_visa_applications_reference_number", "visa_applications", ["reference_number"]
    )

    op.create_table(
        "application_status_changes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "application_id",
            sa.Integer(),
            sa.ForeignKey("visa_applications.id"),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(length=32), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("changed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("changed_by", sa.String(length=64), nullable=False, server_default="SYSTEM"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_application_status_changes_application_id",
        "application_status_changes",
        ["application_id"],
    )

    op.create_table(
        "visa_application_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "visa_application_id",
            sa.Integer(),
            sa.ForeignKey("visa_applications.id"),
            nullable=False,
        ),
        sa.Column("document_type", _enum("document_type_enum"), nullable=False),
        sa.Column("uploaded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("file_url", sa.String(length=512), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.UniqueConstraint(
            "visa_application_id", "document_type", name="uq_application_documents_type"
        ),
    )
    op.create_index(
        "ix_visa_application_documents_visa_application_id",
        "visa_application_documents",
        ["visa_application_id"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", _enum("notification_type_enum"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "application_id",
            sa.Integer(),
            sa.ForeignKey("visa_applications.id"),
            nullable=True,
        ),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True, unique=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_application_id", "notifications", ["application_id"])


def downgrade():
    op.drop_index("ix_notifications_application_id", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index(
        "ix_visa_application_documents_visa_application_id",
        table_name="visa_application_documents",
    )
    op.drop_table("visa_application_documents")

    op.drop_index(
        "ix_application_status_changes_application_id",
        table_name="application_status_changes",
    )
    op.drop_table("application_status_changes")

    op.drop_index("ix_visa_applications_reference_number", table_name="visa_applications")
    op.drop_index("ix_visa_applications_trip_id", table_name="visa_applications")
    op.drop_index("ix_visa_applications_user_id", table_name="visa_applications")
    op.drop_table("visa_applications")

    op.drop_index("ix_trip_destinations_trip_id", table_name="trip_destinations")
    op.drop_table("trip_destinations")

    op.drop_index("ix_trips_user_id", table_name="trips")
    op.drop_table("trips")

    op.drop_index(
        "ix_visa_required_documents_visa_requirement_id",
        table_name="visa_required_documents",
    )
    op.drop_table("visa_required_documents")

    op.drop_index("ix_visa_requirements_destination_active", table_name="visa_requirements")
    op.drop_index("uq_visa_requirements_active_default", table_name="visa_requirements")
    op.drop_index("uq_visa_requirements_active_key", table_name="visa_requirements")
    op.drop_table("visa_requirements")

    op.drop_index("ix_countries_iso_code", table_name="countries")
    op.drop_table("countries")

    op.drop_table("users")

    bind = op.get_bind()
    for name, values in reversed(list(ENUMS.items())):
        sa.Enum(*values, name=name).drop(bind, checkfirst=True)
