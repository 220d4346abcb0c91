"""Create review core tables.

Revision ID: 001_review_core
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


revision = "001_review_core"
down_revision = None
branch_labels = None
depends_on = None

APPLICATION_STATUS = sa.Enum(
    "DRAFT", "SUBMITTED", "IN_REVIEW", "DOCS_PENDING", "CORRECTIONS_PENDING",
    "COUNTER_OFFERED", "APPROVED", "REJECTED", "CANCELLED", "DISBURSED",
    name="applicationstatus",
)
PAYMENT_FREQUENCY = sa.Enum("MONTHLY", "BIWEEKLY", name="paymentfrequency")
STAFF_ROLE = sa.Enum("ANALYST", "SUPERVISOR", "ADMIN", "SUPER_ADMIN", name="staffrole")
DOCUMENT_STATUS = sa.Enum("PENDING", "APPROVED", "REJECTED", name="documentstatus")
VERIFICATION_STATUS = sa.Enum("PENDING", "VERIFIED", "REJECTED", name="verificationstatus")
REFERENCE_STATUS = sa.Enum("PENDING", "VERIFIED", "REJECTED", "UNREACHABLE", name="referencestatus")
ERROR_SEVERITY = sa.Enum("INFO", "WARNING", "ERROR", "CRITICAL", name="errorseverity")


def upgrade() -> None:
    op.create_table(
        "staff_users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(64), nullable=True, index=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("role", STAFF_ROLE, nullable=False, server_default="ANALYST"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "credit_products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("product_type", sa.String(50), nullable=False),
        sa.Column("required_documents", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "loan_applications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("folio", sa.String(20), nullable=False, unique=True, index=True),
        sa.Column("tenant_id", sa.String(64), nullable=True, index=True),
        sa.Column("credit_product_id", sa.Integer(), sa.ForeignKey("credit_products.id"), nullable=True, index=True),
        sa.Column("requested_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("term_months", sa.Integer(), nullable=False),
        sa.Column("payment_frequency", PAYMENT_FREQUENCY, nullable=False, server_default="MONTHLY"),
        sa.Column("interest_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("monthly_payment", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_to_pay", sa.Numeric(12, 2), nullable=True),
        sa.Column("approved_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("counter_offer_reason", sa.Text(), nullable=True),
        sa.Column("status", APPLICATION_STATUS, nullable=False, server_default="DRAFT", index=True),
        sa.Column("status_history", sa.JSON(), nullable=True),
        sa.Column("assigned_to_id", sa.Integer(), sa.ForeignKey("staff_users.id"), nullable=True, index=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("disbursed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "applicant_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("loan_applications.id"), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name_1", sa.String(100), nullable=False),
        sa.Column("last_name_2", sa.String(100), nullable=True),
        sa.Column("curp", sa.String(18), nullable=True, index=True),
        sa.Column("rfc", sa.String(13), nullable=True),
        sa.Column("ine_clave", sa.String(20), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "applicant_addresses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("loan_applications.id"), nullable=False, unique=True),
        sa.Column("street", sa.String(255), nullable=False),
        sa.Column("exterior_number", sa.String(20), nullable=True),
        sa.Column("interior_number", sa.String(20), nullable=True),
        sa.Column("neighborhood", sa.String(150), nullable=True),
        sa.Column("postal_code", sa.String(10), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("housing_type", sa.String(50), nullable=True),
    )

    op.create_table(
        "employment_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("loan_applications.id"), nullable=False, unique=True),
        sa.Column("employment_type", sa.String(50), nullable=False),
        sa.Column("employer_name", sa.String(200), nullable=True),
        sa.Column("job_title", sa.String(100), nullable=True),
        sa.Column("monthly_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("seniority_months", sa.Integer(), nullable=True),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("loan_applications.id"), nullable=False, index=True),
        sa.Column("document_type", sa.String(50), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("status", DOCUMENT_STATUS, nullable=False, server_default="PENDING"),
        sa.Column("rejection_reason", sa.String(50), nullable=True),
        sa.Column("rejection_comment", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("is_kyc_locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by_id", sa.Integer(), sa.ForeignKey("staff_users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "application_references",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("loan_applications.id"), nullable=False, index=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("relationship_type", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("verification_status", REFERENCE_STATUS, nullable=False, server_default="PENDING"),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by_id", sa.Integer(), sa.ForeignKey("staff_users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "bank_accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("loan_applications.id"), nullable=False, index=True),
        sa.Column("bank_name", sa.String(100), nullable=False),
        sa.Column("clabe", sa.String(18), nullable=True),
        sa.Column("account_number", sa.String(30), nullable=True),
        sa.Column("holder_name", sa.String(200), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by_id", sa.Integer(), sa.ForeignKey("staff_users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "field_verifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("loan_applications.id"), nullable=False, index=True),
        sa.Column("field_name", sa.String(50), nullable=False),
        sa.Column("status", VERIFICATION_STATUS, nullable=False, server_default="PENDING"),
        sa.Column("method", sa.String(50), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by_id", sa.Integer(), sa.ForeignKey("staff_users.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("application_id", "field_name", name="uq_field_verification_field"),
    )

    op.create_table(
        "application_notes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("loan_applications.id"), nullable=False, index=True),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("staff_users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(50), nullable=False, index=True),
        sa.Column("entity_id", sa.Integer(), nullable=False, index=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("staff_users.id"), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "error_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("severity", ERROR_SEVERITY, nullable=False, server_default="ERROR"),
        sa.Column("error_type", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("traceback", sa.Text(), nullable=True),
        sa.Column("module", sa.String(300), nullable=True),
        sa.Column("function_name", sa.String(200), nullable=True),
        sa.Column("line_number", sa.Integer(), nullable=True),
        sa.Column("application_id", sa.Integer(), nullable=True, index=True),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    for table in (
        "error_logs",
        "audit_log",
        "application_notes",
        "field_verifications",
        "bank_accounts",
        "application_references",
        "documents",
        "employment_records",
        "applicant_addresses",
        "applicant_profiles",
        "loan_applications",
        "credit_products",
        "staff_users",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum_type in (
        ERROR_SEVERITY, REFERENCE_STATUS, VERIFICATION_STATUS, DOCUMENT_STATUS,
        STAFF_ROLE, PAYMENT_FREQUENCY, APPLICATION_STATUS,
    ):
        enum_type.drop(bind, checkfirst=True)
