"""create gdpr tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op
from boligdeposit.constants.gdpr import (
    BreachRiskLevel,
    BreachStatus,
    ConsentType,
    DataCategory,
    LawfulBasis,
    ProcessingPurpose,
    RequestStatus,
    RequestType,
)
from boligdeposit.models.erasure_job import ErasureStatus, ErasureStep

revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUM_TYPES = [
    ConsentType,
    LawfulBasis,
    DataCategory,
    ProcessingPurpose,
    RequestType,
    RequestStatus,
    ErasureStatus,
    ErasureStep,
    BreachRiskLevel,
    BreachStatus,
]


def _enum(enum_cls):
    # Types are created up front so tables can share them
    return postgresql.ENUM(enum_cls, name=enum_cls.__name__.lower(), create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_cls in ENUM_TYPES:
            postgresql.ENUM(enum_cls, name=enum_cls.__name__.lower()).create(bind, checkfirst=True)

    op.create_table(
        "consent_records",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column("consent_type", _enum(ConsentType), nullable=False),
        sa.Column("granted", sa.Boolean(), nullable=False),
        sa.Column("lawful_basis", _enum(LawfulBasis), nullable=False),
        sa.Column("purposes", sa.JSON(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("consent_string", sa.String(1024), nullable=True),
        sa.UniqueConstraint("user_id", "consent_type", name="uq_consent_user_type"),
    )
    op.create_index("idx_consent_user_expires", "consent_records", ["user_id", "expires_at"])

    op.create_table(
        "processing_records",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column("data_category", _enum(DataCategory), nullable=False),
        sa.Column("purpose", _enum(ProcessingPurpose), nullable=False),
        sa.Column("lawful_basis", _enum(LawfulBasis), nullable=False),
        sa.Column("processing_date", sa.DateTime(), nullable=False),
        sa.Column("data_retention_until", sa.DateTime(), nullable=False),
        sa.Column("is_anonymized", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("audit_hash", sa.String(64), nullable=False),
    )
    op.create_index("idx_processing_user_date", "processing_records", ["user_id", "processing_date"])

    op.create_table(
        "data_subject_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column("type", _enum(RequestType), nullable=False),
        sa.Column("status", _enum(RequestStatus), nullable=False),
        sa.Column("request_date", sa.DateTime(), nullable=False),
        sa.Column("completion_deadline", sa.DateTime(), nullable=False),
        sa.Column("completed_date", sa.DateTime(), nullable=True),
        sa.Column("request_details", sa.Text(), nullable=False),
        sa.Column("response_data", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
    )
    op.create_index("idx_dsr_status_deadline", "data_subject_requests", ["status", "completion_deadline"])

    op.create_table(
        "gdpr_audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, index=True, autoincrement=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("hash", sa.String(64), nullable=False),
    )
    op.create_index("idx_audit_user_action", "gdpr_audit_log", ["user_id", "action"])

    op.create_table(
        "anonymized_users",
        sa.Column("id", sa.Integer(), primary_key=True, index=True, autoincrement=True),
        sa.Column("original_user_id", sa.String(64), nullable=False, index=True),
        sa.Column("erasure_date", sa.DateTime(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("retained_for_compliance", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "erasure_jobs",
        sa.Column("id", sa.Integer(), primary_key=True, index=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", _enum(ErasureStatus), nullable=False),
        sa.Column("current_step", _enum(ErasureStep), nullable=False),
        sa.Column(
            "anonymized_record_id",
            sa.Integer(),
            sa.ForeignKey("anonymized_users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_erasure_status", "erasure_jobs", ["status"])

    op.create_table(
        "privacy_policy_acceptances",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("policy_version", sa.String(20), nullable=False),
        sa.Column("accepted_at", sa.DateTime(), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
    )

    op.create_table(
        "data_breaches",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("risk_level", _enum(BreachRiskLevel), nullable=False),
        sa.Column("affected_user_ids", sa.JSON(), nullable=False),
        sa.Column("data_categories", sa.JSON(), nullable=False),
        sa.Column("reported_at", sa.DateTime(), nullable=False),
        sa.Column("status", _enum(BreachStatus), nullable=False),
        sa.Column("notified_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "secure_items",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("secure_items")
    op.drop_table("data_breaches")
    op.drop_table("privacy_policy_acceptances")
    op.drop_index("idx_erasure_status", table_name="erasure_jobs")
    op.drop_table("erasure_jobs")
    op.drop_table("anonymized_users")
    op.drop_index("idx_audit_user_action", table_name="gdpr_audit_log")
    op.drop_table("gdpr_audit_log")
    op.drop_index("idx_dsr_status_deadline", table_name="data_subject_requests")
    op.drop_table("data_subject_requests")
    op.drop_index("idx_processing_user_date", table_name="processing_records")
    op.drop_table("processing_records")
    op.drop_index("idx_consent_user_expires", table_name="consent_records")
    op.drop_table("consent_records")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_cls in reversed(ENUM_TYPES):
            postgresql.ENUM(enum_cls, name=enum_cls.__name__.lower()).drop(bind, checkfirst=True)
