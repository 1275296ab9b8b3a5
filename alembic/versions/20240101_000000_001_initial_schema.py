"""Initial OVR workflow schema.

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the incident workflow tables."""

    # Incidents (OVR reports)
    op.create_table(
        "incidents",
        sa.Column("id", sa.String(20), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="draft"),
        sa.Column("reporter_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        # Supervisor section
        sa.Column("supervisor_id", sa.Integer(), nullable=True),
        sa.Column("supervisor_action", sa.Text(), nullable=True),
        sa.Column("supervisor_action_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("supervisor_approved_at", sa.DateTime(timezone=True), nullable=True),
        # QI assignment
        sa.Column("qi_received_by", sa.Integer(), nullable=True),
        sa.Column("qi_received_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("qi_assigned_by", sa.Integer(), nullable=True),
        sa.Column("qi_assigned_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("department_head_id", sa.Integer(), nullable=True),
        sa.Column("hod_assigned_at", sa.DateTime(timezone=True), nullable=True),
        # HOD investigation
        sa.Column("investigation_findings", sa.Text(), nullable=True),
        sa.Column("problems_identified", sa.Text(), nullable=True),
        sa.Column("cause_classification", sa.Text(), nullable=True),
        sa.Column("cause_details", sa.Text(), nullable=True),
        sa.Column("prevention_recommendation", sa.Text(), nullable=True),
        sa.Column("hod_action_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hod_submitted_at", sa.DateTime(timezone=True), nullable=True),
        # QI closure
        sa.Column("qi_feedback", sa.Text(), nullable=True),
        sa.Column("qi_form_complete", sa.Boolean(), nullable=True),
        sa.Column("qi_proper_cause_identified", sa.Boolean(), nullable=True),
        sa.Column("qi_proper_timeframe", sa.Boolean(), nullable=True),
        sa.Column("qi_action_complies_standards", sa.Boolean(), nullable=True),
        sa.Column("qi_effective_corrective_action", sa.Boolean(), nullable=True),
        sa.Column("severity_level", sa.String(30), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_incidents"),
    )
    op.create_index("ix_incidents_status", "incidents", ["status"])
    op.create_index("ix_incidents_reporter_id", "incidents", ["reporter_id"])
    op.create_index("ix_incidents_supervisor_id", "incidents", ["supervisor_id"])
    op.create_index("ix_incidents_department_head_id", "incidents", ["department_head_id"])
    op.create_index("ix_incidents_reporter_status", "incidents", ["reporter_id", "status"])

    # Investigator assignments
    op.create_table(
        "incident_investigators",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("incident_id", sa.String(20), nullable=False),
        sa.Column("investigator_id", sa.Integer(), nullable=False),
        sa.Column("assigned_by", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("findings", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["incident_id"],
            ["incidents.id"],
            name="fk_incident_investigators_incident_id_incidents",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_incident_investigators"),
        sa.UniqueConstraint(
            "incident_id",
            "investigator_id",
            name="uq_incident_investigators_incident_investigator",
        ),
    )
    op.create_index(
        "ix_incident_investigators_incident_id", "incident_investigators", ["incident_id"]
    )
    op.create_index(
        "ix_incident_investigators_investigator_id",
        "incident_investigators",
        ["investigator_id"],
    )

    # Investigations
    op.create_table(
        "investigations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("incident_id", sa.String(20), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("investigators", sa.JSON(), nullable=False),
        sa.Column("findings", sa.Text(), nullable=True),
        sa.Column("problems_identified", sa.Text(), nullable=True),
        sa.Column("cause_classification", sa.Text(), nullable=True),
        sa.Column("cause_details", sa.Text(), nullable=True),
        sa.Column("rca_analysis", sa.Text(), nullable=True),
        sa.Column("fishbone_analysis", sa.Text(), nullable=True),
        sa.Column("corrective_action_plan", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["incident_id"], ["incidents.id"], name="fk_investigations_incident_id_incidents"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_investigations"),
    )
    op.create_index(
        "ix_investigations_incident_id", "investigations", ["incident_id"], unique=True
    )

    # Corrective actions
    op.create_table(
        "corrective_actions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("incident_id", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("checklist", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("action_taken", sa.Text(), nullable=True),
        sa.Column("evidence_files", sa.Text(), nullable=True),
        sa.Column("assigned_to", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("closed_by", sa.Integer(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["incident_id"],
            ["incidents.id"],
            name="fk_corrective_actions_incident_id_incidents",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_corrective_actions"),
    )
    op.create_index("ix_corrective_actions_incident_id", "corrective_actions", ["incident_id"])
    op.create_index("ix_corrective_actions_status", "corrective_actions", ["status"])

    # Shared access invitations
    op.create_table(
        "shared_access_invitations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("resource_type", sa.String(30), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=False),
        sa.Column("incident_id", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("access_token", sa.String(64), nullable=False),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("invited_by", sa.Integer(), nullable=False),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.Integer(), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["incident_id"],
            ["incidents.id"],
            name="fk_shared_access_invitations_incident_id_incidents",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_shared_access_invitations"),
        sa.UniqueConstraint("access_token", name="uq_shared_access_invitations_access_token"),
    )
    op.create_index(
        "ix_shared_access_invitations_incident_id",
        "shared_access_invitations",
        ["incident_id"],
    )
    op.create_index(
        "ix_shared_access_invitations_email", "shared_access_invitations", ["email"]
    )
    op.create_index(
        "ix_shared_access_invitations_user_id", "shared_access_invitations", ["user_id"]
    )
    op.create_index(
        "ix_shared_access_invitations_resource",
        "shared_access_invitations",
        ["resource_type", "resource_id"],
    )


def downgrade() -> None:
    """Drop the incident workflow tables."""
    op.drop_table("shared_access_invitations")
    op.drop_table("corrective_actions")
    op.drop_table("investigations")
    op.drop_table("incident_investigators")
    op.drop_table("incidents")
