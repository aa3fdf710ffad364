"""initial schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-18
"""

import uuid
from datetime import datetime
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"

down_revision = None

branch_labels = None

depends_on = None

_BY_ID = "entity_id IS NOT NULL"
_BY_CODE = "entity_id IS NULL AND entity_code IS NOT NULL"

SEED_STATUSES = [
    ("wip", "Work in Progress", "#3B82F6", 1),
    ("review", "Pending Review", "#F59E0B", 2),
    ("approved", "Approved", "#10B981", 3),
    ("rejected", "Rejected", "#EF4444", 4),
]


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("status_id", sa.String(length=36), sa.ForeignKey("statuses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("assigned_to", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    statuses = op.create_table(
        "statuses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("color", sa.String(length=7), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_statuses_code", "statuses", ["code"], unique=True)

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("status_id", sa.String(length=36), sa.ForeignKey("statuses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_projects_code", "projects", ["code"], unique=True)

    op.create_table(
        "episodes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("ep_number", sa.Integer(), nullable=True),
        sa.Column("cut_order", sa.Integer(), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_episodes_project_id", "episodes", ["project_id"])
    op.create_index("ix_episodes_code", "episodes", ["code"], unique=True)

    op.create_table(
        "sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("episode_id", sa.Integer(), sa.ForeignKey("episodes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("cut_order", sa.Integer(), nullable=False),
        sa.Column("story_id", sa.String(length=255), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_sequences_episode_id", "sequences", ["episode_id"])
    op.create_index("ix_sequences_code", "sequences", ["code"], unique=True)

    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("asset_type", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("thumbnail_path", sa.String(length=1024), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_assets_project_id", "assets", ["project_id"])
    op.create_index("ix_assets_code", "assets", ["code"], unique=True)

    op.create_table(
        "playlists",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("status_updated_at", sa.DateTime(), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_playlists_project_id", "playlists", ["project_id"])
    op.create_index("ix_playlists_code", "playlists", ["code"], unique=True)

    op.create_table(
        "versions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("entity_code", sa.String(length=50), nullable=True),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("latest", sa.Boolean(), nullable=False),
        sa.Column("file_path", sa.String(length=1024), nullable=True),
        sa.Column("thumbnail_path", sa.String(length=1024), nullable=True),
        sa.Column("format", sa.String(length=64), nullable=True),
        sa.Column("frame_range", sa.String(length=64), nullable=True),
        sa.Column("artist", sa.String(length=255), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("status_id", sa.String(length=36), sa.ForeignKey("statuses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status_updated_at", sa.DateTime(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("assigned_to", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_versions_code", "versions", ["code"], unique=True)
    op.create_index("ix_versions_latest", "versions", ["latest"])
    op.create_index("ix_versions_status_id", "versions", ["status_id"])
    op.create_index("ix_versions_created_by", "versions", ["created_by"])
    op.create_index("ix_versions_assigned_to", "versions", ["assigned_to"])
    op.create_index("ix_versions_created_at", "versions", ["created_at"])
    op.create_index("ix_versions_owner_id", "versions", ["entity_type", "entity_id"])
    op.create_index("ix_versions_owner_code", "versions", ["entity_type", "entity_code"])
    op.create_index(
        "uq_versions_latest_owner_id",
        "versions",
        ["entity_type", "entity_id"],
        unique=True,
        sqlite_where=sa.text(f"latest = 1 AND {_BY_ID}"),
        postgresql_where=sa.text(f"latest AND {_BY_ID}"),
    )
    op.create_index(
        "uq_versions_latest_owner_code",
        "versions",
        ["entity_type", "entity_code"],
        unique=True,
        sqlite_where=sa.text(f"latest = 1 AND {_BY_CODE}"),
        postgresql_where=sa.text(f"latest AND {_BY_CODE}"),
    )
    op.create_index(
        "uq_versions_number_owner_id",
        "versions",
        ["entity_type", "entity_id", "version_number"],
        unique=True,
        sqlite_where=sa.text(_BY_ID),
        postgresql_where=sa.text(_BY_ID),
    )
    op.create_index(
        "uq_versions_number_owner_code",
        "versions",
        ["entity_type", "entity_code", "version_number"],
        unique=True,
        sqlite_where=sa.text(_BY_CODE),
        postgresql_where=sa.text(_BY_CODE),
    )

    now = datetime.utcnow()
    op.bulk_insert(
        statuses,
        [
            {
                "id": str(uuid.uuid4()),
                "code": code,
                "name": name,
                "description": None,
                "color": color,
                "is_active": True,
                "sort_order": sort_order,
                "created_at": now,
                "updated_at": now,
            }
            for code, name, color, sort_order in SEED_STATUSES
        ],
    )


def downgrade() -> None:
    op.drop_table("versions")
    op.drop_table("playlists")
    op.drop_table("assets")
    op.drop_table("sequences")
    op.drop_table("episodes")
    op.drop_table("projects")
    op.drop_table("statuses")
