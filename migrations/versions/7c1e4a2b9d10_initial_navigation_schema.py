"""initial_navigation_schema

Hierarchy, actions, sequences, navigation graph and link association tables.

Revision ID: 7c1e4a2b9d10
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e4a2b9d10"
down_revision = None
branch_labels = None
depends_on = None

LINK_TYPES = (
    "documentation", "video", "support_article", "tool",
    "internal_wiki", "vendor_site", "training", "other",
)
AUTH_REQUIREMENTS = ("none", "login", "vpn", "sso", "credentials")
LINK_STATUSES = ("active", "inactive", "broken", "outdated")


def _in_list(column, values):
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _node_columns():
    return [
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    ]


def _link_junction(table, parent_table, parent_column):
    op.create_table(
        table,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(parent_column, sa.Integer(), nullable=False),
        sa.Column("link_id", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("context_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint([parent_column], [f"{parent_table}.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["link_id"], ["links.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(parent_column, "link_id", name=f"uq_{table}_pair"),
    )
    op.create_index(f"ix_{table}_{parent_column}", table, [parent_column])
    op.create_index(f"ix_{table}_link_id", table, ["link_id"])
    op.create_index(f"ix_{table}_order", table, [parent_column, "display_order"])


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())
    if "systems" in existing_tables:
        # Tables already created by db.create_all()
        return

    # ── Hierarchy ────────────────────────────────────────────────────────
    op.create_table(
        "systems",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=True),
        *_node_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_systems_owner_id", "systems", ["owner_id"])

    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("system_id", sa.Integer(), nullable=False),
        *_node_columns(),
        sa.ForeignKeyConstraint(["system_id"], ["systems.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_departments_system_id", "departments", ["system_id"])

    op.create_table(
        "practice_groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=False),
        *_node_columns(),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_practice_groups_department_id", "practice_groups", ["department_id"])

    # ── Actions ──────────────────────────────────────────────────────────
    op.create_table(
        "actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("system_id", sa.Integer(), nullable=True),
        sa.Column("practice_group_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("steps", sa.JSON(), nullable=True),
        sa.Column("screenshots", sa.JSON(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint(
            "(system_id IS NOT NULL AND practice_group_id IS NULL) OR "
            "(system_id IS NULL AND practice_group_id IS NOT NULL)",
            name="ck_action_single_parent",
        ),
        sa.ForeignKeyConstraint(["system_id"], ["systems.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["practice_group_id"], ["practice_groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_actions_system_id", "actions", ["system_id"])
    op.create_index("ix_actions_practice_group_id", "actions", ["practice_group_id"])

    op.create_table(
        "screenshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("action_id", sa.Integer(), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("original_filename", sa.String(length=255), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["action_id"], ["actions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_screenshots_action_id", "screenshots", ["action_id"])

    # ── Sequences ────────────────────────────────────────────────────────
    op.create_table(
        "action_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("practice_group_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["practice_group_id"], ["practice_groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_action_sequences_practice_group_id", "action_sequences", ["practice_group_id"],
    )

    op.create_table(
        "sequence_actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sequence_id", sa.Integer(), nullable=False),
        sa.Column("action_id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["sequence_id"], ["action_sequences.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["action_id"], ["actions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sequence_id", "action_id", name="uq_sequence_actions_action"),
        sa.UniqueConstraint("sequence_id", "order_number", name="uq_sequence_actions_order"),
    )
    op.create_index("ix_sequence_actions_sequence_id", "sequence_actions", ["sequence_id"])
    op.create_index("ix_sequence_actions_action_id", "sequence_actions", ["action_id"])

    # ── Navigation graph ─────────────────────────────────────────────────
    for table in ("roles", "tasks"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("owner_id", sa.String(length=255), nullable=False),
            *_node_columns(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table}_owner_id", table, ["owner_id"])

    op.create_table(
        "role_tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("role_id", "task_id", name="uq_role_tasks_pair"),
    )
    op.create_index("ix_role_tasks_role_id", "role_tasks", ["role_id"])
    op.create_index("ix_role_tasks_task_id", "role_tasks", ["task_id"])

    op.create_table(
        "task_actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("action_id", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["action_id"], ["actions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("task_id", "action_id", name="uq_task_actions_pair"),
    )
    op.create_index("ix_task_actions_task_id", "task_actions", ["task_id"])
    op.create_index("ix_task_actions_action_id", "task_actions", ["action_id"])

    # ── Links ────────────────────────────────────────────────────────────
    op.create_table(
        "links",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("link_type", sa.String(length=50), nullable=False, server_default="documentation"),
        sa.Column("auth_required", sa.String(length=50), nullable=False, server_default="none"),
        sa.Column("access_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("last_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.String(length=2048), nullable=True),
        sa.Column("open_in_new_tab", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(_in_list("link_type", LINK_TYPES), name="ck_links_link_type"),
        sa.CheckConstraint(_in_list("auth_required", AUTH_REQUIREMENTS), name="ck_links_auth_required"),
        sa.CheckConstraint(_in_list("status", LINK_STATUSES), name="ck_links_status"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_links_link_type", "links", ["link_type"])
    op.create_index("ix_links_status", "links", ["status"])
    op.create_index("ix_links_last_verified_at", "links", ["last_verified_at"])
    op.create_index("ix_links_created_by", "links", ["created_by"])

    _link_junction("system_links", "systems", "system_id")
    _link_junction("action_links", "actions", "action_id")
    _link_junction("role_links", "roles", "role_id")
    _link_junction("task_links", "tasks", "task_id")


def downgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    for table in (
        "task_links", "role_links", "action_links", "system_links", "links",
        "task_actions", "role_tasks", "tasks", "roles",
        "sequence_actions", "action_sequences", "screenshots", "actions",
        "practice_groups", "departments", "systems",
    ):
        if table in existing_tables:
            op.drop_table(table)
