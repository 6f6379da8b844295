"""baseline schema

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Users, reference tables, inventories and entries.
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None

_LABEL_TABLES = (
    "ages",
    "sexes",
    "weathers",
    "observers",
    "species_classes",
    "distance_estimates",
)


def _owner_column() -> sa.Column:
    return sa.Column(
        "owner_id",
        sa.String(36),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )


def _owner_index(table: str) -> None:
    op.create_index(f"ix_{table}_owner_id", table, ["owner_id"])


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("ext_provider_name", sa.String(100), nullable=False),
        sa.Column("ext_provider_id", sa.String(255), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "ext_provider_name", "ext_provider_id", name="uq_users_ext_provider"
        ),
    )

    for table in _LABEL_TABLES:
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("libelle", sa.String(100), nullable=False),
            _owner_column(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("libelle"),
        )
        _owner_index(table)

    op.create_table(
        "number_estimates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("libelle", sa.String(100), nullable=False),
        sa.Column("non_compte", sa.Boolean(), nullable=False),
        _owner_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("libelle"),
    )
    _owner_index("number_estimates")

    op.create_table(
        "behaviors",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(10), nullable=False),
        sa.Column("libelle", sa.String(100), nullable=False),
        sa.Column(
            "nicheur",
            sa.Enum(
                "possible",
                "probable",
                "certain",
                name="breeder_status",
                native_enum=False,
            ),
            nullable=True,
        ),
        _owner_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.UniqueConstraint("libelle"),
    )
    _owner_index("behaviors")

    op.create_table(
        "environments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(10), nullable=False),
        sa.Column("libelle", sa.String(100), nullable=False),
        _owner_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.UniqueConstraint("libelle"),
    )
    _owner_index("environments")

    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(100), nullable=False),
        _owner_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    _owner_index("departments")

    op.create_table(
        "towns",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.Integer(), nullable=False),
        sa.Column("nom", sa.String(100), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=False),
        _owner_column(),
        sa.ForeignKeyConstraint(
            ["department_id"], ["departments.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("department_id", "code", name="uq_towns_department_code"),
        sa.UniqueConstraint("department_id", "nom", name="uq_towns_department_nom"),
    )
    op.create_index("ix_towns_department_id", "towns", ["department_id"])
    _owner_index("towns")

    op.create_table(
        "localities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("nom", sa.String(100), nullable=False),
        sa.Column("town_id", sa.Integer(), nullable=False),
        sa.Column("altitude", sa.Integer(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        _owner_column(),
        sa.ForeignKeyConstraint(["town_id"], ["towns.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("town_id", "nom", name="uq_localities_town_nom"),
    )
    op.create_index("ix_localities_town_id", "localities", ["town_id"])
    _owner_index("localities")

    op.create_table(
        "species",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("class_id", sa.Integer(), nullable=True),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("nom_francais", sa.String(100), nullable=False),
        sa.Column("nom_latin", sa.String(100), nullable=False),
        _owner_column(),
        sa.ForeignKeyConstraint(
            ["class_id"], ["species_classes.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.UniqueConstraint("nom_francais"),
        sa.UniqueConstraint("nom_latin"),
    )
    op.create_index("ix_species_class_id", "species", ["class_id"])
    _owner_index("species")

    op.create_table(
        "inventories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("observer_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("heure", sa.String(5), nullable=True),
        sa.Column("duree", sa.String(5), nullable=True),
        sa.Column("locality_id", sa.Integer(), nullable=False),
        sa.Column("altitude", sa.Integer(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("temperature", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        _owner_column(),
        sa.ForeignKeyConstraint(
            ["observer_id"], ["observers.id"], ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["locality_id"], ["localities.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventories_observer_id", "inventories", ["observer_id"])
    op.create_index("ix_inventories_locality_id", "inventories", ["locality_id"])
    op.create_index("ix_inventories_created_at", "inventories", ["created_at"])
    _owner_index("inventories")

    op.create_table(
        "inventory_associates",
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("observer_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["inventory_id"], ["inventories.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["observer_id"], ["observers.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("inventory_id", "observer_id"),
    )

    op.create_table(
        "inventory_weathers",
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("weather_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["inventory_id"], ["inventories.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["weather_id"], ["weathers.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("inventory_id", "weather_id"),
    )

    op.create_table(
        "entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("species_id", sa.Integer(), nullable=False),
        sa.Column("sex_id", sa.Integer(), nullable=False),
        sa.Column("age_id", sa.Integer(), nullable=False),
        sa.Column("number_estimate_id", sa.Integer(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=True),
        sa.Column("distance_estimate_id", sa.Integer(), nullable=True),
        sa.Column("distance", sa.Integer(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["inventory_id"], ["inventories.id"], ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(["species_id"], ["species.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["sex_id"], ["sexes.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["age_id"], ["ages.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["number_estimate_id"], ["number_estimates.id"], ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["distance_estimate_id"], ["distance_estimates.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in (
        "inventory_id",
        "species_id",
        "sex_id",
        "age_id",
        "number_estimate_id",
        "distance_estimate_id",
    ):
        op.create_index(f"ix_entries_{column}", "entries", [column])

    op.create_table(
        "entry_behaviors",
        sa.Column("entry_id", sa.Integer(), nullable=False),
        sa.Column("behavior_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["entry_id"], ["entries.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["behavior_id"], ["behaviors.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("entry_id", "behavior_id"),
    )

    op.create_table(
        "entry_environments",
        sa.Column("entry_id", sa.Integer(), nullable=False),
        sa.Column("environment_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["entry_id"], ["entries.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["environment_id"], ["environments.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("entry_id", "environment_id"),
    )


def downgrade() -> None:
    op.drop_table("entry_environments")
    op.drop_table("entry_behaviors")
    op.drop_table("entries")
    op.drop_table("inventory_weathers")
    op.drop_table("inventory_associates")
    op.drop_table("inventories")
    op.drop_table("species")
    op.drop_table("localities")
    op.drop_table("towns")
    op.drop_table("departments")
    op.drop_table("environments")
    op.drop_table("behaviors")
    op.drop_table("number_estimates")
    for table in reversed(_LABEL_TABLES):
        op.drop_table(table)
    op.drop_table("users")
