"""Initial schema — owners, assets, listings, sync_cursors.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "owners",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("address", sa.String(42), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "assets",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("contract_address", sa.String(42), nullable=False),
        sa.Column("token_id", sa.String(78), nullable=False),
        sa.Column("owner_id", sa.Integer, sa.ForeignKey("owners.id"), nullable=False),
        sa.Column("metadata_uri", sa.Text, nullable=True),
        sa.Column("last_block_number", sa.BigInteger, nullable=True),
        sa.Column("last_log_index", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("contract_address", "token_id", name="uq_assets_contract_token"),
    )
    op.create_index("ix_assets_owner_id", "assets", ["owner_id"])

    op.create_table(
        "listings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("contract_address", sa.String(42), nullable=False),
        sa.Column("token_id", sa.String(78), nullable=False),
        sa.Column("seller_address", sa.String(42), nullable=False),
        sa.Column("price", sa.String(78), nullable=False),
        sa.Column("deadline", sa.BigInteger, nullable=False),
        sa.Column("nonce", sa.BigInteger, nullable=False),
        sa.Column("signature", sa.Text, nullable=False),
        sa.Column("signer_address", sa.String(42), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "contract_address", "token_id", "seller_address",
            name="uq_listings_asset_seller",
        ),
    )
    op.create_index("ix_listings_seller_address", "listings", ["seller_address"])
    op.create_index(
        "ix_listings_asset_active", "listings",
        ["contract_address", "token_id", "is_active"],
    )

    op.create_table(
        "sync_cursors",
        sa.Column("stream", sa.String(20), primary_key=True),
        sa.Column("block_number", sa.BigInteger, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("sync_cursors")
    op.drop_index("ix_listings_asset_active", table_name="listings")
    op.drop_index("ix_listings_seller_address", table_name="listings")
    op.drop_table("listings")
    op.drop_index("ix_assets_owner_id", table_name="assets")
    op.drop_table("assets")
    op.drop_table("owners")
