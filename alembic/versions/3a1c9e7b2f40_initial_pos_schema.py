"""initial pos schema"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "initial_pos_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "menu_items",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="food"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("emoji", sa.String(16), nullable=True),
        sa.Column("image", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("flavors", sa.JSON, nullable=False),
        sa.Column("max_flavors", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_menu_items_id", "menu_items", ["id"])

    op.create_table(
        "categories",
        sa.Column("name", sa.String(64), primary_key=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("customer_name", sa.String(128), nullable=False, server_default="Guest"),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="paid"),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("amount_tendered", sa.Numeric(10, 2), nullable=True),
        sa.Column("change_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("table_number", sa.Integer, nullable=True),
        sa.Column("beeper_number", sa.Integer, nullable=True),
        sa.Column("order_type", sa.String(20), nullable=False, server_default="dine-in"),
        sa.Column("is_test", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("drink_ticket", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_orders_id", "orders", ["id"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])
    op.create_index("ix_orders_closed_at", "orders", ["closed_at"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_id", sa.String(64), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("menu_item_id", sa.String(64), nullable=False),
        sa.Column("menu_item_name", sa.String(128), nullable=False),
        sa.Column("menu_item_type", sa.String(20), nullable=False, server_default="food"),
        sa.Column("menu_item_emoji", sa.String(16), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("line_total", sa.Numeric(10, 2), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("selected_flavors", sa.JSON, nullable=False),
    )
    op.create_index("ix_order_items_id", "order_items", ["id"])
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="OPEN"),
        sa.Column("opened_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_orders", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_sales", sa.Numeric(10, 2), nullable=False, server_default="0"),
    )
    op.create_index("ix_sessions_id", "sessions", ["id"])
    op.create_index("ix_sessions_status", "sessions", ["status"])
    # не больше одной открытой сессии
    op.create_index(
        "uq_sessions_single_open",
        "sessions",
        ["status"],
        unique=True,
        postgresql_where=sa.text("status = 'OPEN'"),
        sqlite_where=sa.text("status = 'OPEN'"),
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column("value", sa.Text, nullable=True),
    )

    op.bulk_insert(
        sa.table("categories", sa.column("name", sa.String), sa.column("sort_order", sa.Integer)),
        [{"name": "All", "sort_order": 0}],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("settings")
    op.drop_index("uq_sessions_single_open", table_name="sessions")
    op.drop_table("sessions")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("categories")
    op.drop_table("menu_items")
