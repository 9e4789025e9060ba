"""Initial schema"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init_schema"
down_revision = None
branch_labels = None
depends_on = None

MODERATION_STATUS = ("pending", "approved", "rejected")
RECIPIENT_STATUS = ("pending", "sent", "submitted")


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def _status_type(name: str, values: tuple[str, ...]):
    if _is_postgres():
        return postgresql.ENUM(*values, name=name, create_type=False)
    return sa.Enum(*values, name=name, native_enum=False, length=16)


def upgrade() -> None:
    if _is_postgres():
        op.execute("CREATE TYPE moderation_status AS ENUM ('pending','approved','rejected');")
        op.execute("CREATE TYPE recipient_status AS ENUM ('pending','sent','submitted');")

    json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
    moderation_status = _status_type("moderation_status", MODERATION_STATUS)
    recipient_status = _status_type("recipient_status", RECIPIENT_STATUS)

    op.create_table(
        "businesses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("business_name", sa.Text(), nullable=False),
        sa.Column("brand_color", sa.String(length=32), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("custom_colors", json_type, nullable=True),
        sa.Column("custom_logo_url", sa.Text(), nullable=True),
        sa.Column("show_branding", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("notification_email", sa.String(length=255), nullable=True),
        sa.Column("notify_new_testimonial", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("notify_on_approval", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("email_enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_businesses_user_id", "businesses", ["user_id"], unique=True)

    op.create_table(
        "campaigns",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "business_id",
            sa.String(length=36),
            sa.ForeignKey("businesses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("welcome_video_url", sa.Text(), nullable=True),
        sa.Column("video_autoplay", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("custom_questions", json_type, nullable=False),
        sa.Column("allow_video", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("allow_photo", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("allow_text", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("allow_rating", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("unique_slug", sa.String(length=255), nullable=False),
        sa.Column("form_config", json_type, nullable=True),
        sa.Column("total_sent", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_submitted", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("unique_slug", name="uq_campaigns_unique_slug"),
    )
    op.create_index("ix_campaigns_business_id", "campaigns", ["business_id"])

    op.create_table(
        "campaign_recipients",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "campaign_id",
            sa.String(length=36),
            sa.ForeignKey("campaigns.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("unique_token", sa.String(length=64), nullable=False),
        sa.Column("status", recipient_status, server_default="pending", nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("unique_token", name="uq_campaign_recipients_unique_token"),
    )
    op.create_index("ix_campaign_recipients_campaign_id", "campaign_recipients", ["campaign_id"])

    op.create_table(
        "testimonials",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "business_id",
            sa.String(length=36),
            sa.ForeignKey("businesses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "campaign_id",
            sa.String(length=36),
            sa.ForeignKey("campaigns.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), server_default="", nullable=False),
        sa.Column("status", moderation_status, server_default="pending", nullable=False),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("custom_answers", json_type, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_testimonials_rating_range"),
    )
    op.create_index("idx_testimonials_business_created", "testimonials", ["business_id", "created_at"])
    op.create_index("idx_testimonials_email_created", "testimonials", ["email", "created_at"])
    op.create_index("ix_testimonials_campaign_id", "testimonials", ["campaign_id"])

    for table, url_column in (("testimonial_photos", "photo_url"), ("testimonial_videos", "video_url")):
        op.create_table(
            table,
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column(
                "testimonial_id",
                sa.String(length=36),
                sa.ForeignKey("testimonials.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(url_column, sa.Text(), nullable=False),
            sa.Column("storage_key", sa.Text(), nullable=True),
            sa.Column(
                "status",
                moderation_status,
                server_default="pending",
                nullable=False,
            ),
            sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index(f"ix_{table}_testimonial_id", table, ["testimonial_id"])


def downgrade() -> None:
    for table in ("testimonial_videos", "testimonial_photos"):
        op.drop_index(f"ix_{table}_testimonial_id", table_name=table)
        op.drop_table(table)
    op.drop_index("ix_testimonials_campaign_id", table_name="testimonials")
    op.drop_index("idx_testimonials_email_created", table_name="testimonials")
    op.drop_index("idx_testimonials_business_created", table_name="testimonials")
    op.drop_table("testimonials")
    op.drop_index("ix_campaign_recipients_campaign_id", table_name="campaign_recipients")
    op.drop_table("campaign_recipients")
    op.drop_index("ix_campaigns_business_id", table_name="campaigns")
    op.drop_table("campaigns")
    op.drop_index("ix_businesses_user_id", table_name="businesses")
    op.drop_table("businesses")
    if _is_postgres():
        op.execute("DROP TYPE IF EXISTS recipient_status;")
        op.execute("DROP TYPE IF EXISTS moderation_status;")
