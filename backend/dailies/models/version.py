from datetime import datetime
from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from dailies.models.base import Base

# Partial unique indexes back the per-owner invariants (one latest row, unique
# version numbers) within each addressing scheme. New rows always carry
# entity_id; legacy code-only rows of the same owner share its series through
# OwnerKey, serialised by the owner row lock.
_BY_ID = "entity_id IS NOT NULL"
_BY_CODE = "entity_id IS NULL AND entity_code IS NOT NULL"


class Version(Base):
    __tablename__ = "versions"
    __table_args__ = (
        Index("ix_versions_owner_id", "entity_type", "entity_id"),
        Index("ix_versions_owner_code", "entity_type", "entity_code"),
        Index(
            "uq_versions_latest_owner_id",
            "entity_type",
            "entity_id",
            unique=True,
            sqlite_where=text(f"latest = 1 AND {_BY_ID}"),
            postgresql_where=text(f"latest AND {_BY_ID}"),
        ),
        Index(
            "uq_versions_latest_owner_code",
            "entity_type",
            "entity_code",
            unique=True,
            sqlite_where=text(f"latest = 1 AND {_BY_CODE}"),
            postgresql_where=text(f"latest AND {_BY_CODE}"),
        ),
        Index(
            "uq_versions_number_owner_id",
            "entity_type",
            "entity_id",
            "version_number",
            unique=True,
            sqlite_where=text(_BY_ID),
            postgresql_where=text(_BY_ID),
        ),
        Index(
            "uq_versions_number_owner_code",
            "entity_type",
            "entity_code",
            "version_number",
            unique=True,
            sqlite_where=text(_BY_CODE),
            postgresql_where=text(_BY_CODE),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    entity_type: Mapped[str] = mapped_column(String(32))
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    entity_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    version_number: Mapped[int] = mapped_column(Integer, default=1)
    latest: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    file_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    thumbnail_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    format: Mapped[str | None] = mapped_column(String(64), nullable=True)
    frame_range: Mapped[str | None] = mapped_column(String(64), nullable=True)
    artist: Mapped[str | None] = mapped_column(String(255), nullable=True)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)

    status_id: Mapped[str | None] = mapped_column(
        ForeignKey("statuses.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    assigned_to: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    status = relationship("Status")
