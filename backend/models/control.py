import uuid

from sqlalchemy import Integer, String, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class Control(Base):
    __tablename__ = "controls"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    domain_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("domains.id", ondelete="CASCADE"), nullable=False, index=True)
    subdomain_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("subdomains.id", ondelete="SET NULL"), index=True)
    control_id: Mapped[str] = mapped_column(String(50), nullable=False)  # e.g. ECC-1.2.3 or SAMA-2.4
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    guidance: Mapped[str | None] = mapped_column(Text)
    maturity_level: Mapped[int | None] = mapped_column(Integer, default=1)
