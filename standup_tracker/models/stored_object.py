from sqlalchemy import Column, Integer, String, LargeBinary, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class StoredObject(Base):
    """Opaque blob in the record store, addressed by key"""
    __tablename__ = "stored_objects"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(512), nullable=False, unique=True, index=True)
    body = Column(LargeBinary, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_modified = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<StoredObject {self.key} ({len(self.body or b'')} bytes)>"
