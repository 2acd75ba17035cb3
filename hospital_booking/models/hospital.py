from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Hospital(Base):
    __tablename__ = "hospitals"

    id = Column(Integer, primary_key=True, index=True)
    ordinal = Column(Integer, nullable=True)

    name = Column(String(50), nullable=False, index=True)
    address = Column(String(255), nullable=False)
    district = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    postal_code = Column(String(5), nullable=True)
    tel = Column(String(20), nullable=True)
    region = Column(String(100), nullable=True)

    # Maximum number of appointments; NULL means unlimited
    capacity = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    appointments = relationship("Appointment", back_populates="hospital")

    def __repr__(self):
        return f"<Hospital(id={self.id}, name='{self.name}', province='{self.province}')>"
