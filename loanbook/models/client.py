from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import relationship

from loanbook.db.base import Base
from loanbook.models.types import EncryptedString


class Client(Base):
    __tablename__ = "clients"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)
    fullname = Column(String(255), nullable=False)
    contact = Column(String(50), nullable=False)
    email = Column(String(255), nullable=True)
    location = Column(String(255), nullable=False)
    landmark = Column(String(255), nullable=True)
    business = Column(String(255), nullable=True)
    # Captured in phase 2
    dob = Column(String(20), nullable=True)
    marital_status = Column(String(20), nullable=True)
    profile_image = Column(String(1024), nullable=True)
    occupation = Column(String(255), nullable=True)
    id_type = Column(String(50), nullable=True)
    id_number = Column(EncryptedString(), nullable=True)
    id_front_image = Column(String(1024), nullable=True)
    id_back_image = Column(String(1024), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    witnesses = relationship(
        "ClientWitness", back_populates="client", order_by="ClientWitness.id", passive_deletes=True
    )
    business_locations = relationship(
        "BusinessLocation", back_populates="client", order_by="BusinessLocation.id", passive_deletes=True
    )
    residences = relationship(
        "Residence", back_populates="client", order_by="Residence.id", passive_deletes=True
    )


class ClientWitness(Base):
    __tablename__ = "client_witnesses"
    __table_args__ = (Index("ix_client_witnesses_client_id", "client_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    fullname = Column(String(255), nullable=False)
    contact = Column(String(50), nullable=False)
    marital_status = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    occupation = Column(String(255), nullable=True)
    residence_address = Column(String(255), nullable=True)
    residence_gps = Column(String(100), nullable=True)
    id_type = Column(String(50), nullable=True)
    id_number = Column(EncryptedString(), nullable=True)
    id_front_image = Column(String(1024), nullable=True)
    id_back_image = Column(String(1024), nullable=True)
    profile_pic = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    client = relationship("Client", back_populates="witnesses")


class BusinessLocation(Base):
    __tablename__ = "business_locations"
    __table_args__ = (Index("ix_business_locations_client_id", "client_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    gps_address = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    client = relationship("Client", back_populates="business_locations")


class Residence(Base):
    __tablename__ = "residences"
    __table_args__ = (Index("ix_residences_client_id", "client_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    gps_address = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    client = relationship("Client", back_populates="residences")
