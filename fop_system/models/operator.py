"""
Operator and Aircraft Models
Reference data for foreign operators and the aircraft they fly into the territory
"""

from sqlalchemy import Column, String, Integer, Numeric, Date, ForeignKey, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from fop_system.models.base import BaseModel
from fop_system.models.value_objects import Address, ContactInfo


class Operator(BaseModel):
    """Foreign air operator holding an Air Operator Certificate"""
    __tablename__ = "operators"

    name = Column(String(200), nullable=False, comment="Registered operator name")
    country = Column(String(100), nullable=False, comment="Country of registration")
    aoc_number = Column(String(50), nullable=False, unique=True, index=True, comment="Air Operator Certificate number")
    aoc_expiry_date = Column(Date, nullable=True, comment="AOC expiry date")

    # Address
    address_street = Column(String(200), nullable=False)
    address_city = Column(String(100), nullable=False)
    address_state = Column(String(100), nullable=True)
    address_postal_code = Column(String(20), nullable=True)
    address_country = Column(String(100), nullable=False)

    # Primary contact
    contact_name = Column(String(200), nullable=False)
    contact_title = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(50), nullable=False)

    aircraft = relationship("Aircraft", back_populates="operator", order_by="Aircraft.registration_mark")

    @property
    def address(self) -> Address:
        return Address(
            street=self.address_street,
            city=self.address_city,
            country=self.address_country,
            state=self.address_state,
            postal_code=self.address_postal_code,
        )

    @address.setter
    def address(self, value: Address):
        self.address_street = value.street
        self.address_city = value.city
        self.address_state = value.state
        self.address_postal_code = value.postal_code
        self.address_country = value.country

    @property
    def contact(self) -> ContactInfo:
        return ContactInfo(
            name=self.contact_name,
            email=self.contact_email,
            phone=self.contact_phone,
            title=self.contact_title,
        )

    @contact.setter
    def contact(self, value: ContactInfo):
        self.contact_name = value.name
        self.contact_title = value.title
        self.contact_email = value.email
        self.contact_phone = value.phone

    def __repr__(self):
        return f"<Operator(id={self.id}, name='{self.name}', aoc='{self.aoc_number}')>"


class Aircraft(BaseModel):
    """Aircraft operated by a foreign operator; its specs drive the permit fee"""
    __tablename__ = "aircraft"
    __table_args__ = (
        CheckConstraint("seat_capacity >= 0", name="ck_aircraft_seat_capacity"),
        CheckConstraint("mtow_kg > 0", name="ck_aircraft_mtow"),
    )

    operator_id = Column(Uuid, ForeignKey("operators.id"), nullable=False, index=True)
    registration_mark = Column(String(20), nullable=False, unique=True, index=True, comment="Registration mark, upper case")
    manufacturer = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    aircraft_type = Column(String(50), nullable=True, comment="ICAO type designator")
    serial_number = Column(String(50), nullable=True)
    seat_capacity = Column(Integer, nullable=False, comment="Passenger seat capacity")
    mtow_kg = Column(Numeric(12, 2), nullable=False, comment="Maximum takeoff weight in kilograms")
    year_manufactured = Column(Integer, nullable=True)

    operator = relationship("Operator", back_populates="aircraft")

    def __repr__(self):
        return f"<Aircraft(id={self.id}, registration='{self.registration_mark}', seats={self.seat_capacity})>"
