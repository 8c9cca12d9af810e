from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Organizations(Base):
    __tablename__ = 'organizations'

    name = Column(Text, nullable=False)
    timezone = Column(Text, nullable=False, server_default=text("'Pacific/Auckland'"))
    enforce_opening_hours = Column(Integer, nullable=False, server_default=text('0'))
    id = Column(Integer, primary_key=True)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    staff = relationship('Staff', back_populates='org')
    services = relationship('Services', back_populates='org')
    opening_hours = relationship('OpeningHours', back_populates='org')
    customers = relationship('Customers', back_populates='org')
    appointments = relationship('Appointments', back_populates='org')


class Staff(Base):
    __tablename__ = 'staff'

    org_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    # bumped on every committed booking write for this staff member
    booking_version = Column(Integer, nullable=False, server_default=text('0'))
    id = Column(Integer, primary_key=True)

    org = relationship('Organizations', back_populates='staff')
    appointments = relationship('Appointments', back_populates='staff')


class Services(Base):
    __tablename__ = 'services'

    org_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration_min = Column(Integer, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)

    org = relationship('Organizations', back_populates='services')
    appointments = relationship('Appointments', back_populates='service')


class OpeningHours(Base):
    __tablename__ = 'opening_hours'
    __table_args__ = (
        UniqueConstraint('org_id', 'weekday'),
    )

    org_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    weekday = Column(Integer, nullable=False)  # 0 = Sunday .. 6 = Saturday
    open_min = Column(Integer, nullable=False)
    close_min = Column(Integer, nullable=False)
    id = Column(Integer, primary_key=True)

    org = relationship('Organizations', back_populates='opening_hours')


class Customers(Base):
    __tablename__ = 'customers'
    __table_args__ = (
        UniqueConstraint('org_id', 'phone'),
    )

    org_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    org = relationship('Organizations', back_populates='customers')
    appointments = relationship('Appointments', back_populates='customer')


class Appointments(Base):
    __tablename__ = 'appointments'
    __table_args__ = (
        Index('ix_appointments_org_staff_start', 'org_id', 'staff_id', 'starts_at'),
        Index('ix_appointments_org_source', 'org_id', 'source'),
        UniqueConstraint('org_id', 'client_token'),
    )

    org_id = Column(ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False)
    staff_id = Column(ForeignKey('staff.id', ondelete='SET NULL'))
    service_id = Column(ForeignKey('services.id', ondelete='SET NULL'))
    customer_id = Column(ForeignKey('customers.id', ondelete='SET NULL'))
    customer_name = Column(Text, nullable=False)
    customer_phone = Column(Text, nullable=False, server_default=text("''"))
    # naive UTC
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'SCHEDULED'"))
    source = Column(Text, nullable=False, server_default=text("'manual'"))
    # idempotency key of the create request that made the row
    client_token = Column(Text)
    id = Column(Integer, primary_key=True)
    notes = Column(Text)
    cancelled_at = Column(DateTime)
    cancelled_by = Column(Text)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    org = relationship('Organizations', back_populates='appointments')
    staff = relationship('Staff', back_populates='appointments')
    service = relationship('Services', back_populates='appointments')
    customer = relationship('Customers', back_populates='appointments')
