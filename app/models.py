from sqlalchemy import (BigInteger, Boolean, Column, Integer, Float, Text, DateTime, JSON, UniqueConstraint, Index)
from database import Base
from sqlalchemy.sql import func


# ---------------------------------------------------
#                ROUTE CACHE
# ---------------------------------------------------
class RoutePosition(Base):
    __tablename__ = "route_positions"
    device_id      = Column(BigInteger, primary_key=True)
    id             = Column(BigInteger, primary_key=True)   # Traccar position id
    fix_time       = Column(DateTime(timezone=True), nullable=False)
    latitude       = Column(Float, nullable=False)
    longitude      = Column(Float, nullable=False)
    altitude       = Column(Float, nullable=False, default=0.0)
    speed          = Column(Float, nullable=False, default=0.0)
    total_distance = Column(Float, nullable=False, default=0.0)  # km
    attributes     = Column(JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("idx_device_time", "device_id", "fix_time"),
    )


class StandstillPeriod(Base):
    __tablename__ = "standstill_periods"
    id        = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(BigInteger, index=True, nullable=False)
    von       = Column(DateTime(timezone=True), nullable=False)
    bis       = Column(DateTime(timezone=True), nullable=False)
    period    = Column(Float, nullable=False)
    country   = Column(Text, nullable=False)
    address   = Column(Text, nullable=False)
    latitude  = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    key       = Column(Text, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("device_id", "key", name="uq_standstill_device_key"),
    )


# ---------------------------------------------------
#                USER ANNOTATIONS
# ---------------------------------------------------
class TravelPatch(Base):
    __tablename__ = "travel_patches"
    id          = Column(Integer, primary_key=True, autoincrement=True)
    address_key = Column(Text, unique=True, index=True, nullable=False)
    title       = Column(Text)
    from_date   = Column(Text)   # ISO-8601
    to_date     = Column(Text)   # ISO-8601
    exclude     = Column(Boolean, default=False)
    created_at  = Column(DateTime(timezone=True), server_default=func.now())
    updated_at  = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class StandstillAdjustment(Base):
    __tablename__ = "standstill_adjustments"
    id                       = Column(Integer, primary_key=True, autoincrement=True)
    standstill_key           = Column(Text, unique=True, index=True, nullable=False)
    start_adjustment_minutes = Column(Integer, default=0)
    end_adjustment_minutes   = Column(Integer, default=0)
    created_at               = Column(DateTime(timezone=True), server_default=func.now())
    updated_at               = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ManualPOI(Base):
    __tablename__ = "manual_pois"
    id         = Column(Integer, primary_key=True, autoincrement=True)
    poi_key    = Column(Text, unique=True, index=True, nullable=False)
    latitude   = Column(Float, nullable=False)
    longitude  = Column(Float, nullable=False)
    timestamp  = Column(Text, nullable=False)   # ISO-8601
    device_id  = Column(BigInteger, index=True, nullable=False)
    address    = Column(Text)
    country    = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
