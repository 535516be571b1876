import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from .shared.dates import utc_now


def generate_id():
    """Generate a unique string primary key"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    # Same value as the identity provider's subject claim
    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(30), unique=True, index=True, nullable=True)
    name = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String(1000), nullable=True)
    timezone = Column(String(64), default="UTC", nullable=False)

    # Display preferences
    week_start = Column(Integer, default=0, nullable=False)  # 0 = Sunday
    time_format = Column(String(3), default="12h", nullable=False)
    date_format = Column(String(20), default="MM/DD/YYYY", nullable=False)

    # Branding
    brand_color = Column(String(7), nullable=True)  # e.g., #RRGGBB
    logo_url = Column(String(1000), nullable=True)
    custom_domain = Column(String(253), unique=True, nullable=True)
    domain_verified = Column(Boolean, default=False, nullable=False)

    # Plan and white-label
    is_premium = Column(Boolean, default=False, nullable=False)
    hide_platform_branding = Column(Boolean, default=False, nullable=False)
    custom_header = Column(Text, nullable=True)
    custom_footer = Column(Text, nullable=True)
    email_branding_enabled = Column(Boolean, default=False, nullable=False)
    meta_title = Column(String(60), nullable=True)
    meta_description = Column(String(160), nullable=True)
    meta_image = Column(String(1000), nullable=True)

    # Booking page customization
    booking_page_layout = Column(String(20), default="default", nullable=False)
    custom_css = Column(Text, nullable=True)

    # Onboarding
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    has_seen_tour = Column(Boolean, default=False, nullable=False)
    onboarding_step = Column(Integer, default=0, nullable=False)

    # Privacy
    consent = Column(JSON, nullable=True)
    deletion_scheduled_at = Column(DateTime, nullable=True)

    # Two-Factor Authentication fields
    two_factor_enabled = Column(Boolean, default=False, nullable=False)
    two_factor_secret = Column(Text, nullable=True)  # Fernet-encrypted TOTP secret
    backup_codes = Column(JSON, default=list, nullable=True)  # SHA-256 hashes

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    event_types = relationship("EventType", back_populates="user", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="user", cascade="all, delete-orphan")
    availability = relationship("Availability", back_populates="user", cascade="all, delete-orphan")
    date_overrides = relationship("DateOverride", back_populates="user", cascade="all, delete-orphan")
    connected_calendars = relationship(
        "ConnectedCalendar", back_populates="user", cascade="all, delete-orphan"
    )
    notification_settings = relationship(
        "NotificationSetting", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    team_memberships = relationship("TeamMember", back_populates="user", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="user", cascade="all, delete-orphan")


class EventType(Base):
    __tablename__ = "event_types"
    __table_args__ = (UniqueConstraint("user_id", "slug", name="uq_event_types_user_slug"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(100), nullable=False)
    slug = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    location_type = Column(String(30), default="VIDEO_ZOOM", nullable=False)
    location_details = Column(Text, nullable=True)
    minimum_notice = Column(Integer, default=0, nullable=False)  # minutes
    buffer_time_before = Column(Integer, default=0, nullable=False)  # minutes
    buffer_time_after = Column(Integer, default=0, nullable=False)  # minutes
    max_booking_window = Column(Integer, default=60, nullable=False)  # days
    price = Column(Float, nullable=True)
    currency = Column(String(3), default="USD", nullable=False)
    color = Column(String(7), nullable=True)
    custom_questions = Column(JSON, default=list, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    scheduling_type = Column(String(20), nullable=True)  # COLLECTIVE, ROUND_ROBIN

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", back_populates="event_types")
    team = relationship("Team", back_populates="event_types")
    bookings = relationship("Booking", back_populates="event_type", cascade="all, delete-orphan")


class Availability(Base):
    __tablename__ = "availability"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(String(5), nullable=False)  # HH:mm
    end_time = Column(String(5), nullable=False)  # HH:mm
    created_at = Column(DateTime, default=utc_now, nullable=False)

    user = relationship("User", back_populates="availability")


class DateOverride(Base):
    __tablename__ = "date_overrides"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_date_overrides_user_date"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    is_available = Column(Boolean, default=False, nullable=False)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    user = relationship("User", back_populates="date_overrides")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_type_id = Column(
        String(36), ForeignKey("event_types.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    guest_name = Column(String(100), nullable=False)
    guest_email = Column(String(255), nullable=False)
    guest_phone = Column(String(50), nullable=True)
    guest_timezone = Column(String(64), nullable=False, default="UTC")
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    # PENDING, CONFIRMED, CANCELLED, COMPLETED, NO_SHOW
    status = Column(String(20), default="PENDING", nullable=False, index=True)
    location = Column(Text, nullable=True)
    meeting_link = Column(String(1000), nullable=True)
    meeting_password = Column(String(100), nullable=True)
    custom_responses = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(10), nullable=True)  # host, guest
    cancelled_at = Column(DateTime, nullable=True)
    reschedule_token = Column(String(64), unique=True, nullable=True, index=True)
    cancel_token = Column(String(64), unique=True, nullable=True, index=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    event_type = relationship("EventType", back_populates="bookings")
    user = relationship("User", back_populates="bookings")
    payment = relationship("Payment", back_populates="booking", uselist=False)
    reminders = relationship("Reminder", back_populates="booking", cascade="all, delete-orphan")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    # PENDING, SUCCEEDED, FAILED, REFUNDED, PARTIALLY_REFUNDED
    status = Column(String(20), default="PENDING", nullable=False, index=True)
    stripe_payment_intent_id = Column(String(255), unique=True, nullable=True, index=True)
    stripe_refund_id = Column(String(255), nullable=True)
    refund_amount = Column(Float, nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_name = Column(String(100), nullable=True)
    payment_metadata = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    booking = relationship("Booking", back_populates="payment")
    user = relationship("User", back_populates="payments")


class Team(Base):
    __tablename__ = "teams"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    slug = Column(String(50), unique=True, nullable=False, index=True)
    logo_url = Column(String(1000), nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")
    event_types = relationship("EventType", back_populates="team")


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(10), default="MEMBER", nullable=False)  # OWNER, ADMIN, MEMBER
    accepted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="team_memberships")


class ConnectedCalendar(Base):
    __tablename__ = "connected_calendars"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider = Column(String(20), nullable=False)  # GOOGLE, OUTLOOK
    provider_account_id = Column(String(255), nullable=True)

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)

    calendar_id = Column(String(500), nullable=False)
    calendar_name = Column(String(255), nullable=True)
    is_primary = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", back_populates="connected_calendars")


class NotificationSetting(Base):
    __tablename__ = "notification_settings"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    email_enabled = Column(Boolean, default=True, nullable=False)
    sms_enabled = Column(Boolean, default=False, nullable=False)
    phone_number = Column(String(20), nullable=True)
    reminder_timing = Column(JSON, default=lambda: [1440, 60], nullable=False)  # minutes before

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", back_populates="notification_settings")


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(10), nullable=False)  # EMAIL, SMS
    scheduled_for = Column(DateTime, nullable=False, index=True)
    status = Column(String(10), default="PENDING", nullable=False, index=True)  # PENDING, SENT, FAILED
    sent_at = Column(DateTime, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    booking = relationship("Booking", back_populates="reminders")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    resource = Column(String(50), nullable=True)
    resource_id = Column(String(36), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    log_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)
