from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text

from shared.database import Base


class PSW(Base):
    __tablename__ = "psws"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    postal_code = Column(String, nullable=True)
    address = Column(String, nullable=True)

    certifications = Column(JSON, nullable=False)
    rating = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    service_types = Column(JSON, nullable=False)
    availability = Column(JSON, nullable=False)  # SlotCalendar | WeeklyCalendar

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True)
    client_id = Column(String, nullable=False, index=True)
    psw_id = Column(String, nullable=False, index=True)

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    service_type = Column(String, nullable=False)

    status = Column(String, nullable=False, index=True)  # pending/confirmed/completed/cancelled
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True)
    client_id = Column(String, nullable=False, index=True)
    extracted_data = Column(JSON, nullable=False)
    status = Column(String, nullable=False)  # active/completed/archived

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(String, nullable=False)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False, index=True)
    sender = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    metadata_ = Column("metadata", JSON, nullable=True)
