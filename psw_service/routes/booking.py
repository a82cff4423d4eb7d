from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from shared.events import build_event, to_json

from ..dependencies import Services, get_services
from ..schemas import (
    Booking,
    BookingConfirmationRequest,
    BookingConfirmationResponse,
    BookingListResponse,
    ChatMessage,
    UpdateBooking,
)

router = APIRouter(prefix="/api/booking", tags=["Booking"])


def confirmation_message(booking: Booking, psw_name: str) -> str:
    day = booking.start_time.strftime("%Y-%m-%d")
    start = booking.start_time.strftime("%H:%M")
    end = booking.end_time.strftime("%H:%M")
    return f"""Great! Your booking has been confirmed!

**Booking Details:**
- **Worker:** {psw_name}
- **Date:** {day}
- **Time:** {start} - {end}
- **Service:** {booking.service_type}
- **Booking ID:** {booking.id}

You'll receive a confirmation email shortly. If you need to reschedule or cancel, you can do so up to 24 hours before the appointment.

Is there anything else I can help you with?"""


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _booking_event_data(booking: Booking) -> dict:
    return {
        "booking_id": booking.id,
        "client_id": booking.client_id,
        "psw_id": booking.psw_id,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
        "service_type": booking.service_type,
        "status": booking.status,
    }


@router.post("/confirm", response_model=BookingConfirmationResponse)
async def confirm_booking(data: BookingConfirmationRequest, services: Services = Depends(get_services)):
    if not all([data.client_id, data.psw_id, data.start_time, data.end_time, data.service_type]):
        raise HTTPException(status_code=400, detail="Missing required booking fields")

    if _aware(data.end_time) <= _aware(data.start_time):
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    repo = services.repository
    booking = await repo.create_booking(
        Booking(
            client_id=data.client_id,
            psw_id=data.psw_id,
            start_time=data.start_time,
            end_time=data.end_time,
            service_type=data.service_type,
            status="confirmed",
        )
    )

    psw = await repo.get_psw(data.psw_id)
    message = confirmation_message(booking, psw.name if psw else "Your selected PSW")

    if data.conversation_id and await repo.get_conversation(data.conversation_id):
        await repo.update_conversation(data.conversation_id, status="completed")
        services.ai_client.reset(data.conversation_id)
        await repo.add_chat_message(
            data.conversation_id,
            ChatMessage(
                conversation_id=data.conversation_id,
                sender="ai",
                content=message,
                timestamp=datetime.now(timezone.utc),
            ),
        )

    event = build_event("booking.confirmed", _booking_event_data(booking))
    await services.publisher.publish("booking.confirmed", to_json(event))

    return BookingConfirmationResponse(booking=booking, confirmation_message=message)


@router.get("/list", response_model=BookingListResponse)
async def list_bookings(
    client_id: str | None = None,
    psw_id: str | None = None,
    services: Services = Depends(get_services),
):
    if client_id:
        bookings = await services.repository.list_client_bookings(client_id)
        if psw_id:
            bookings = [b for b in bookings if b.psw_id == psw_id]
    elif psw_id:
        bookings = await services.repository.list_psw_bookings(psw_id)
    else:
        raise HTTPException(status_code=400, detail="Client ID or PSW ID is required")

    return BookingListResponse(bookings=bookings, total_count=len(bookings))


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(booking_id: str, services: Services = Depends(get_services)):
    booking = await services.repository.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@router.patch("/{booking_id}", response_model=Booking)
async def update_booking(booking_id: str, data: UpdateBooking, services: Services = Depends(get_services)):
    # only notes may be cleared with an explicit null
    updates = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k == "notes"
    }

    existing = await services.repository.get_booking(booking_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Booking not found")

    start = updates.get("start_time", existing.start_time)
    end = updates.get("end_time", existing.end_time)
    if _aware(end) <= _aware(start):
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    booking = await services.repository.update_booking(booking_id, updates)

    event = build_event("booking.updated", _booking_event_data(booking))
    await services.publisher.publish("booking.updated", to_json(event))

    return booking


@router.delete("/{booking_id}")
async def cancel_booking(booking_id: str, services: Services = Depends(get_services)):
    booking = await services.repository.cancel_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    event = build_event("booking.cancelled", _booking_event_data(booking))
    await services.publisher.publish("booking.cancelled", to_json(event))

    return {"message": "Booking cancelled successfully"}
