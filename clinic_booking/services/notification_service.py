"""
Push Notification Service
Fire-and-forget push messages for booking workflow events.
Delivery happens in the push gateway; failures here are logged and never raised.
"""

import logging
from datetime import date, time
from typing import Optional

import httpx

from .. import config
from ..shared.validators import format_hhmm

logger = logging.getLogger(__name__)


async def send_push(
    recipient_role: str,
    recipient_id: Optional[int],
    title: str,
    body: str,
    notification_type: str,
    data: Optional[dict] = None,
) -> bool:
    """
    Post one notification to the push gateway

    Args:
        recipient_role: "patient", "doctor" or "admin"
        recipient_id: Profile id of the recipient for that role
        title: Notification title
        body: Notification text
        notification_type: Type of notification (for logging and routing)
        data: Extra payload forwarded to the device

    Returns:
        True when the gateway accepted the message
    """
    if recipient_id is None:
        logger.debug(f"⚠️ No recipient for {notification_type} notification")
        return False

    if not config.PUSH_GATEWAY_URL:
        logger.debug(f"ℹ️ Push gateway not configured, skipping {notification_type} notification")
        return False

    headers = {"Content-Type": "application/json"}
    if config.PUSH_GATEWAY_TOKEN:
        headers["Authorization"] = f"Bearer {config.PUSH_GATEWAY_TOKEN}"

    payload = {
        "recipient": {"role": recipient_role, "id": recipient_id},
        "type": notification_type,
        "title": title,
        "body": body,
        "data": data or {},
    }

    try:
        logger.info(f"📲 Sending {notification_type} push to {recipient_role} {recipient_id}")
        async with httpx.AsyncClient(timeout=config.PUSH_TIMEOUT_SECONDS) as client:
            response = await client.post(config.PUSH_GATEWAY_URL, json=payload, headers=headers)

        if response.status_code not in [200, 201, 202]:
            logger.warning(
                f"⚠️ Push gateway rejected {notification_type} for {recipient_role} {recipient_id}: "
                f"HTTP {response.status_code} {response.text[:200]}"
            )
            return False

        logger.info(f"✅ {notification_type} push sent to {recipient_role} {recipient_id}")
        return True
    except httpx.HTTPError as e:
        logger.error(f"❌ Failed to send {notification_type} push to {recipient_role} {recipient_id}: {e}")
        return False


async def notify_hold_decision(doctor_id: int, request_id: int, status: str) -> bool:
    """Tell the requesting doctor their hold request was approved or rejected"""
    approved = status == "approved"
    return await send_push(
        recipient_role="doctor",
        recipient_id=doctor_id,
        title="Reservation approved" if approved else "Reservation rejected",
        body=(
            "Your reservation request was approved and the requested slots are now blocked."
            if approved
            else "Your reservation request was rejected."
        ),
        notification_type=f"hold_{status}",
        data={"holdRequestId": request_id, "status": status},
    )


async def notify_appointment_cancelled(
    patient_id: Optional[int],
    appointment_id: int,
    appointment_date: date,
    appointment_time: time,
    cancelled_by: str,
) -> bool:
    """Tell the patient their appointment was cancelled by the doctor or an administrator"""
    return await send_push(
        recipient_role="patient",
        recipient_id=patient_id,
        title="Appointment cancelled",
        body=(
            f"Your appointment on {appointment_date.isoformat()} at "
            f"{format_hhmm(appointment_time)} was cancelled by the {cancelled_by}."
        ),
        notification_type="appointment_cancelled",
        data={"appointmentId": appointment_id},
    )
