import logging

from fastapi import APIRouter, Depends

from carpool.api.deps import get_email_service
from carpool.core.exceptions import ServiceUnavailableError
from carpool.schemas.common import MessageResponse, ErrorResponse
from carpool.schemas.contact import ContactRequest
from carpool.utils.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contact"])


@router.post(
    "",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing required fields"},
        500: {"model": ErrorResponse, "description": "Message could not be sent"},
    }
)
async def submit_contact_form(
    contact_data: ContactRequest,
    email_service: EmailService = Depends(get_email_service),
):
    """Relay a contact-form message to the support inbox."""
    sent = await email_service.send_contact_email(
        name=contact_data.name,
        email=contact_data.email,
        subject=contact_data.subject,
        message=contact_data.message,
        phone=contact_data.phone,
    )
    if not sent:
        raise ServiceUnavailableError("Failed to send your message. Please try again later.")

    logger.info(f"Contact message relayed from {contact_data.email}")
    return MessageResponse(message="Your message has been sent successfully.")
