"""Contact routes for submitting messages."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from securecontact.contact.pipeline import IntakePipeline
from securecontact.contact.schemas import ContactRequest, ContactResponse
from securecontact.shared.database import get_db
from securecontact.shared.rate_limit_utils import get_client_ip, rate_limit

router = APIRouter(prefix="/api/contact", tags=["contact"])


def get_intake_pipeline(request: Request) -> IntakePipeline:
    return request.app.state.intake_pipeline


@router.post(
    "",
    response_model=ContactResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("contact"))],
)
async def submit_contact_form(
    contact_data: ContactRequest,
    request: Request,
    db: Session = Depends(get_db),
    pipeline: IntakePipeline = Depends(get_intake_pipeline),
):
    """
    Submit a contact form message.

    - Banned IPs are refused with 403
    - Honeypot, reCAPTCHA (if configured) and content scan rejections return 400
      and count towards an automatic IP ban
    - Suspicious but not malicious messages are stored quarantined
    - Message bodies are encrypted at rest when ENCRYPTION_KEY is set
    """
    result = await pipeline.submit(
        db,
        contact_data,
        client_ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return ContactResponse(id=result.id, created_at=result.created_at, encrypted=result.encrypted)
