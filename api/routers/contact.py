import logging

from backend import Backend, BackendError
from deps import get_backend
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from pydantic.networks import validate_email

logger = logging.getLogger(__name__)
router = APIRouter()


class ContactForm(BaseModel):
    name: str
    email: str
    message: str

    @field_validator("name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters.")
        return v

    @field_validator("email")
    @classmethod
    def _email_format(cls, v: str) -> str:
        try:
            validate_email(v)
        except ValueError:
            raise ValueError("Please enter a valid email address.")
        return v

    @field_validator("message")
    @classmethod
    def _message_length(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Message must be at least 10 characters.")
        return v


@router.post("/contact")
def submit_contact(form: ContactForm, backend: Backend = Depends(get_backend)):
    try:
        submission = backend.insert_contact_submission(form.name, form.email, form.message)
    except BackendError as e:
        logger.error(f"Error submitting contact form: {e}")
        raise HTTPException(502, "Something went wrong. Please try again later.")
    logger.info(f"Contact submission {submission.id} received")
    return {"ok": True, "id": submission.id, "message": "Message sent successfully!"}
