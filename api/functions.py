"""Contact-notification function, served as its own app under /functions.

It is called from arbitrary origins, so unlike the main API it allows CORS
from anywhere.
"""

import logging

from alerts import send_contact_email
from backend import Backend
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

CORS_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

router = APIRouter()


@router.post("/send-contact-email")
async def send_contact_email_function(request: Request):
    """Store a contact submission and forward it by email."""
    try:
        data = await request.json()
        if not isinstance(data, dict):
            data = {}
        name = data.get("name")
        email = data.get("email")
        message = data.get("message")

        if not name or not email or not message:
            return JSONResponse({"error": "Missing required fields"}, status_code=400)

        backend = request.app.state.backend
        submission = backend.insert_contact_submission(name, email, message)
        send_contact_email(name, email, message)
        logger.info(f"Contact submission {submission.id} stored by notification function")

        return {"success": True, "message": "Contact submission received"}
    except Exception as e:
        logger.error(f"Error processing contact form submission: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to process contact submission"}, status_code=500)


def create_functions_app(backend: Backend | None = None) -> FastAPI:
    app = FastAPI(title="Notification functions")
    app.state.backend = backend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=CORS_HEADERS,
    )
    app.include_router(router)
    return app
