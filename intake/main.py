"""
Call Intake Assistant - FastAPI Application

Answers inbound calls with a short scripted dialogue, emails a summary of
what the caller said, and forwards inbound SMS by email.

Every voice webhook is one step of the dialogue. The route only parses the
Twilio form fields; flow decisions live in dialogue.controller. Emails are
sent as background tasks after the TwiML response has gone out.

Python 3.9 compatible.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, Form
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from dialogue.controller import DialogueController, StepResult
from dialogue.store import get_call_store
from steps.specs import INCOMING_CALL_PATH, SMS_PATH, DialogueStep, step_path

from .email_service import get_email_service
from .messaging import build_sms_notification, empty_sms_ack
from .models import HealthResponse
from .twiml_service import get_twiml_service

# Load environment variables from .env
# Try multiple paths to ensure we find .env
env_paths = [
    Path(__file__).parent.parent / ".env",  # project root
    Path.cwd() / ".env",  # current working directory
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    load_dotenv()  # fallback to default behavior

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

XML_MEDIA_TYPE = "application/xml"

# Created lazily so the app works without lifespan (e.g. under ASGITransport)
_dialogue_controller: Optional[DialogueController] = None


def get_dialogue_controller() -> DialogueController:
    """Get or create the DialogueController singleton."""
    global _dialogue_controller
    if _dialogue_controller is None:
        _dialogue_controller = DialogueController(get_call_store(), get_twiml_service())
    return _dialogue_controller


def _mask_key(key: Optional[str]) -> str:
    """Mask a secret showing only last 4 chars."""
    if not key:
        return "(not set)"
    if len(key) <= 4:
        return "****"
    return f"****{key[-4:]}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - log configuration and warm up services."""
    logger.info("=" * 60)
    logger.info("Initializing Call Intake Assistant")
    logger.info("=" * 60)

    logger.info(f"EMAIL_WEBHOOK_URL present: {bool(os.getenv('EMAIL_WEBHOOK_URL'))}")
    logger.info(f"EMAIL_WEBHOOK_TOKEN: {_mask_key(os.getenv('EMAIL_WEBHOOK_TOKEN'))}")
    logger.info(f"SUMMARY_TO_EMAIL: {os.getenv('SUMMARY_TO_EMAIL') or '(not set)'}")
    logger.info(f"WEBHOOK_BASE_URL: {os.getenv('WEBHOOK_BASE_URL') or '(relative callbacks)'}")

    email_service = get_email_service()
    if not email_service.is_configured:
        logger.warning("Email NOT configured - calls will complete without notifications")

    get_dialogue_controller()
    logger.info("Dialogue controller initialized successfully")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down Call Intake Assistant")


app = FastAPI(
    title="Call Intake Assistant",
    description="Scripted call intake over Twilio with email summaries",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", response_model=HealthResponse)
@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse()


# ============================================================
# Twilio Voice Webhooks
# ============================================================

def _twiml_response(result: StepResult, background_tasks: BackgroundTasks) -> Response:
    """Return TwiML to Twilio, queueing the email if the call was finalized."""
    if result.notification is not None:
        background_tasks.add_task(
            get_email_service().notify,
            result.notification.subject,
            result.notification.body,
        )
    return Response(content=result.twiml, media_type=XML_MEDIA_TYPE)


def _run_step(
    step: DialogueStep,
    call_sid: str,
    speech_result: str,
    background_tasks: BackgroundTasks,
) -> Response:
    result = get_dialogue_controller().handle_step(step, call_sid, speech_result)
    return _twiml_response(result, background_tasks)


@app.post(INCOMING_CALL_PATH)
async def twilio_voice_incoming(
    background_tasks: BackgroundTasks,
    CallSid: str = Form(...),
    From: str = Form(""),
):
    """
    Twilio voice webhook - called when a call connects.

    Creates the call state and asks for the caller's name.
    """
    logger.info(f"Incoming call: CallSid={CallSid}, From={From or '(empty)'}")
    result = get_dialogue_controller().start_call(CallSid, From)
    return _twiml_response(result, background_tasks)


@app.post(step_path(DialogueStep.AWAIT_NAME))
async def twilio_step_name(
    background_tasks: BackgroundTasks,
    CallSid: str = Form(...),
    SpeechResult: str = Form(""),
):
    """Name -> callback number (hidden caller ID) or work/personal."""
    return _run_step(DialogueStep.AWAIT_NAME, CallSid, SpeechResult, background_tasks)


@app.post(step_path(DialogueStep.AWAIT_CALLBACK_NUMBER))
async def twilio_step_callback(
    background_tasks: BackgroundTasks,
    CallSid: str = Form(...),
    SpeechResult: str = Form(""),
):
    """Callback number -> work/personal."""
    return _run_step(DialogueStep.AWAIT_CALLBACK_NUMBER, CallSid, SpeechResult, background_tasks)


@app.post(step_path(DialogueStep.AWAIT_CATEGORY))
async def twilio_step_type(
    background_tasks: BackgroundTasks,
    CallSid: str = Form(...),
    SpeechResult: str = Form(""),
):
    """Work/personal -> personal ends the call, work continues to topic."""
    return _run_step(DialogueStep.AWAIT_CATEGORY, CallSid, SpeechResult, background_tasks)


@app.post(step_path(DialogueStep.AWAIT_TOPIC))
async def twilio_step_topic(
    background_tasks: BackgroundTasks,
    CallSid: str = Form(...),
    SpeechResult: str = Form(""),
):
    """Topic -> urgency."""
    return _run_step(DialogueStep.AWAIT_TOPIC, CallSid, SpeechResult, background_tasks)


@app.post(step_path(DialogueStep.AWAIT_URGENCY))
async def twilio_step_urgency(
    background_tasks: BackgroundTasks,
    CallSid: str = Form(...),
    SpeechResult: str = Form(""),
):
    """Urgency -> callback time if it can wait, otherwise finish."""
    return _run_step(DialogueStep.AWAIT_URGENCY, CallSid, SpeechResult, background_tasks)


@app.post(step_path(DialogueStep.AWAIT_CALLBACK_TIME))
async def twilio_step_callback_time(
    background_tasks: BackgroundTasks,
    CallSid: str = Form(...),
    SpeechResult: str = Form(""),
):
    """Callback time -> finish."""
    return _run_step(DialogueStep.AWAIT_CALLBACK_TIME, CallSid, SpeechResult, background_tasks)


# ============================================================
# Twilio Messaging Webhook
# ============================================================

@app.post(SMS_PATH)
async def twilio_sms(
    background_tasks: BackgroundTasks,
    From: str = Form(""),
    To: str = Form(""),
    Body: str = Form(""),
):
    """
    Twilio messaging webhook - forwards the message by email.

    Always acknowledges with empty TwiML; email failures only show in logs.
    """
    logger.info(f"Incoming SMS: From={From or '(empty)'}, To={To or '(empty)'}, length={len(Body)}")

    notification = build_sms_notification(From, To, Body)
    background_tasks.add_task(get_email_service().notify, notification.subject, notification.body)

    return Response(content=empty_sms_ack(), media_type=XML_MEDIA_TYPE)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
