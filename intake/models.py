"""
Pydantic models for the HTTP surface and the email webhook.
"""

from pydantic import BaseModel


SERVICE_NAME = "call-intake-assistant"


class HealthResponse(BaseModel):
    ok: bool = True
    service: str = SERVICE_NAME


class EmailWebhookPayload(BaseModel):
    """JSON body POSTed to the email webhook."""
    token: str
    to: str
    subject: str
    body: str
