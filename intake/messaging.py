"""
Inbound SMS intake.

No dialogue here: each message is rendered as an email and acknowledged
with an empty TwiML response, whatever happens to the email.
"""

from twilio.twiml.messaging_response import MessagingResponse

from dialogue.summary import NOT_PROVIDED, Notification, sms_subject


def build_sms_notification(sender: str, recipient: str, body: str) -> Notification:
    """Render an inbound text message as an email notification."""
    sender = (sender or "").strip()
    text = "\n".join([
        f"From: {sender or NOT_PROVIDED}",
        f"To: {(recipient or '').strip() or NOT_PROVIDED}",
        "",
        "Message:",
        (body or "").strip() or "(empty message)",
    ])
    return Notification(subject=sms_subject(sender or "Unknown"), body=text)


def empty_sms_ack() -> str:
    """Empty TwiML so Twilio sends no auto-reply."""
    return str(MessagingResponse())
