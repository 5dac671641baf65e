"""
Call intake web service - Twilio webhooks, TwiML rendering and email delivery.
"""
