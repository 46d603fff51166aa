"""
FastAPI service for novena content and the daily prayer reminder scheduler.

Content is served read-only from the JSON documents in `novena_content`;
reminders are pushed through Firebase Cloud Messaging to users who have not
prayed today's novena day yet.
"""
