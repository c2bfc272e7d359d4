"""
Email Service using Resend

Notifications for the admission flow. Sending is best effort: failures are
logged and reported as False, never raised to the caller.
"""

import asyncio
import logging
from html import escape

import resend

from admissions.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

_STYLE = """
    body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
    .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
    .header { color: #1a365d; margin-bottom: 24px; }
    .button { display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
    .info-box { background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }
    .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


def _render(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head><style>{_STYLE}</style></head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>Neram Classes - NATA &amp; JEE Paper 2 Coaching</p>
            </div>
        </div>
    </body>
    </html>
    """


def _format_inr(amount: int) -> str:
    return f"&#8377;{amount:,}"


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Returns:
        True if the email was sent (or logged when no API key is configured)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_application_received(
    to_email: str,
    applicant_name: str,
    course_label: str,
    application_id: str,
) -> bool:
    """Acknowledge a new application."""
    safe_name = escape(applicant_name)
    safe_course = escape(course_label)
    status_url = f"{settings.frontend_url}/application/{application_id}"

    body = f"""
        <p>Hello {safe_name},</p>
        <p>We have received your application for <strong>{safe_course}</strong>.</p>
        <div class="info-box">
            <p><strong>Application ID:</strong> {escape(application_id)}</p>
        </div>
        <p>Our admissions team will review it and get back to you shortly.</p>
        <a href="{status_url}" class="button">Track Application</a>
    """
    return await send_email(
        to_email=to_email,
        subject="We received your Neram Classes application",
        html_content=_render("Application Received", body),
    )


async def send_payment_link_required(
    to_email: str,
    applicant_name: str,
    application_id: str,
    final_fee: int,
    payment_scheme: str,
    installment1: int,
    installment2: int,
) -> bool:
    """Tell an approved applicant that payment is due."""
    safe_name = escape(applicant_name)
    payment_url = f"{settings.frontend_url}/application/{application_id}/payment"

    if payment_scheme == "installment":
        schedule = (
            f"<p><strong>First installment:</strong> {_format_inr(installment1)}</p>"
            f"<p><strong>Second installment:</strong> {_format_inr(installment2)}</p>"
        )
    else:
        schedule = f"<p><strong>Amount due:</strong> {_format_inr(final_fee)}</p>"

    body = f"""
        <p>Hello {safe_name},</p>
        <p>Congratulations! Your application has been <strong>approved</strong>.</p>
        <div class="info-box">
            <p><strong>Total fee:</strong> {_format_inr(final_fee)}</p>
            {schedule}
        </div>
        <p>Please complete your payment to confirm your seat.</p>
        <a href="{payment_url}" class="button">Pay Now</a>
    """
    return await send_email(
        to_email=to_email,
        subject="Your application is approved - complete your payment",
        html_content=_render("Application Approved", body),
    )


async def send_application_rejected(
    to_email: str,
    applicant_name: str,
    reason: str,
) -> bool:
    """Inform an applicant that their application was not accepted."""
    safe_name = escape(applicant_name)
    safe_reason = escape(reason)

    body = f"""
        <p>Hello {safe_name},</p>
        <p>Thank you for your interest in Neram Classes. After review, we are unable
        to accept your application at this time.</p>
        <div class="info-box">
            <p><strong>Reason:</strong> {safe_reason}</p>
        </div>
        <p>You are welcome to contact us if you have any questions.</p>
    """
    return await send_email(
        to_email=to_email,
        subject="Update on your Neram Classes application",
        html_content=_render("Application Update", body),
    )


async def send_enrollment_confirmed(
    to_email: str,
    applicant_name: str,
    amount_paid: int,
    cashback_total: int,
) -> bool:
    """Confirm enrollment after payment."""
    safe_name = escape(applicant_name)

    cashback_line = ""
    if cashback_total > 0:
        cashback_line = (
            f"<p><strong>Cashback eligible:</strong> {_format_inr(cashback_total)}</p>"
        )

    body = f"""
        <p>Hello {safe_name},</p>
        <p>Your payment has been received and your enrollment is confirmed.</p>
        <div class="info-box">
            <p><strong>Amount paid:</strong> {_format_inr(amount_paid)}</p>
            {cashback_line}
        </div>
        <p>Welcome to Neram Classes!</p>
    """
    return await send_email(
        to_email=to_email,
        subject="Welcome to Neram Classes - enrollment confirmed",
        html_content=_render("Enrollment Confirmed", body),
    )
