"""
Outbound email for billing events.
"""
import html
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from socialboost.core.config import SmtpSettings

logger = logging.getLogger(__name__)


class SmtpNotificationSender:
    """Send HTML email over SMTP. Without credentials the message is only logged."""

    def __init__(self, settings: SmtpSettings):
        self.settings = settings

    def send(self, to: str, subject: str, html_body: str) -> None:
        if not self.settings.username or not self.settings.password:
            logger.info(f"SMTP credentials missing, email not sent: to={to}, subject={subject}")
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.sender
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(self.settings.host, self.settings.port, timeout=10) as server:
            if self.settings.use_tls:
                server.starttls()
            server.login(self.settings.username, self.settings.password)
            server.send_message(msg)

        logger.info(f"Email sent to {to}: {subject}")


def subscription_confirmation_html(
    first_name: str,
    plan_name: str,
    amount: float,
    billing: str,
    order_id: str,
    next_billing_date: Optional[datetime] = None,
) -> str:
    billing_text = "yearly" if billing == "annual" else "monthly"
    next_date = next_billing_date.strftime("%B %d, %Y") if next_billing_date else "your next billing cycle"
    name = html.escape(first_name or "there")
    plan = html.escape(plan_name or "")

    return f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="utf-8"><title>Payment Successful</title></head>
    <body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f9fafb; color: #374151;">
      <div style="max-width: 600px; margin: 40px auto; background: white; border-radius: 8px; overflow: hidden;">
        <div style="background: linear-gradient(45deg, #f09433 0%, #dc2743 50%, #bc1888 100%); height: 8px;"></div>
        <div style="padding: 30px 40px;">
          <h2 style="color: #111827;">Hi {name}, your campaign is live!</h2>
          <p>Thank you for subscribing to the <strong>{plan}</strong> plan.</p>
          <table style="width: 100%; border-collapse: collapse; margin: 24px 0;">
            <tr><td>Order ID</td><td style="text-align: right;">{html.escape(order_id)}</td></tr>
            <tr><td>Plan</td><td style="text-align: right;">{plan}</td></tr>
            <tr><td>Amount</td><td style="text-align: right;">${amount:.2f} / {billing_text}</td></tr>
            <tr><td>Next billing date</td><td style="text-align: right;">{next_date}</td></tr>
          </table>
          <p style="color: #6b7280; font-size: 14px;">You can manage your subscription from your dashboard at any time.</p>
        </div>
      </div>
    </body>
    </html>
    """
