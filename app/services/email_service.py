import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, List
import logging
from jinja2 import Template
from app.core.config import settings

logger = logging.getLogger(__name__)

ALERT_HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{{ title }}</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; }
        .header { background: #dc2626; color: white; padding: 16px; }
        .section { margin: 16px 0; padding: 12px; border: 1px solid #e5e7eb; border-radius: 8px; }
    </style>
</head>
<body>
    <div class="header"><h2>{{ title }}</h2></div>
    <div class="section">
        <p>{{ body }}</p>
        {% if data %}
        <ul>
            {% if data.latitude is defined %}<li>Latitude: {{ data.latitude }}</li>{% endif %}
            {% if data.longitude is defined %}<li>Longitude: {{ data.longitude }}</li>{% endif %}
        </ul>
        {% endif %}
    </div>
    <p style="color: #6b7280; font-size: 12px;">Sent {{ created_at }}</p>
</body>
</html>
"""


class EmailService:
    def __init__(self):
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL or self.smtp_username

    def send_email(self, to_emails: List[str], subject: str, html_body: str) -> bool:
        """Send an HTML email. Returns False on any delivery failure."""
        try:
            msg = MIMEMultipart('alternative')
            msg['From'] = self.from_email
            msg['To'] = ', '.join(to_emails)
            msg['Subject'] = subject
            msg.attach(MIMEText(html_body, 'html'))

            server = smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=10)
            try:
                server.starttls()
                if self.smtp_username:
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
            finally:
                server.quit()

            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email to {to_emails}: {e}")
            return False

    def render_notification(self, notification: Dict) -> str:
        return Template(ALERT_HTML_TEMPLATE).render(**notification)


# Global email service instance
email_service = EmailService()
