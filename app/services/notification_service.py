from datetime import datetime
from typing import Dict, List, Optional
import logging

from app.core.config import settings
from app.services.email_service import EmailService, email_service

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, channel: Optional[str] = None, mailer: EmailService = email_service):
        self.channel = channel or settings.ALERT_CHANNEL
        self.mailer = mailer
        self.templates = self._load_templates()

    def _load_templates(self) -> Dict:
        """Load notification templates"""
        return {
            'geofence_violation': {
                'title': '🚨 Worker Outside Geofence: {employee_name}',
                'body': 'Worker {employee_name} has been outside project {project_name} '
                        'for {outside_minutes} minutes.{checkout_note}',
                'icon': '🚨',
                'priority': 'high'
            }
        }

    def create_notification(
        self,
        template_key: str,
        data: Dict,
        recipients: List[str],
        priority: str = 'normal'
    ) -> Dict:
        """Create a notification from template"""
        if template_key not in self.templates:
            return {
                "success": False,
                "error": f"Template '{template_key}' not found"
            }

        template = self.templates[template_key]
        try:
            title = template['title'].format(**data)
            body = template['body'].format(**data)
        except KeyError as e:
            return {
                "success": False,
                "error": f"Missing template field {e}"
            }

        notification = {
            "id": f"notif_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{hash(title) % 10000}",
            "title": title,
            "body": body,
            "icon": template.get('icon', '📢'),
            "priority": template.get('priority', priority),
            "data": data,
            "created_at": datetime.now().isoformat(),
            "recipients": recipients,
            "type": template_key
        }

        return {
            "success": True,
            "notification": notification
        }

    def send_notification(self, notification: Dict) -> Dict:
        """Send notification to recipients through the configured channel"""
        recipients = notification['recipients']

        if self.channel == 'email':
            if not recipients:
                logger.warning(f"Notification '{notification['title']}' has no recipients")
                return {"success": False, "error": "No recipients configured"}
            html_body = self.mailer.render_notification(notification)
            if not self.mailer.send_email(recipients, notification['title'], html_body):
                return {"success": False, "error": "Email delivery failed"}
        else:
            logger.warning(f"[{notification['priority']}] {notification['title']}: {notification['body']}")

        logger.info(f"Notification sent to {len(recipients)} recipients: {notification['title']}")
        return {
            "success": True,
            "sent_count": len(recipients),
            "notification_id": notification['id'],
            "sent_at": datetime.now().isoformat()
        }

    def create_and_send(
        self,
        template_key: str,
        data: Dict,
        recipients: List[str],
        priority: str = 'normal'
    ) -> Dict:
        """Create and send notification in one step"""
        create_result = self.create_notification(template_key, data, recipients, priority)

        if not create_result["success"]:
            return create_result

        send_result = self.send_notification(create_result["notification"])

        return {
            "success": send_result["success"],
            "notification": create_result["notification"],
            "sent_count": send_result.get("sent_count", 0),
            "error": send_result.get("error")
        }


# Global notification service instance
notification_service = NotificationService()
