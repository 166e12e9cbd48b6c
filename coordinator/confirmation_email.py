import os
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from models.subscription import ConfirmationRequest
from utils.time_utils import format_long_date

logger = logging.getLogger("subscription_service")

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
SUBJECT = "Please Confirm Your Email Address"


class ConfirmationEmailBuilder:
    """
    Builds the SendGrid `mail/send` payload for an opt-in confirmation.

    With a dynamic template id the provider renders the email from
    `dynamic_template_data`; without one the subject and bodies are rendered
    here from templates/confirmation/.
    """

    def __init__(self, public_url: str, from_email: str, from_name: str,
                 template_id: Optional[str] = None, template_dir: str = TEMPLATE_DIR):
        self.public_url = public_url.rstrip("/")
        self.from_email = from_email
        self.from_name = from_name
        self.template_id = template_id
        # StrictUndefined raises an error if a variable is missing
        self.env = Environment(loader=FileSystemLoader(template_dir), undefined=StrictUndefined)

    def confirmation_link(self, request: ConfirmationRequest) -> str:
        return f"{self.public_url}/?verify=true&frequency={request.frequency.value}"

    def template_data(self, request: ConfirmationRequest, today: datetime) -> Dict[str, str]:
        return {
            "todaysDate": format_long_date(today),
            "confirmationLink": self.confirmation_link(request),
            "frequency": request.frequency.value,
            "delegatorAddress": request.delegator_address,
        }

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        template_path = f"confirmation/{template_name}"
        try:
            return self.env.get_template(template_path).render(context)
        except Exception as e:
            logger.error(f"Failed to render template {template_path}: {e}")
            raise

    def build(self, request: ConfirmationRequest, token: Dict[str, str], today: datetime) -> Dict[str, Any]:
        data = self.template_data(request, today)

        # Request fields first, token last so callers cannot override it
        custom_args = {key: str(value) for key, value in request.passthrough().items()}
        custom_args.update({key: str(value) for key, value in request.job_data().items()})
        custom_args.update(token)

        personalization = {
            "to": [{"email": request.email}],
            "subject": SUBJECT,
            "custom_args": custom_args,
        }
        sender = {"email": self.from_email, "name": self.from_name}
        payload = {
            "personalizations": [personalization],
            "from": sender,
            "reply_to": sender,
        }

        if self.template_id:
            personalization["dynamic_template_data"] = data
            payload["template_id"] = self.template_id
        else:
            payload["subject"] = self.render("subject.txt", data).strip()
            payload["content"] = [
                {"type": "text/plain", "value": self.render("body.txt.j2", data)},
                {"type": "text/html", "value": self.render("body.html.j2", data)},
            ]
        return payload
