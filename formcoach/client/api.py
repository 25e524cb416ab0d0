# client/api.py

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10.0
PING_PAYLOAD = {"test": True, "ping": "connection_check"}


class FormCoachClient:
    """
    Posts session payloads to the evaluation webhook and keeps the last
    feedback / error around for display.
    """

    def __init__(self, webhook_url: str = "", timeout: float = REQUEST_TIMEOUT):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.last_feedback: Optional[Dict[str, Any]] = None
        self.last_error: Optional[str] = None
        self.is_connected = False

    def set_webhook_url(self, url: str):
        self.webhook_url = url
        self.is_connected = False

    def check_connection(self) -> bool:
        """Any HTTP answer from the webhook counts as reachable."""
        if not self.webhook_url:
            self.last_error = "webhook URL is not set"
            self.is_connected = False
            return False

        try:
            resp = requests.post(self.webhook_url, json=PING_PAYLOAD, timeout=self.timeout)
            logger.info("Webhook ping %s -> %s", self.webhook_url, resp.status_code)
        except requests.RequestException as e:
            logger.warning("Webhook ping failed: %s", e)
            self.last_error = f"connection error: {e}"
            self.is_connected = False
            return False

        self.is_connected = True
        self.last_error = None
        return True

    @property
    def connection_status(self) -> str:
        if not self.webhook_url:
            return "not configured"
        return "connected" if self.is_connected else "disconnected"

    def send_for_evaluation(self, payload: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Returns the evaluation JSON, or None with last_error set.
        """
        if not payload:
            self.last_error = "payload is empty"
            return None
        if not self.webhook_url:
            self.last_error = "webhook URL is not set"
            return None

        try:
            resp = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Evaluation request failed: %s", e)
            self.last_error = f"send error: {e}"
            return None

        if not resp.ok:
            self.last_error = f"HTTP error: {resp.status_code}"
            logger.warning("Evaluation backend error: %s %s", resp.status_code, resp.text)
            return None

        try:
            feedback = resp.json()
        except ValueError:
            self.last_error = "response is not JSON"
            return None
        if not isinstance(feedback, dict):
            self.last_error = f"unexpected response shape: {type(feedback).__name__}"
            logger.warning("Evaluation backend answered with %s, expected an object",
                           type(feedback).__name__)
            return None

        self.last_feedback = feedback
        self.last_error = None
        logger.info("Evaluation received for session %s", payload.get("meta", {}).get("session_id"))
        return feedback
