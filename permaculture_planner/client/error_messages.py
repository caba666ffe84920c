"""
User-friendly messages for API errors.

Message texts are loaded from error_messages.yaml next to this module.
"""
import os
from typing import Any, Dict, Optional

import yaml

from permaculture_planner.client.fetch_with_retry import ApiError


class ErrorMessages:
    def __init__(self, config_path: Optional[str] = None):
        self.config = self._load_messages(config_path)

    def _load_messages(self, config_path: Optional[str]) -> Dict[str, Any]:
        """Load error message configuration"""
        path = config_path or os.path.join(os.path.dirname(__file__), "error_messages.yaml")
        with open(path, "r") as f:
            return yaml.safe_load(f)

    def _entry(self, section: Dict[str, Any], server_message: Optional[str] = None) -> Dict[str, Any]:
        message = section.get("message")
        if section.get("use_server_message") and server_message:
            message = server_message
        return {
            "title": section["title"],
            "message": message,
            "action": section.get("action"),
            "can_retry": bool(section.get("can_retry")),
        }

    def not_found(self, context: Optional[str] = None) -> Dict[str, Any]:
        section = self.config["not_found"]
        texts = section["contexts"].get(context or "default", section["contexts"]["default"])
        return {
            "title": section["title"],
            "message": texts["message"],
            "action": texts["action"],
            "can_retry": bool(section["can_retry"]),
        }

    def get_user_friendly_error(self, error: Exception, context: Optional[str] = None) -> Dict[str, Any]:
        """
        Map an exception to ``{title, message, action, can_retry}``.

        ApiErrors without a status code are treated as connection problems.
        """
        if not isinstance(error, ApiError):
            return {
                "title": "Error",
                "message": str(error) or self.config["fallback"]["message"],
                "action": self.config["fallback"]["action"],
                "can_retry": True,
            }

        status_code = error.status_code
        if status_code is None:
            return self._entry(self.config["network"])
        if status_code == 404:
            return self.not_found(context)

        statuses = self.config["status"]
        if status_code in statuses:
            return self._entry(statuses[status_code], error.message)
        if 500 <= status_code < 600:
            return self._entry(statuses["5xx"])

        entry = self._entry(self.config["fallback"])
        entry["message"] = error.message or entry["message"]
        return entry

    def get_operation_error(self, operation: str, error: Exception) -> Dict[str, Any]:
        friendly = self.get_user_friendly_error(error)
        overrides = self.config["operations"].get(operation, {})
        friendly["title"] = overrides.get("title", friendly["title"])
        friendly["action"] = overrides.get("action", friendly["action"])
        return friendly


error_messages = ErrorMessages()


def get_user_friendly_error(error: Exception, context: Optional[str] = None) -> Dict[str, Any]:
    return error_messages.get_user_friendly_error(error, context)


def get_error_message(error: Exception, context: Optional[str] = None) -> str:
    return error_messages.get_user_friendly_error(error, context)["message"]
