"""
Offline operation queue.

Mutations that could not reach the API are queued, persisted to a JSON file
and replayed in order once connectivity returns.
"""
import json
import os
import random
import string
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from permaculture_planner.client.fetch_with_retry import ApiError, api_fetch
from permaculture_planner.logging_config import get_logger

logger = get_logger(__name__)

MAX_QUEUE_SIZE = 50
DEFAULT_MAX_RETRIES = 3

Sender = Callable[[Dict[str, Any]], Awaitable[Any]]
Listener = Callable[[Dict[str, Any]], None]


class QueueFullError(Exception):
    """Raised when the queue already holds MAX_QUEUE_SIZE operations."""


def _operation_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"


class OfflineQueue:
    def __init__(self, storage_path: Optional[str] = None, max_size: int = MAX_QUEUE_SIZE):
        self.storage_path = storage_path
        self.max_size = max_size
        self.listeners: List[Listener] = []
        self.is_processing = False
        self.state = self._load()

    def _empty_state(self) -> Dict[str, Any]:
        return {"pending": [], "processing": [], "failed": []}

    def _load(self) -> Dict[str, Any]:
        if not self.storage_path or not os.path.exists(self.storage_path):
            return self._empty_state()
        try:
            with open(self.storage_path, "r") as f:
                stored = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load offline queue from %s: %s", self.storage_path, e)
            return self._empty_state()
        return {
            "pending": stored.get("pending", []),
            "processing": [],
            "failed": stored.get("failed", []),
        }

    def _save(self) -> None:
        if not self.storage_path:
            return
        try:
            with open(self.storage_path, "w") as f:
                json.dump({"pending": self.state["pending"], "failed": self.state["failed"]}, f)
        except OSError as e:
            logger.error("Failed to save offline queue to %s: %s", self.storage_path, e)

    def _changed(self) -> None:
        self._save()
        for listener in list(self.listeners):
            listener(self.state)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; it is called immediately and on every change."""
        self.listeners.append(listener)
        listener(self.state)

        def unsubscribe():
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def enqueue(
        self,
        method: str,
        url: str,
        body: Any = None,
        description: str = "",
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> str:
        if len(self.state["pending"]) >= self.max_size:
            raise QueueFullError("Queue is full. Please try again later.")

        operation = {
            "id": _operation_id(),
            "method": method.upper(),
            "url": url,
            "body": body,
            "description": description,
            "timestamp": int(time.time() * 1000),
            "retry_count": 0,
            "max_retries": max_retries,
        }
        self.state["pending"].append(operation)
        self._changed()
        return operation["id"]

    async def process_queue(self, send: Sender) -> None:
        """
        Replay pending operations one at a time, oldest first.

        A failed operation goes to the back of the queue until it has failed
        ``max_retries`` times, after which it moves to ``failed``.
        """
        if self.is_processing:
            return
        self.is_processing = True
        try:
            while self.state["pending"]:
                operation = self.state["pending"][0]
                self.state["processing"].append(operation["id"])
                self._changed()
                try:
                    await send(operation)
                except Exception as e:
                    self._record_failure(operation, str(e) or "Failed after maximum retries")
                else:
                    self._remove_pending(operation["id"])
                    logger.info("Replayed queued operation %s (%s)", operation["id"], operation["description"])
                finally:
                    self.state["processing"] = [i for i in self.state["processing"] if i != operation["id"]]
                    self._changed()
        finally:
            self.is_processing = False

    def _remove_pending(self, operation_id: str) -> bool:
        """Drop an operation from pending by id. False when it is no longer queued."""
        remaining = [op for op in self.state["pending"] if op["id"] != operation_id]
        removed = len(remaining) != len(self.state["pending"])
        self.state["pending"] = remaining
        return removed

    def _record_failure(self, operation: Dict[str, Any], error: str) -> None:
        # cleared while the send was in flight
        if not self._remove_pending(operation["id"]):
            return
        operation["retry_count"] += 1
        if operation["retry_count"] >= operation["max_retries"]:
            logger.warning("Queued operation %s failed permanently: %s", operation["id"], error)
            self.state["failed"].append({"operation": operation, "error": error})
        else:
            self.state["pending"].append(operation)

    def retry_failed(self, operation_id: str) -> bool:
        """Move a failed operation back to pending with a fresh retry count."""
        for index, entry in enumerate(self.state["failed"]):
            if entry["operation"]["id"] == operation_id:
                operation = self.state["failed"].pop(index)["operation"]
                operation["retry_count"] = 0
                operation["timestamp"] = int(time.time() * 1000)
                self.state["pending"].append(operation)
                self._changed()
                return True
        return False

    async def retry_failed_and_process(self, operation_id: str, send: Sender) -> bool:
        """Requeue a failed operation and replay the queue straight away."""
        if not self.retry_failed(operation_id):
            return False
        await self.process_queue(send)
        return True

    def clear_failed(self) -> None:
        self.state["failed"] = []
        self._changed()

    def clear_all(self) -> None:
        self.state = self._empty_state()
        self._changed()

    def get_state(self) -> Dict[str, Any]:
        return self.state

    async def execute_or_queue(
        self,
        send: Sender,
        method: str,
        url: str,
        body: Any = None,
        description: str = "",
        online: bool = True,
    ) -> Dict[str, Any]:
        """Send now when online; queue the operation when offline or when the network fails.

        API errors that carry a status code are raised, not queued.
        """
        if online:
            try:
                result = await send({"method": method.upper(), "url": url, "body": body})
                return {"success": True, "queued": False, "data": result}
            except ApiError as e:
                if e.status_code is not None:
                    raise
                logger.info("Request failed while online, queueing: %s", e)

        operation_id = self.enqueue(method, url, body, description)
        return {"success": False, "queued": True, "operation_id": operation_id}


def http_sender(client: httpx.AsyncClient) -> Sender:
    """Sender that replays an operation through ``api_fetch`` without inner retries."""
    async def send(operation: Dict[str, Any]) -> Any:
        kwargs: Dict[str, Any] = {"max_retries": 0}
        if operation.get("body") is not None:
            kwargs["json"] = operation["body"]
        return await api_fetch(client, operation["method"], operation["url"], **kwargs)

    return send
