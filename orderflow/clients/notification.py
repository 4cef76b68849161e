from orderflow.clients.base import ServiceClient
from orderflow.errors import JobFailure

class HttpNotificationClient(ServiceClient):
    service = "notifications"

    def _send(self, channel: str, user_id: str, notification_type: str, order_id: str) -> None:
        resp = self._post(f"/notifications/v1/{channel}", {
            "user_id": user_id,
            "type": notification_type,
            "order_id": order_id,
        })
        if resp.status_code >= 400:
            raise JobFailure(f"{channel} notification rejected ({resp.status_code}): {resp.text}")

    def send_email(self, user_id: str, notification_type: str, order_id: str) -> None:
        self._send("email", user_id, notification_type, order_id)

    def send_sms(self, user_id: str, notification_type: str, order_id: str) -> None:
        self._send("sms", user_id, notification_type, order_id)
