"""Schemas for the sync client: sessions, order snapshots and notifications."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["admin", "customer"]
NotificationType = Literal[
    "order_placed",
    "order_status_changed",
    "payment_confirmed",
    "delivery_update",
    "system",
]
TargetRole = Literal["admin", "customer", "all"]
Priority = Literal["low", "medium", "high"]


def local_now() -> datetime:
    """Current time, timezone-aware in the local zone.

    Retention is by local calendar day, so notifications carry local time.
    """
    return datetime.now().astimezone()


class ClientSession(BaseModel):
    """The logged-in user the client acts for."""

    user_id: str = Field(..., min_length=1)
    role: Role = "customer"
    token: str = Field(..., min_length=1)

    @property
    def is_staff(self) -> bool:
        return self.role == "admin"


class OrderSnapshot(BaseModel):
    """The fields of an order the client tracks between polls."""

    model_config = ConfigDict(extra="ignore")

    id: str
    order_number: str
    user_id: str
    status: str
    payment_status: str = "pending"
    total: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Notification(BaseModel):
    """A notification kept in the local, per-user list.

    Attributes:
        notification_id: Unique identifier
        type: Notification kind, used with the order number for deduplication
        title: Short title
        message: Notification content
        order_id: Related order id
        order_number: Related order number
        status: Order status the notification is about
        is_read: Whether the user has seen it
        created_at: When it was recorded
        target_role: Audience role, or 'all'
        user_id: Specific user the notification is addressed to
        priority: Drives the toast duration and tone
    """

    notification_id: str = Field(default_factory=lambda: f"notif-{uuid.uuid4().hex[:12]}")
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1)
    order_id: str | None = None
    order_number: str | None = None
    status: str | None = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=local_now)
    target_role: TargetRole = "all"
    user_id: str | None = None
    priority: Priority = "medium"
