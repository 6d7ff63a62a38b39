"""Chat history entity: one record per user holding the ordered message list."""
from typing import Any, Dict, List

from sqlalchemy import String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class ChatHistory(BaseEntity):
    """Per-user conversation record.

    ``messages`` is a JSON array of ``{"role", "content", "timestamp"}``
    objects kept in insertion (chronological) order.
    """

    user_id: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True, index=True
    )
    messages: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
