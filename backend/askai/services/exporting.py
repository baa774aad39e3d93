"""
Export helpers - JSON documents for a single conversation or all user data.
"""

import re
from typing import Any, Dict, List

from pydantic import TypeAdapter

from ..models import ChatSession, ChatSettings, Message, utcnow

FULL_EXPORT_FILENAME = "ask_ai_data.json"

_messages_adapter = TypeAdapter(List[Message])
_unsafe_chars = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def export_session(session: ChatSession) -> Dict[str, Any]:
    """Conversation document: title, messages and timestamps."""
    data = session.to_wire()
    return {
        "title": data["title"],
        "messages": data["messages"],
        "createdAt": data["createdAt"],
        "updatedAt": data["updatedAt"],
    }


def export_filename(title: str) -> str:
    """'My Chat!' -> 'my_chat_.json'"""
    return _unsafe_chars.sub("_", title).lower() + ".json"


def export_all(sessions: List[ChatSession], settings: ChatSettings) -> Dict[str, Any]:
    return {
        "sessions": [session.to_wire() for session in sessions],
        "settings": settings.to_wire(),
        "exportedAt": utcnow().isoformat(),
    }


def import_messages(document: Dict[str, Any]) -> List[Message]:
    """
    Parse the messages of an exported conversation.

    Raises:
        pydantic.ValidationError: the document's messages are malformed
    """
    return _messages_adapter.validate_python(document.get("messages", []))
