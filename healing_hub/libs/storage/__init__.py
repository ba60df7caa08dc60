"""Table storage over Airtable, Google Sheets or process memory."""

from .base import BaseTable, Record, StorageError, parse_timestamp, utc_now_iso
from .factory import Storage, get_storage, get_table, resolve_backend, set_storage
from .memory import MemoryTable

USERS = "Users"
REFLECTIONS = "Reflections"
CONVERSATIONS = "Conversations"
CONVERSATION_MESSAGES = "ConversationMessages"
FEEDBACK = "Feedback"
LOGIN_RECORDS = "Login Records"
FORM_RESPONSES = "Form Responses 1"

__all__ = [
    "BaseTable",
    "CONVERSATIONS",
    "CONVERSATION_MESSAGES",
    "FEEDBACK",
    "FORM_RESPONSES",
    "LOGIN_RECORDS",
    "MemoryTable",
    "REFLECTIONS",
    "Record",
    "Storage",
    "StorageError",
    "USERS",
    "get_storage",
    "get_table",
    "parse_timestamp",
    "resolve_backend",
    "set_storage",
    "utc_now_iso",
]
