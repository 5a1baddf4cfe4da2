"""Notion export of evaluated answers."""

import httpx

from gainbrain.models import AnswerRecord

NOTION_BASE_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"


def _rich_text(value: str) -> dict:
    # Notion rejects rich text blocks longer than 2000 characters.
    return {"rich_text": [{"text": {"content": value[:2000]}}]}


class NotionExporter:
    def __init__(
        self,
        token: str,
        database_id: str,
        base_url: str = NOTION_BASE_URL,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base = base_url
        self.database_id = database_id
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": NOTION_VERSION,
            "content-type": "application/json",
        }
        self.transport = transport

    def page_properties(self, record: AnswerRecord) -> dict:
        """Map an answer record onto the database columns."""
        return {
            "Question": {"title": [{"text": {"content": record.question[:2000]}}]},
            "Answer": _rich_text(record.user_answer),
            "CorrectAnswer": _rich_text(record.correct_answer),
            "Topic": _rich_text(record.topic),
            "User": _rich_text(record.username),
            "Score": {"number": record.score},
            "Date": {"date": {"start": record.timestamp.isoformat()}},
        }

    def export(self, record: AnswerRecord) -> dict:
        """Create one database page for *record*. Raises httpx.HTTPError on failure."""
        with httpx.Client(transport=self.transport, timeout=30) as client:
            r = client.post(
                f"{self.base}/pages",
                headers=self.headers,
                json={
                    "parent": {"database_id": self.database_id},
                    "properties": self.page_properties(record),
                },
            )
            r.raise_for_status()
            return r.json()
