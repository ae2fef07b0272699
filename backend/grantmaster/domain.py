from __future__ import annotations

from dataclasses import dataclass, field

ATTACHMENT_STATUSES: tuple[str, ...] = ("pending", "uploaded", "rejected")


@dataclass
class Application:
    id: int
    title: str
    mechanism: str
    status: str
    user_id: str
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "mechanism": self.mechanism,
            "status": self.status,
            "userId": self.user_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Section:
    id: int
    application_id: int
    type: str
    title: str
    content: str
    page_limit: int
    page_count: int
    order_index: int
    created_at: str
    updated_at: str
    required_headings: list[str] = field(default_factory=list)
    is_valid: bool = False
    is_complete: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "applicationId": self.application_id,
            "type": self.type,
            "title": self.title,
            "content": self.content,
            "pageLimit": self.page_limit,
            "pageCount": self.page_count,
            "requiredHeadings": list(self.required_headings),
            "isValid": self.is_valid,
            "isComplete": self.is_complete,
            "orderIndex": self.order_index,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Attachment:
    id: int
    application_id: int
    name: str
    required: bool
    status: str
    created_at: str
    file_url: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "applicationId": self.application_id,
            "name": self.name,
            "fileUrl": self.file_url,
            "required": self.required,
            "status": self.status,
            "createdAt": self.created_at,
        }


@dataclass
class SectionVersion:
    id: int
    section_id: int
    content: str
    word_count: int
    created_at: str
    note: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "sectionId": self.section_id,
            "content": self.content,
            "wordCount": self.word_count,
            "note": self.note,
            "createdAt": self.created_at,
        }
