from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from grantmaster.export.assembler import default_section_order
from grantmaster.export.models import (
    ExportContent,
    ExportMetadata,
    ExportOptions,
    ExportSection,
    GrantPackage,
    GrantSection,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ApplicationCreateRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    mechanism: str = Field(..., min_length=1, max_length=50)


class SectionUpdateRequest(CamelModel):
    content: str = Field(..., max_length=200_000)


class AttachmentUpdateRequest(CamelModel):
    status: str | None = None
    file_url: str | None = Field(default=None, max_length=2048)


class ValidateRequest(CamelModel):
    application_id: int = Field(..., ge=1)


class ExportSectionPayload(CamelModel):
    heading: str = Field(..., max_length=500)
    content: str


class ExportMetadataPayload(CamelModel):
    author: str | None = None
    date: str | None = None
    type: str | None = None


class ExportContentPayload(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    sections: list[ExportSectionPayload]
    metadata: ExportMetadataPayload | None = None

    def to_export_content(self) -> ExportContent:
        metadata = None
        if self.metadata is not None:
            metadata = ExportMetadata(
                author=self.metadata.author,
                date=self.metadata.date,
                type=self.metadata.type,
            )
        return ExportContent(
            title=self.title,
            sections=[ExportSection(heading=item.heading, content=item.content) for item in self.sections],
            metadata=metadata,
        )


class ExportRequest(CamelModel):
    format: str = Field(..., min_length=1)
    content: ExportContentPayload


class GrantSectionPayload(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    title: str
    content: str = ""
    order: int | None = None


class GrantPackagePayload(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: str = Field(..., min_length=1, max_length=500)
    sections: list[GrantSectionPayload]
    application_id: str = ""
    principal_investigator: str = ""
    institution: str = ""
    funding_agency: str = ""
    created_at: str = ""
    updated_at: str = ""

    def to_grant_package(self) -> GrantPackage:
        sections: list[GrantSection] = []
        for position, item in enumerate(self.sections, start=1):
            order = item.order
            if order is None:
                order = default_section_order(item.id) or position
            sections.append(GrantSection(id=item.id, title=item.title, content=item.content, order=order))
        return GrantPackage(
            title=self.title,
            sections=sections,
            application_id=self.application_id,
            principal_investigator=self.principal_investigator,
            institution=self.institution,
            funding_agency=self.funding_agency,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ExportOptionsPayload(CamelModel):
    format: str = Field(..., min_length=1)
    include_table_of_contents: bool = False
    include_page_numbers: bool = False
    include_cover_page: bool = False
    font_family: str | None = Field(default=None, max_length=120, pattern=r"^[A-Za-z0-9 ,'\"-]+$")
    font_size: int | None = Field(default=None, ge=6, le=36)

    def to_export_options(self) -> ExportOptions:
        return ExportOptions(
            format=self.format,  # type: ignore[arg-type]
            include_table_of_contents=self.include_table_of_contents,
            include_page_numbers=self.include_page_numbers,
            include_cover_page=self.include_cover_page,
            font_family=self.font_family,
            font_size=self.font_size,
        )


class GrantExportRequest(CamelModel):
    grant_package: GrantPackagePayload
    options: ExportOptionsPayload
