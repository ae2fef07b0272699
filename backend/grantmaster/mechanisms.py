"""NIH funding mechanism registry.

Each mechanism lists the narrative sections an application must contain (with page
limits and, for the research strategy, the headings reviewers expect) and the
supporting attachments that must be uploaded before the package can be exported.
The table is static; new mechanisms are added here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SectionConfig:
    type: str
    title: str
    page_limit: int
    description: str
    required_headings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.page_limit <= 0:
            raise ValueError(f"Section '{self.type}' must have a positive page limit.")


@dataclass(frozen=True)
class AttachmentConfig:
    name: str
    required: bool
    description: str


@dataclass(frozen=True)
class MechanismConfig:
    id: str
    name: str
    description: str
    sections: tuple[SectionConfig, ...]
    attachments: tuple[AttachmentConfig, ...]

    @property
    def required_attachments(self) -> tuple[AttachmentConfig, ...]:
        return tuple(attachment for attachment in self.attachments if attachment.required)


NIH_FORMATTING: dict[str, object] = {
    "margins": "0.5 inches",
    "font": "Arial",
    "fontSize": 11,
    "lineSpacing": "single",
    "headerFooter": "No headers/footers in page count",
}

_RESEARCH_STRATEGY_HEADINGS = ("Significance", "Innovation", "Approach")

_BASE_ATTACHMENTS = (
    AttachmentConfig("PHS 398 Cover Page Supplement", True, "Cover page with project information"),
    AttachmentConfig("Project Summary/Abstract", True, "30 lines max, no proprietary info"),
    AttachmentConfig("Project Narrative", True, "2-3 sentences for public health relevance"),
    AttachmentConfig("Facilities & Other Resources", True, "Describe available facilities"),
    AttachmentConfig("Equipment", True, "List major equipment"),
    AttachmentConfig("Biographical Sketch", True, "For all senior/key personnel"),
    AttachmentConfig("Budget Justification", True, "Detailed budget narrative"),
    AttachmentConfig("Authentication of Key Resources", False, "If applicable"),
    AttachmentConfig("Letters of Support", False, "From collaborators/consultants"),
)

_SBIR_ATTACHMENTS = _BASE_ATTACHMENTS + (
    AttachmentConfig("SBIR/STTR Information", True, "Company info and certifications"),
)

_STTR_ATTACHMENTS = _SBIR_ATTACHMENTS + (
    AttachmentConfig("Research Institution Letter", True, "Commitment letter from research institution"),
)


def _specific_aims() -> SectionConfig:
    return SectionConfig("specific_aims", "Specific Aims", 1, "State objectives and specific aims")


def _research_strategy(page_limit: int) -> SectionConfig:
    return SectionConfig(
        "research_strategy",
        "Research Strategy",
        page_limit,
        "Significance, Innovation, and Approach sections",
        required_headings=_RESEARCH_STRATEGY_HEADINGS,
    )


def _commercialization_plan() -> SectionConfig:
    return SectionConfig(
        "commercialization_plan",
        "Commercialization Plan",
        12,
        "Market analysis and commercialization strategy",
    )


def _progress_report(description: str) -> SectionConfig:
    return SectionConfig("progress_report", "Progress Report", 6, description)


MECHANISMS: dict[str, MechanismConfig] = {
    "R43": MechanismConfig(
        id="R43",
        name="SBIR Phase I (R43)",
        description="Small Business Innovation Research Phase I - Feasibility study up to $293,697 total costs",
        sections=(_specific_aims(), _research_strategy(6), _commercialization_plan()),
        attachments=_SBIR_ATTACHMENTS,
    ),
    "R44": MechanismConfig(
        id="R44",
        name="SBIR Phase II (R44)",
        description="Small Business Innovation Research Phase II - Full R&D up to $1,956,460 total costs",
        sections=(
            _specific_aims(),
            _research_strategy(12),
            _commercialization_plan(),
            _progress_report("Phase I accomplishments and milestones"),
        ),
        attachments=_SBIR_ATTACHMENTS,
    ),
    "SBIR_FAST_TRACK": MechanismConfig(
        id="SBIR_FAST_TRACK",
        name="SBIR Fast-Track",
        description="Combined Phase I and II application",
        sections=(_specific_aims(), _research_strategy(12), _commercialization_plan()),
        attachments=_SBIR_ATTACHMENTS,
    ),
    "R44_PHASE_IIB": MechanismConfig(
        id="R44_PHASE_IIB",
        name="SBIR Phase IIB",
        description="Competing continuation for additional Phase II funding",
        sections=(
            _specific_aims(),
            _research_strategy(12),
            _commercialization_plan(),
            _progress_report("Previous Phase II accomplishments"),
        ),
        attachments=_SBIR_ATTACHMENTS,
    ),
    "R41": MechanismConfig(
        id="R41",
        name="STTR Phase I (R41)",
        description="Small Business Technology Transfer Phase I - Requires research institution partnership",
        sections=(_specific_aims(), _research_strategy(6), _commercialization_plan()),
        attachments=_STTR_ATTACHMENTS,
    ),
    "R42": MechanismConfig(
        id="R42",
        name="STTR Phase II (R42)",
        description="Small Business Technology Transfer Phase II - Full R&D with research institution",
        sections=(
            _specific_aims(),
            _research_strategy(12),
            _commercialization_plan(),
            _progress_report("Phase I accomplishments and milestones"),
        ),
        attachments=_STTR_ATTACHMENTS,
    ),
    "STTR_FAST_TRACK": MechanismConfig(
        id="STTR_FAST_TRACK",
        name="STTR Fast-Track",
        description="Combined STTR Phase I and II application",
        sections=(_specific_aims(), _research_strategy(12), _commercialization_plan()),
        attachments=_STTR_ATTACHMENTS,
    ),
}


def get_mechanism(code: str) -> MechanismConfig | None:
    return MECHANISMS.get(code)


def serialize_mechanism(mechanism: MechanismConfig) -> dict[str, object]:
    return {
        "id": mechanism.id,
        "name": mechanism.name,
        "description": mechanism.description,
        "sections": [
            {
                "type": section.type,
                "title": section.title,
                "pageLimit": section.page_limit,
                "requiredHeadings": list(section.required_headings),
                "description": section.description,
            }
            for section in mechanism.sections
        ],
        "attachments": [
            {
                "name": attachment.name,
                "required": attachment.required,
                "description": attachment.description,
            }
            for attachment in mechanism.attachments
        ],
    }
