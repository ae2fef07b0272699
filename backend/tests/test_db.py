from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from grantmaster.db import SECTION_VERSION_HISTORY_LIMIT, GrantRepository, StorageError, database_path
from grantmaster.mechanisms import MECHANISMS


@pytest.fixture()
def repository(tmp_path: Path) -> GrantRepository:
    repo = GrantRepository(f"sqlite:///{tmp_path}/repo.db")
    repo.init_schema()
    return repo


def test_only_sqlite_urls_are_supported() -> None:
    assert database_path("sqlite:///./data/app.db") == Path("./data/app.db")
    with pytest.raises(StorageError):
        database_path("postgresql://localhost/grants")


def test_init_schema_is_idempotent(repository: GrantRepository) -> None:
    repository.init_schema()
    repository.ping()


def test_create_application_persists_template(repository: GrantRepository) -> None:
    mechanism = MECHANISMS["R42"]
    application = repository.create_application(user_id="u-1", title="STTR II", mechanism=mechanism)

    sections = repository.list_sections(application.id)
    assert [section.title for section in sections] == [config.title for config in mechanism.sections]
    assert [section.order_index for section in sections] == list(range(len(mechanism.sections)))
    assert sections[1].required_headings == ["Significance", "Innovation", "Approach"]

    attachments = repository.list_attachments(application.id)
    assert [attachment.name for attachment in attachments] == [config.name for config in mechanism.attachments]
    assert all(attachment.status == "pending" for attachment in attachments)
    assert repository.get_application(application.id, user_id="someone-else") is None


def test_save_section_is_last_write_wins(repository: GrantRepository) -> None:
    application = repository.create_application(user_id="u-1", title="Race", mechanism=MECHANISMS["R43"])
    section = repository.list_sections(application.id)[0]

    repository.save_section(replace(section, content="first", updated_at="2026-01-01T00:00:01+00:00"))
    repository.save_section(replace(section, content="second", page_count=1, updated_at="2026-01-01T00:00:02+00:00"))

    stored = repository.get_section(section.id)
    assert stored is not None
    assert stored.content == "second"
    assert stored.page_count == 1
    assert repository.get_application(application.id).updated_at == "2026-01-01T00:00:02+00:00"


def test_delete_application_cascades(repository: GrantRepository) -> None:
    application = repository.create_application(user_id="u-1", title="Gone", mechanism=MECHANISMS["R43"])
    section = repository.list_sections(application.id)[0]
    section_id = section.id
    repository.save_section(replace(section, content="draft"))
    version_id = repository.list_section_versions(section_id)[0].id
    attachment_id = repository.list_attachments(application.id)[0].id
    repository.record_validation_result(application.id, errors=["e"], warnings=[], is_valid=False)

    assert repository.delete_application(application.id, user_id="u-2") is False
    assert repository.delete_application(application.id, user_id="u-1") is True
    assert repository.get_section(section_id) is None
    assert repository.get_section_version(version_id) is None
    assert repository.get_attachment(attachment_id) is None
    assert repository.list_validation_results(application.id) == []


def test_validation_results_are_returned_newest_first(repository: GrantRepository) -> None:
    application = repository.create_application(user_id="u-1", title="History", mechanism=MECHANISMS["R43"])
    first = repository.record_validation_result(application.id, errors=["missing"], warnings=[], is_valid=False)
    second = repository.record_validation_result(application.id, errors=[], warnings=["empty"], is_valid=True)

    history = repository.list_validation_results(application.id)
    assert [item["id"] for item in history] == [second["id"], first["id"]]
    assert history[0]["warnings"] == ["empty"]
    assert history[1]["isValid"] is False


def test_update_attachment_returns_none_for_missing_row(repository: GrantRepository) -> None:
    assert repository.update_attachment(404, status="uploaded", file_url=None) is None


def test_section_saves_are_kept_as_versions_newest_first(repository: GrantRepository) -> None:
    application = repository.create_application(user_id="u-1", title="Drafts", mechanism=MECHANISMS["R43"])
    section = repository.list_sections(application.id)[0]

    repository.save_section(replace(section, content="Aim 1", updated_at="2026-01-01T00:00:01+00:00"))
    repository.save_section(
        replace(section, content="Aim 1 validates the assay", updated_at="2026-01-01T00:00:02+00:00"),
        note="Restored from version 1",
    )

    versions = repository.list_section_versions(section.id)
    assert [version.content for version in versions] == ["Aim 1 validates the assay", "Aim 1"]
    assert [version.word_count for version in versions] == [5, 2]
    assert versions[0].note == "Restored from version 1"
    assert versions[1].note is None
    assert repository.get_section_version(versions[1].id) == versions[1]
    assert repository.get_section_version(9999) is None


def test_section_version_listing_is_capped(repository: GrantRepository) -> None:
    application = repository.create_application(user_id="u-1", title="Many", mechanism=MECHANISMS["R43"])
    section = repository.list_sections(application.id)[0]
    for index in range(SECTION_VERSION_HISTORY_LIMIT + 5):
        stamp = f"2026-01-01T00:00:{index:02d}+00:00"
        repository.save_section(replace(section, content=f"draft {index}", updated_at=stamp))

    versions = repository.list_section_versions(section.id)
    assert len(versions) == SECTION_VERSION_HISTORY_LIMIT
    assert versions[0].content == f"draft {SECTION_VERSION_HISTORY_LIMIT + 4}"
    assert len(repository.list_section_versions(section.id, limit=3)) == 3
