"""Tests for version snapshots and restore."""

import pytest

from deckstate.services.editor import EditorSession
from deckstate.services.records import slide_to_record
from deckstate.shared.enums import FieldKey
from deckstate.shared.errors import IdentityRequired
from deckstate.shared.models import Slide


async def open_session(remote, local_storage, cipher, notifier, caller, *slides: Slide) -> EditorSession:
    for slide in slides:
        await remote.set_slide("deck-1", slide.id, slide_to_record(slide, cipher))
    session = EditorSession(
        presentation_id="deck-1",
        caller=caller,
        remote=remote,
        local=local_storage,
        cipher=cipher,
        notifier=notifier,
    )
    assert await session.open()
    return session


def intro() -> Slide:
    return Slide(id="A", order=1, title="Intro", subtitle="Alpha body", notes="Alpha notes")


def numbers() -> Slide:
    return Slide(id="B", order=2, title="Numbers", subtitle="Beta body")


@pytest.mark.asyncio
async def test_save_version_stores_encrypted_snapshot(remote, local_storage, cipher, notifier, caller):
    session = await open_session(remote, local_storage, cipher, notifier, caller, intro(), numbers())

    version_id = await session.save_version("  before review  ")

    assert version_id is not None
    [(stored_id, stored)] = remote.versions["deck-1"]
    assert stored_id == version_id
    assert stored["summary"] == "before review"
    assert stored["createdBy"] == "user-1"
    snapshot = stored["slidesSnapshot"]
    assert [(item["slideId"], item["order"], item["title"]) for item in snapshot] == [
        ("A", 1, "Intro"),
        ("B", 2, "Numbers"),
    ]
    assert snapshot[0]["encryptedContent"] != "Alpha body"
    assert cipher.decrypt(snapshot[0]["encryptedContent"]) == "Alpha body"
    assert cipher.decrypt(snapshot[0]["encryptedNotes"]) == "Alpha notes"

    assert [version.id for version in session.versions.versions] == [version_id]
    assert notifier.current().text == "Version saved."
    await session.close()


@pytest.mark.asyncio
async def test_save_version_requires_identity(remote, local_storage, cipher, notifier):
    session = await open_session(remote, local_storage, cipher, notifier, None, intro())

    with pytest.raises(IdentityRequired):
        await session.save_version("nope")
    assert remote.versions == {}
    await session.close()


@pytest.mark.asyncio
async def test_save_version_without_remote_store_is_noop(local_storage, cipher, notifier, caller):
    session = EditorSession(caller=caller, local=local_storage, cipher=cipher, notifier=notifier)
    await session.open()

    assert await session.save_version("local only") is None
    assert await session.list_versions() == []


@pytest.mark.asyncio
async def test_restore_reconciles_slide_set(remote, local_storage, cipher, notifier, caller):
    session = await open_session(remote, local_storage, cipher, notifier, caller, intro(), numbers())
    version_id = await session.save_version("two slides")
    encrypted_body = session.versions.versions[0].slides_snapshot[0].encrypted_content

    added = session.add_slide()
    session.on_content_changed(FieldKey.SUBTITLE, "Rewritten", slide_id="A")
    await session.flush()
    assert set(remote.slides["deck-1"]) == {"A", "B", added.id}

    assert await session.restore_version(version_id)

    assert [slide_id for slide_id, _ in await remote.list_slides("deck-1")] == ["A", "B"]
    _, record_a = remote.slides["deck-1"]["A"]
    assert record_a["content"] == encrypted_body
    assert [slide.id for slide in session.slides] == ["A", "B"]
    assert session.slides[0].subtitle == "Alpha body"
    assert session.store.selected_slide_id == "A"
    # restore reseeds the history, so it cannot be undone
    assert session.store.history.length == 1
    assert not session.undo()
    assert notifier.current().text == "Version restored."

    await session.close()
    actions = [entry["action"] for entry in remote.audit_logs]
    assert actions.count("RESTORE_VERSION") == 1
    restore_entry = next(entry for entry in remote.audit_logs if entry["action"] == "RESTORE_VERSION")
    assert restore_entry["details"]["deletedSlideIds"] == [added.id]
    assert restore_entry["userEmail"] == "ada@example.com"


@pytest.mark.asyncio
async def test_restore_earlier_milestone(remote, local_storage, cipher, notifier, caller):
    session = await open_session(remote, local_storage, cipher, notifier, caller, intro(), numbers())
    first = await session.save_version("v1")
    session.on_content_changed(FieldKey.TITLE, "Changed", slide_id="A")
    await session.flush()
    second = await session.save_version("v2")

    versions = await session.list_versions()
    assert [version.id for version in versions] == [second, first]

    assert await session.restore_version(first)
    assert session.store.get_slide("A").title == "Intro"
    _, record_a = remote.slides["deck-1"]["A"]
    assert record_a["title"] == "Intro"
    await session.close()


@pytest.mark.asyncio
async def test_restore_unknown_version_changes_nothing(remote, local_storage, cipher, notifier, caller):
    session = await open_session(remote, local_storage, cipher, notifier, caller, intro(), numbers())

    assert not await session.restore_version("missing")
    assert [slide.id for slide in session.slides] == ["A", "B"]
    assert not session.versions.is_restoring
    await session.close()


@pytest.mark.asyncio
async def test_restore_empty_snapshot_is_refused(remote, local_storage, cipher, notifier, caller):
    session = await open_session(remote, local_storage, cipher, notifier, caller, intro(), numbers())
    version_id = await remote.add_version("deck-1", {"summary": "broken", "slidesSnapshot": []})

    assert not await session.restore_version(version_id)
    assert set(remote.slides["deck-1"]) == {"A", "B"}
    assert [slide.id for slide in session.slides] == ["A", "B"]
    await session.close()


@pytest.mark.asyncio
async def test_restore_while_restoring_is_ignored(remote, local_storage, cipher, notifier, caller):
    session = await open_session(remote, local_storage, cipher, notifier, caller, intro())
    version_id = await session.save_version()
    session.versions.is_restoring = True

    assert not await session.restore_version(version_id)
    await session.close()
