import os
import plistlib
import stat

import pytest

from nsbundle_config import document_store as store_mod
from nsbundle_config.document_store import DocumentStore, backup_path, document_path
from nsbundle_config.errors import DocumentReadError, DocumentWriteError


def _write(path, obj) -> None:
    with open(path, "wb") as f:
        plistlib.dump(obj, f)


def _read(path):
    with open(path, "rb") as f:
        return plistlib.load(f)


def test_document_path_appends_plist_suffix_only_without_extension(tmp_path) -> None:
    assert document_path(str(tmp_path), "Info") == str(tmp_path / "Info.plist")
    assert document_path(str(tmp_path), "Exponent.entitlements") == str(
        tmp_path / "Exponent.entitlements"
    )
    assert backup_path(str(tmp_path), "Info") == str(tmp_path / "Info.plist.bak")


def test_open_creates_backup_from_current_contents(tmp_path) -> None:
    _write(tmp_path / "Info.plist", {"A": "1"})
    store = DocumentStore()

    with store.open(str(tmp_path), "Info") as doc:
        assert doc.tree == {"A": "1"}
        doc.discard()

    assert _read(tmp_path / "Info.plist.bak") == {"A": "1"}
    assert store.touched == [(str(tmp_path), "Info")]


def test_open_missing_document_backs_up_empty_tree(tmp_path) -> None:
    store = DocumentStore()
    with store.open(str(tmp_path), "EXShell") as doc:
        assert doc.tree == {}

    assert _read(tmp_path / "EXShell.plist.bak") == {}
    assert not (tmp_path / "EXShell.plist").exists()


def test_existing_backup_is_not_overwritten(tmp_path) -> None:
    _write(tmp_path / "Info.plist", {"A": "original"})
    store = DocumentStore()
    store.modify(str(tmp_path), "Info", lambda t: {**t, "A": "first"})
    store.modify(str(tmp_path), "Info", lambda t: {**t, "A": "second"})

    assert _read(tmp_path / "Info.plist") == {"A": "second"}
    assert _read(tmp_path / "Info.plist.bak") == {"A": "original"}


def test_modify_persists_transform_result(tmp_path) -> None:
    _write(tmp_path / "Info.plist", {"A": "1", "B": "2"})
    store = DocumentStore()

    out = store.modify(str(tmp_path), "Info", lambda t: {"A": t["A"], "C": True})

    assert out == {"A": "1", "C": True}
    assert _read(tmp_path / "Info.plist") == {"A": "1", "C": True}


def test_modify_transform_error_leaves_document_untouched(tmp_path) -> None:
    _write(tmp_path / "Info.plist", {"A": "1"})
    store = DocumentStore()

    def boom(_tree):
        raise ValueError("boom")

    with pytest.raises(ValueError):
        store.modify(str(tmp_path), "Info", boom)

    assert _read(tmp_path / "Info.plist") == {"A": "1"}
    assert (tmp_path / "Info.plist.bak").exists()
    # 锁已释放，可以再次打开。
    with store.open(str(tmp_path), "Info") as doc:
        assert doc.tree == {"A": "1"}


def test_unparseable_document_raises_read_error(tmp_path) -> None:
    (tmp_path / "Info.plist").write_bytes(b"definitely not a plist")
    store = DocumentStore()

    with pytest.raises(DocumentReadError):
        store.open(str(tmp_path), "Info")
    assert not (tmp_path / "Info.plist.bak").exists()


def test_non_dict_root_raises_read_error(tmp_path) -> None:
    with open(tmp_path / "Info.plist", "wb") as f:
        plistlib.dump(["a", "b"], f)

    with pytest.raises(DocumentReadError):
        DocumentStore().open(str(tmp_path), "Info")


def test_write_failure_keeps_previous_content(monkeypatch, tmp_path) -> None:
    _write(tmp_path / "Info.plist", {"A": "1"})
    store = DocumentStore()
    doc = store.open(str(tmp_path), "Info")

    def fail_replace(_src, _dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", fail_replace)
    with pytest.raises(DocumentWriteError):
        doc.commit({"A": "2"})
    monkeypatch.undo()

    assert doc.finished
    assert _read(tmp_path / "Info.plist") == {"A": "1"}
    leftovers = [p.name for p in tmp_path.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_commit_twice_is_rejected(tmp_path) -> None:
    store = DocumentStore()
    doc = store.open(str(tmp_path), "Info")
    doc.commit()
    with pytest.raises(RuntimeError):
        doc.commit()
    with pytest.raises(RuntimeError):
        doc.discard()


def test_concurrent_open_of_same_document_serializes(tmp_path) -> None:
    store = DocumentStore()
    first = store.open(str(tmp_path), "Info")
    lock = store._lock_for(str(tmp_path), "Info")
    assert not lock.acquire(blocking=False)
    first.discard()
    assert lock.acquire(blocking=False)
    lock.release()


def test_clean_backup_without_restore_only_removes_backup(tmp_path) -> None:
    _write(tmp_path / "Info.plist", {"A": "original"})
    store = DocumentStore()
    store.modify(str(tmp_path), "Info", lambda t: {"A": "changed"})

    store.clean_backup(str(tmp_path), "Info", restore=False)

    assert _read(tmp_path / "Info.plist") == {"A": "changed"}
    assert not (tmp_path / "Info.plist.bak").exists()


def test_clean_backup_with_restore_rolls_back(tmp_path) -> None:
    _write(tmp_path / "Info.plist", {"A": "original"})
    store = DocumentStore()
    store.modify(str(tmp_path), "Info", lambda t: {"A": "changed"})

    store.clean_backup(str(tmp_path), "Info", restore=True)

    assert _read(tmp_path / "Info.plist") == {"A": "original"}
    assert not (tmp_path / "Info.plist.bak").exists()


def test_clean_backup_missing_is_noop(tmp_path) -> None:
    DocumentStore().clean_backup(str(tmp_path), "Info", restore=True)
    assert list(tmp_path.iterdir()) == []


def test_persisted_documents_are_xml_plists(tmp_path) -> None:
    store_mod.DocumentStore().modify(str(tmp_path), "Info", lambda t: {"A": "1"})
    assert (tmp_path / "Info.plist").read_bytes().startswith(b"<?xml")


def test_modify_and_backup_keep_document_mode(tmp_path) -> None:
    _write(tmp_path / "Info.plist", {"A": "1"})
    os.chmod(tmp_path / "Info.plist", 0o644)

    DocumentStore().modify(str(tmp_path), "Info", lambda t: {"A": "2"})

    assert stat.S_IMODE(os.stat(tmp_path / "Info.plist").st_mode) == 0o644
    assert stat.S_IMODE(os.stat(tmp_path / "Info.plist.bak").st_mode) == 0o644


def test_reopen_in_same_thread_is_rejected(tmp_path) -> None:
    store = DocumentStore()
    first = store.open(str(tmp_path), "Info")

    with pytest.raises(RuntimeError, match="already open"):
        store.open(str(tmp_path), "Info")

    first.discard()
    with store.open(str(tmp_path), "Info") as doc:
        assert doc.tree == {}


def test_touched_uses_normalized_directory(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    os.mkdir("Supporting")
    store = DocumentStore()

    store.modify("Supporting", "Info", lambda t: {"A": "1"})
    store.modify(os.path.abspath("Supporting"), "Info", lambda t: {"A": "2"})

    assert store.touched == [(os.path.abspath("Supporting"), "Info")]
    for directory, name in store.touched:
        store.clean_backup(directory, name)
    assert not (tmp_path / "Supporting" / "Info.plist.bak").exists()
