import pytest

from lead_importer.storage.files import UploadStore, sanitize_filename


def test_sanitize_filename():
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("C:\\Users\\me\\My Leads (May).xlsx") == "My_Leads_May_.xlsx"
    assert sanitize_filename("...") == "upload"


def test_save_prefixes_timestamp_and_avoids_collisions(tmp_path):
    store = UploadStore(tmp_path / "uploads")

    first = store.save(b"one", "My Leads.csv", timestamp_ms=1700000000000)
    second = store.save(b"two", "My Leads.csv", timestamp_ms=1700000000000)

    assert first == "1700000000000_My_Leads.csv"
    assert second == "1700000000000-1_My_Leads.csv"
    assert store.read(first) == b"one"
    assert store.read(second) == b"two"


def test_save_uses_current_time_by_default(tmp_path):
    store = UploadStore(tmp_path)

    name = store.save(b"data", "leads.csv")

    stamp, _, rest = name.partition("_")
    assert stamp.isdigit()
    assert rest == "leads.csv"


@pytest.mark.parametrize("name", ["../secret.csv", "nested/file.csv", "..", ""])
def test_stored_names_with_paths_are_rejected(tmp_path, name):
    with pytest.raises(ValueError):
        UploadStore(tmp_path).read(name)


def test_reading_missing_upload_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        UploadStore(tmp_path).read("1700000000000_missing.csv")
