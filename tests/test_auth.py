import pytest

import auth
import config
import main
from errors import DuplicateEmailError


def test_register_rejects_existing_email(db):
    auth.register(db, "Ravi", "ravi@agromonk.in", "pw")

    with pytest.raises(DuplicateEmailError):
        auth.register(db, "Ravi again", "ravi@agromonk.in", "pw2")


def test_unique_index_catches_racing_registration(db, monkeypatch):
    auth.ensure_indexes(db)
    real_create_document = auth.create_document

    def racing_create_document(database, collection_name, data):
        # Another request inserts the same email between the check and the insert.
        real_create_document(database, collection_name, {
            "email": data.email, "password": "x", "role": "user", "is_active": True,
        })
        return real_create_document(database, collection_name, data)

    monkeypatch.setattr(auth, "create_document", racing_create_document)

    with pytest.raises(DuplicateEmailError):
        auth.register(db, "Ravi", "ravi@agromonk.in", "pw")

    assert db[auth.COLLECTION].count_documents({"email": "ravi@agromonk.in"}) == 1


def test_startup_creates_upload_dir_and_indexes(db, tmp_path, monkeypatch):
    upload_dir = tmp_path / "uploads"
    monkeypatch.setattr(config, "UPLOAD_DIR", str(upload_dir))
    monkeypatch.setattr(main.database, "db", db)

    main.prepare_storage()

    assert upload_dir.is_dir()
    unique_keys = [spec["key"] for spec in db[auth.COLLECTION].index_information().values() if spec.get("unique")]
    assert [("email", 1)] in unique_keys
