from datetime import timedelta
from types import SimpleNamespace

import pytest

from reqhub.core.permissions import PROJECT_DELETERS, PROJECT_EDITORS, authorize
from reqhub.core.security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    get_password_hash,
    hash_reset_token,
    verify_password,
)
from reqhub.services.storage import asset_type_for_mime, document_type_for_filename


@pytest.mark.parametrize(
    "role, editors, deleters",
    [
        ("admin", True, True),
        ("manager", True, False),
        ("team_member", False, False),
        ("client", False, False),
    ],
)
def test_authorize(role, editors, deleters):
    user = SimpleNamespace(role=role)
    assert authorize(user, PROJECT_EDITORS) is editors
    assert authorize(user, PROJECT_DELETERS) is deleters


def test_authorize_without_user():
    assert authorize(None, PROJECT_EDITORS) is False


def test_password_hashing():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_access_token_round_trip():
    token = create_access_token({"sub": "7"}, "key")
    assert decode_access_token(token, "key")["sub"] == "7"
    assert decode_access_token(token, "other-key") is None
    expired = create_access_token({"sub": "7"}, "key", expires_delta=timedelta(seconds=-1))
    assert decode_access_token(expired, "key") is None
    assert decode_access_token("garbage", "key") is None


def test_reset_tokens():
    token = generate_reset_token()
    assert len(token) == 64
    assert token != generate_reset_token()
    assert hash_reset_token(token) == hash_reset_token(token)
    assert hash_reset_token(token) != token


@pytest.mark.parametrize(
    "mime, expected",
    [
        ("image/png", "image"),
        ("video/mp4", "video"),
        ("audio/mpeg", "audio"),
        ("application/pdf", "document"),
        ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "document"),
        ("application/vnd.ms-excel.sheet.macroEnabled.12", "document"),
        ("model/gltf-binary", "3d_model"),
        ("application/zip", "other"),
        (None, "other"),
    ],
)
def test_asset_type_for_mime(mime, expected):
    assert asset_type_for_mime(mime) == expected


def test_document_type_for_filename():
    assert document_type_for_filename("photo.JPG") == "image"
    assert document_type_for_filename("notes.txt") == "document"
    assert document_type_for_filename("archive.zip") == "other"
