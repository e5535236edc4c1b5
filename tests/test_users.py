"""Tests for the user identity store."""

import pytest
from uuid import uuid4

from sqlmodel import Session

from app.models.user import (
    ExternalCredential,
    NoCredential,
    PasswordCredential,
    User,
)
from app.services.auth import hash_password, verify_password
from app.services.users import (
    DuplicateExternalRefError,
    DuplicateUsernameError,
    UserNotFoundError,
    create_user,
    get_user_by_external_ref,
    get_user_by_id,
    get_user_by_username,
    update_credential,
)


class TestLookups:
    """Users can be found by every key they are stored under."""

    def test_find_by_username_after_create(self, db_session: Session):
        user = create_user(db_session, "carol", password_hash=hash_password("pw"))

        found = get_user_by_username(db_session, "carol")
        assert found is not None
        assert found.id == user.id

    def test_username_lookup_is_case_sensitive(self, db_session: Session):
        create_user(db_session, "carol", password_hash=hash_password("pw"))

        assert get_user_by_username(db_session, "Carol") is None

    def test_find_by_id(self, db_session: Session, test_user: User):
        assert get_user_by_id(db_session, test_user.id).username == "alice"
        assert get_user_by_id(db_session, uuid4()) is None

    def test_find_by_external_ref(self, db_session: Session):
        user = create_user(db_session, "extid_42", external_ref="42")

        assert get_user_by_external_ref(db_session, "42").id == user.id
        assert get_user_by_external_ref(db_session, "43") is None


class TestCreateUser:
    """Tests for create_user."""

    def test_duplicate_username_rejected(self, db_session: Session, test_user: User):
        with pytest.raises(DuplicateUsernameError):
            create_user(db_session, "alice", password_hash=hash_password("other"))

    def test_duplicate_external_ref_rejected(self, db_session: Session):
        create_user(db_session, "extid_7", external_ref="7")

        with pytest.raises(DuplicateExternalRefError):
            create_user(db_session, "someone_else", external_ref="7")

    def test_requires_an_authentication_path(self, db_session: Session):
        with pytest.raises(ValueError):
            create_user(db_session, "nobody")

    def test_display_name_falls_back_to_username(self, db_session: Session):
        user = create_user(db_session, "dave", password_hash=hash_password("pw"))

        assert user.display_name is None
        assert user.name == "dave"


class TestCredential:
    """The credential property reports the account's sign-in path."""

    def test_password_account(self, test_user: User):
        assert isinstance(test_user.credential, PasswordCredential)
        assert test_user.credential.password_hash == test_user.password_hash

    def test_external_account(self, db_session: Session):
        user = create_user(db_session, "extid_9", external_ref="9")
        assert user.credential == ExternalCredential("9")

    def test_no_credential(self):
        assert User(username="ghost").credential == NoCredential()

    def test_password_is_stored_hashed(self, test_user: User):
        assert test_user.password_hash != "pw1"
        assert verify_password("pw1", test_user.password_hash)


class TestUpdateCredential:
    """Tests for update_credential."""

    def test_replaces_hash(self, db_session: Session, test_user: User):
        update_credential(db_session, test_user.id, hash_password("new-pw"))

        user = get_user_by_id(db_session, test_user.id)
        assert verify_password("new-pw", user.password_hash)
        assert not verify_password("pw1", user.password_hash)

    def test_unknown_user(self, db_session: Session):
        with pytest.raises(UserNotFoundError):
            update_credential(db_session, uuid4(), hash_password("x"))
