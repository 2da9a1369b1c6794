"""Tests for the access guard helpers.

Key invariants tested:
- Strict guards raise the narrowest error (401 / 404 / 403)
- Soft helpers never raise and return None for outsiders
- Removing a membership revokes access immediately
"""

from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from huddle.auth.permissions import (
    get_channel_for_member_or_none,
    get_member_or_none,
    get_participant_conversation_or_none,
    is_channel_member,
    other_participant,
    require_admin,
    require_authenticated,
    require_channel_member,
    require_conversation_participant,
    require_member,
)
from huddle.db.models import DirectConversation, Member
from huddle.errors import (
    ApiErrorCode,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
)
from tests.factories import (
    add_test_member,
    create_test_channel,
    create_test_conversation,
    create_test_user,
    create_test_workspace,
)


@pytest.fixture
def world(db_session: Session) -> dict:
    """An admin, a member, an outsider, a channel and a DM between admin and member."""
    admin = create_test_user(db_session, "Admin")
    member = create_test_user(db_session, "Member")
    outsider = create_test_user(db_session, "Outsider")
    workspace_id = create_test_workspace(db_session, admin)
    add_test_member(db_session, workspace_id, member)
    channel_id = create_test_channel(db_session, workspace_id, admin)
    conversation_id = create_test_conversation(db_session, workspace_id, admin, member)
    return {
        "admin": admin,
        "member": member,
        "outsider": outsider,
        "workspace_id": workspace_id,
        "channel_id": channel_id,
        "conversation_id": conversation_id,
    }


class TestStrictGuards:
    def test_require_authenticated(self):
        with pytest.raises(UnauthenticatedError):
            require_authenticated(None)

    def test_require_member(self, db_session: Session, world: dict):
        member = require_member(db_session, world["member"], world["workspace_id"])
        assert member.role == "member"

        with pytest.raises(ForbiddenError):
            require_member(db_session, world["outsider"], world["workspace_id"])

        with pytest.raises(UnauthenticatedError):
            require_member(db_session, None, world["workspace_id"])

    def test_require_admin(self, db_session: Session, world: dict):
        require_admin(db_session, world["admin"], world["workspace_id"])

        with pytest.raises(ForbiddenError) as exc_info:
            require_admin(db_session, world["member"], world["workspace_id"])
        assert exc_info.value.message == "Admin access required"

    def test_require_channel_member(self, db_session: Session, world: dict):
        channel, member = require_channel_member(
            db_session, world["member"], world["channel_id"]
        )
        assert channel.id == world["channel_id"]
        assert member.user_id == world["member"]

        with pytest.raises(ForbiddenError):
            require_channel_member(db_session, world["outsider"], world["channel_id"])

        with pytest.raises(NotFoundError) as exc_info:
            require_channel_member(db_session, world["member"], uuid4())
        assert exc_info.value.code == ApiErrorCode.E_CHANNEL_NOT_FOUND

    def test_require_conversation_participant(self, db_session: Session, world: dict):
        conversation, _ = require_conversation_participant(
            db_session, world["member"], world["conversation_id"]
        )
        assert conversation.id == world["conversation_id"]

        with pytest.raises(NotFoundError) as exc_info:
            require_conversation_participant(db_session, world["member"], uuid4())
        assert exc_info.value.code == ApiErrorCode.E_CONVERSATION_NOT_FOUND

        # Outsider is not even a workspace member
        with pytest.raises(ForbiddenError):
            require_conversation_participant(
                db_session, world["outsider"], world["conversation_id"]
            )

    def test_workspace_member_who_is_not_a_participant(self, db_session: Session, world: dict):
        third = create_test_user(db_session)
        add_test_member(db_session, world["workspace_id"], third)

        with pytest.raises(ForbiddenError):
            require_conversation_participant(db_session, third, world["conversation_id"])


class TestSoftHelpers:
    def test_get_member_or_none(self, db_session: Session, world: dict):
        assert get_member_or_none(db_session, world["member"], world["workspace_id"]) is not None
        assert get_member_or_none(db_session, world["outsider"], world["workspace_id"]) is None
        assert get_member_or_none(db_session, None, world["workspace_id"]) is None

    def test_channel_helpers(self, db_session: Session, world: dict):
        assert is_channel_member(db_session, world["member"], world["channel_id"])
        assert not is_channel_member(db_session, world["outsider"], world["channel_id"])
        assert get_channel_for_member_or_none(db_session, world["member"], uuid4()) is None

    def test_conversation_helper(self, db_session: Session, world: dict):
        assert (
            get_participant_conversation_or_none(
                db_session, world["admin"], world["conversation_id"]
            )
            is not None
        )
        assert (
            get_participant_conversation_or_none(
                db_session, world["outsider"], world["conversation_id"]
            )
            is None
        )

    def test_leaving_workspace_revokes_conversation_access(
        self, db_session: Session, world: dict
    ):
        membership = get_member_or_none(db_session, world["member"], world["workspace_id"])
        db_session.delete(membership)
        db_session.flush()

        assert (
            get_participant_conversation_or_none(
                db_session, world["member"], world["conversation_id"]
            )
            is None
        )
        with pytest.raises(ForbiddenError):
            require_conversation_participant(
                db_session, world["member"], world["conversation_id"]
            )

    def test_other_participant(self, db_session: Session, world: dict):
        conversation = db_session.get(DirectConversation, world["conversation_id"])
        assert other_participant(conversation, world["admin"]) == world["member"]
        assert other_participant(conversation, world["member"]) == world["admin"]


def test_membership_is_unique(db_session: Session, world: dict):
    from sqlalchemy.exc import IntegrityError

    db_session.add(
        Member(workspace_id=world["workspace_id"], user_id=world["member"], role="member")
    )
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()
