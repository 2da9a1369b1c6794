"""Tests for direct conversations and direct messages.

Key invariants tested:
- One conversation per unordered pair per workspace, whichever side asks
- A conversation needs two distinct current members
- Only the creator's read cursor is set on creation
- Sending advances the sender's cursor; read cursors never move backwards
- Participants who leave the workspace lose access
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from huddle.db.models import DirectConversation, DirectMessage, Member, Notification
from huddle.errors import ApiErrorCode, ForbiddenError, InvalidRequestError, NotFoundError
from huddle.services import direct_messages as dm_service
from huddle.services import notifications as notifications_service
from huddle.services.direct_messages import advance_read_cursor, is_unread_for, sort_pair
from huddle.services.mentions import IMAGE_ONLY_PREVIEW
from huddle.storage.client import FakeStorageClient
from huddle.storage.paths import build_image_path
from tests.factories import (
    add_test_member,
    create_test_conversation,
    create_test_direct_message,
    create_test_user,
    create_test_workspace,
)

T0 = datetime(2026, 2, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def setup(db_session: Session) -> dict:
    admin = create_test_user(db_session, "Admin")
    alice = create_test_user(db_session, "Alice")
    bob = create_test_user(db_session, "Bob")
    outsider = create_test_user(db_session, "Outsider")
    workspace_id = create_test_workspace(db_session, admin)
    add_test_member(db_session, workspace_id, alice)
    add_test_member(db_session, workspace_id, bob)
    return {
        "admin": admin,
        "alice": alice,
        "bob": bob,
        "outsider": outsider,
        "workspace_id": workspace_id,
    }


class TestPairOrdering:
    def test_sort_pair_is_symmetric(self):
        first, second = uuid4(), uuid4()
        assert sort_pair(first, second) == sort_pair(second, first)
        low, high = sort_pair(first, second)
        assert str(low) < str(high)

    def test_is_unread_for(self):
        assert is_unread_for(T0, None)
        assert is_unread_for(T0 + timedelta(seconds=1), T0)
        assert not is_unread_for(T0, T0)

    def test_advance_never_moves_backwards(self):
        a, b = sort_pair(uuid4(), uuid4())
        conversation = DirectConversation(user_id_a=a, user_id_b=b, last_read_at_a=T0)

        assert advance_read_cursor(conversation, a, T0 - timedelta(hours=1)) == T0
        assert conversation.last_read_at_a == T0

        later = T0 + timedelta(hours=1)
        assert advance_read_cursor(conversation, a, later) == later
        assert advance_read_cursor(conversation, b, T0) == T0
        assert conversation.last_read_at_b == T0


class TestGetOrCreateConversation:
    def test_same_conversation_from_both_sides(self, db_session: Session, setup: dict):
        first = dm_service.get_or_create_conversation(
            db_session, setup["alice"], setup["workspace_id"], setup["bob"]
        )
        second = dm_service.get_or_create_conversation(
            db_session, setup["bob"], setup["workspace_id"], setup["alice"]
        )
        assert first == second
        assert db_session.scalar(select(func.count()).select_from(DirectConversation)) == 1

    def test_only_creator_cursor_is_set(self, db_session: Session, setup: dict):
        conversation_id = dm_service.get_or_create_conversation(
            db_session, setup["alice"], setup["workspace_id"], setup["bob"], now=T0
        )

        alice_state = dm_service.get_read_state(db_session, setup["alice"], conversation_id)
        assert alice_state.my_last_read_at == T0
        assert alice_state.other_last_read_at is None

        bob_state = dm_service.get_read_state(db_session, setup["bob"], conversation_id)
        assert bob_state.my_last_read_at is None
        assert bob_state.other_last_read_at == T0

    def test_cannot_message_self(self, db_session: Session, setup: dict):
        with pytest.raises(InvalidRequestError) as exc_info:
            dm_service.get_or_create_conversation(
                db_session, setup["alice"], setup["workspace_id"], setup["alice"]
            )
        assert exc_info.value.code == ApiErrorCode.E_CANNOT_MESSAGE_SELF

    def test_other_user_must_be_member(self, db_session: Session, setup: dict):
        with pytest.raises(NotFoundError) as exc_info:
            dm_service.get_or_create_conversation(
                db_session, setup["alice"], setup["workspace_id"], setup["outsider"]
            )
        assert exc_info.value.code == ApiErrorCode.E_MEMBER_NOT_FOUND

    def test_viewer_must_be_member(self, db_session: Session, setup: dict):
        with pytest.raises(ForbiddenError):
            dm_service.get_or_create_conversation(
                db_session, setup["outsider"], setup["workspace_id"], setup["alice"]
            )

    def test_lost_creation_race_returns_existing_row(
        self, db_session: Session, setup: dict, monkeypatch
    ):
        winner = dm_service.get_or_create_conversation(
            db_session, setup["alice"], setup["workspace_id"], setup["bob"]
        )

        real_find = dm_service._find_conversation
        calls = []

        def find_after_race(*args):
            # The first lookup runs before the concurrent insert is visible
            calls.append(args)
            return None if len(calls) == 1 else real_find(*args)

        monkeypatch.setattr(dm_service, "_find_conversation", find_after_race)

        resolved = dm_service.get_or_create_conversation(
            db_session, setup["bob"], setup["workspace_id"], setup["alice"]
        )

        assert resolved == winner
        assert len(calls) == 2
        assert db_session.scalar(select(func.count()).select_from(DirectConversation)) == 1


class TestListConversations:
    def test_summaries_with_unread_and_preview(self, db_session: Session, setup: dict):
        with_bob = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        with_admin = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["admin"]
        )
        create_test_direct_message(
            db_session, with_bob, setup["bob"], "<p>hey <b>there</b></p>", created_at=T0
        )
        create_test_direct_message(
            db_session,
            with_admin,
            setup["alice"],
            body=None,
            image_id=build_image_path("image/png"),
            created_at=T0 + timedelta(minutes=5),
        )

        result = dm_service.list_conversations(db_session, setup["alice"], setup["workspace_id"])

        assert [c.conversation_id for c in result] == [with_admin, with_bob]
        latest, older = result
        assert latest.other_user.name == "Admin"
        assert latest.last_message.preview == IMAGE_ONLY_PREVIEW
        assert latest.unread is False  # own message

        assert older.other_user.name == "Bob"
        assert older.last_message.preview == "hey there"
        assert older.unread is True
        assert older.last_activity_at == T0

    def test_empty_conversation_uses_created_at(self, db_session: Session, setup: dict):
        conversation_id = dm_service.get_or_create_conversation(
            db_session, setup["alice"], setup["workspace_id"], setup["bob"], now=T0
        )
        (summary,) = dm_service.list_conversations(
            db_session, setup["bob"], setup["workspace_id"]
        )
        assert summary.conversation_id == conversation_id
        assert summary.last_message is None
        assert summary.last_activity_at == T0
        assert summary.unread is False

    def test_reading_clears_unread(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        create_test_direct_message(db_session, conversation_id, setup["bob"], created_at=T0)

        dm_service.mark_conversation_read(
            db_session, setup["alice"], conversation_id, now=T0 + timedelta(seconds=1)
        )
        (summary,) = dm_service.list_conversations(
            db_session, setup["alice"], setup["workspace_id"]
        )
        assert summary.unread is False

    def test_conversation_with_departed_member_is_hidden(
        self, db_session: Session, setup: dict
    ):
        create_test_conversation(db_session, setup["workspace_id"], setup["alice"], setup["bob"])
        db_session.execute(
            delete(Member).where(
                Member.workspace_id == setup["workspace_id"], Member.user_id == setup["bob"]
            )
        )
        db_session.flush()

        assert (
            dm_service.list_conversations(db_session, setup["alice"], setup["workspace_id"]) == []
        )

    def test_outsider_gets_empty_list(self, db_session: Session, setup: dict):
        create_test_conversation(db_session, setup["workspace_id"], setup["alice"], setup["bob"])
        assert (
            dm_service.list_conversations(db_session, setup["outsider"], setup["workspace_id"])
            == []
        )


class TestSendDirectMessage:
    def test_send_advances_sender_cursor_and_notifies(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        message_id = dm_service.send_direct_message(
            db_session, setup["alice"], conversation_id, body="<p>lunch?</p>", now=T0
        )

        state = dm_service.get_read_state(db_session, setup["alice"], conversation_id)
        assert state.my_last_read_at == T0
        assert state.other_last_read_at is None

        notification = db_session.scalar(
            select(Notification).where(Notification.direct_message_id == message_id)
        )
        assert notification.user_id == setup["bob"]
        assert notification.type == "dm"
        assert notification.preview == "lunch?"

    def test_notification_failure_keeps_message(
        self, db_session: Session, setup: dict, monkeypatch
    ):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        real_notify = notifications_service.notify_direct_message

        def notify_then_fail(db, **kwargs):
            real_notify(db, **kwargs)
            raise OperationalError("INSERT INTO notifications", {}, Exception("disk I/O error"))

        monkeypatch.setattr(notifications_service, "notify_direct_message", notify_then_fail)

        message_id = dm_service.send_direct_message(
            db_session, setup["alice"], conversation_id, body="still here", now=T0
        )

        assert db_session.get(DirectMessage, message_id) is not None
        assert db_session.scalar(select(func.count()).select_from(Notification)) == 0
        state = dm_service.get_read_state(db_session, setup["alice"], conversation_id)
        assert state.my_last_read_at == T0

    def test_muted_recipient_gets_no_notification(self, db_session: Session, setup: dict):
        carol = create_test_user(db_session, "Carol")
        add_test_member(db_session, setup["workspace_id"], carol, muted=True)
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], carol
        )
        dm_service.send_direct_message(db_session, setup["alice"], conversation_id, body="hi")

        assert db_session.scalar(select(func.count()).select_from(Notification)) == 0

    def test_image_only_notification_preview(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        dm_service.send_direct_message(
            db_session,
            setup["alice"],
            conversation_id,
            image_id=build_image_path("image/gif"),
        )
        notification = db_session.scalar(select(Notification))
        assert notification.preview == IMAGE_ONLY_PREVIEW

    def test_empty_rejected(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        with pytest.raises(InvalidRequestError) as exc_info:
            dm_service.send_direct_message(db_session, setup["alice"], conversation_id, " ")
        assert exc_info.value.code == ApiErrorCode.E_EMPTY_MESSAGE

    def test_non_participant_forbidden(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        with pytest.raises(ForbiddenError):
            dm_service.send_direct_message(db_session, setup["admin"], conversation_id, "hi")

    def test_unknown_conversation(self, db_session: Session, setup: dict):
        with pytest.raises(NotFoundError) as exc_info:
            dm_service.send_direct_message(db_session, setup["alice"], uuid4(), "hi")
        assert exc_info.value.code == ApiErrorCode.E_CONVERSATION_NOT_FOUND


class TestReadState:
    def test_mark_read_never_moves_backwards(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        later = T0 + timedelta(hours=1)

        assert dm_service.mark_conversation_read(
            db_session, setup["bob"], conversation_id, now=later
        ) == later
        assert dm_service.mark_conversation_read(
            db_session, setup["bob"], conversation_id, now=T0
        ) == later

        state = dm_service.get_read_state(db_session, setup["bob"], conversation_id)
        assert state.my_last_read_at == later

    def test_read_state_soft_for_outsiders(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        assert dm_service.get_read_state(db_session, setup["admin"], conversation_id) is None
        assert dm_service.get_read_state(db_session, None, conversation_id) is None


class TestListDirectMessages:
    def test_list_oldest_first(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        first = create_test_direct_message(
            db_session, conversation_id, setup["alice"], created_at=T0
        )
        second = create_test_direct_message(
            db_session, conversation_id, setup["bob"], created_at=T0 + timedelta(seconds=1)
        )

        result = dm_service.list_by_conversation(
            db_session, setup["bob"], conversation_id, storage=FakeStorageClient()
        )
        assert [m.id for m in result] == [first, second]
        assert result[0].user.name == "Alice"

    def test_paginated_newest_first(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        ids = [
            create_test_direct_message(
                db_session, conversation_id, setup["alice"], created_at=T0 + timedelta(seconds=i)
            )
            for i in range(3)
        ]

        page, info = dm_service.list_by_conversation_paginated(
            db_session, setup["bob"], conversation_id, limit=2
        )
        assert [m.id for m in page] == [ids[2], ids[1]]
        assert info.is_done is False

        page, info = dm_service.list_by_conversation_paginated(
            db_session, setup["bob"], conversation_id, limit=2, cursor=info.next_cursor
        )
        assert [m.id for m in page] == [ids[0]]
        assert info.is_done is True

    def test_non_participant_sees_nothing(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        create_test_direct_message(db_session, conversation_id, setup["alice"])
        assert dm_service.list_by_conversation(db_session, setup["admin"], conversation_id) == []


class TestEditDeleteReact:
    def test_edit_author_only(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        message_id = create_test_direct_message(db_session, conversation_id, setup["alice"])

        dm_service.update_direct_message(db_session, setup["alice"], message_id, "edited")
        assert db_session.get(DirectMessage, message_id).body == "edited"

        with pytest.raises(ForbiddenError):
            dm_service.update_direct_message(db_session, setup["bob"], message_id, "nope")

    def test_admin_can_delete(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        message_id = dm_service.send_direct_message(
            db_session, setup["alice"], conversation_id, body="hi"
        )

        dm_service.delete_direct_message(db_session, setup["admin"], message_id)
        db_session.expire_all()
        assert db_session.get(DirectMessage, message_id) is None
        assert db_session.scalar(select(func.count()).select_from(Notification)) == 0

    def test_other_participant_cannot_delete(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        message_id = create_test_direct_message(db_session, conversation_id, setup["alice"])
        with pytest.raises(ForbiddenError):
            dm_service.delete_direct_message(db_session, setup["bob"], message_id)

    def test_reaction_toggle(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        message_id = create_test_direct_message(db_session, conversation_id, setup["alice"])

        summary = dm_service.toggle_direct_message_reaction(
            db_session, setup["bob"], message_id, "🎉"
        )
        assert [(s.emoji, s.count, s.reacted) for s in summary] == [("🎉", 1, True)]

        summary = dm_service.toggle_direct_message_reaction(
            db_session, setup["bob"], message_id, "🎉"
        )
        assert summary == []

    def test_non_participant_cannot_react(self, db_session: Session, setup: dict):
        conversation_id = create_test_conversation(
            db_session, setup["workspace_id"], setup["alice"], setup["bob"]
        )
        message_id = create_test_direct_message(db_session, conversation_id, setup["alice"])

        with pytest.raises(ForbiddenError):
            dm_service.toggle_direct_message_reaction(
                db_session, setup["admin"], message_id, "👀"
            )
        assert db_session.get(DirectMessage, message_id).reactions == []

    def test_unknown_message(self, db_session: Session, setup: dict):
        with pytest.raises(NotFoundError) as exc_info:
            dm_service.delete_direct_message(db_session, setup["alice"], uuid4())
        assert exc_info.value.code == ApiErrorCode.E_MESSAGE_NOT_FOUND
