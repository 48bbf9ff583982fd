import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import ConversationType, MessageType, NotificationType, PresenceStatus
from app.services.chat_service import (
    ChatService, ChatStoreError, ConversationNotFoundError, InvalidMessageError, MessageNotFoundError,
    NotParticipantError, build_attachment
)


@pytest.fixture
def chat(db: AsyncSession, typing_registry, clock) -> ChatService:
    return ChatService(db, typing_registry, clock=clock)


async def direct_conversation(chat: ChatService):
    return await chat.create_conversation("a", ConversationType.direct, ["a", "b"])


class TestConversations:
    async def test_participants_include_creator_once(self, chat: ChatService):
        conversation = await chat.create_conversation("a", ConversationType.direct, ["a", "b", "b", "a"])
        assert conversation.participants == ["a", "b"]

        conversation = await chat.create_conversation("c", ConversationType.group, ["a", "b"])
        assert conversation.participants == ["a", "b", "c"]

    async def test_list_excludes_archived_and_other_users(self, chat: ChatService, clock):
        first = await direct_conversation(chat)
        clock.advance(60)
        second = await chat.create_conversation("a", ConversationType.case, ["a", "staff"], case_id="case1")
        clock.advance(60)
        await chat.create_conversation("x", ConversationType.direct, ["y"])

        assert [c.id for c in await chat.list_conversations("a")] == [second.id, first.id]

        await chat.archive_conversation(second.id, "a")
        assert [c.id for c in await chat.list_conversations("a")] == [first.id]
        assert len(await chat.list_conversations("a", include_archived=True)) == 2

    async def test_conversations_by_type(self, chat: ChatService):
        await direct_conversation(chat)
        case_conversation = await chat.create_conversation("a", ConversationType.case, ["staff"])

        result = await chat.get_conversations_by_type("a", ConversationType.case)
        assert [c.id for c in result] == [case_conversation.id]

    async def test_archive_requires_participant(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        with pytest.raises(NotParticipantError):
            await chat.archive_conversation(conversation.id, "intruder")
        with pytest.raises(ConversationNotFoundError):
            await chat.archive_conversation("conv-missing", "a")


class TestMessages:
    async def test_send_notifies_other_participant(self, chat: ChatService, clock):
        conversation = await direct_conversation(chat)
        clock.advance(5)

        message = await chat.send_message(conversation.id, "a", "Hello")
        assert message.read_by == ["a"]
        assert message.message_type == MessageType.text

        conversation = await chat.get_conversation(conversation.id)
        assert conversation.last_message_id == message.id
        assert conversation.last_activity == clock.now

        assert await chat.unread_count("a") == 0
        notifications = await chat.list_notifications("b")
        assert len(notifications) == 1
        assert notifications[0].message_id == message.id
        assert notifications[0].type == NotificationType.new_message
        assert not notifications[0].is_read

    async def test_messages_keep_send_order(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        for text in ("one", "two", "three"):
            await chat.send_message(conversation.id, "a", text)
        assert [m.content for m in await chat.list_messages(conversation.id)] == ["one", "two", "three"]

    async def test_attachments_make_file_messages(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        attachment = build_attachment("scan.pdf", "application/pdf", b"%PDF")

        message = await chat.send_message(conversation.id, "a", "", attachments=[attachment])
        assert message.message_type == MessageType.file
        assert message.attachments[0]["data_url"].startswith("data:application/pdf;base64,")
        notifications = await chat.list_notifications("b")
        assert notifications[0].type == NotificationType.file_shared

    async def test_empty_message_is_rejected(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        with pytest.raises(InvalidMessageError):
            await chat.send_message(conversation.id, "a", "   ")

    async def test_non_participant_cannot_send(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        with pytest.raises(NotParticipantError):
            await chat.send_message(conversation.id, "intruder", "Hi")

    async def test_reply_must_be_in_same_conversation(self, chat: ChatService):
        first = await direct_conversation(chat)
        second = await chat.create_conversation("a", ConversationType.direct, ["c"])
        original = await chat.send_message(first.id, "a", "Question")

        reply = await chat.send_message(first.id, "b", "Answer", reply_to_id=original.id)
        assert reply.reply_to_id == original.id
        with pytest.raises(InvalidMessageError):
            await chat.send_message(second.id, "a", "Wrong thread", reply_to_id=original.id)

    async def test_blocked_sender_does_not_notify(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        await chat.block_user("b", "a")

        await chat.send_message(conversation.id, "a", "Hello?")
        assert await chat.unread_count("b") == 0

        await chat.unblock_user("b", "a")
        await chat.send_message(conversation.id, "a", "Hello again")
        assert await chat.unread_count("b") == 1


class TestReadReceipts:
    async def test_mark_conversation_read_is_idempotent(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        await chat.send_message(conversation.id, "a", "one")
        await chat.send_message(conversation.id, "a", "two")

        assert await chat.mark_as_read(conversation.id, "b") == 2
        assert await chat.mark_as_read(conversation.id, "b") == 0

        for message in await chat.list_messages(conversation.id):
            assert message.read_by == ["a", "b"]
        assert await chat.unread_count("b") == 0

    async def test_mark_single_message(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        first = await chat.send_message(conversation.id, "a", "one")
        await chat.send_message(conversation.id, "a", "two")

        assert await chat.mark_as_read(conversation.id, "b", first.id) == 1
        assert await chat.unread_count("b") == 1

        with pytest.raises(MessageNotFoundError):
            await chat.mark_as_read(conversation.id, "b", "msg-missing")


class TestEditAndDelete:
    async def test_edit_keeps_created_at(self, chat: ChatService, clock):
        conversation = await direct_conversation(chat)
        message = await chat.send_message(conversation.id, "a", "Helo")
        created_at = message.created_at
        clock.advance(30)

        edited = await chat.edit_message(message.id, "a", "Hello")
        assert edited.content == "Hello"
        assert edited.is_edited
        assert edited.created_at == created_at
        assert edited.updated_at > created_at

    async def test_only_sender_can_edit(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        message = await chat.send_message(conversation.id, "a", "Hello")
        with pytest.raises(NotParticipantError):
            await chat.edit_message(message.id, "b", "Hijacked")

    async def test_delete_moves_last_message_back(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        first = await chat.send_message(conversation.id, "a", "one")
        second = await chat.send_message(conversation.id, "a", "two")

        await chat.delete_message(second.id, "a")
        assert [m.id for m in await chat.list_messages(conversation.id)] == [first.id]
        assert (await chat.get_conversation(conversation.id)).last_message_id == first.id

        with pytest.raises(MessageNotFoundError):
            await chat.delete_message(second.id, "a")


class TestSearch:
    async def test_case_insensitive_newest_first(self, chat: ChatService, clock):
        conversation = await direct_conversation(chat)
        await chat.send_message(conversation.id, "a", "Invoice attached")
        clock.advance(10)
        await chat.send_message(conversation.id, "b", "Thanks")
        clock.advance(10)
        await chat.send_message(conversation.id, "b", "Second INVOICE please")

        results = await chat.search_messages("a", "invoice")
        assert [m.content for m in results] == ["Second INVOICE please", "Invoice attached"]

    async def test_search_is_limited_to_own_conversations(self, chat: ChatService):
        conversation = await direct_conversation(chat)
        await chat.send_message(conversation.id, "a", "secret plan")

        assert await chat.search_messages("outsider", "secret") == []
        with pytest.raises(NotParticipantError):
            await chat.search_messages("outsider", "secret", conversation.id)


class TestTypingAndPresence:
    async def test_typing_indicator_expires(self, chat: ChatService, clock):
        conversation = await direct_conversation(chat)
        await chat.set_typing(conversation.id, "a", True)

        assert [t.user_id for t in await chat.get_typing(conversation.id, "b")] == ["a"]
        assert await chat.get_typing(conversation.id, "a") == []

        clock.advance(3)
        assert await chat.get_typing(conversation.id, "b") == []

    async def test_typing_again_restarts_countdown(self, chat: ChatService, clock):
        conversation = await direct_conversation(chat)
        await chat.set_typing(conversation.id, "a", True)
        clock.advance(2)
        await chat.set_typing(conversation.id, "a", True)
        clock.advance(2)
        assert len(await chat.get_typing(conversation.id, "b")) == 1

        await chat.set_typing(conversation.id, "a", False)
        assert await chat.get_typing(conversation.id, "b") == []

    async def test_presence_upsert(self, chat: ChatService):
        await chat.update_presence("a", PresenceStatus.online, "Reviewing case1")
        await chat.update_presence("a", PresenceStatus.away)

        presence = await chat.get_presence(["a", "b"])
        assert len(presence) == 1
        assert presence[0].status == PresenceStatus.away
        assert presence[0].current_activity is None


class TestChatSettings:
    async def test_defaults_and_partial_update(self, chat: ChatService):
        settings = await chat.get_chat_settings("a")
        assert settings.notifications["sound"] is True
        assert settings.blocked_users == []

        settings = await chat.update_chat_settings("a", {"privacy": {"read_receipts": False}})
        assert settings.privacy["read_receipts"] is False
        assert settings.privacy["typing_indicators"] is True

    async def test_block_is_idempotent(self, chat: ChatService):
        await chat.block_user("a", "b")
        settings = await chat.block_user("a", "b")
        assert settings.blocked_users == ["b"]


class TestStoreFailures:
    async def test_failed_commit_rolls_back_message(self, chat: ChatService, monkeypatch):
        conversation_id = (await direct_conversation(chat)).id

        async def failing_commit(self):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(ChatStoreError):
            await chat.send_message(conversation_id, "a", "Hello")

        monkeypatch.undo()
        assert await chat.list_messages(conversation_id) == []
        message = await chat.send_message(conversation_id, "a", "Hello again")
        assert message.content == "Hello again"
