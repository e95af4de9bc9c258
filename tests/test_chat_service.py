"""Unit tests for ChatService turn handling."""
import pytest

from chat_gateway.models.chat_model import Role, UseCase
from chat_gateway.models.exceptions import AIServiceError, ConflictError, InvalidInputError, NotFoundError


class TestChatService:
    """Test suite for ChatService.send and lookups."""

    def test_new_conversation_turn(self, service, store, gateway, personas):
        reply = service.send("user-a", "hello", use_case="Healthcare")

        assert reply.message == "Assistant reply"
        conv = store.find_owned(reply.conversation_id, "user-a")
        assert conv.use_case is UseCase.HEALTHCARE
        assert [(m.role, m.content) for m in conv.messages] == [
            (Role.USER, "hello"), (Role.ASSISTANT, "Assistant reply"),
        ]
        history, persona = gateway.complete.call_args.args
        assert history == [{"role": "user", "content": "hello"}]
        assert persona == personas.prompt_for(UseCase.HEALTHCARE)
        assert "healthcare" in persona

    def test_missing_use_case_defaults(self, service, store):
        reply = service.send("user-a", "hello")
        assert store.find_owned(reply.conversation_id, "user-a").use_case is UseCase.DEFAULT

    def test_follow_up_sends_full_history(self, service, gateway):
        gateway.complete.side_effect = ["first answer", "second answer"]
        first = service.send("user-a", "first question", use_case="Banking")
        second = service.send("user-a", "second question", conversation_id=first.conversation_id)

        assert second.conversation_id == first.conversation_id
        history, _ = gateway.complete.call_args.args
        assert history == [
            {"role": "user", "content": "first question"},
            {"role": "assistant", "content": "first answer"},
            {"role": "user", "content": "second question"},
        ]

    def test_use_case_fixed_at_creation(self, service, store, gateway, personas):
        first = service.send("user-a", "hi", use_case="Banking")
        service.send("user-a", "again", conversation_id=first.conversation_id, use_case="Healthcare")

        _, persona = gateway.complete.call_args.args
        assert persona == personas.prompt_for(UseCase.BANKING)
        assert store.find_owned(first.conversation_id, "user-a").use_case is UseCase.BANKING

    @pytest.mark.parametrize("message", ["", "   ", "\n\t", None])
    def test_blank_message_rejected_before_side_effects(self, service, gateway, collection, message):
        with pytest.raises(InvalidInputError, match="Message content is required"):
            service.send("user-a", message)
        gateway.complete.assert_not_called()
        assert collection.count_documents({}) == 0

    def test_foreign_conversation_not_found(self, service, gateway):
        owned_by_b = service.send("user-b", "hello")
        gateway.complete.reset_mock()

        with pytest.raises(NotFoundError):
            service.send("user-a", "hello", conversation_id=owned_by_b.conversation_id)
        gateway.complete.assert_not_called()

    def test_upstream_failure_on_new_conversation_persists_nothing(self, service, gateway, collection):
        gateway.complete.side_effect = AIServiceError("AI service timed out", reason="timeout")

        with pytest.raises(AIServiceError):
            service.send("user-a", "hello")
        assert collection.count_documents({}) == 0

    def test_upstream_failure_leaves_existing_conversation_unchanged(self, service, store, gateway):
        first = service.send("user-a", "hello")
        before = store.find_owned(first.conversation_id, "user-a")
        gateway.complete.side_effect = AIServiceError("AI service returned status 502")

        with pytest.raises(AIServiceError):
            service.send("user-a", "follow up", conversation_id=first.conversation_id)

        after = store.find_owned(first.conversation_id, "user-a")
        assert len(after.messages) == len(before.messages) == 2
        assert after.version == before.version

    def test_retry_after_failure_is_clean(self, service, store, gateway):
        first = service.send("user-a", "hello")
        gateway.complete.side_effect = [AIServiceError("AI service timed out", reason="timeout"), "ok now"]

        with pytest.raises(AIServiceError):
            service.send("user-a", "again", conversation_id=first.conversation_id)
        service.send("user-a", "again", conversation_id=first.conversation_id)

        contents = [m.content for m in store.find_owned(first.conversation_id, "user-a").messages]
        assert contents == ["hello", "Assistant reply", "again", "ok now"]

    def test_interleaved_turn_on_same_conversation_conflicts(self, service, store, gateway):
        first = service.send("user-a", "hello")
        calls = []

        def racing_complete(history, persona):
            calls.append(history[-1]["content"])
            if len(calls) == 1:
                # another request for the same conversation finishes first
                service.send("user-a", "inner", conversation_id=first.conversation_id)
                return "outer answer"
            return "inner answer"

        gateway.complete.side_effect = racing_complete

        with pytest.raises(ConflictError):
            service.send("user-a", "outer", conversation_id=first.conversation_id)

        contents = [m.content for m in store.find_owned(first.conversation_id, "user-a").messages]
        assert contents == ["hello", "Assistant reply", "inner", "inner answer"]

    def test_list_and_get(self, service):
        reply = service.send("user-a", "hello")
        service.send("user-b", "hello")

        assert [c.id for c in service.list_conversations("user-a")] == [reply.conversation_id]
        assert service.get_conversation("user-a", reply.conversation_id).id == reply.conversation_id
        with pytest.raises(NotFoundError):
            service.get_conversation("user-b", reply.conversation_id)
