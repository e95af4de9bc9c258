"""Unit tests for PersonaRegistry."""
import pytest

from chat_gateway.models.chat_model import UseCase
from chat_gateway.services.personas import DEFAULT_PROMPTS, PersonaRegistry


class TestPersonaRegistry:
    """Test suite for persona lookup."""

    def test_every_use_case_has_a_prompt(self, personas):
        for use_case in UseCase:
            assert personas.prompt_for(use_case).strip()

    @pytest.mark.parametrize("tag", ["Legal", "", "healthcare", None, "Default "])
    def test_unknown_tag_resolves_to_default(self, personas, tag):
        assert personas.prompt_for(tag) == personas.prompt_for("Default")

    def test_lookup_by_raw_string(self, personas):
        assert personas.prompt_for("Healthcare") == personas.prompt_for(UseCase.HEALTHCARE)
        assert "healthcare assistant" in personas.prompt_for("Healthcare")

    def test_prompts_contain_refusal_sentence(self, personas):
        prompt = personas.prompt_for(UseCase.BANKING)
        assert "I'm limited to banking topics." in prompt
        assert "respond with" in prompt

    def test_missing_entry_fails_construction(self):
        prompts = dict(DEFAULT_PROMPTS)
        del prompts[UseCase.EDUCATION]
        with pytest.raises(ValueError, match="Education"):
            PersonaRegistry(prompts)

    def test_blank_entry_fails_construction(self):
        prompts = dict(DEFAULT_PROMPTS)
        prompts[UseCase.DEFAULT] = "   "
        with pytest.raises(ValueError, match="Default"):
            PersonaRegistry(prompts)

    def test_registry_is_isolated_from_source_mapping(self):
        prompts = dict(DEFAULT_PROMPTS)
        registry = PersonaRegistry(prompts)
        prompts[UseCase.BANKING] = "changed"
        assert registry.prompt_for(UseCase.BANKING) == DEFAULT_PROMPTS[UseCase.BANKING]
