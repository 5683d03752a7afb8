"""
Tests for model routing and logging setup.
"""

import logging

import pytest

from testgenius.config.settings import Settings
from testgenius.llm import ModelRole, ModelRouter, load_defaults_from_env
from testgenius.utils.logger import TokenRedactor, mask_secret, setup_logging


class TestModelRouting:
    def test_falls_back_to_gemini_model(self):
        table = load_defaults_from_env(Settings(GEMINI_MODEL="gemini-test"))

        assert [spec.model_id for spec in table[ModelRole.SUMMARIZER]] == ["gemini-test"]
        assert [spec.model_id for spec in table[ModelRole.CODER]] == ["gemini-test"]

    def test_route_is_comma_separated(self):
        settings = Settings(MODEL_ROUTE_CODER=" gemini-pro , gemini-flash,")
        router = ModelRouter(load_defaults_from_env(settings))

        assert router.choose(ModelRole.CODER).model_id == "gemini-pro"
        assert [s.model_id for s in load_defaults_from_env(settings)[ModelRole.CODER]] == [
            "gemini-pro",
            "gemini-flash",
        ]

    def test_coder_has_larger_budget(self):
        table = load_defaults_from_env(Settings())

        coder = table[ModelRole.CODER][0]
        summarizer = table[ModelRole.SUMMARIZER][0]
        assert coder.max_output_tokens > summarizer.max_output_tokens
        assert coder.temperature < summarizer.temperature

    def test_unconfigured_role(self):
        router = ModelRouter({})

        with pytest.raises(ValueError, match="SUMMARIZER"):
            router.choose(ModelRole.SUMMARIZER)

    def test_primary_models(self):
        router = ModelRouter(load_defaults_from_env(Settings(GEMINI_MODEL="gemini-test")))

        assert router.primary_models() == {"summarizer": "gemini-test", "coder": "gemini-test"}


class TestMaskSecret:
    def test_keeps_last_four(self):
        assert mask_secret("ghp_abcdef123456") == "************3456"

    def test_short_and_empty(self):
        assert mask_secret("abc") == "***"
        assert mask_secret("") == "<empty>"
        assert mask_secret(None) == "<empty>"


class TestTokenRedactor:
    def make_record(self, msg: str, *args: object) -> logging.LogRecord:
        return logging.LogRecord("testgenius", logging.INFO, __file__, 1, msg, args, None)

    def test_token_in_arguments_is_masked(self):
        record = self.make_record("Connecting with %s", "ghp_abcdefghijklmnop1234")

        assert TokenRedactor().filter(record) is True
        assert "ghp_abcdefghijklmnop1234" not in record.getMessage()
        assert record.getMessage().endswith("1234")

    def test_fine_grained_token(self):
        record = self.make_record("token github_pat_11ABCDEFG_xyz987 rejected")

        TokenRedactor().filter(record)

        assert "github_pat_11ABCDEFG" not in record.getMessage()

    def test_plain_message_untouched(self):
        record = self.make_record("Loaded %d files", 3)

        TokenRedactor().filter(record)

        assert record.args == (3,)
        assert record.getMessage() == "Loaded 3 files"


class TestSetupLogging:
    def test_level_by_name_and_quiet_loggers(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="warning", use_colors=False)

            assert root.level == logging.WARNING
            assert logging.getLogger("httpx").level == logging.WARNING
            assert any(
                isinstance(f, TokenRedactor) for h in root.handlers for f in h.filters
            )
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
