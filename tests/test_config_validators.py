# tests/test_config_validators.py

import config
import pytest
from config import BookAISettings


def test_concurrency_limit_below_one_raises():
    with pytest.raises(ValueError):
        BookAISettings(OPENAI_API_KEY="valid", SECTION_CONCURRENCY_LIMIT=0)


def test_negative_history_size_raises():
    with pytest.raises(ValueError):
        BookAISettings(OPENAI_API_KEY="valid", SECTION_HISTORY_SIZE=-1)


def test_missing_api_key_warns(monkeypatch):
    warnings: list[str] = []

    def fake_warning(msg: str, **_kw: object) -> None:
        warnings.append(msg)

    monkeypatch.setattr(config.logger, "warning", fake_warning)
    BookAISettings(OPENAI_API_KEY="  ")
    assert any("OPENAI_API_KEY" in msg for msg in warnings)


def test_dynamic_model_defaults():
    cfg = BookAISettings(
        OPENAI_API_KEY="valid", LARGE_MODEL="big", SMALL_MODEL="small"
    )
    assert cfg.SECTION_SUMMARY_MODEL == "small"
    assert cfg.SAMPLER_MODEL == "small"
    assert cfg.ANALYSIS_MODEL == "big"
    assert cfg.REFINEMENT_MODEL == "big"


def test_explicit_model_is_kept():
    cfg = BookAISettings(OPENAI_API_KEY="valid", ANALYSIS_MODEL="custom")
    assert cfg.ANALYSIS_MODEL == "custom"
