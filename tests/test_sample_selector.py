# tests/test_sample_selector.py
import pytest

from core.exceptions import GenerationError
from core.generation import GenerationResult
from models import ContentElement, SampleSelection
from processing.sample_selector import SampleSelector


class FakeGenerator:
    def __init__(self, result: GenerationResult):
        self.result = result
        self.prompts: list[str] = []

    async def generate(self, prompt, shape, system_prompt=None):
        assert shape is SampleSelection
        self.prompts.append(prompt)
        return self.result


def _contents() -> list[ContentElement]:
    return [
        ContentElement(id="cover", label="Cover", href="cover.xhtml", index=0, type="frontmatter"),
        ContentElement(
            id="part-1",
            label="Part One",
            href="part1.xhtml",
            index=1,
            type="bodymatter",
            children=[
                ContentElement(id="ch-1", label="Chapter 1", href="ch1.xhtml", index=2),
                ContentElement(id="ch-2", label="Chapter 2", href="ch2.xhtml", index=3),
            ],
        ),
    ]


@pytest.mark.asyncio
async def test_selection_keeps_known_ids_in_service_order():
    selection = SampleSelection(selected_ids=["ch-1", "ghost", "cover"])
    generator = FakeGenerator(GenerationResult.ok(selection))

    selected = await SampleSelector(generator, max_items=3).select_content(_contents())

    assert selected == ["ch-1", "cover"]
    assert '"id": "ch-2"' in generator.prompts[0]
    assert "not more than 3 items" in generator.prompts[0]


@pytest.mark.asyncio
async def test_selection_failure_raises():
    generator = FakeGenerator(GenerationResult.fail("timeout"))
    with pytest.raises(GenerationError, match="timeout"):
        await SampleSelector(generator).select_content(_contents())


def test_selection_parses_camel_case():
    selection = SampleSelection.model_validate_json('{"selectedIds": ["a", "b"]}')
    assert selection.selected_ids == ["a", "b"]
