"""
Tests for LLM entity extraction.
"""

from unittest.mock import AsyncMock, patch

import pytest

from lattice.core.llm.base import LLMProvider
from lattice.models.document import Entity, EntityType, Relationship, RelationType
from lattice.models.extraction import ExtractionPayload
from lattice.services.entity_extractor import IntervalGate, LLMEntityExtractor, validate_extraction
from lattice.utils.exceptions import LLMError


def _entities(*names: str) -> list[Entity]:
    return [Entity(name=name, type=EntityType.TECHNOLOGY, description=f"{name} desc") for name in names]


def _payload(**overrides) -> ExtractionPayload:
    data = {
        "entities": _entities("Redis", "Neo4j", "SQLite"),
        "relationships": [Relationship(source="this", relation=RelationType.REFERENCES, target="Redis")],
        "summary": "Compares three storage engines.",
    }
    data.update(overrides)
    return ExtractionPayload(**data)


@pytest.fixture
def llm():
    return AsyncMock(spec=LLMProvider)


@pytest.fixture
def extractor(llm):
    return LLMEntityExtractor(llm, min_interval=0.0, max_attempts=3)


@pytest.mark.unit
class TestValidateExtraction:
    def test_valid(self):
        """Test a consistent extraction has no errors."""
        assert validate_extraction(_payload()) == []

    def test_too_few_entities(self):
        """Test too few entities."""
        errors = validate_extraction(_payload(entities=_entities("Redis"), relationships=[]))
        assert errors == ["Expected 3-10 entities, got 1"]

    def test_too_many_entities(self):
        """Test too many entities."""
        names = [f"E{i}" for i in range(11)]
        errors = validate_extraction(_payload(entities=_entities(*names), relationships=[]))
        assert "got 11" in errors[0]

    def test_unknown_endpoint(self):
        """Test unknown endpoint."""
        payload = _payload(
            relationships=[Relationship(source="this", relation=RelationType.REFERENCES, target="Kafka")]
        )
        assert validate_extraction(payload) == ['Relationship target "Kafka" not found in extracted entities']

    def test_appears_in_rejected(self):
        """Test the model cannot propose APPEARS_IN edges."""
        payload = _payload(
            relationships=[Relationship(source="Redis", relation=RelationType.APPEARS_IN, target="this")]
        )
        assert validate_extraction(payload) == ['Relation "APPEARS_IN" is written by sync and cannot be extracted']

    def test_answered_by_allowed(self):
        """Test a Question may be answered by the document."""
        payload = _payload(
            entities=[*_entities("Redis", "Neo4j"), Entity(name="Which store?", type=EntityType.QUESTION)],
            relationships=[Relationship(source="Which store?", relation=RelationType.ANSWERED_BY, target="this")],
        )
        assert validate_extraction(payload) == []

    def test_missing_summary(self):
        """Test missing summary."""
        assert validate_extraction(_payload(summary="  ")) == ["Summary is missing"]


@pytest.mark.unit
@pytest.mark.asyncio
class TestLLMEntityExtractor:
    async def test_successful_extraction(self, extractor, llm):
        """Test successful extraction."""
        llm.complete.return_value = _payload()

        result = await extractor.extract("/docs/a.md", "# A\nRedis and friends.")

        assert result.success is True
        assert [e.name for e in result.entities] == ["Redis", "Neo4j", "SQLite"]
        assert result.relationships[0].source == "/docs/a.md"
        assert result.summary == "Compares three storage engines."
        llm.complete.assert_awaited_once()
        prompt = llm.complete.await_args.args[0]
        assert "/docs/a.md" in prompt
        assert "Redis and friends." in prompt
        assert llm.complete.await_args.kwargs["response_format"] is ExtractionPayload

    async def test_retry_with_feedback(self, extractor, llm):
        """Test retry with feedback."""
        llm.complete.side_effect = [_payload(summary=""), _payload()]

        result = await extractor.extract("/docs/a.md", "content")

        assert result.success is True
        assert llm.complete.await_count == 2
        retry_prompt = llm.complete.await_args_list[1].args[0]
        assert "Previous attempt was rejected" in retry_prompt
        assert "Summary is missing" in retry_prompt

    async def test_gives_up_after_max_attempts(self, extractor, llm):
        """Test gives up after max attempts."""
        llm.complete.return_value = _payload(summary="")

        result = await extractor.extract("/docs/a.md", "content")

        assert result.success is False
        assert "after 3 attempts" in result.error
        assert llm.complete.await_count == 3

    async def test_llm_error_is_returned(self, extractor, llm):
        """Test llm error is returned."""
        llm.complete.side_effect = LLMError("model unavailable")

        result = await extractor.extract("/docs/a.md", "content")

        assert result.success is False
        assert "model unavailable" in result.error
        assert result.entities == []

    async def test_reads_file_when_content_omitted(self, extractor, llm, tmp_path):
        """Test reads file when content omitted."""
        path = tmp_path / "a.md"
        path.write_text("From disk.", encoding="utf-8")
        llm.complete.return_value = _payload()

        result = await extractor.extract(str(path))

        assert result.success is True
        assert "From disk." in llm.complete.await_args.args[0]

    async def test_missing_file(self, extractor, llm, tmp_path):
        """Test missing file."""
        result = await extractor.extract(str(tmp_path / "missing.md"))

        assert result.success is False
        llm.complete.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
class TestIntervalGate:
    async def test_first_call_does_not_sleep(self):
        """Test first call does not sleep."""
        gate = IntervalGate(10.0)
        with patch("lattice.services.entity_extractor.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await gate.wait()
        sleep.assert_not_called()

    async def test_second_call_sleeps_remainder(self):
        """Test second call sleeps remainder."""
        gate = IntervalGate(10.0)
        with patch("lattice.services.entity_extractor.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await gate.wait()
            await gate.wait()
        sleep.assert_awaited_once()
        assert 0 < sleep.await_args.args[0] <= 10.0
