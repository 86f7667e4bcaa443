"""Advisory opinions: parsing, blending and the service around the backend."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from immowert.models.mock_model import MockAdvisor
from immowert.models.openai_model import OpenAIAdvisor
from immowert.services.advisory_service import AdvisoryService
from immowert.valuation.advisory import AdvisoryOpinion, AdvisoryStatus, blend
from immowert.valuation.result import SRC_ADVISORY


def _opinion(status, confidence=0.88, recommended=380_000):
    return AdvisoryOpinion(status=AdvisoryStatus(status), confidence=confidence, recommended_value=recommended)


# ---------------------------------------------------------------------------
# Blending
# ---------------------------------------------------------------------------

class TestBlend:
    def test_major_concern_blends_half(self, make_result):
        result = blend(make_result(total=300_000), _opinion("major-concern"))
        assert result.total_value == 340_000
        assert result.building_value == 240_000
        assert SRC_ADVISORY in result.sources
        assert any("+13.3%" in n and "blend weight 50%" in n for n in result.notes)

    def test_minor_concern_blends_thirty_percent(self, make_result):
        result = blend(make_result(total=300_000), _opinion("minor-concern", 0.72, 400_000))
        assert result.total_value == 330_000

    @pytest.mark.parametrize(
        "opinion",
        [
            _opinion("ok"),
            _opinion("unavailable"),
            _opinion("error"),
            _opinion("minor-concern", confidence=0.69),
            _opinion("major-concern", confidence=0.74),
            _opinion("major-concern", recommended=None),
            _opinion("major-concern", recommended=0),
        ],
    )
    def test_no_op_cases(self, make_result, opinion):
        result = make_result(total=300_000)
        assert blend(result, opinion) == result

    def test_sanity_band(self, make_result):
        result = make_result(total=300_000)
        assert blend(result, _opinion("major-concern", recommended=59_000)) == result
        assert blend(result, _opinion("major-concern", recommended=1_600_000)) == result
        assert blend(result, _opinion("major-concern", recommended=61_000)).total_value == 180_500
        assert blend(result, _opinion("major-concern", recommended=1_490_000)).total_value == 895_000


class TestPayload:
    def test_lenient_parsing(self):
        op = AdvisoryOpinion.from_payload(
            {"status": "MAJOR-CONCERN", "confidence": "1.4", "recommended_value": "312000.4", "rationale": "Too low."}
        )
        assert op.status == AdvisoryStatus.MAJOR_CONCERN
        assert op.confidence == 1.0
        assert op.recommended_value == 312_000

    def test_unknown_status_counts_as_minor(self):
        op = AdvisoryOpinion.from_payload({"status": "hmm", "confidence": None, "recommended_value": "n/a"})
        assert op.status == AdvisoryStatus.MINOR_CONCERN
        assert op.confidence == 0.0
        assert op.recommended_value is None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class _CountingModel:
    def __init__(self, payload):
        self.payload = payload
        self.calls = 0

    async def review(self, features):
        self.calls += 1
        return self.payload


class _SlowModel:
    async def review(self, features):
        await asyncio.sleep(1)
        return {"status": "ok"}


class _BrokenModel:
    async def review(self, features):
        raise RuntimeError("backend down")


class TestAdvisoryService:
    @pytest.mark.asyncio
    async def test_without_backend_is_unavailable(self, house, make_result):
        svc = AdvisoryService(None, timeout=1, ttl_seconds=60)
        op = await svc.review(house, make_result(), None, "Hauptstr. 1, 50823 Köln", "Nordrhein-Westfalen")
        assert op.status == AdvisoryStatus.UNAVAILABLE
        assert not svc.enabled

    @pytest.mark.asyncio
    async def test_opinions_are_cached_by_signature(self, house, make_result):
        model = _CountingModel({"status": "minor-concern", "confidence": 0.8, "recommended_value": 320000})
        svc = AdvisoryService(model, timeout=1, ttl_seconds=60)
        result = make_result()
        first = await svc.review(house, result, None, "Hauptstr. 1, 50823 Köln", "Nordrhein-Westfalen")
        second = await svc.review(house, result, None, "  hauptstr. 1,  50823 köln ", "Nordrhein-Westfalen")
        assert first == second
        assert model.calls == 1

        await svc.review(house, make_result(total=310_000), None, "Hauptstr. 1, 50823 Köln", "Nordrhein-Westfalen")
        assert model.calls == 2

    @pytest.mark.asyncio
    async def test_timeout_gives_error(self, house, make_result):
        svc = AdvisoryService(_SlowModel(), timeout=0.01, ttl_seconds=60)
        op = await svc.review(house, make_result(), None, "Hauptstr. 1", None)
        assert op.status == AdvisoryStatus.ERROR

    @pytest.mark.asyncio
    async def test_backend_failure_gives_error_and_is_not_cached(self, house, make_result):
        svc = AdvisoryService(_BrokenModel(), timeout=1, ttl_seconds=60)
        op = await svc.review(house, make_result(), None, "Hauptstr. 1", None)
        assert op.status == AdvisoryStatus.ERROR
        assert len(svc.cache) == 0


class TestMockAdvisor:
    @pytest.mark.asyncio
    async def test_in_line_value_is_ok(self):
        payload = await MockAdvisor().review(
            {"address": "x", "region": "Bayern", "input": {"is_house": True},
             "valuation": {"total_value": 500_000, "living_area": 100}}
        )
        assert payload["status"] == "ok"

    @pytest.mark.asyncio
    async def test_far_off_value_is_a_concern(self):
        payload = await MockAdvisor().review(
            {"address": "x", "region": "Sachsen-Anhalt", "input": {"is_house": True},
             "valuation": {"total_value": 800_000, "living_area": 100}}
        )
        assert payload["status"] == "major-concern"
        assert payload["recommended_value"] == 470_000
        assert 0.70 <= payload["confidence"] <= 0.95


class _FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _fake_client(content):
    return SimpleNamespace(chat=SimpleNamespace(completions=_FakeCompletions(content)))


class TestOpenAIAdvisor:
    @pytest.mark.asyncio
    async def test_json_reply(self):
        client = _fake_client('{"status": "minor-concern", "confidence": 0.8, "recommended_value": 320000}')
        payload = await OpenAIAdvisor(client=client, model="gpt-test").review(
            {"address": "Hauptstr. 1", "region": "Bayern", "input": {}, "valuation": {"total_value": 300000}}
        )
        assert payload["status"] == "minor-concern"
        kwargs = client.chat.completions.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "Bayern" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        with pytest.raises(RuntimeError):
            await OpenAIAdvisor(client=_fake_client("not json"), model="gpt-test").review({})

    @pytest.mark.asyncio
    async def test_missing_status_raises(self):
        with pytest.raises(ValueError):
            await OpenAIAdvisor(client=_fake_client('{"confidence": 1}'), model="gpt-test").review({})
