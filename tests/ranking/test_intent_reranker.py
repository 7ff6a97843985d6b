"""
Tests for IntentReranker.

Tests organized by behaviour:
- TestSignalDetection: supplication, ruling, short fragment
- TestMultipliers: boost, penalty, composition, curated
- TestClamping: results stay in [0, 1]
- TestRecordIdentity: same length, ids and content; only similarity changes
- TestTableLoading: tunable multipliers, unknown keys
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dua_search.core.exceptions import CorpusLoadError
from dua_search.models.records import Category, Citation, SourceRecord
from dua_search.ranking.intent_reranker import IntentReranker, rerank

# =============================================================================
# Constants
# =============================================================================

SUPPLICATION = "O Allah, grant me patience and ease my hardship"
RULING = (
    "The waiting period of a woman whose husband has died is four months and "
    "ten days, and the ruling on her remarriage applies only after her iddah ends."
)
NARRATION = "Narrated Abu Huraira: The Prophet said that."
LONG_NARRATION = (
    "Narrated Abu Huraira: A man came to the Prophet while he was sitting in "
    "the mosque with his companions and asked him about the Hour and when it "
    "would come, and the Prophet remained silent."
)
BOTH_SIGNALS = (
    "Our Lord, forgive me. The dowry is obligatory upon the husband at the time "
    "the marriage is concluded between the two families in the presence of others."
)


def make_record(
    content: str,
    similarity: float = 0.5,
    curated: bool = False,
    record_id: str = "r1",
) -> SourceRecord:
    return SourceRecord(
        id=record_id,
        content=content,
        category=Category.SAYING,
        citation=Citation(collection="eng-bukhari", reference="Sahih Bukhari 1"),
        similarity=similarity,
        curated=curated,
    )


@pytest.fixture
def reranker() -> IntentReranker:
    return IntentReranker()


# =============================================================================
# TestSignalDetection
# =============================================================================


class TestSignalDetection:
    def test_opener_at_start(self, reranker: IntentReranker) -> None:
        assert reranker.has_supplication_signal("Allahumma inni as'aluka al-afiyah")

    def test_opener_after_space(self, reranker: IntentReranker) -> None:
        assert reranker.has_supplication_signal("He used to say: our lord, accept from us")

    def test_petition_phrase(self, reranker: IntentReranker) -> None:
        assert reranker.has_supplication_signal("I seek refuge in You from the evil of what I have done")

    def test_no_supplication_signal(self, reranker: IntentReranker) -> None:
        assert not reranker.has_supplication_signal(NARRATION)

    def test_ruling_signal(self, reranker: IntentReranker) -> None:
        assert reranker.has_ruling_signal(RULING)

    def test_short_fragment_requires_no_supplication(
        self, reranker: IntentReranker
    ) -> None:
        assert reranker.detect(NARRATION).short_fragment
        assert not reranker.detect(SUPPLICATION).short_fragment

    def test_long_content_is_not_fragment(self, reranker: IntentReranker) -> None:
        assert not reranker.detect(LONG_NARRATION).short_fragment


# =============================================================================
# TestMultipliers
# =============================================================================


class TestMultipliers:
    def test_supplication_boosts_above_input(self, reranker: IntentReranker) -> None:
        [result] = reranker.rerank([make_record(SUPPLICATION, 0.5)])
        assert result.similarity > 0.5
        assert result.similarity == pytest.approx(0.6)

    def test_ruling_penalized(self, reranker: IntentReranker) -> None:
        [result] = reranker.rerank([make_record(RULING, 0.5)])
        assert result.similarity <= 0.5 * 0.75 + 1e-9

    def test_short_fragment_penalized(self, reranker: IntentReranker) -> None:
        [result] = reranker.rerank([make_record(NARRATION, 0.8)])
        assert result.similarity == pytest.approx(0.6)

    def test_neutral_long_content_unchanged(self, reranker: IntentReranker) -> None:
        [result] = reranker.rerank([make_record(LONG_NARRATION, 0.5)])
        assert result.similarity == pytest.approx(0.5)

    def test_supplication_and_ruling_compose(self, reranker: IntentReranker) -> None:
        signals = reranker.detect(BOTH_SIGNALS)
        assert signals.supplication and signals.ruling
        [result] = reranker.rerank([make_record(BOTH_SIGNALS, 0.5)])
        assert result.similarity == pytest.approx(0.5 * 1.2 * 0.75)

    def test_curated_boost(self, reranker: IntentReranker) -> None:
        [result] = reranker.rerank([make_record(LONG_NARRATION, 0.5, curated=True)])
        assert result.similarity == pytest.approx(0.55)

    def test_module_level_rerank_uses_bundled_table(self) -> None:
        [result] = rerank([make_record(SUPPLICATION, 0.5)])
        assert result.similarity == pytest.approx(0.6)


# =============================================================================
# TestClamping
# =============================================================================


class TestClamping:
    @pytest.mark.parametrize("similarity", [0.0, 0.5, 0.9, 1.0])
    def test_result_within_unit_interval(
        self, reranker: IntentReranker, similarity: float
    ) -> None:
        records = [
            make_record(SUPPLICATION, similarity, curated=True),
            make_record(RULING, similarity),
            make_record(NARRATION, similarity),
        ]
        for result in reranker.rerank(records):
            assert 0.0 <= result.similarity <= 1.0

    def test_out_of_range_input_clamped(self, reranker: IntentReranker) -> None:
        [result] = reranker.rerank([make_record(SUPPLICATION, 3.0, curated=True)])
        assert result.similarity == 1.0


# =============================================================================
# TestRecordIdentity
# =============================================================================


class TestRecordIdentity:
    def test_same_length_order_ids_and_content(self, reranker: IntentReranker) -> None:
        records = [
            make_record(RULING, 0.7, record_id="a"),
            make_record(SUPPLICATION, 0.4, record_id="b"),
            make_record(NARRATION, 0.6, record_id="c"),
        ]
        results = reranker.rerank(records)
        assert [r.id for r in results] == ["a", "b", "c"]
        assert [r.content for r in results] == [r.content for r in records]
        assert [r.citation for r in results] == [r.citation for r in records]

    def test_input_records_not_mutated(self, reranker: IntentReranker) -> None:
        record = make_record(SUPPLICATION, 0.5)
        reranker.rerank([record])
        assert record.similarity == 0.5


# =============================================================================
# TestTableLoading
# =============================================================================


class TestTableLoading:
    def test_multipliers_are_tunable(self, tmp_path: Path) -> None:
        path = tmp_path / "signals.yaml"
        path.write_text(
            "multipliers:\n"
            "  ruling_penalty: 0.5\n"
            "invocation_openers: []\n"
            "petition_phrases: []\n"
            "ruling_markers: ['waiting period']\n",
            encoding="utf-8",
        )
        [result] = IntentReranker(path).rerank([make_record(RULING, 0.8)])
        assert result.similarity == pytest.approx(0.4)

    def test_unknown_multiplier_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "signals.yaml"
        path.write_text("multipliers:\n  mystery_boost: 2.0\n", encoding="utf-8")
        with pytest.raises(CorpusLoadError, match="mystery_boost"):
            IntentReranker(path)
