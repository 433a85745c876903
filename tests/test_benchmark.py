"""Tests for the market comparison calculator."""

from competence_scorer.benchmark import calculate_market_comparison, is_selected
from competence_scorer.schema import AggregateStats, MarketBenchmark


def _benchmark(**questions) -> MarketBenchmark:
    return MarketBenchmark.model_validate({
        "benchmarks": {
            key: {"question_id": question_id, "values": values}
            for key, (question_id, values) in questions.items()
        }
    })


FREQUENCY = ("Q1", {"never": 20, "weekly": 30, "daily": 50})
TOOLS = ("T", {"text": 70, "code": 20, "none": None})


class TestIsSelected:

    def test_scalar_equality(self):
        assert is_selected("daily", "daily") is True
        assert is_selected("weekly", "daily") is False

    def test_list_membership(self):
        assert is_selected(["text", "code"], "code") is True
        assert is_selected(["text"], "code") is False

    def test_absent_answer(self):
        assert is_selected(None, "daily") is False


class TestMarketComparison:
    """Tests for per-option comparison points."""

    def test_scalar_question(self):
        stats = AggregateStats(question_distributions={"Q1": {"daily": 3, "weekly": 1}})
        result = calculate_market_comparison(
            {"Q1": "daily"}, _benchmark(freq=FREQUENCY), stats,
        )

        points = {p.label: p for p in result["Q1"]}
        assert points["daily"].user_value is True
        assert points["daily"].market_percent == 50
        assert points["daily"].internal_percent == 75
        assert points["weekly"].user_value is False
        assert points["weekly"].internal_percent == 25
        assert points["never"].internal_percent == 0

    def test_multi_select_question(self):
        stats = AggregateStats(question_distributions={"T": {"text": 2, "code": 1}})
        result = calculate_market_comparison(
            {"T": ["text", "code"]}, _benchmark(tools=TOOLS), stats,
        )

        points = {p.label: p for p in result["T"]}
        assert points["text"].internal_percent == 67
        assert points["code"].internal_percent == 33
        assert points["text"].user_value is True
        assert points["code"].user_value is True
        assert points["none"].user_value is False
        assert points["none"].market_percent is None

    def test_option_order_follows_benchmark(self):
        result = calculate_market_comparison({}, _benchmark(freq=FREQUENCY))
        assert [p.label for p in result["Q1"]] == ["never", "weekly", "daily"]

    def test_without_internal_data(self):
        result = calculate_market_comparison({"Q1": "daily"}, _benchmark(freq=FREQUENCY), None)

        for point in result["Q1"]:
            assert point.internal_percent == 0
        assert [p.user_value for p in result["Q1"]] == [False, False, True]

    def test_question_missing_from_stats(self):
        stats = AggregateStats(question_distributions={"other": {"x": 4}})
        result = calculate_market_comparison({}, _benchmark(freq=FREQUENCY), stats)
        assert all(p.internal_percent == 0 for p in result["Q1"])

    def test_internal_percent_rounds_half_up(self):
        stats = AggregateStats(question_distributions={"Q1": {"daily": 1, "weekly": 7}})
        result = calculate_market_comparison({}, _benchmark(freq=FREQUENCY), stats)

        points = {p.label: p for p in result["Q1"]}
        # 1 / 8 = 12.5%, 7 / 8 = 87.5%
        assert points["daily"].internal_percent == 13
        assert points["weekly"].internal_percent == 88

    def test_keyed_by_question_id(self):
        result = calculate_market_comparison(
            {}, _benchmark(freq=FREQUENCY, tools=TOOLS),
        )
        assert set(result) == {"Q1", "T"}

    def test_bundled_benchmark(self):
        benchmark = MarketBenchmark.model_validate({
            "schema_version": "1.0",
            "benchmarks": {"usage_frequency": {"question_id": "Q1_2", "values": {"weekly": 24}}},
        })
        result = calculate_market_comparison({"Q1_2": "weekly"}, benchmark)

        assert result["Q1_2"][0].user_value is True
        assert result["Q1_2"][0].market_percent == 24
