"""Tests for keyword extraction and intent signal counting."""

from src.analysis.text_signals import (
    INTENT_KEYWORD_WEIGHTS,
    MAX_KEYWORDS,
    TextSignalExtractor,
    content_hash,
    count_sentences,
    tokenize,
)


SCENARIO = "Best budget wireless headphones review: compare top deals"


class TestTokenize:
    def test_lowercases_and_strips_punctuation(self):
        assert tokenize("Hello, World! It's GREAT.") == ["hello", "world", "its", "great"]

    def test_empty(self):
        assert tokenize("") == []

    def test_count_sentences(self):
        assert count_sentences("One. Two! Three?") == 3
        assert count_sentences("") == 0


class TestContentHash:
    def test_stable(self):
        assert content_hash("same text") == content_hash("same text")

    def test_differs_per_text(self):
        assert content_hash("text a") != content_hash("text b")

    def test_length(self):
        assert len(content_hash("anything")) == 16


class TestExtractKeywords:
    def test_scenario_ordering(self):
        extractor = TextSignalExtractor()
        keywords = extractor.extract_keywords(SCENARIO.lower())
        assert keywords == [
            "best", "budget", "review", "compare", "deals",
            "wireless", "headphones",
        ]

    def test_drops_short_tokens_and_stop_words(self):
        extractor = TextSignalExtractor()
        keywords = extractor.extract_keywords("the top pick for you and your family today")
        assert "top" not in keywords
        assert "your" not in keywords
        assert "for" not in keywords
        assert keywords == ["pick", "family", "today"]

    def test_intent_keyword_outranks_more_frequent_plain_keyword(self):
        extractor = TextSignalExtractor()
        text = "garden garden garden garden review"
        assert extractor.extract_keywords(text) == ["review", "garden"]

    def test_frequency_orders_within_group(self):
        extractor = TextSignalExtractor()
        text = "tulips roses roses daisies daisies daisies"
        assert extractor.extract_keywords(text) == ["daisies", "roses", "tulips"]

    def test_ties_keep_first_occurrence(self):
        extractor = TextSignalExtractor()
        assert extractor.extract_keywords("zebra apple mango") == ["zebra", "apple", "mango"]

    def test_truncated_to_max(self):
        extractor = TextSignalExtractor()
        text = " ".join(f"word{i:02d}" for i in range(40))
        assert len(extractor.extract_keywords(text)) == MAX_KEYWORDS

    def test_custom_max(self):
        extractor = TextSignalExtractor(max_keywords=2)
        assert extractor.extract_keywords(SCENARIO.lower()) == ["best", "budget"]

    def test_deterministic(self):
        extractor = TextSignalExtractor()
        text = "Compare the best laptops. Laptops reviewed, prices compared, deals found."
        first = extractor.extract_keywords(text)
        for _ in range(5):
            assert extractor.extract_keywords(text) == first

    def test_empty_text(self):
        assert TextSignalExtractor().extract_keywords("") == []


class TestIntentKeyword:
    def test_table_term(self):
        assert TextSignalExtractor().is_intent_keyword("review")

    def test_plural(self):
        assert TextSignalExtractor().is_intent_keyword("deals")

    def test_plain_word(self):
        assert not TextSignalExtractor().is_intent_keyword("headphones")


class TestIntentMatches:
    def test_counts_substrings_on_full_text(self):
        extractor = TextSignalExtractor()
        matches = extractor.count_intent_matches(SCENARIO)
        assert matches == {
            "best": 1, "compare": 1, "deal": 1, "budget": 1, "review": 1, "top": 1,
        }

    def test_counts_repeats(self):
        matches = TextSignalExtractor().count_intent_matches("buy now, buy later, buy")
        assert matches["buy"] == 3

    def test_multi_word_term(self):
        matches = TextSignalExtractor().count_intent_matches("How to choose a tent")
        assert matches["how to choose"] == 1

    def test_no_matches(self):
        assert TextSignalExtractor().count_intent_matches("quiet morning walk") == {}

    def test_weight_lookup(self):
        extractor = TextSignalExtractor()
        assert extractor.weight("buy") == INTENT_KEYWORD_WEIGHTS["buy"]
        assert extractor.weight("not-a-term") == 1


class TestProductMentions:
    def test_detects_patterns(self):
        mentions = TextSignalExtractor.detect_product_mentions(
            "The Sony WH1000 beats most wireless headphones at $199."
        )
        assert "sony wh1000" in mentions
        assert "wireless headphones" in mentions
        assert "$199" in mentions

    def test_deduplicates(self):
        mentions = TextSignalExtractor.detect_product_mentions("$20 or $20")
        assert mentions == ["$20"]
