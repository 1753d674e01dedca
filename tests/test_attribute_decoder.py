"""
Heuristic identifier decoding: marker characters → bonus features.
"""
from app.scoring.attribute_decoder import FeatureRule, HeuristicVinDecoder


class TestHeuristicVinDecoder:
    decoder = HeuristicVinDecoder()

    def test_no_markers(self):
        assert self.decoder.detect("ABCDEFJK012356789") == []

    def test_missing_identifier(self):
        assert self.decoder.detect(None) == []
        assert self.decoder.detect("") == []

    def test_short_identifier_ignored(self):
        # Contains L and S, but shorter than 10 characters
        assert self.decoder.detect("LS12345") == []

    def test_single_feature(self):
        features = self.decoder.detect("ABCDEFJK01235678N")
        assert [f.name for f in features] == ["Navigation System"]
        assert features[0].value == 1_200

    def test_case_insensitive(self):
        features = self.decoder.detect("abcdefjk01235678n")
        assert [f.name for f in features] == ["Navigation System"]

    def test_capped_at_three_in_rule_order(self):
        # L, S, N, P, R and 4 all present: only the first three rules count
        features = self.decoder.detect("LSNPR4ABCDEFJK012")
        assert [f.name for f in features] == [
            "Luxury Package",
            "Sport Package",
            "Navigation System",
        ]
        assert sum(f.value for f in features) == 2_500 + 1_800 + 1_200

    def test_rule_order_not_identifier_order(self):
        # 4 appears before S in the identifier, Sport is still reported first
        features = self.decoder.detect("4ABCDEFJK0123567S")
        assert [f.name for f in features] == ["Sport Package", "All-Wheel Drive"]

    def test_custom_rules_and_limit(self):
        decoder = HeuristicVinDecoder(rules=[FeatureRule("Tow Hitch", 400, "Z")], limit=1)
        assert [f.value for f in decoder.detect("ZZZZZZZZZZ")] == [400]
