"""
Selection snapshot decoding.

The column is untrusted: anything that is not {str: [non-empty str, ...]}
decodes to empty data rather than raising.
"""

import pytest

from services.crew.onboarding import snapshot


class TestDecode:
    def test_valid_object_passes_through(self):
        raw = {"vibe": ["Cozy", "Lively"], "diet": ["Vegan"]}
        assert snapshot.decode(raw) == raw

    def test_mixed_list_key_is_dropped(self):
        assert snapshot.decode({"vibe": ["Cozy", 3], "diet": ["Vegan"]}) == {"diet": ["Vegan"]}

    def test_empty_string_entry_drops_key(self):
        assert snapshot.decode({"vibe": ["Cozy", ""]}) == {}

    def test_non_list_value_is_dropped(self):
        assert snapshot.decode({"budget": "$$", "focus": {"a": 1}}) == {}

    def test_empty_list_is_kept(self):
        assert snapshot.decode({"diet": []}) == {"diet": []}

    @pytest.mark.parametrize("raw", [None, 42, "null", ["Cozy"], True, 1.5])
    def test_non_object_decodes_empty(self, raw):
        assert snapshot.decode(raw) == {}

    def test_json_string_is_parsed(self):
        assert snapshot.decode('{"vibe": ["Cozy"]}') == {"vibe": ["Cozy"]}

    def test_bytes_are_parsed(self):
        assert snapshot.decode(b'{"focus": ["Food"]}') == {"focus": ["Food"]}

    def test_unparseable_string_decodes_empty(self):
        assert snapshot.decode("{not json") == {}

    def test_deeply_nested_string_decodes_empty(self):
        assert snapshot.decode("[" * 200_000 + "]" * 200_000) == {}

    def test_decode_does_not_alias_input_lists(self):
        raw = {"vibe": ["Cozy"]}
        decoded = snapshot.decode(raw)
        decoded["vibe"].append("Loud")
        assert raw == {"vibe": ["Cozy"]}


class TestEncode:
    def test_encode_then_decode_is_identity(self):
        selections = {"vibe": ["Cozy"], "diet": [], "budget": ["$$"]}
        assert snapshot.decode(snapshot.encode(selections)) == selections
