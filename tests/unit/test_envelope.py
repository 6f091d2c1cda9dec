"""
Unit tests for src/parity/envelope.py

Tests verify:
- Identifier detection and recursive redaction
- Identical envelopes after redaction
- Per-item differences and the bounded item sample
- Structure mismatches
"""

from src.parity.diff import Difference, DifferenceKind
from src.parity.endpoints import API_ENDPOINTS
from src.parity.envelope import (
    EnvelopeStatus,
    compare_envelopes,
    contains_identifier,
    redact,
    redact_envelope,
)

ORGS = API_ENDPOINTS["orgs"]
HEX_ID = "0123456789abcdef0123456789abcdef"


def _org(sourced_id, name, **extra):
    return {
        "sourcedId": sourced_id,
        "href": f"/orgs/{sourced_id}",
        "dateLastModified": "2024-01-01T00:00:00Z",
        "name": name,
        **extra,
    }


class TestContainsIdentifier:
    """Test contains_identifier"""

    def test_hex_token(self):
        assert contains_identifier(HEX_ID) is True

    def test_hex_token_is_case_insensitive(self):
        assert contains_identifier(HEX_ID.upper()) is True

    def test_hex_token_must_be_whole_string(self):
        assert contains_identifier(HEX_ID + "0") is False
        assert contains_identifier("id-" + HEX_ID) is False

    def test_marker_substrings(self):
        assert contains_identifier("see sourcedId") is True
        assert contains_identifier("/ims/href/1") is True

    def test_nested_containers(self):
        assert contains_identifier({"a": [{"b": HEX_ID}]}) is True
        assert contains_identifier({"a": ["plain", 1, None]}) is False

    def test_non_strings(self):
        assert contains_identifier(None) is False
        assert contains_identifier(42) is False


class TestRedact:
    """Test redact and redact_envelope"""

    def test_drops_redacted_keys(self):
        assert redact(_org("1", "School")) == {"name": "School"}

    def test_drops_fields_holding_identifiers(self):
        record = {"name": "School", "parent": {"sourcedId": HEX_ID, "type": "org"}}

        assert redact(record) == {"name": "School"}

    def test_redacts_nested_records(self):
        record = {"name": "School", "children": [{"sourcedId": "c1", "type": "org"}]}

        assert redact(record) == {"name": "School", "children": [{"type": "org"}]}

    def test_input_is_not_mutated(self):
        record = _org("1", "School")

        redact(record)

        assert "sourcedId" in record

    def test_envelope_level_keys_are_untouched(self):
        envelope = {"orgs": [_org("1", "A")], "meta": {"sourcedId": "x"}}

        result = redact_envelope(envelope, "orgs")

        assert result == {"orgs": [{"name": "A"}], "meta": {"sourcedId": "x"}}


class TestCompareEnvelopes:
    """Test compare_envelopes"""

    def test_identical_after_redaction(self):
        envelope_a = {"orgs": [_org("1", "A"), _org("2", "B")]}
        envelope_b = {"orgs": [_org("x", "A"), _org("y", "B")]}

        result = compare_envelopes(envelope_a, envelope_b, ORGS)

        assert result.status == EnvelopeStatus.IDENTICAL
        assert result.identical is True
        assert result.count_a == result.count_b == 2
        assert result.differences == ()

    def test_field_change_in_one_item(self):
        envelope_a = {"orgs": [_org("aaaaaaaaaa", "A"), _org("bbbbbbbbbb", "B")]}
        envelope_b = {"orgs": [_org("cccccccccc", "A"), _org("dddddddddd", "C")]}

        result = compare_envelopes(envelope_a, envelope_b, ORGS)

        assert result.status == EnvelopeStatus.DIFFERENT
        assert result.differences == (
            Difference("orgs[1].name", DifferenceKind.VALUE, "B", "C"),
        )
        assert result.differing_items == 1
        item = result.item_differences[0]
        assert item.index == 1
        assert item.key_a == "bbbbbbbb"
        assert item.key_b == "dddddddd"
        assert item.title_a == "B"
        assert item.payload_a == {"name": "B"}
        assert item.differences == (Difference("name", DifferenceKind.VALUE, "B", "C"),)

    def test_item_sample_is_bounded(self):
        envelope_a = {"orgs": [_org(str(i), f"A{i}") for i in range(5)]}
        envelope_b = {"orgs": [_org(str(i), f"B{i}") for i in range(5)]}

        result = compare_envelopes(envelope_a, envelope_b, ORGS)

        assert result.differing_items == 5
        assert len(result.item_differences) == 3
        assert [item.index for item in result.item_differences] == [0, 1, 2]

    def test_item_count_difference(self):
        envelope_a = {"orgs": [_org("1", "A"), _org("2", "B")]}
        envelope_b = {"orgs": [_org("1", "A")]}

        result = compare_envelopes(envelope_a, envelope_b, ORGS)

        assert result.status == EnvelopeStatus.DIFFERENT
        assert Difference("orgs", DifferenceKind.LENGTH, 2, 1) in result.differences
        assert result.item_differences == ()
        assert (result.count_a, result.count_b) == (2, 1)

    def test_envelope_level_difference(self):
        envelope_a = {"orgs": [_org("1", "A")], "statusInfoSet": []}
        envelope_b = {"orgs": [_org("1", "A")]}

        result = compare_envelopes(envelope_a, envelope_b, ORGS)

        assert result.status == EnvelopeStatus.DIFFERENT
        assert result.differences == (
            Difference("statusInfoSet", DifferenceKind.MISSING_IN_B, [], None),
        )
        assert result.differing_items == 0

    def test_missing_collection_is_structure_mismatch(self):
        envelope_a = {"orgs": [_org("1", "A")]}
        envelope_b = {"error": "not found"}

        result = compare_envelopes(envelope_a, envelope_b, ORGS)

        assert result.status == EnvelopeStatus.STRUCTURE_MISMATCH
        assert result.identical is False
        assert result.count_a == 1
        assert result.count_b == 0
        assert "orgs" in result.message

    def test_collection_that_is_not_a_list(self):
        result = compare_envelopes({"orgs": {}}, {"orgs": []}, ORGS)

        assert result.status == EnvelopeStatus.STRUCTURE_MISMATCH

    def test_users_collection_for_role_endpoints(self):
        students = API_ENDPOINTS["students"]
        envelope = {"users": [{"sourcedId": "1", "username": "s1"}]}

        result = compare_envelopes(envelope, dict(envelope), students)

        assert result.identical is True
