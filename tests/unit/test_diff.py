"""
Unit tests for src/parity/diff.py

Tests verify:
- Structural diffing with located paths
- Field comparison policy (skipped columns, boolean format, JSON text)
- Array reorder tolerance for entity-reference arrays, on either side
- Values nested past the interpreter recursion limit
- Record display helpers
"""

from src.parity.align import Row
from src.parity.diff import (
    Difference,
    DifferenceKind,
    DiffPolicy,
    RecordDifference,
    compare_field,
    count_by_kind,
    diff_rows,
    diff_values,
    display_key,
    display_title,
)
from src.parity.normalize import NULL, normalize


def _diff(a, b, **kwargs):
    return diff_values(normalize(a), normalize(b), **kwargs)


class TestDiffValues:
    """Test diff_values"""

    def test_equal_values_have_no_differences(self):
        value = {"a": [1, {"b": "x"}], "c": None}

        assert _diff(value, value) == []

    def test_scalar_change_at_root(self):
        assert _diff(1, 2) == [Difference("root", DifferenceKind.VALUE, 1, 2)]

    def test_nested_path(self):
        result = _diff({"a": [{"b": 1}]}, {"a": [{"b": 2}]})

        assert result == [Difference("a[0].b", DifferenceKind.VALUE, 1, 2)]

    def test_explicit_path_prefix(self):
        result = diff_values(normalize({"x": 1}), normalize({"x": 2}), path="metadata")

        assert result == [Difference("metadata.x", DifferenceKind.VALUE, 1, 2)]

    def test_number_and_string_are_different(self):
        assert _diff(1, "1") == [Difference("root", DifferenceKind.VALUE, 1, "1")]

    def test_null_against_value(self):
        assert _diff(None, "x") == [Difference("root", DifferenceKind.VALUE, None, "x")]

    def test_null_against_null(self):
        assert diff_values(NULL, NULL) == []

    def test_absent_against_absent(self):
        assert diff_values(None, None) == []

    def test_array_against_object_is_type_difference(self):
        assert _diff([1], {"a": 1}) == [
            Difference("root", DifferenceKind.TYPE, "array", "object")
        ]

    def test_length_difference_then_common_prefix(self):
        result = _diff([1, 2, 3], [1, 5])

        assert result == [
            Difference("root", DifferenceKind.LENGTH, 3, 2),
            Difference("[1]", DifferenceKind.VALUE, 2, 5),
        ]

    def test_missing_keys_on_each_side(self):
        result = _diff({"a": 1, "b": 2}, {"a": 1, "c": 3})

        assert result == [
            Difference("b", DifferenceKind.MISSING_IN_B, 2, None),
            Difference("c", DifferenceKind.MISSING_IN_A, None, 3),
        ]

    def test_object_against_scalar(self):
        result = _diff({"a": 1}, "x")

        assert result == [Difference("root", DifferenceKind.VALUE, {"a": 1}, "x")]

    def test_depth_bound_reports_type_difference(self):
        result = _diff([[1]], [[2]], max_depth=1)

        assert result == [Difference("[0]", DifferenceKind.TYPE, "array", "array")]

    def test_depth_bound_equal_containers(self):
        assert _diff([[1]], [[1]], max_depth=1) == []

    def test_deeply_nested_values_do_not_overflow(self):
        a = b = "leaf"
        for _ in range(200):
            a = [a]
            b = [b]

        assert _diff(a, b) == []

    def test_to_dict_uses_kind_value(self):
        difference = Difference("a", DifferenceKind.LENGTH, 1, 2)

        assert difference.to_dict() == {
            "path": "a",
            "kind": "length",
            "value_a": 1,
            "value_b": 2,
        }


class TestDiffPolicy:
    """Test DiffPolicy.should_compare"""

    def test_key_field_is_skipped(self):
        assert DiffPolicy().should_compare("sourcedId") is False

    def test_volatile_and_derived_columns_are_skipped(self):
        policy = DiffPolicy()

        assert policy.should_compare("dateLastModified") is False
        assert policy.should_compare("sort_unique_id") is False
        assert policy.should_compare("naturalKey_courseCode") is False

    def test_identifier_columns_are_skipped(self):
        assert DiffPolicy().should_compare("schoolSourcedId") is False

    def test_columns_missing_on_b_are_skipped(self):
        policy = DiffPolicy(columns_b=frozenset({"name"}))

        assert policy.should_compare("name") is True
        assert policy.should_compare("title") is False

    def test_regular_column(self):
        assert DiffPolicy().should_compare("givenName") is True


class TestCompareField:
    """Test compare_field"""

    def test_both_null(self):
        assert compare_field("email", None, None) == []

    def test_null_against_value(self):
        assert compare_field("email", None, "a@b.c") == [
            Difference("email", DifferenceKind.VALUE, None, "a@b.c")
        ]

    def test_boolean_format_native_against_string(self):
        assert compare_field("enabledUser", True, "true") == [
            Difference("enabledUser", DifferenceKind.BOOLEAN_FORMAT, True, "true")
        ]

    def test_boolean_format_string_against_native(self):
        assert compare_field("enabledUser", "false", False) == [
            Difference("enabledUser", DifferenceKind.BOOLEAN_FORMAT, "false", False)
        ]

    def test_mismatched_booleans_are_value_differences(self):
        assert compare_field("enabledUser", True, "false") == [
            Difference("enabledUser", DifferenceKind.VALUE, True, "false")
        ]

    def test_object_against_equivalent_json_text(self):
        assert compare_field("metadata", {"grade": "09"}, '{"grade": "09"}') == []

    def test_object_against_changed_json_text(self):
        assert compare_field("metadata", {"grade": "09"}, '{"grade": "10"}') == [
            Difference("metadata.grade", DifferenceKind.VALUE, "09", "10")
        ]

    def test_object_against_unparseable_text(self):
        assert compare_field("metadata", {"a": 1}, "{oops") == [
            Difference("metadata", DifferenceKind.JSON_PARSE_ERROR, {"a": 1}, "{oops")
        ]

    def test_text_against_object(self):
        assert compare_field("metadata", '{"a": 1}', {"a": 1}) == []

    def test_array_against_reordered_json_text(self):
        array_a = [{"sourcedId": "b", "type": "org"}, {"sourcedId": "a", "type": "org"}]
        text_b = '[{"sourcedId": "a", "type": "org"}, {"sourcedId": "b", "type": "org"}]'

        assert compare_field("orgs", array_a, text_b) == []

    def test_array_reorder_by_type_when_no_key(self):
        array_a = [{"type": "email", "v": 1}, {"type": "district", "v": 2}]
        text_b = '[{"type": "district", "v": 2}, {"type": "email", "v": 1}]'

        assert compare_field("userIds", array_a, text_b) == []

    def test_array_against_unparseable_text(self):
        assert compare_field("orgs", [1], "[1,") == [
            Difference("orgs", DifferenceKind.ARRAY_PARSE_ERROR, [1], "[1,")
        ]

    def test_text_against_array(self):
        assert compare_field("grades", '["09", "10"]', ["09", "10"]) == []

    def test_text_against_array_unparseable(self):
        assert compare_field("grades", "[09", ["09"]) == [
            Difference("grades", DifferenceKind.ARRAY_PARSE_ERROR, "[09", ["09"])
        ]

    def test_reordered_text_against_array(self):
        text = '[{"type": "b"}, {"type": "a"}]'

        assert compare_field("roles", text, [{"type": "a"}, {"type": "b"}]) == []

    def test_reorder_tolerance_is_symmetric(self):
        native = [{"sourcedId": "2"}, {"sourcedId": "1"}]
        text = '[{"sourcedId": "1"}, {"sourcedId": "2"}]'

        assert compare_field("classes", native, text) == []
        assert compare_field("classes", text, native) == []

    def test_deep_nesting_equal_on_both_sides(self):
        value = "leaf"
        for _ in range(2000):
            value = [value]

        assert compare_field("metadata", value, value) == []

    def test_deep_nesting_with_changed_leaf(self):
        a, b = "leaf", "other"
        for _ in range(2000):
            a = {"child": a}
            b = {"child": b}

        assert compare_field("metadata", a, b) == [
            Difference("metadata", DifferenceKind.TYPE, "object", "object")
        ]

    def test_native_arrays_keep_order(self):
        result = compare_field("grades", ["09", "10"], ["10", "09"])

        assert count_by_kind(result) == {"value": 2}


class TestDiffRows:
    """Test diff_rows"""

    def test_row_pair(self):
        row_a = Row("users", "postgres", {
            "sourcedId": "1",
            "username": "alice",
            "enabledUser": True,
            "dateLastModified": "2024-01-01",
            "onlyOnA": 1,
        })
        row_b = Row("users", "mssql", {
            "sourcedId": "2",
            "username": "alicia",
            "enabledUser": "true",
            "dateLastModified": "2024-02-02",
        })

        result = diff_rows(row_a, row_b)

        assert result == [
            Difference("username", DifferenceKind.VALUE, "alice", "alicia"),
            Difference("enabledUser", DifferenceKind.BOOLEAN_FORMAT, True, "true"),
        ]

    def test_identical_rows(self):
        data = {"sourcedId": "1", "metadata": {"a": 1}}
        row_a = Row("users", "postgres", data)
        row_b = Row("users", "mssql", {"sourcedId": "1", "metadata": '{"a": 1}'})

        assert diff_rows(row_a, row_b) == []

    def test_nan_score_equals_itself(self):
        row = Row("results", "postgres", {"sourcedId": "1", "score": float("nan")})

        assert diff_rows(row, row) == []

    def test_deeply_nested_json_text_does_not_raise(self):
        row_a = Row("users", "postgres", {"sourcedId": "1", "metadata": [1]})
        row_b = Row("users", "mssql", {"sourcedId": "1", "metadata": "[" * 2000 + "]" * 2000})

        (difference,) = diff_rows(row_a, row_b)

        assert difference.path == "metadata"
        assert difference.kind in (DifferenceKind.TYPE, DifferenceKind.ARRAY_PARSE_ERROR)

    def test_count_by_kind(self):
        differences = [
            Difference("a", DifferenceKind.VALUE),
            Difference("b", DifferenceKind.VALUE),
            Difference("c", DifferenceKind.BOOLEAN_FORMAT),
        ]

        assert count_by_kind(differences) == {"value": 2, "boolean_format": 1}


class TestRecordDisplay:
    """Test display helpers and RecordDifference"""

    def test_display_key_is_truncated(self):
        assert display_key({"sourcedId": "0123456789abcdef"}) == "01234567"

    def test_display_key_missing(self):
        assert display_key({}) == "N/A"

    def test_display_title_preference(self):
        assert display_title({"name": "n", "title": "t", "username": "u"}) == "u"
        assert display_title({"name": "n", "title": "t"}) == "t"
        assert display_title({"name": "n"}) == "n"
        assert display_title({}) == "N/A"

    def test_from_records(self):
        difference = Difference("username", DifferenceKind.VALUE, "a", "b")

        record = RecordDifference.from_records(
            4,
            [difference],
            {"sourcedId": "aaaaaaaaaa", "username": "a"},
            {"sourcedId": "bbbbbbbbbb", "username": "b"},
        )

        assert record.to_dict() == {
            "index": 4,
            "key_a": "aaaaaaaa",
            "key_b": "bbbbbbbb",
            "title_a": "a",
            "title_b": "b",
            "differences": [difference.to_dict()],
            "payload_a": {"sourcedId": "aaaaaaaaaa", "username": "a"},
            "payload_b": {"sourcedId": "bbbbbbbbbb", "username": "b"},
        }
