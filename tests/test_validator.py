"""Tests for selection validation."""

import pytest

from typed_selections.config import SelectionLimits
from typed_selections.errors import (
    DuplicateField,
    InvalidCalculationArgs,
    InvalidFieldSelection,
    InvalidSelectionFormat,
    InvalidUnionVariant,
    MissingCalculationArgs,
    RecursionDepthExceeded,
    RequiresFieldSelection,
    SelectionError,
    UnknownComplexField,
    UnknownPrimitiveField,
)
from typed_selections.validator import SelectionValidator, check_selection, validate


class TestPrimitiveSelections:
    """Tests for bare field names."""

    def test_valid_primitives(self, todo):
        """Test that declared primitives validate."""
        assert validate(todo, ["id", "title", "done", "tags"]) is None

    def test_unknown_primitive(self, todo):
        """Test an undeclared bare name."""
        error = validate(todo, ["id", "nope"])
        assert isinstance(error, UnknownPrimitiveField)
        assert error.path == ("nope",)
        assert error.entity_name == "Todo"

    def test_complex_field_as_bare_name(self, todo):
        """Test that a relationship needs a sub-selection."""
        error = validate(todo, ["author"])
        assert isinstance(error, RequiresFieldSelection)
        assert error.path == ("author",)

    def test_empty_top_level(self, todo):
        """Test that an empty selection is rejected."""
        error = validate(todo, [])
        assert isinstance(error, RequiresFieldSelection)
        assert error.path == ()
        assert error.location == "<root>"

    def test_selection_must_be_list(self, todo):
        """Test that the top level must be a list."""
        assert isinstance(validate(todo, "id"), InvalidSelectionFormat)
        assert isinstance(validate(todo, {"author": ["id"]}), InvalidSelectionFormat)

    def test_element_must_be_string_or_object(self, todo):
        """Test that numbers are not selection elements."""
        assert isinstance(validate(todo, ["id", 3]), InvalidSelectionFormat)

    def test_empty_object_element(self, todo):
        """Test that an empty selection object is rejected."""
        assert isinstance(validate(todo, [{}]), InvalidSelectionFormat)


class TestComplexSelections:
    """Tests for relationships and nested maps."""

    def test_relationship(self, todo):
        """Test a nested relationship selection."""
        assert validate(todo, ["id", {"author": ["name", "email"]}]) is None

    def test_unknown_complex_field(self, todo):
        """Test an undeclared object key."""
        error = validate(todo, [{"owner": ["id"]}])
        assert isinstance(error, UnknownComplexField)
        assert error.path == ("owner",)

    def test_primitive_with_sub_selection(self, todo):
        """Test that primitives cannot be expanded."""
        error = validate(todo, [{"title": ["x"]}])
        assert isinstance(error, InvalidFieldSelection)
        assert error.path == ("title",)

    def test_relationship_value_must_be_list(self, todo):
        """Test a relationship selected with a string."""
        error = validate(todo, [{"author": "name"}])
        assert isinstance(error, InvalidSelectionFormat)
        assert error.path == ("author",)

    def test_relationship_empty_list(self, todo):
        """Test a relationship selected with nothing."""
        error = validate(todo, [{"author": []}])
        assert isinstance(error, RequiresFieldSelection)
        assert error.path == ("author",)

    def test_nested_error_path(self, todo):
        """Test that errors carry the full path from the root."""
        error = validate(todo, [{"author": [{"todos": ["id", "bogus"]}]}])
        assert isinstance(error, UnknownPrimitiveField)
        assert error.path == ("author", "todos", "bogus")
        assert error.location == "author.todos.bogus"
        assert error.entity_name == "Todo"

    def test_flat_map_primitives(self, todo):
        """Test selecting from a flat nested map."""
        assert validate(todo, [{"metadata": ["priority", "notes"]}]) is None

    def test_flat_map_rejects_objects(self, todo):
        """Test that a flat map has no complex fields to expand."""
        error = validate(todo, [{"metadata": [{"owner": ["id"]}]}])
        assert isinstance(error, UnknownComplexField)
        assert error.path == ("metadata", "owner")
        error = validate(todo, [{"metadata": [{"priority": ["x"]}]}])
        assert isinstance(error, InvalidFieldSelection)

    def test_cyclic_schema(self, todo):
        """Test that cycles in the schema do not affect validation."""
        selection = [{"author": [{"best_friend": [{"todos": [{"author": ["name"]}]}]}]}]
        assert validate(todo, selection) is None

    def test_non_string_key(self, todo):
        """Test that object keys must be strings."""
        assert isinstance(validate(todo, [{1: ["id"]}]), InvalidSelectionFormat)


class TestUnionSelections:
    """Tests for union field selections."""

    def test_tag_and_variants(self, todo):
        """Test selecting the tag, a scalar variant and an entity variant."""
        selection = [{"content": ["type", "note", {"text": ["text"], "image": ["url"]}]}]
        assert validate(todo, selection) is None

    def test_unknown_tag(self, todo):
        """Test a bare tag that the union does not declare."""
        error = validate(todo, [{"content": ["video"]}])
        assert isinstance(error, InvalidUnionVariant)
        assert error.path == ("content", "video")
        assert error.union_name == "Content"

    def test_unknown_variant_object(self, todo):
        """Test an object keyed by an undeclared tag."""
        error = validate(todo, [{"content": [{"video": ["url"]}]}])
        assert isinstance(error, InvalidUnionVariant)
        assert error.tag == "video"

    def test_entity_variant_needs_fields(self, todo):
        """Test that an entity-valued variant cannot be picked bare."""
        error = validate(todo, [{"content": ["text"]}])
        assert isinstance(error, RequiresFieldSelection)
        assert error.path == ("content", "text")

    def test_scalar_variant_rejects_fields(self, todo):
        """Test that a scalar variant cannot be expanded."""
        error = validate(todo, [{"content": [{"note": ["x"]}]}])
        assert isinstance(error, InvalidFieldSelection)

    def test_variant_field_errors(self, todo):
        """Test errors inside a variant's selection."""
        error = validate(todo, [{"content": [{"image": ["height"]}]}])
        assert isinstance(error, UnknownPrimitiveField)
        assert error.path == ("content", "image", "height")


class TestCalculationSelections:
    """Tests for calculation selections."""

    def test_scalar_calculation_with_args(self, todo):
        """Test a parameterized scalar calculation."""
        assert validate(todo, [{"summary": {"args": {"length": 10}}}]) is None

    def test_missing_args(self, todo):
        """Test omitting args for a calculation with required arguments."""
        error = validate(todo, [{"summary": {}}])
        assert isinstance(error, MissingCalculationArgs)
        assert error.required == ["length"]
        assert error.path == ("summary",)

    def test_missing_required_argument(self, todo):
        """Test args without the required argument."""
        error = validate(todo, [{"summary": {"args": {}}}])
        assert isinstance(error, InvalidCalculationArgs)
        assert error.argument == "length"

    def test_wrong_argument_type(self, todo):
        """Test an argument of the wrong scalar kind."""
        error = validate(todo, [{"summary": {"args": {"length": "ten"}}}])
        assert isinstance(error, InvalidCalculationArgs)
        assert error.fields == ["length"]

    def test_unknown_argument(self, todo):
        """Test an undeclared argument name."""
        error = validate(todo, [{"summary": {"args": {"length": 1, "size": 2}}}])
        assert isinstance(error, InvalidCalculationArgs)
        assert error.argument == "size"

    def test_args_must_be_object(self, todo):
        """Test args given as a list."""
        error = validate(todo, [{"summary": {"args": [10]}}])
        assert isinstance(error, InvalidCalculationArgs)

    def test_args_on_argumentless_calculation(self, todo):
        """Test passing arguments a calculation does not declare."""
        assert validate(todo, [{"word_count": {}}]) is None
        assert validate(todo, [{"word_count": {"args": {}}}]) is None
        error = validate(todo, [{"word_count": {"args": {"x": 1}}}])
        assert isinstance(error, InvalidCalculationArgs)

    def test_scalar_calculation_rejects_fields(self, todo):
        """Test that a scalar calculation cannot be expanded."""
        error = validate(todo, [{"summary": {"args": {"length": 1}, "fields": ["x"]}}])
        assert isinstance(error, InvalidFieldSelection)
        assert error.path == ("summary",)

    def test_entity_calculation_requires_fields(self, todo):
        """Test that an entity calculation needs fields."""
        error = validate(todo, [{"related": {"args": {"limit": 2}}}])
        assert isinstance(error, RequiresFieldSelection)

    def test_entity_calculation_with_fields(self, todo):
        """Test an entity calculation with optional args and fields."""
        assert validate(todo, [{"related": {"args": {"limit": 2}, "fields": ["id"]}}]) is None
        assert validate(todo, [{"related": {"fields": ["id"]}}]) is None

    def test_list_shorthand(self, todo):
        """Test the list shorthand for an entity calculation without required args."""
        assert validate(todo, [{"related": ["id", {"author": ["name"]}]}]) is None

    def test_list_shorthand_needs_entity_return(self, todo):
        """Test the list shorthand on a scalar calculation."""
        assert isinstance(validate(todo, [{"word_count": ["x"]}]), InvalidFieldSelection)
        assert isinstance(validate(todo, [{"summary": ["x"]}]), MissingCalculationArgs)

    def test_unexpected_keys(self, todo):
        """Test unknown keys in a calculation object."""
        error = validate(todo, [{"summary": {"args": {"length": 1}, "extra": True}}])
        assert isinstance(error, InvalidSelectionFormat)

    def test_calculation_value_shape(self, todo):
        """Test a calculation selected with a string."""
        assert isinstance(validate(todo, [{"summary": "x"}]), InvalidSelectionFormat)

    def test_duplicate_parameterized_calculation(self, todo):
        """Test the same calculation selected twice with arguments."""
        selection = [
            {"summary": {"args": {"length": 1}}},
            {"summary": {"args": {"length": 2}}},
        ]
        error = validate(todo, selection)
        assert isinstance(error, DuplicateField)
        assert error.path == ("summary",)

    def test_calculation_with_and_without_args(self, todo):
        """Test a calculation picked once with args and once without."""
        selection = [{"related": ["title"]}, {"related": {"args": {"limit": 3}, "fields": ["id"]}}]
        error = validate(todo, selection)
        assert isinstance(error, DuplicateField)
        assert error.path == ("related",)

    def test_absent_args_match_empty_args(self, todo):
        """Test that omitting args is the same as passing no arguments."""
        selection = [{"related": {"fields": ["id"]}}, {"related": {"args": {}, "fields": ["title"]}}]
        assert validate(todo, selection) is None
        assert validate(todo, [{"word_count": {}}, {"word_count": {"args": {}}}]) is None

    def test_repeated_calculation_same_args(self, todo):
        """Test the same calculation picked twice with equal arguments."""
        selection = [{"summary": {"args": {"length": 1}}}, {"summary": {"args": {"length": 1}}}]
        assert validate(todo, selection) is None

    def test_repeated_relationship_is_allowed(self, todo):
        """Test that repeated plain keys are left to the projector to merge."""
        assert validate(todo, [{"author": ["id"]}, {"author": ["name"]}]) is None


class TestLimits:
    """Tests for selection depth limits."""

    def test_depth_exceeded(self, todo):
        """Test nesting beyond the configured depth."""
        limits = SelectionLimits(max_depth=2)
        error = validate(todo, [{"author": [{"todos": ["id"]}]}], limits)
        assert isinstance(error, RecursionDepthExceeded)
        assert error.path == ("author", "todos")
        assert error.max_depth == 2

    def test_depth_within_limit(self, todo):
        """Test nesting exactly at the limit."""
        limits = SelectionLimits(max_depth=2)
        assert validate(todo, [{"author": ["id"]}], limits) is None

    def test_invalid_limit(self):
        """Test that max_depth must be positive."""
        with pytest.raises(ValueError):
            SelectionLimits(max_depth=0)

    def test_validator_instance(self, todo):
        """Test using the validator class directly."""
        validator = SelectionValidator(SelectionLimits(max_depth=1))
        validator.check(todo, ["id"])
        with pytest.raises(RecursionDepthExceeded):
            validator.check(todo, [{"author": ["id"]}])


class TestErrors:
    """Tests for error reporting."""

    def test_check_selection_raises(self, todo):
        """Test that check_selection raises the first error."""
        with pytest.raises(SelectionError) as exc_info:
            check_selection(todo, ["bogus", {"owner": ["id"]}])
        assert isinstance(exc_info.value, UnknownPrimitiveField)

    def test_to_dict(self, todo):
        """Test the client-facing payload."""
        error = validate(todo, [{"author": ["nope"]}])
        assert error.to_dict() == {
            "code": "unknown_primitive_field",
            "message": "Unknown field 'nope' on 'User'",
            "path": ["author", "nope"],
            "fields": ["nope"],
        }

    def test_determinism(self, todo):
        """Test that the same input yields the same error."""
        first = validate(todo, [{"content": ["video"]}])
        second = validate(todo, [{"content": ["video"]}])
        assert first.to_dict() == second.to_dict()
