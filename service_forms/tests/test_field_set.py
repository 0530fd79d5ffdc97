"""
Unit tests for ResourceFieldSet and field visibility.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from service_forms.app.conditions.models import And, Comparison, Predicate
from service_forms.app.fields import (
    FieldDescriptor, FieldState, Group, ResourceFieldSet, Section, Select, Text
)
from shared.config import FormsConfig
from shared.errors import CircularDependencyError, SchemaDefinitionError, UnknownFieldError


def single(field):
    """Field set holding one field."""
    return ResourceFieldSet.from_schema([field], resource="test")


class TestFieldVisibility:
    """Test cases for field-level visibility."""

    def test_shows_field_by_default(self):
        """Test fields without conditions are visible."""
        fields = single(Text.make("Name"))

        assert fields.is_visible("name", {}) is True
        assert fields.is_visible("name", {"name": "John"}) is True

    def test_depends_on(self):
        """Test dependsOn hides the field until the condition holds."""
        fields = single(Text.make("Company Name").depends_on("type", "business"))

        assert fields.is_visible("company_name", {"type": "personal"}) is False
        assert fields.is_visible("company_name", {"type": "business"}) is True
        assert fields.is_visible("company_name", {}) is False

    def test_depends_on_not_equal(self):
        """Test dependsOn with the != operator."""
        fields = single(Text.make("Reason").depends_on("status", "approved", "!="))

        assert fields.is_visible("reason", {"status": "pending"}) is True
        assert fields.is_visible("reason", {"status": "approved"}) is False

    def test_depends_on_greater_than(self):
        """Test dependsOn with the > operator."""
        fields = single(Text.make("Discount Reason").depends_on("quantity", 10, ">"))

        assert fields.is_visible("discount_reason", {"quantity": 5}) is False
        assert fields.is_visible("discount_reason", {"quantity": 10}) is False
        assert fields.is_visible("discount_reason", {"quantity": 15}) is True
        assert fields.is_visible("discount_reason", {"quantity": "15"}) is True

    def test_depends_on_in(self):
        """Test visibility driven by list membership."""
        fields = single(Text.make("Tax ID", "tax_id").depends_on("country", ["DE", "FR"], "in"))

        assert fields.is_visible("tax_id", {"country": "DE"}) is True
        assert fields.is_visible("tax_id", {"country": "US"}) is False
        assert fields.is_visible("tax_id", {}) is False

    def test_depends_on_empty(self):
        """Test dependsOn with the empty operator."""
        fields = single(Text.make("Other Description").depends_on("category", None, "empty"))

        assert fields.is_visible("other_description", {"category": ""}) is True
        assert fields.is_visible("other_description", {"category": None}) is True
        assert fields.is_visible("other_description", {"category": "electronics"}) is False

    def test_depends_on_not_empty(self):
        """Test dependsOn with the not_empty operator."""
        fields = single(Text.make("Category Details").depends_on("category", None, "not_empty"))

        assert fields.is_visible("category_details", {"category": ""}) is False
        assert fields.is_visible("category_details", {"category": None}) is False
        assert fields.is_visible("category_details", {"category": "electronics"}) is True

    def test_depends_on_null_value(self):
        """Test != against a null expected value."""
        fields = single(Text.make("Optional Details").depends_on("category", None, "!="))

        assert fields.is_visible("optional_details", {"category": "electronics"}) is True
        assert fields.is_visible("optional_details", {"category": None}) is False

    def test_depends_on_all(self):
        """Test AND logic across dependsOn conditions."""
        fields = single(Text.make("VIP Discount").depends_on_all([
            ("is_vip", True),
            ("total", 100, ">="),
        ]))

        assert fields.is_visible("vip_discount", {"is_vip": True, "total": 150}) is True
        assert fields.is_visible("vip_discount", {"is_vip": False, "total": 150}) is False
        assert fields.is_visible("vip_discount", {"is_vip": True, "total": 50}) is False
        assert fields.is_visible("vip_discount", {"is_vip": False, "total": 50}) is False

    def test_depends_on_any(self):
        """Test OR logic across dependsOn conditions."""
        fields = single(Text.make("Special Note").depends_on_any([
            ("is_urgent", True),
            ("is_priority", True),
        ]))

        assert fields.is_visible("special_note", {"is_urgent": True, "is_priority": False}) is True
        assert fields.is_visible("special_note", {"is_urgent": False, "is_priority": True}) is True
        assert fields.is_visible("special_note", {"is_urgent": False, "is_priority": False}) is False

    def test_show_when_callback(self):
        """Test showWhen with a predicate."""
        fields = single(Text.make("Admin Note").show_when(lambda data: data.get("role") == "admin"))

        assert fields.is_visible("admin_note", {"role": "admin"}) is True
        assert fields.is_visible("admin_note", {"role": "user"}) is False
        assert fields.is_visible("admin_note", {}) is False

    def test_hide_when_callback(self):
        """Test hideWhen with a predicate."""
        fields = single(Text.make("Public Note").hide_when(lambda data: data.get("is_private") is True))

        assert fields.is_visible("public_note", {"is_private": False}) is True
        assert fields.is_visible("public_note", {"is_private": True}) is False

    def test_show_when_structured(self):
        """Test showWhen with a structured condition."""
        fields = single(Text.make("Billing Address").show_when({
            "type": "comparison",
            "field": "needs_billing",
            "operator": "=",
            "value": True,
        }))

        assert fields.is_visible("billing_address", {"needs_billing": True}) is True
        assert fields.is_visible("billing_address", {"needs_billing": False}) is False

    def test_hide_when_structured(self):
        """Test hideWhen with a structured condition."""
        fields = single(Text.make("Details").hide_when({
            "type": "comparison",
            "field": "type",
            "operator": "=",
            "value": "simple",
        }))

        assert fields.is_visible("details", {"type": "simple"}) is False
        assert fields.is_visible("details", {"type": "advanced"}) is True

    def test_combined_visibility_rules(self):
        """Test dependsOn, showWhen and hideWhen must all agree."""
        fields = single(
            Text.make("Shipping Notes")
            .depends_on("delivery", "ship")
            .show_when({"op": ">", "field": "weight", "value": 0})
            .hide_when({"op": "=", "field": "digital", "value": True})
        )

        assert fields.is_visible("shipping_notes", {"delivery": "ship", "weight": 2}) is True
        assert fields.is_visible("shipping_notes", {"delivery": "ship", "weight": 2, "digital": True}) is False
        assert fields.is_visible("shipping_notes", {"delivery": "pickup", "weight": 2}) is False
        assert fields.is_visible("shipping_notes", {"delivery": "ship", "weight": 0}) is False

    def test_contains_for_arrays(self):
        """Test contains and not_contains against list values."""
        fields = ResourceFieldSet.from_schema([
            Text.make("Admin Features").depends_on("roles", "admin", "contains"),
            Text.make("Non-Admin Features").depends_on("roles", "admin", "not_contains"),
        ])

        assert fields.is_visible("admin_features", {"roles": ["user", "admin"]}) is True
        assert fields.is_visible("admin_features", {"roles": ["user", "editor"]}) is False
        assert fields.is_visible("non_admin_features", {"roles": ["user", "admin"]}) is False
        assert fields.is_visible("non_admin_features", {"roles": ["user", "editor"]}) is True


class TestRequiredAndDisabled:
    """Test cases for required and disabled concerns."""

    def test_required_when(self):
        """Test requiredWhen."""
        fields = single(Text.make("Tax Number").required_when("country", "DE"))

        assert fields.is_required("tax_number", {"country": "DE"}) is True
        assert fields.is_required("tax_number", {"country": "US"}) is False

    def test_static_required(self):
        """Test the static required flag is the default."""
        fields = single(Text.make("Email").rules("required|email"))

        assert fields.is_required("email", {}) is True

    def test_required_defaults_false(self):
        """Test fields are optional without a condition."""
        assert single(Text.make("Email")).is_required("email", {}) is False

    def test_disabled_when(self):
        """Test disabledWhen."""
        fields = single(Text.make("Email").disabled_when("locked", True))

        assert fields.is_disabled("email", {"locked": True}) is True
        assert fields.is_disabled("email", {"locked": False}) is False

    def test_disabled_defaults_false(self):
        """Test fields are enabled without a condition."""
        assert single(Text.make("Email")).is_disabled("email", {"locked": True}) is False

    def test_required_when_structured(self):
        """Test requiredWhen with a nested condition."""
        fields = single(Text.make("VAT").required_when({
            "and": [
                {"op": "=", "field": "business", "value": True},
                {"op": "in", "field": "country", "value": ["DE", "FR"]},
            ]
        }))

        assert fields.is_required("vat", {"business": True, "country": "FR"}) is True
        assert fields.is_required("vat", {"business": True, "country": "US"}) is False


class TestCircularDependency:
    """Test cases for cycle detection."""

    def test_self_reference_through_scope(self):
        """Test a visibility predicate asking about its own field."""
        fields = single(Text.make("Self Reference").show_when(lambda data: data.is_visible("self_reference")))

        with pytest.raises(CircularDependencyError) as exc_info:
            fields.is_visible("self_reference", {"self_reference": "test"})

        assert exc_info.value.field == "self_reference"
        assert "Circular dependency detected" in str(exc_info.value)

    def test_self_reference_through_field_set(self):
        """Test re-entry through the field set with the predicate's context."""
        holder = {}
        field = Text.make("Self Reference").show_when(
            lambda data: holder["fields"].is_visible("self_reference", data)
        )
        holder["fields"] = single(field)

        with pytest.raises(CircularDependencyError):
            holder["fields"].is_visible("self_reference", {"self_reference": "test"})

    def test_cross_field_cycle(self):
        """Test A depends on B depends on A."""
        fields = ResourceFieldSet.from_schema([
            Text.make("A").show_when(lambda data: data.is_visible("b")),
            Text.make("B").show_when(lambda data: data.is_visible("a")),
        ])

        with pytest.raises(CircularDependencyError) as exc_info:
            fields.is_visible("a", {})

        assert exc_info.value.chain == ["a", "b", "a"]

    def test_acyclic_cross_field_reference(self):
        """Test predicates may consult other fields without a cycle."""
        fields = ResourceFieldSet.from_schema([
            Select.make("Account Type"),
            Text.make("Company Name").depends_on("account_type", "business"),
            Text.make("VAT Number").show_when(lambda data: data.is_visible("company_name")),
        ])

        assert fields.is_visible("vat_number", {"account_type": "business"}) is True
        assert fields.is_visible("vat_number", {"account_type": "personal"}) is False

    def test_required_consulting_own_visibility_is_a_cycle(self):
        """Test concerns of one field share the same cycle guard."""
        fields = single(
            Text.make("Reason")
            .depends_on("status", "rejected")
            .required_when(lambda data: data.is_visible("reason"))
        )

        with pytest.raises(CircularDependencyError) as exc_info:
            fields.is_required("reason", {"status": "rejected"})

        assert exc_info.value.field == "reason"
        assert exc_info.value.chain == ["reason", "reason"]

    def test_visibility_consulting_own_required_is_a_cycle(self):
        """Test a visibility predicate asking whether its own field is required."""
        fields = single(
            Text.make("Reason")
            .required_when("status", "rejected")
            .show_when(lambda data: data.is_required("reason"))
        )

        with pytest.raises(CircularDependencyError):
            fields.is_visible("reason", {"status": "rejected"})

        with pytest.raises(CircularDependencyError):
            fields.evaluate_all({"status": "rejected"})

    def test_required_may_consult_other_field_visibility(self):
        """Test a required predicate may ask about a different field."""
        fields = ResourceFieldSet.from_schema([
            Text.make("Reason").depends_on("status", "rejected"),
            Text.make("Reviewer").required_when(lambda data: data.is_visible("reason")),
        ])

        assert fields.is_required("reviewer", {"status": "rejected"}) is True
        assert fields.is_required("reviewer", {"status": "approved"}) is False

    def test_stack_is_not_shared_between_calls(self):
        """Test a failed evaluation leaves later calls unaffected."""
        fields = ResourceFieldSet.from_schema([
            Text.make("Loop").show_when(lambda data: data.is_visible("loop")),
            Text.make("Name"),
        ])

        with pytest.raises(CircularDependencyError):
            fields.is_visible("loop", {})

        assert fields.is_visible("name", {}) is True

    def test_evaluate_all_propagates_cycle(self):
        """Test evaluate_all does not swallow cycle errors."""
        fields = single(Text.make("Loop").show_when(lambda data: data.is_visible("loop")))

        with pytest.raises(CircularDependencyError):
            fields.evaluate_all({})


class TestResourceFieldSet:
    """Test cases for field set construction and orchestration."""

    def test_flattens_sections_and_groups(self):
        """Test nested authoring structures flatten in order."""
        fields = ResourceFieldSet.from_schema([
            Text.make("Name"),
            Section("Company", fields=[
                Text.make("Company Name"),
                Group(fields=[Text.make("Street"), Text.make("City")]),
            ]),
            Group(fields=[Text.make("Phone")]),
        ])

        assert fields.attributes == ["name", "company_name", "street", "city", "phone"]
        assert len(fields) == 5
        assert "city" in fields

    def test_duplicate_attribute_rejected(self):
        """Test duplicate attributes fail at construction."""
        with pytest.raises(SchemaDefinitionError) as exc_info:
            ResourceFieldSet.from_schema([
                Text.make("Name"),
                Section("Other", fields=[Text.make("Full Name", "name")]),
            ])

        assert exc_info.value.details["attribute"] == "name"

    def test_empty_attribute_rejected(self):
        """Test empty attributes fail at construction."""
        with pytest.raises(SchemaDefinitionError):
            ResourceFieldSet([FieldDescriptor(attribute="")])

    def test_unknown_item_rejected(self):
        """Test non-field schema items fail at construction."""
        with pytest.raises(SchemaDefinitionError):
            ResourceFieldSet.from_schema([Text.make("Name"), "email"])

    def test_unknown_field(self):
        """Test asking about an undeclared field."""
        fields = single(Text.make("Name"))

        with pytest.raises(UnknownFieldError) as exc_info:
            fields.is_visible("missing", {})

        assert exc_info.value.code == "UNKNOWN_FIELD"

    def test_descriptors_accepted_directly(self):
        """Test field sets built from descriptors."""
        fields = ResourceFieldSet([
            FieldDescriptor(
                attribute="tax_id",
                visibility=Comparison("country", "in", ["DE", "FR"]),
                disabled_condition=And([Comparison("locked", "=", True)]),
            ),
        ])

        assert fields.evaluate("tax_id", {"country": "DE", "locked": True}) == FieldState(
            visible=True, required=False, disabled=True
        )

    def test_evaluate_all(self):
        """Test the per-field result map."""
        fields = ResourceFieldSet.from_schema([
            Select.make("Account Type"),
            Text.make("Company Name")
            .depends_on("account_type", "business")
            .required_when("account_type", "business"),
            Text.make("Email").rules("required|email").disabled_when("locked", True),
        ])

        results = fields.evaluate_all({"account_type": "business", "locked": True})

        assert list(results) == ["account_type", "company_name", "email"]
        assert results["account_type"] == FieldState(visible=True, required=False, disabled=False)
        assert results["company_name"] == FieldState(visible=True, required=True, disabled=False)
        assert results["email"].to_dict() == {"visible": True, "required": True, "disabled": True}

    def test_hidden_field_still_evaluated(self):
        """Test concerns are evaluated independently of visibility."""
        fields = single(
            Text.make("Tax Number")
            .depends_on("country", "DE")
            .disabled_when("locked", True)
        )

        results = fields.evaluate_all({"country": "US", "locked": True})

        assert results["tax_number"] == FieldState(visible=False, required=False, disabled=True)

    def test_visible_fields(self):
        """Test filtering to visible descriptors."""
        fields = ResourceFieldSet.from_schema([
            Text.make("Name"),
            Text.make("Company Name").depends_on("type", "business"),
        ])

        assert [d.attribute for d in fields.visible_fields({"type": "personal"})] == ["name"]
        assert [d.attribute for d in fields.visible_fields({"type": "business"})] == ["name", "company_name"]

    def test_predicate_not_invoked_after_false_guard(self):
        """Test earlier comparisons guard later predicates."""
        fields = single(Text.make("Total").show_when(And([
            Comparison("items", "not_empty"),
            Predicate(lambda data: len(data["items"]) > 1),
        ])))

        assert fields.is_visible("total", {}) is False
        assert fields.is_visible("total", {"items": ["a", "b"]}) is True

    def test_logs_evaluations_when_enabled(self):
        """Test evaluate_all with evaluation logging enabled."""
        fields = ResourceFieldSet.from_schema(
            [Text.make("Name")],
            resource="users",
            config=FormsConfig(log_evaluations=True),
        )

        assert fields.evaluate_all({})["name"].visible is True

    def test_to_dict(self):
        """Test schema metadata export."""
        fields = ResourceFieldSet.from_schema([Text.make("Conditional").depends_on("type", "special")], resource="posts")

        document = fields.to_dict()

        assert document["resource"] == "posts"
        assert document["fields"][0]["meta"]["dependsOn"] == {
            "attribute": "type",
            "operator": "=",
            "value": "special",
        }


class TestConcurrentEvaluation:
    """Test cases for one field set shared across threads."""

    @pytest.fixture
    def fields(self):
        return ResourceFieldSet.from_schema([
            Select.make("Account Type"),
            Text.make("Company Name").depends_on("account_type", "business"),
            Text.make("VAT Number")
            .show_when(lambda data: data.is_visible("company_name"))
            .required_when(lambda data: data.get("country") in ("DE", "FR")),
            Text.make("Loop").show_when(
                lambda data: data.get("loop") is not True or data.is_visible("loop")
            ),
        ], resource="accounts")

    def test_parallel_evaluations_keep_separate_stacks(self, fields):
        """Test concurrent evaluate_all calls never see each other's stack."""
        contexts = [
            {
                "account_type": "business" if i % 2 else "personal",
                "country": "DE" if i % 3 == 0 else "US",
            }
            for i in range(200)
        ]

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(fields.evaluate_all, contexts))

        for context, states in zip(contexts, results):
            business = context["account_type"] == "business"
            assert states["company_name"].visible is business
            assert states["vat_number"].visible is business
            assert states["vat_number"].required is (context["country"] == "DE")
            assert states["loop"].visible is True

    def test_cycle_in_one_thread_does_not_leak(self, fields):
        """Test a cycle raised in one thread leaves the others unaffected."""
        contexts = [{"loop": i % 4 == 0, "account_type": "business"} for i in range(100)]

        def run(context):
            try:
                return fields.evaluate_all(context)
            except CircularDependencyError as exc:
                return exc

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(run, contexts))

        for context, result in zip(contexts, results):
            if context["loop"]:
                assert isinstance(result, CircularDependencyError)
                assert result.chain == ["loop", "loop"]
            else:
                assert result["company_name"].visible is True
                assert result["loop"].visible is True
