"""
Unit tests for diagnostic records, the API table and the rule registry.
"""

import unittest

from ormscan.analysis.api_surface import (
    API_READ,
    API_WRITE,
    OPTIONS_FIRST_ARGUMENT,
    WHERE_FIRST_ARGUMENT,
    WHERE_SECOND_ARGUMENT,
    classify,
)
from ormscan.analysis.entities import (
    Attribute,
    DiagnosticMessage,
    EntityMessage,
    Location,
    MethodCategory,
    MethodMessage,
    Result,
    sorted_attributes,
    unique_attributes,
)
from ormscan.analysis.registry import BaseRule, RuleRegistry
from ormscan.core.exceptions import ReportFormatError


class TestClassify(unittest.TestCase):
    """Tests for the repository API classification table."""

    def test_categories(self):
        self.assertEqual(classify("findOneBy"), MethodCategory.READ)
        self.assertEqual(classify("findByIds"), MethodCategory.READ)
        self.assertEqual(classify("upsert"), MethodCategory.WRITE)
        self.assertEqual(classify("softRemove"), MethodCategory.WRITE)
        self.assertEqual(classify("query"), MethodCategory.OTHER)
        self.assertEqual(classify("createQueryBuilder"), MethodCategory.OTHER)
        self.assertEqual(classify("transaction"), MethodCategory.TRANSACTION)
        self.assertEqual(classify("startTransaction"), MethodCategory.TRANSACTION)

    def test_unclassified(self):
        self.assertIsNone(classify("noFind"))
        self.assertIsNone(classify("FindOne"))
        self.assertIsNone(classify(""))
        self.assertIsNone(classify(None))

    def test_tables_are_disjoint(self):
        self.assertFalse(API_READ & API_WRITE)

    def test_argument_tables_are_classified(self):
        for name in WHERE_FIRST_ARGUMENT | OPTIONS_FIRST_ARGUMENT | WHERE_SECOND_ARGUMENT:
            self.assertIsNotNone(classify(name), name)


class TestAttributes(unittest.TestCase):
    """Tests for attribute identity and ordering."""

    def test_equality_by_name(self):
        a = Attribute("id", Location(1, 0, 1, 2))
        b = Attribute("id", Location(5, 4, 5, 6))

        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))

    def test_unique_keeps_first(self):
        first = Attribute("id", Location(1, 0, 1, 2))
        later = Attribute("id", Location(5, 4, 5, 6))

        (kept,) = unique_attributes([first, later])

        self.assertEqual(kept.location, Location(1, 0, 1, 2))

    def test_sorted(self):
        attributes = sorted_attributes([
            Attribute("name", Location(1, 0, 1, 4)),
            Attribute("age", Location(2, 0, 2, 3)),
            Attribute("name", Location(3, 0, 3, 4)),
        ])

        self.assertEqual([a.name for a in attributes], ["age", "name"])
        self.assertEqual(attributes[1].location.start_line, 1)

    def test_method_message_normalizes_attributes(self):
        message = MethodMessage(
            name="findBy",
            category=MethodCategory.READ,
            subject_text="repo",
            subject_types=["Repository<User>"],
            attributes=[
                Attribute("b", Location(1, 0, 1, 1)),
                Attribute("a", Location(2, 0, 2, 1)),
            ],
        )

        self.assertEqual(message.subject_types, ("Repository<User>",))
        self.assertEqual([a.name for a in message.attributes], ["a", "b"])


class TestSerialization(unittest.TestCase):
    """Tests for the JSON shape of records."""

    def setUp(self):
        self.method = MethodMessage(
            name="findOneBy",
            category=MethodCategory.READ,
            subject_text="repository",
            subject_types=("Repository<User>",),
            attributes=(Attribute("name", Location(11, 8, 11, 12)),),
        )
        self.result = Result("src/user.ts", Location(10, 6, 19, 8), self.method)

    def test_method_to_dict(self):
        self.assertEqual(self.method.to_dict(), {
            "kind": "method",
            "name": "findOneBy",
            "category": "read",
            "subjectText": "repository",
            "subjectTypes": ["Repository<User>"],
            "attributes": [{
                "name": "name",
                "location": {
                    "startLine": 11,
                    "startColumn": 8,
                    "endLine": 11,
                    "endColumn": 12,
                },
            }],
        })

    def test_result_round_trip(self):
        data = self.result.to_dict()
        restored = Result.from_dict(data)

        self.assertEqual(restored, self.result)
        self.assertEqual(
            restored.message.attributes[0].location, Location(11, 8, 11, 12)
        )
        self.assertEqual(data["filePath"], "src/user.ts")

    def test_entity_from_dict(self):
        message = DiagnosticMessage.from_dict({"kind": "entity", "name": "User"})

        self.assertEqual(message, EntityMessage("User"))
        self.assertEqual(message.kind, "entity")

    def test_unknown_kind(self):
        with self.assertRaises(ReportFormatError):
            DiagnosticMessage.from_dict({"kind": "table", "name": "users"})

    def test_unknown_category(self):
        data = self.method.to_dict()
        data["category"] = "delete"

        with self.assertRaises(ReportFormatError):
            DiagnosticMessage.from_dict(data)

    def test_invalid_location(self):
        with self.assertRaises(ReportFormatError):
            Location.from_dict({"startLine": 1})


class TestRuleRegistry(unittest.TestCase):
    """Tests for rule registration."""

    def test_builtin_rules_registered(self):
        from ormscan.analysis import rules  # noqa: F401

        self.assertTrue(RuleRegistry.has_rule("find-schema"))
        self.assertTrue(RuleRegistry.has_rule("find-api"))
        self.assertIn("find-api", RuleRegistry.list_rules())

    def test_register_custom_rule(self):
        @RuleRegistry.register
        class CountCallsRule(BaseRule):
            NAME = "test-count-calls"
            NODE_TYPES = ["call_expression"]

            def visit(self, node, context):
                pass

        self.assertIs(RuleRegistry.get_rule_class("test-count-calls"), CountCallsRule)
        self.assertIs(
            RuleRegistry.get_rule("test-count-calls"),
            RuleRegistry.get_rule("test-count-calls"),
        )

    def test_unknown_rule(self):
        self.assertIsNone(RuleRegistry.get_rule("no-such-rule"))

    def test_base_rule_visit_not_implemented(self):
        with self.assertRaises(NotImplementedError):
            BaseRule().visit(None, None)


if __name__ == "__main__":
    unittest.main()
