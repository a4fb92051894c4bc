"""
Tests for the repository API usage rule.

Each case parses a TypeScript snippet with the real grammar and checks
the emitted method messages, including exact attribute locations
(1-based lines, 0-based columns).
"""

import pytest

from ormscan.analysis.analyzer import FileAnalyzer
from ormscan.analysis.entities import Location, MethodCategory, MethodMessage
from ormscan.core.config import AnalysisConfig


def analyze(code, type_resolver="declaration"):
    config = AnalysisConfig(rules=["find-api"], type_resolver=type_resolver)
    return FileAnalyzer(config).analyze_source("test.ts", code)


def messages(code, type_resolver="declaration"):
    return [r.message for r in analyze(code, type_resolver)]


def attributes(message):
    """Attribute names with their spans, as comparable tuples."""
    return [
        (
            a.name,
            a.location.start_line,
            a.location.start_column,
            a.location.end_line,
            a.location.end_column,
        )
        for a in message.attributes
    ]


WRAPPER_CODE = """
      class Repository<T> {}
      class User {}
      class Wrapper {
        repository: Repository<User>;
        constructor() {
          this.repository = new Repository<User>();
        }
      }
      new Wrapper().repository.findOneBy({
        name: "John",
        age: 18,
        "address": {
          "street": "Main Street",
          "city": "New York"
        },
        ...{
          "occupation": "Developer"
        }
      });
      """

INHERITANCE_CODE = """
      class Repository<T> {}
      class User extends Repository<Person> {
        doSave() {
          return this.save();
        }
      }
      let user = new User();
      user.increment([{firstname: "John"}, {lastname: "Doe"}], "age", 1);
      """

FIND_OPTIONS_CODE = """
      class Repository<T> {}
      class User {}
      let repository = new Repository<User>();
      repository.count({
        where: {
          name: "John",
        }
      });
      repository.findAndCount({
        where: [{
          firstname: "John",
        }, {
          lastname: "Doe",
        }]
      });
      """

ENVELOPE_ONLY_CODE = """
      class Repository<T> {}
      class User {}
      new Repository<User>().findOne({
        select: ["id"],
        order: {
          age: "DESC",
        },
        take: 10,
      });
      """

TRANSACTION_CODE = """
      class Service {
        @Transaction
        txnA() {
        }

        @LazyTransaction()
        async txnB() {
        }
      }
      """

CHAINED_CODE = """
      one.two.three(a, b, c).findOne({});
      one
        .two()
        .three()({
          a, b, c
        }).findOne({});
      """


class TestRepositoryCalls:
    """Calls classified against the repository API surface."""

    def test_unknown_method_is_ignored(self):
        assert analyze("repository.noFind()") == []

    def test_plain_function_call_is_ignored(self):
        assert analyze("findOne({ where: { id: 1 } })") == []

    def test_where_clause_with_nested_and_spread_keys(self):
        results = analyze(WRAPPER_CODE)

        assert len(results) == 1
        message = results[0].message
        assert message.name == "findOneBy"
        assert message.category == MethodCategory.READ
        assert message.subject_text == "repository"
        assert list(message.subject_types) == ["Repository<User>"]
        assert attributes(message) == [
            ("address", 13, 8, 13, 17),
            ("age", 12, 8, 12, 11),
            ("name", 11, 8, 11, 12),
            ("occupation", 18, 10, 18, 22),
        ]

    def test_result_spans_the_call(self):
        results = analyze(WRAPPER_CODE)

        assert results[0].file_path == "test.ts"
        assert results[0].location == Location(10, 6, 20, 8)

    def test_this_and_inherited_types(self):
        save, increment = messages(INHERITANCE_CODE)

        assert save == MethodMessage(
            name="save",
            category=MethodCategory.WRITE,
            subject_text="this",
            subject_types=("this", "Repository<Person>"),
            attributes=(),
        )

        assert increment.name == "increment"
        assert increment.category == MethodCategory.WRITE
        assert increment.subject_text == "user"
        assert list(increment.subject_types) == ["User", "Repository<Person>"]
        assert attributes(increment) == [
            ("firstname", 9, 23, 9, 32),
            ("lastname", 9, 44, 9, 52),
        ]

    def test_where_inside_find_options(self):
        count, find_and_count = messages(FIND_OPTIONS_CODE)

        assert count.name == "count"
        assert count.category == MethodCategory.READ
        assert count.subject_text == "repository"
        assert list(count.subject_types) == ["Repository<User>"]
        assert attributes(count) == [("name", 7, 10, 7, 14)]

        assert find_and_count.name == "findAndCount"
        assert attributes(find_and_count) == [
            ("firstname", 12, 10, 12, 19),
            ("lastname", 14, 10, 14, 18),
        ]

    def test_envelope_without_where_has_no_attributes(self):
        (message,) = messages(ENVELOPE_ONLY_CODE)

        assert message.name == "findOne"
        assert message.subject_text == "new Repository<User>()"
        assert list(message.subject_types) == ["Repository<User>"]
        assert message.attributes == ()

    def test_chained_call_subjects(self):
        first, second = messages(CHAINED_CODE)

        assert first.name == "findOne"
        assert first.subject_text == "three(a, b, c)"
        assert list(first.subject_types) == ["any"]
        assert first.attributes == ()

        assert second.name == "findOne"
        assert second.subject_text == "three()({a, b, c})"
        assert list(second.subject_types) == ["any"]

    def test_subscript_method_name(self):
        (message,) = messages('repository["findOneBy"]({ id: 1 });')

        assert message.name == "findOneBy"
        assert message.subject_text == "repository"
        assert [a.name for a in message.attributes] == ["id"]

    def test_where_in_second_argument(self):
        (message,) = messages('repository.sum("age", { name: "John", city: "Paris" });')

        assert message.name == "sum"
        assert [a.name for a in message.attributes] == ["city", "name"]

    def test_second_argument_missing(self):
        (message,) = messages('repository.maximum("age");')

        assert message.attributes == ()

    def test_other_and_transaction_categories(self):
        builder, transaction = messages(
            'repository.createQueryBuilder("user");\n'
            "dataSource.transaction(async (manager) => {});\n"
        )

        assert builder.category == MethodCategory.OTHER
        assert transaction.category == MethodCategory.TRANSACTION
        assert transaction.subject_text == "dataSource"

    def test_any_resolver(self):
        results = analyze(FIND_OPTIONS_CODE, type_resolver="any")

        assert [list(r.message.subject_types) for r in results] == [["any"], ["any"]]

    def test_results_in_source_order(self):
        results = analyze(
            "repository.find({ where: { a: 1 } });\n"
            "repository.save(entity);\n"
            "repository.delete({ b: 2 });\n"
        )

        assert [r.message.name for r in results] == ["find", "save", "delete"]
        assert [r.location.start_line for r in results] == [1, 2, 3]


class TestFindOptionsShapes:
    """Options-mode disambiguation between envelopes and legacy where-clauses."""

    def test_legacy_where_clause(self):
        (message,) = messages('repository.find({ firstName: "Timber" });')

        assert [a.name for a in message.attributes] == ["firstName"]

    def test_legacy_where_clause_keeps_envelope_named_columns(self):
        (message,) = messages('repository.findOne({ name: "John", take: 1 });')

        assert [a.name for a in message.attributes] == ["name", "take"]

    def test_where_key_wins(self):
        (message,) = messages(
            'repository.find({ select: ["id"], where: { id: 1 }, lastName: "x" });'
        )

        assert [a.name for a in message.attributes] == ["id"]

    def test_where_assignment_value(self):
        (message,) = messages("repository.find({ where: w = { status: 1 } });")

        assert [a.name for a in message.attributes] == ["status"]

    def test_spread_only_object_is_legacy(self):
        (message,) = messages("repository.find({ ...{ id: 1 } });")

        assert [a.name for a in message.attributes] == ["id"]

    def test_spread_with_envelope_keys(self):
        (message,) = messages("repository.find({ ...{ id: 1 }, take: 10 });")

        assert message.attributes == ()

    def test_non_object_options(self):
        (message,) = messages("repository.find(options);")

        assert message.attributes == ()


class TestWhereShapes:
    """Where-mode key extraction."""

    def test_duplicate_keys_keep_first_location(self):
        (message,) = messages("repository.findBy([{ id: 1 }, { id: 2 }]);")

        assert attributes(message) == [("id", 1, 21, 1, 23)]

    def test_shorthand_and_method_keys(self):
        (message,) = messages("repository.findBy({ id, check() { return 1; } });")

        assert [a.name for a in message.attributes] == ["check", "id"]

    def test_computed_keys(self):
        (message,) = messages('repository.update({ [key]: 1, ["literal"]: 2, [1 + 1]: 3 }, {});')

        assert [a.name for a in message.attributes] == ["key", "literal"]

    def test_numeric_key(self):
        (message,) = messages("repository.delete({ 42: true });")

        assert [a.name for a in message.attributes] == ["42"]

    def test_values_are_not_descended(self):
        (message,) = messages("repository.findOneBy({ profile: { photo: 1 } });")

        assert [a.name for a in message.attributes] == ["profile"]

    def test_parenthesized_argument(self):
        (message,) = messages("repository.findBy(({ id: 1 }));")

        assert [a.name for a in message.attributes] == ["id"]

    def test_where_mode_ignores_non_literals(self):
        (message,) = messages("repository.findBy(criteria);")

        assert message.attributes == ()

    def test_missing_argument(self):
        (message,) = messages("repository.findBy();")

        assert message.attributes == ()


class TestTransactionDecorators:
    """Methods decorated as transactions."""

    def test_bare_and_called_decorators(self):
        txn_a, txn_b = messages(TRANSACTION_CODE)

        assert txn_a == MethodMessage(
            name="txnA",
            category=MethodCategory.TRANSACTION,
            subject_text="",
            subject_types=("any",),
            attributes=(),
        )
        assert txn_b.name == "txnB"
        assert txn_b.category == MethodCategory.TRANSACTION

    def test_other_decorators_are_ignored(self):
        code = """
class Controller {
  @Get()
  list() {}
}
"""
        assert messages(code) == []

    def test_first_matching_decorator_only(self):
        code = """
class Service {
  @Log()
  @Transaction()
  @LazyTransaction()
  run() {}
}
"""
        (message,) = messages(code)
        assert message.name == "run"

    def test_computed_method_name(self):
        code = """
class Service {
  @Transaction()
  ["run"]() {}
}
"""
        (message,) = messages(code)
        assert message.name == ""

    def test_member_access_decorator_is_ignored(self):
        code = """
class Service {
  @orm.Transaction()
  run() {}
}
"""
        assert messages(code) == []

    @pytest.mark.parametrize("decorator", ["@Transaction", "@Transaction()", "@LazyTransaction"])
    def test_decorator_forms(self, decorator):
        code = f"class Service {{\n  {decorator}\n  run() {{}}\n}}\n"

        (message,) = messages(code)
        assert message.category == MethodCategory.TRANSACTION
