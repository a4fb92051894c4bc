"""
Entity declaration rule.

Reports every class declaration decorated with ``@Entity()``,
``@ViewEntity()`` or ``@ChildEntity()``.
"""

from tree_sitter import Node

from ormscan.analysis.entities import EntityMessage
from ormscan.analysis.parser import decorator_name, decorators_of
from ormscan.analysis.registry import BaseRule, RuleContext, RuleRegistry

ENTITY_DECORATORS = frozenset({"Entity", "ViewEntity", "ChildEntity"})


@RuleRegistry.register
class FindSchemaRule(BaseRule):
    """Reports all class definitions that are decorated with @Entity()."""

    NAME = "find-schema"
    DESCRIPTION = "Reports all class definitions that are decorated with @Entity()."
    NODE_TYPES = ["class_declaration", "abstract_class_declaration"]

    def visit(self, node: Node, context: RuleContext) -> None:
        name_node = node.child_by_field_name("name")
        decorators = decorators_of(node)
        if name_node is None or not decorators:
            return

        for decorator in decorators:
            # Only called decorators count: "@Entity" alone is not a schema.
            if decorator_name(context.source, decorator, allow_bare=False) in ENTITY_DECORATORS:
                context.report(node, EntityMessage(context.source.text(name_node)))
                break
