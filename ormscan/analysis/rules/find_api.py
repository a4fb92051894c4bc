"""
Repository API usage rule.

Reports every method call whose name belongs to the TypeORM repository
API, with the call target's label, its resolved types and the
attributes referenced by the query arguments. Methods decorated with
``@Transaction`` or ``@LazyTransaction`` are reported as transactions.
"""

import logging
from typing import Optional, Tuple

from tree_sitter import Node

from ormscan.analysis.api_surface import classify
from ormscan.analysis.entities import MethodCategory, MethodMessage
from ormscan.analysis.parser import (
    decorator_name,
    decorators_of,
    literal_name,
    significant_children,
)
from ormscan.analysis.registry import BaseRule, RuleContext, RuleRegistry
from ormscan.analysis.shapes import ArgumentShapeParser
from ormscan.analysis.simplifier import simplify_expression
from ormscan.analysis.types import ANY_TYPE

logger = logging.getLogger(__name__)

TRANSACTION_DECORATORS = frozenset({"Transaction", "LazyTransaction"})


@RuleRegistry.register
class FindApiRule(BaseRule):
    """Reports all method calls of the repository API."""

    NAME = "find-api"
    DESCRIPTION = "Reports all method calls of the repository API."
    NODE_TYPES = ["call_expression", "method_definition"]

    def visit(self, node: Node, context: RuleContext) -> None:
        if node.type == "call_expression":
            self._visit_call(node, context)
        else:
            self._visit_method(node, context)

    def _visit_call(self, node: Node, context: RuleContext) -> None:
        callee = node.child_by_field_name("function")
        if callee is None:
            return

        target = self._method_target(context, callee)
        if target is None:
            return
        subject, method = target

        category = classify(method)
        if category is None:
            return

        arguments = node.child_by_field_name("arguments")
        args = (
            significant_children(arguments)
            if arguments is not None and arguments.type == "arguments"
            else []
        )

        types = context.resolver.resolve_type(subject).all_types()
        attributes = ArgumentShapeParser(context.source).lookup_attributes(method, args)

        context.report(node, MethodMessage(
            name=method,
            category=category,
            subject_text=simplify_expression(context.source, subject),
            subject_types=types,
            attributes=attributes,
        ))

    def _visit_method(self, node: Node, context: RuleContext) -> None:
        for decorator in decorators_of(node):
            if decorator_name(context.source, decorator) not in TRANSACTION_DECORATORS:
                continue

            name_node = node.child_by_field_name("name")
            name = (
                context.source.text(name_node)
                if name_node is not None and name_node.type == "property_identifier"
                else ""
            )
            context.report(node, MethodMessage(
                name=name,
                category=MethodCategory.TRANSACTION,
                subject_text="",
                subject_types=(ANY_TYPE,),
                attributes=(),
            ))
            break

    @staticmethod
    def _method_target(context: RuleContext, callee: Node) -> Optional[Tuple[Node, str]]:
        """Split a member-access callee into its object and method name."""
        if callee.type == "member_expression":
            subject = callee.child_by_field_name("object")
            prop = callee.child_by_field_name("property")
            if subject is None or prop is None or prop.type != "property_identifier":
                return None
            return subject, context.source.text(prop)

        if callee.type == "subscript_expression":
            subject = callee.child_by_field_name("object")
            index = callee.child_by_field_name("index")
            if subject is None or index is None:
                return None
            name = literal_name(context.source, index)
            if name is None:
                return None
            return subject, name

        return None
