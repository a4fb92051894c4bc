"""
Expression simplification.

Renders the target of a repository call as a short label: member
accesses keep only their property, calls keep their callee label and
compacted argument texts.
"""

import re

from tree_sitter import Node

from ormscan.analysis.parser import SourceFile, significant_children
from ormscan.analysis.shapes import unwrap_parentheses

_LAYOUT = re.compile(r"(  |\n|\t)")


def compact(text: str) -> str:
    """Remove newlines, tabs and double spaces from source text."""
    return _LAYOUT.sub("", text)


def simplify_expression(source: SourceFile, node: Node) -> str:
    """
    Render an expression as a compact, chain-aware label.

    ``one.two.three(a, b, c)`` becomes ``three(a, b, c)``.

    Args:
        source: File the node belongs to.
        node: Expression node.

    Returns:
        The simplified label.
    """
    node = unwrap_parentheses(node)

    if node.type == "member_expression":
        prop = node.child_by_field_name("property")
        if prop is not None:
            return simplify_expression(source, prop)

    elif node.type == "subscript_expression":
        index = node.child_by_field_name("index")
        if index is not None:
            return simplify_expression(source, index)

    elif node.type == "call_expression":
        callee = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if callee is not None and arguments is not None and arguments.type == "arguments":
            args = [compact(source.text(arg)) for arg in significant_children(arguments)]
            return simplify_expression(source, callee) + "(" + ", ".join(args) + ")"

    return compact(source.text(node))
