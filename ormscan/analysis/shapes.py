"""
Argument shape parsing.

Walks the structural form of a query argument (arrays, objects, spreads
and find-options envelopes) and collects the attribute names it
references. Two modes exist:

    - where-mode reads the top-level keys of a where-clause;
    - options-mode reads a find-options envelope and delegates its
      ``where`` entry to where-mode, falling back to where-mode for the
      legacy form where a bare where-clause was passed instead.

Neither mode raises on unexpected shapes; they contribute no attributes.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from ormscan.analysis.api_surface import (
    OPTIONS_FIRST_ARGUMENT,
    WHERE_FIRST_ARGUMENT,
    WHERE_SECOND_ARGUMENT,
)
from ormscan.analysis.entities import Attribute, sorted_attributes, unique_attributes
from ormscan.analysis.parser import SourceFile, literal_name, significant_children

logger = logging.getLogger(__name__)

# Top-level keys of a find-options envelope other than ``where``.
FIND_OPTIONS_KEYS = frozenset({
    "comment",
    "select",
    "relations",
    "relationLoadStrategy",
    "join",
    "order",
    "cache",
    "lock",
    "withDeleted",
    "loadRelationIds",
    "loadEagerRelations",
    "transaction",
    "skip",
    "take",
})

WHERE_KEY = "where"


def unwrap_parentheses(node: Node) -> Node:
    """Strip redundant parentheses around an expression."""
    while node.type == "parenthesized_expression":
        inner = significant_children(node)
        if len(inner) != 1:
            break
        node = inner[0]
    return node


class ArgumentShapeParser:
    """
    Extracts queried attributes from call arguments of one source file.

    The parser is stateless apart from the source it reads text from,
    so parsing the same node twice yields the same attributes.
    """

    def __init__(self, source: SourceFile):
        self.source = source
        self._where_handlers: Dict[str, Callable[[Node], List[Attribute]]] = {
            "spread_element": self._where_spread,
            "array": self._where_array,
            "object": self._where_object,
        }

    def parse_where(self, node: Node) -> List[Attribute]:
        """
        Collect the attribute names of a where-clause.

        Args:
            node: Argument expression node.

        Returns:
            Attributes in source order, unique by name.
        """
        node = unwrap_parentheses(node)
        handler = self._where_handlers.get(node.type)
        if handler is None:
            return []
        return unique_attributes(handler(node))

    def parse_options(self, node: Node) -> List[Attribute]:
        """
        Collect the attribute names of a find-options envelope.

        Args:
            node: Argument expression node.

        Returns:
            Attributes in source order, unique by name.
        """
        node = unwrap_parentheses(node)
        if node.type == "spread_element":
            operand = self._spread_operand(node)
            return self.parse_options(operand) if operand is not None else []
        if node.type != "object":
            return []

        has_foreign_key = False
        has_envelope_key = False
        has_spread = False

        for prop in significant_children(node):
            if prop.type == "spread_element":
                has_spread = True
                continue

            key_name, _ = self.property_key(prop)
            if key_name is None:
                continue

            if key_name == WHERE_KEY:
                return self.parse_where(self._where_value(prop))

            if key_name in FIND_OPTIONS_KEYS:
                has_envelope_key = True
            else:
                # A column literally named like an envelope key (e.g. "take")
                # is read as an option here.
                has_foreign_key = True

        if has_foreign_key or (has_spread and not has_envelope_key):
            return self.parse_where(node)

        return []

    def lookup_attributes(self, method: str, arguments: Sequence[Node]) -> Tuple[Attribute, ...]:
        """
        Extract the attributes queried by a repository API call.

        Args:
            method: Method name being called.
            arguments: Call argument nodes in order.

        Returns:
            Attributes unique by name, sorted by name.
        """
        attributes: List[Attribute] = []

        if method in WHERE_FIRST_ARGUMENT:
            if len(arguments) > 0:
                attributes.extend(self.parse_where(arguments[0]))
        elif method in OPTIONS_FIRST_ARGUMENT:
            if len(arguments) > 0:
                attributes.extend(self.parse_options(arguments[0]))
        elif method in WHERE_SECOND_ARGUMENT:
            if len(arguments) > 1:
                attributes.extend(self.parse_where(arguments[1]))

        return sorted_attributes(attributes)

    def property_key(self, prop: Node) -> Tuple[Optional[str], Optional[Node]]:
        """
        Return the static key name of an object member and the node it spans.

        Handles ``key: value`` pairs, shorthand properties and object
        methods. Computed keys are named by their identifier or literal.
        """
        if prop.type == "shorthand_property_identifier":
            return self.source.text(prop), prop

        if prop.type in ("pair", "method_definition"):
            field = "key" if prop.type == "pair" else "name"
            key = prop.child_by_field_name(field)
            if key is None:
                return None, None
            if key.type == "computed_property_name":
                inner = significant_children(key)
                if not inner:
                    return None, None
                key = inner[0]
            return literal_name(self.source, key), key

        return None, None

    def _where_spread(self, node: Node) -> List[Attribute]:
        operand = self._spread_operand(node)
        return self.parse_where(operand) if operand is not None else []

    def _where_array(self, node: Node) -> List[Attribute]:
        attributes = []
        for element in significant_children(node):
            attributes.extend(self.parse_where(element))
        return attributes

    def _where_object(self, node: Node) -> List[Attribute]:
        attributes = []
        for prop in significant_children(node):
            if prop.type == "spread_element":
                attributes.extend(self._where_spread(prop))
                continue

            name, key = self.property_key(prop)
            if name:
                attributes.append(
                    Attribute(name=name, location=self.source.location(key))
                )
        return attributes

    def _where_value(self, prop: Node) -> Node:
        if prop.type == "shorthand_property_identifier":
            return prop
        value = prop.child_by_field_name("value")
        if value is None:
            return prop
        value = unwrap_parentheses(value)
        if value.type == "assignment_expression":
            right = value.child_by_field_name("right")
            if right is not None:
                return right
        return value

    @staticmethod
    def _spread_operand(node: Node) -> Optional[Node]:
        operands = significant_children(node)
        return operands[0] if operands else None
