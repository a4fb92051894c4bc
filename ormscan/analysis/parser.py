"""
Tree-sitter front end for TypeScript sources.

Wraps grammar loading and parsing, and provides the node helpers the
rules use to read text, names, decorators and source locations from
the concrete syntax tree.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Node, Parser, Tree

from ormscan.analysis.entities import Location
from ormscan.core.exceptions import LanguageNotSupportedError, ParseError

logger = logging.getLogger(__name__)

_GRAMMARS = {
    "typescript": ts_typescript.language_typescript,
    "tsx": ts_typescript.language_tsx,
}

_languages: Dict[str, Language] = {}
_languages_lock = threading.Lock()
_local = threading.local()

# Node types that never carry meaning for the rules.
TRIVIA_NODE_TYPES = frozenset({"comment", "html_comment"})


def get_language(name: str) -> Language:
    """Load (once) the tree-sitter language for a grammar name."""
    if name not in _GRAMMARS:
        raise LanguageNotSupportedError(name)
    with _languages_lock:
        if name not in _languages:
            _languages[name] = Language(_GRAMMARS[name]())
        return _languages[name]


def get_parser(name: str) -> Parser:
    """Return a parser for the grammar, one per thread."""
    parsers = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = _local.parsers = {}
    if name not in parsers:
        parsers[name] = Parser(get_language(name))
    return parsers[name]


@dataclass
class SourceFile:
    """A parsed source file together with its raw bytes."""

    file_path: str
    content: bytes
    tree: Tree

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        """Extract text content from a tree-sitter node."""
        return self.content[node.start_byte:node.end_byte].decode(
            "utf-8", errors="replace"
        )

    def location(self, node: Node) -> Location:
        """Convert a node's span to a Location."""
        return Location(
            start_line=node.start_point[0] + 1,
            start_column=self._column(node.start_byte, node.start_point[1]),
            end_line=node.end_point[0] + 1,
            end_column=self._column(node.end_byte, node.end_point[1]),
        )

    def _column(self, byte_offset: int, byte_column: int) -> int:
        # tree-sitter columns are byte offsets; count characters instead.
        line_start = byte_offset - byte_column
        return len(
            self.content[line_start:byte_offset].decode("utf-8", errors="replace")
        )


def parse_source(file_path: str, content: str, grammar: str = "typescript") -> SourceFile:
    """
    Parse TypeScript source code.

    Args:
        file_path: Path used for reporting.
        content: Source code content as string.
        grammar: ``typescript`` or ``tsx``.

    Returns:
        SourceFile holding the syntax tree.

    Raises:
        ParseError: If tree-sitter fails to produce a tree.
    """
    content_bytes = content.encode("utf-8")
    try:
        tree = get_parser(grammar).parse(content_bytes)
    except (ValueError, TypeError) as e:
        raise ParseError(file_path, str(e)) from e

    if tree.root_node.has_error:
        logger.debug(f"Syntax errors in {file_path}, analyzing partial tree")

    return SourceFile(file_path=file_path, content=content_bytes, tree=tree)


def significant_children(node: Node) -> List[Node]:
    """Named children of a node, without comments."""
    return [
        child for child in node.named_children
        if child.type not in TRIVIA_NODE_TYPES
    ]


def walk(node: Node):
    """Yield a node and all of its descendants in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def string_value(source: SourceFile, node: Node) -> str:
    """Return the contents of a string literal node without its quotes."""
    text = source.text(node)
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def number_value(source: SourceFile, node: Node) -> str:
    """Render a numeric literal the way it prints as a property key."""
    text = source.text(node).replace("_", "")
    try:
        return str(int(text, 0))
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return text
    if value.is_integer():
        return str(int(value))
    return repr(value)


def literal_name(source: SourceFile, node: Node) -> Optional[str]:
    """Name carried by an identifier-like or literal node, if any."""
    if node.type in (
        "identifier",
        "property_identifier",
        "shorthand_property_identifier",
        "type_identifier",
    ):
        return source.text(node)
    if node.type == "string":
        return string_value(source, node)
    if node.type == "number":
        return number_value(source, node)
    return None


def decorators_of(node: Node) -> List[Node]:
    """
    Collect the decorators attached to a declaration.

    Depending on the grammar, decorators are children of the declaration,
    preceding siblings in a class body, or children of an enclosing
    ``export`` statement.
    """
    own = [child for child in node.children if child.type == "decorator"]

    parent = node.parent
    if parent is not None and parent.type == "export_statement":
        exported = [child for child in parent.children if child.type == "decorator"]
        return exported + own

    leading = []
    sibling = node.prev_named_sibling
    while sibling is not None and (
        sibling.type == "decorator" or sibling.type in TRIVIA_NODE_TYPES
    ):
        if sibling.type == "decorator":
            leading.append(sibling)
        sibling = sibling.prev_named_sibling

    return list(reversed(leading)) + own


def decorator_name(source: SourceFile, decorator: Node, allow_bare: bool = True) -> Optional[str]:
    """
    Return the unqualified name a decorator invokes.

    ``@Name`` yields ``Name`` (only when ``allow_bare``), ``@Name(...)``
    yields ``Name``. Member-access decorators such as ``@orm.Entity()``
    yield None.
    """
    expressions = significant_children(decorator)
    if not expressions:
        return None
    expression = expressions[0]

    if expression.type == "identifier":
        return source.text(expression) if allow_bare else None

    if expression.type == "call_expression":
        callee = expression.child_by_field_name("function")
        if callee is not None and callee.type == "identifier":
            return source.text(callee)

    return None
