"""
Type resolution for call targets.

The API usage rule asks a TypeResolver for the printed type of the
object a repository method is called on, plus the printed types of its
direct base types. Resolvers are injected per file, so any front end
that can answer that question can be plugged in.

DeclarationTypeResolver answers from declarations that are visible in
the syntax tree: variable and parameter annotations, initializers,
class fields, constructor parameter properties and ``extends`` clauses.
A ClassIndex built over the whole project lets it follow classes that
are declared in other files.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from tree_sitter import Node

from ormscan.core.exceptions import TypeResolutionError
from ormscan.analysis.parser import SourceFile, significant_children, walk
from ormscan.analysis.shapes import unwrap_parentheses

logger = logging.getLogger(__name__)

ANY_TYPE = "any"
THIS_TYPE = "this"

CLASS_NODE_TYPES = ("class_declaration", "abstract_class_declaration")
INTERFACE_NODE_TYPES = ("interface_declaration",)
FUNCTION_NODE_TYPES = (
    "function_declaration",
    "function_expression",
    "function",
    "generator_function_declaration",
    "arrow_function",
    "method_definition",
)
DECLARATION_NODE_TYPES = ("lexical_declaration", "variable_declaration")
PARAMETER_NODE_TYPES = ("required_parameter", "optional_parameter")
PARAMETER_PROPERTY_MARKERS = ("accessibility_modifier", "readonly", "override_modifier")

# Resolution follows initializers and member chains; this bounds cycles.
MAX_DEPTH = 16

_WHITESPACE = re.compile(r"\s+")


def print_type(text: str) -> str:
    """Normalize type text to a single-line display string."""
    return _WHITESPACE.sub(" ", text).strip()


def type_base_name(printed: str) -> Optional[str]:
    """
    Return the class or interface name a printed type refers to.

    ``Repository<User>`` and ``orm.Repository<User>`` give
    ``Repository``; ``typeof User`` gives ``User``. Union, array and
    literal types give None.
    """
    if printed.startswith("typeof "):
        printed = printed[len("typeof "):]
    name = printed.split("<", 1)[0].strip()
    name = name.rsplit(".", 1)[-1]
    if not name or not (name[0].isalpha() or name[0] in "_$"):
        return None
    if not all(c.isalnum() or c in "_$" for c in name):
        return None
    return name


@dataclass(frozen=True)
class ResolvedType:
    """Printed declared type of an expression and of its direct base types."""

    printed: str
    base_printed: List[str] = field(default_factory=list)

    def all_types(self) -> List[str]:
        """The declared type followed by its base types."""
        return [self.printed] + list(self.base_printed)


class TypeResolver(ABC):
    """Resolves the static type of an expression node."""

    @abstractmethod
    def resolve_type(self, node: Node) -> ResolvedType:
        """
        Resolve the declared type of an expression.

        Args:
            node: Expression node of the file the resolver was built for.

        Returns:
            ResolvedType; the printed type is always present.
        """
        pass


class AnyTypeResolver(TypeResolver):
    """Resolver that knows nothing: every expression is ``any``."""

    def resolve_type(self, node: Node) -> ResolvedType:
        return ResolvedType(ANY_TYPE)


@dataclass
class DeclaredClass:
    """Summary of a class or interface declaration."""

    name: str
    kind: str
    bases: List[str] = field(default_factory=list)
    members: Dict[str, str] = field(default_factory=dict)
    file_path: Optional[str] = None


class ClassIndex:
    """
    Name-keyed table of class and interface declarations.

    Holds summaries only, so an index built over a whole project does
    not keep syntax trees alive.
    """

    def __init__(self, classes: Iterable[DeclaredClass] = ()):
        self._classes: Dict[str, DeclaredClass] = {}
        for declared in classes:
            self.add(declared)

    def add(self, declared: DeclaredClass) -> None:
        # First declaration wins; duplicates across files are ambiguous anyway.
        self._classes.setdefault(declared.name, declared)

    def get(self, name: Optional[str]) -> Optional[DeclaredClass]:
        if name is None:
            return None
        return self._classes.get(name)

    def merge(self, other: "ClassIndex") -> "ClassIndex":
        """Return a new index with this index's entries taking precedence."""
        merged = ClassIndex(self._classes.values())
        for declared in other:
            merged.add(declared)
        return merged

    def __iter__(self):
        return iter(self._classes.values())

    def __len__(self) -> int:
        return len(self._classes)

    def __contains__(self, name: str) -> bool:
        return name in self._classes

    @classmethod
    def from_source(cls, source: SourceFile) -> "ClassIndex":
        """Index every class and interface declared in a file."""
        index = cls()
        for node in walk(source.root):
            if node.type in CLASS_NODE_TYPES:
                declared = summarize_class(source, node)
            elif node.type in INTERFACE_NODE_TYPES:
                declared = summarize_interface(source, node)
            else:
                continue
            if declared is not None:
                index.add(declared)
        return index


def class_bases(source: SourceFile, node: Node) -> List[str]:
    """Printed ``extends`` types of a class declaration."""
    bases = []
    for heritage in node.children:
        if heritage.type != "class_heritage":
            continue
        for clause in heritage.named_children:
            if clause.type != "extends_clause":
                continue
            values = clause.children_by_field_name("value")
            if not values:
                text = source.text(clause)
                bases.append(print_type(text[len("extends"):]))
                continue
            for value in values:
                printed = source.text(value)
                following = value.next_named_sibling
                if following is not None and following.type == "type_arguments":
                    printed += source.text(following)
                bases.append(print_type(printed))
    return bases


def interface_bases(source: SourceFile, node: Node) -> List[str]:
    """Printed ``extends`` types of an interface declaration."""
    bases = []
    for clause in node.named_children:
        if clause.type != "extends_type_clause":
            continue
        types = clause.children_by_field_name("type") or significant_children(clause)
        bases.extend(print_type(source.text(t)) for t in types)
    return bases


def annotation_type(source: SourceFile, node: Optional[Node]) -> Optional[str]:
    """Printed type of a ``: Type`` annotation node."""
    if node is None:
        return None
    inner = significant_children(node)
    if not inner:
        return None
    return print_type(source.text(inner[0]))


def _member_name(source: SourceFile, node: Node) -> Optional[str]:
    name = node.child_by_field_name("name")
    if name is None:
        return None
    return source.text(name)


def summarize_class(source: SourceFile, node: Node) -> Optional[DeclaredClass]:
    """Summarize a class declaration's bases and member types."""
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None

    members: Dict[str, str] = {}
    body = node.child_by_field_name("body")
    for member in significant_children(body) if body is not None else []:
        if member.type == "public_field_definition":
            name = _member_name(source, member)
            if name is None:
                continue
            printed = annotation_type(source, member.child_by_field_name("type"))
            if printed is None:
                printed = _initializer_type(source, member.child_by_field_name("value"))
            members[name] = printed

        elif member.type == "method_definition":
            name = _member_name(source, member)
            if name == "constructor":
                members.update(_parameter_properties(source, member))
            elif name is not None and any(c.type == "get" for c in member.children):
                printed = annotation_type(source, member.child_by_field_name("return_type"))
                members[name] = printed or ANY_TYPE

    return DeclaredClass(
        name=source.text(name_node),
        kind="class",
        bases=class_bases(source, node),
        members=members,
        file_path=source.file_path,
    )


def summarize_interface(source: SourceFile, node: Node) -> Optional[DeclaredClass]:
    """Summarize an interface declaration's bases and property types."""
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None

    members: Dict[str, str] = {}
    body = node.child_by_field_name("body")
    for member in significant_children(body) if body is not None else []:
        if member.type == "property_signature":
            name = _member_name(source, member)
            if name is not None:
                printed = annotation_type(source, member.child_by_field_name("type"))
                members[name] = printed or ANY_TYPE

    return DeclaredClass(
        name=source.text(name_node),
        kind="interface",
        bases=interface_bases(source, node),
        members=members,
        file_path=source.file_path,
    )


def _parameter_properties(source: SourceFile, constructor: Node) -> Dict[str, str]:
    properties = {}
    parameters = constructor.child_by_field_name("parameters")
    for param in significant_children(parameters) if parameters is not None else []:
        if param.type not in PARAMETER_NODE_TYPES:
            continue
        if not any(c.type in PARAMETER_PROPERTY_MARKERS for c in param.children):
            continue
        pattern = param.child_by_field_name("pattern")
        if pattern is None or pattern.type != "identifier":
            continue
        printed = annotation_type(source, param.child_by_field_name("type"))
        properties[source.text(pattern)] = printed or ANY_TYPE
    return properties


def _initializer_type(source: SourceFile, value: Optional[Node]) -> str:
    if value is None:
        return ANY_TYPE
    value = unwrap_parentheses(value)
    if value.type == "new_expression":
        return _constructed_type(source, value) or ANY_TYPE
    return ANY_TYPE


def _constructed_type(source: SourceFile, node: Node) -> Optional[str]:
    constructor = node.child_by_field_name("constructor")
    if constructor is None:
        return None
    printed = source.text(constructor)
    type_arguments = node.child_by_field_name("type_arguments")
    if type_arguments is not None:
        printed += source.text(type_arguments)
    return print_type(printed)


class DeclarationTypeResolver(TypeResolver):
    """
    Resolves expression types from declarations in the syntax tree.

    Handles ``new`` expressions, ``this``, identifiers bound by variable
    or parameter declarations, class names, member accesses on resolved
    classes, and transparent wrappers (parentheses, ``await``, ``!``,
    ``as``). Anything else resolves to ``any``.
    """

    def __init__(self, source: SourceFile, project_index: Optional[ClassIndex] = None):
        self.source = source
        local_index = ClassIndex.from_source(source)
        self.classes = local_index.merge(project_index) if project_index else local_index

    def resolve_type(self, node: Node) -> ResolvedType:
        printed = self._printed_type(node, 0)
        return ResolvedType(printed, self._base_types(printed, node))

    def _base_types(self, printed: str, node: Node) -> List[str]:
        if printed == THIS_TYPE:
            declaration = self._enclosing_class(node)
            return class_bases(self.source, declaration) if declaration is not None else []
        declared = self.classes.get(type_base_name(printed))
        return list(declared.bases) if declared is not None else []

    def _printed_type(self, node: Node, depth: int) -> str:
        if depth > MAX_DEPTH:
            return ANY_TYPE

        node = unwrap_parentheses(node)
        node_type = node.type

        if node_type == "new_expression":
            return _constructed_type(self.source, node) or ANY_TYPE

        if node_type == "this":
            return THIS_TYPE if self._enclosing_class(node) is not None else ANY_TYPE

        if node_type == "identifier":
            return self._identifier_type(node, depth)

        if node_type in ("member_expression", "subscript_expression"):
            return self._member_type(node, depth)

        if node_type in ("non_null_expression", "satisfies_expression"):
            operands = significant_children(node)
            return self._printed_type(operands[0], depth + 1) if operands else ANY_TYPE

        if node_type == "as_expression":
            operands = significant_children(node)
            if len(operands) >= 2 and self.source.text(operands[-1]) != "const":
                return print_type(self.source.text(operands[-1]))
            return self._printed_type(operands[0], depth + 1) if operands else ANY_TYPE

        if node_type == "await_expression":
            operands = significant_children(node)
            if not operands:
                return ANY_TYPE
            printed = self._printed_type(operands[0], depth + 1)
            if printed.startswith("Promise<") and printed.endswith(">"):
                return printed[len("Promise<"):-1].strip()
            return printed

        return ANY_TYPE

    def _identifier_type(self, node: Node, depth: int) -> str:
        name = self.source.text(node)
        declarator = self._find_binding(node, name)

        if declarator is not None:
            printed = annotation_type(self.source, declarator.child_by_field_name("type"))
            if printed is not None:
                return printed
            value = declarator.child_by_field_name("value")
            if value is not None:
                return self._printed_type(value, depth + 1)
            return ANY_TYPE

        declared = self.classes.get(name)
        if declared is not None and declared.kind == "class":
            return f"typeof {name}"

        return ANY_TYPE

    def _member_type(self, node: Node, depth: int) -> str:
        owner = node.child_by_field_name("object")
        if node.type == "member_expression":
            prop = node.child_by_field_name("property")
            member = self.source.text(prop) if prop is not None else None
        else:
            index = node.child_by_field_name("index")
            member = None
            if index is not None and index.type == "string":
                member = self.source.text(index)[1:-1]
        if owner is None or member is None:
            return ANY_TYPE

        owner_type = self._printed_type(owner, depth + 1)
        if owner_type == THIS_TYPE:
            declaration = self._enclosing_class(node)
            declared = (
                summarize_class(self.source, declaration)
                if declaration is not None else None
            )
        else:
            declared = self.classes.get(type_base_name(owner_type))

        return self._lookup_member(declared, member, 0)

    def _lookup_member(self, declared: Optional[DeclaredClass], member: str, depth: int) -> str:
        if declared is None or depth > MAX_DEPTH:
            return ANY_TYPE
        if member in declared.members:
            return declared.members[member]
        for base in declared.bases:
            printed = self._lookup_member(
                self.classes.get(type_base_name(base)), member, depth + 1
            )
            if printed != ANY_TYPE:
                return printed
        return ANY_TYPE

    def _find_binding(self, node: Node, name: str) -> Optional[Node]:
        """Find the nearest variable declarator or parameter binding ``name``."""
        scope = node.parent
        while scope is not None:
            if scope.type in FUNCTION_NODE_TYPES:
                parameters = scope.child_by_field_name("parameters")
                for param in significant_children(parameters) if parameters is not None else []:
                    if param.type in PARAMETER_NODE_TYPES:
                        pattern = param.child_by_field_name("pattern")
                        if pattern is not None and self.source.text(pattern) == name:
                            return param
                    elif param.type == "identifier" and self.source.text(param) == name:
                        return None
                single = scope.child_by_field_name("parameter")
                if single is not None and self.source.text(single) == name:
                    return None

            candidates = []
            for statement in scope.children:
                if statement.type not in DECLARATION_NODE_TYPES:
                    continue
                for declarator in statement.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    binding = declarator.child_by_field_name("name")
                    if binding is not None and binding.type == "identifier" \
                            and self.source.text(binding) == name:
                        candidates.append(declarator)
            if candidates:
                preceding = [c for c in candidates if c.start_byte < node.start_byte]
                return preceding[-1] if preceding else candidates[0]

            scope = scope.parent
        return None

    @staticmethod
    def _enclosing_class(node: Node) -> Optional[Node]:
        current = node.parent
        while current is not None:
            if current.type in CLASS_NODE_TYPES:
                return current
            current = current.parent
        return None


RESOLVER_KINDS = ("declaration", "any")


def create_type_resolver(
    kind: str,
    source: SourceFile,
    project_index: Optional[ClassIndex] = None,
) -> TypeResolver:
    """
    Build the resolver configured for a file.

    Args:
        kind: ``declaration`` or ``any``.
        source: Parsed file the resolver answers for.
        project_index: Optional project-wide class index.

    Returns:
        A TypeResolver instance.
    """
    if kind == "any":
        return AnyTypeResolver()
    if kind == "declaration":
        return DeclarationTypeResolver(source, project_index)
    raise TypeResolutionError(
        f"Unknown type resolver: {kind}",
        details={"available": list(RESOLVER_KINDS)},
    )
