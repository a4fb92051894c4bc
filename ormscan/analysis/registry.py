"""
Rule registry for syntax-tree rules.

Provides a plugin-based architecture where rules can be registered
and retrieved by name. Each rule declares the node types it visits and
reports messages through the per-file RuleContext.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Type

from tree_sitter import Node

from ormscan.analysis.entities import DiagnosticMessage, Result
from ormscan.analysis.parser import SourceFile
from ormscan.analysis.types import TypeResolver

logger = logging.getLogger(__name__)


@dataclass
class RuleContext:
    """Per-file state handed to rules: the source, its resolver and the report sink."""

    source: SourceFile
    resolver: TypeResolver
    results: List[Result] = field(default_factory=list)

    def report(self, node: Node, message: DiagnosticMessage) -> None:
        """Record a message located at ``node``."""
        self.results.append(Result(
            file_path=self.source.file_path,
            location=self.source.location(node),
            message=message,
        ))


class BaseRule:
    """
    Abstract base class for rules.

    A rule is stateless: ``visit`` is called once for every node whose
    type is listed in NODE_TYPES and reports zero or more messages.
    """

    NAME: str = "unknown"
    DESCRIPTION: str = ""
    NODE_TYPES: List[str] = []

    def visit(self, node: Node, context: RuleContext) -> None:
        """
        Inspect a single node.

        Args:
            node: Node of one of the types in NODE_TYPES.
            context: Per-file rule context.
        """
        raise NotImplementedError("Subclasses must implement visit")


class RuleRegistry:
    """
    Central registry for rules.

    Manages the registration and retrieval of rule plugins.
    """

    _rules: Dict[str, Type[BaseRule]] = {}
    _instances: Dict[str, BaseRule] = {}

    @classmethod
    def register(cls, rule_class: Type[BaseRule]) -> Type[BaseRule]:
        """
        Register a rule.

        Can be used as a decorator:
            @RuleRegistry.register
            class FindSchemaRule(BaseRule):
                ...

        Args:
            rule_class: The rule class to register.

        Returns:
            The registered class (for decorator usage).
        """
        name = rule_class.NAME
        if name in cls._rules and cls._rules[name] is not rule_class:
            logger.warning(
                f"Overwriting existing rule {name}: "
                f"{cls._rules[name].__name__} -> {rule_class.__name__}"
            )
            cls._instances.pop(name, None)

        cls._rules[name] = rule_class
        logger.debug(f"Registered rule {name}: {rule_class.__name__}")
        return rule_class

    @classmethod
    def get_rule(cls, name: str) -> Optional[BaseRule]:
        """
        Get a rule instance by name.

        Lazily instantiates rules on first request.
        """
        if name not in cls._rules:
            return None

        if name not in cls._instances:
            cls._instances[name] = cls._rules[name]()

        return cls._instances[name]

    @classmethod
    def has_rule(cls, name: str) -> bool:
        """Check if a rule is registered."""
        return name in cls._rules

    @classmethod
    def list_rules(cls) -> List[str]:
        """List all registered rule names."""
        return list(cls._rules.keys())

    @classmethod
    def get_rule_class(cls, name: str) -> Optional[Type[BaseRule]]:
        """Get the rule class (not instance) by name."""
        return cls._rules.get(name)
