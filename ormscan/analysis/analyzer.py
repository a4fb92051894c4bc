"""
Static analyzer orchestration.

FileAnalyzer parses one TypeScript file with tree-sitter, builds the
file's type resolver and dispatches every syntax node to the rules that
registered for its type. The indexing and analysis pipeline stages run
it over the discovered files, batch by batch, on a thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ormscan.core.config import AnalysisConfig
from ormscan.core.exceptions import AnalysisError
from ormscan.core.pipeline import PipelineStage, PipelineState
from ormscan.analysis.detector import LanguageDetector
from ormscan.analysis.entities import Result
from ormscan.analysis.parser import SourceFile, parse_source, walk
from ormscan.analysis.registry import BaseRule, RuleContext, RuleRegistry
from ormscan.analysis.types import RESOLVER_KINDS, ClassIndex, create_type_resolver
from ormscan.utils.logging_config import pluralize

logger = logging.getLogger(__name__)

DEFAULT_GRAMMAR = "typescript"


@dataclass
class AnalysisResult:
    """Result of static analysis for a single file or a batch of files."""

    results: List[Result] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    def merge(self, other: "AnalysisResult") -> None:
        """Merge another analysis result into this one."""
        self.results.extend(other.results)
        self.errors.extend(other.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "results": [r.to_dict() for r in self.results],
            "errors": self.errors,
            "metrics": self.metrics,
        }


def read_source(path: Path) -> str:
    """Read a source file as UTF-8, replacing undecodable bytes."""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def process_files(
    items: Sequence[Any],
    worker: Callable[[Any], Any],
    max_workers: int = 4,
    parallel_threshold: int = 8,
) -> List[Tuple[Any, Optional[Exception]]]:
    """
    Apply ``worker`` to every item, in parallel for larger inputs.

    Args:
        items: Work items.
        worker: Function called once per item.
        max_workers: Thread pool size.
        parallel_threshold: Inputs smaller than this run sequentially.

    Returns:
        One (value, error) pair per item, in input order. Exactly one of
        the two is set.
    """
    if not items:
        return []

    outcomes: List[Tuple[Any, Optional[Exception]]] = [(None, None)] * len(items)

    if len(items) < parallel_threshold or max_workers <= 1:
        for i, item in enumerate(items):
            try:
                outcomes[i] = (worker(item), None)
            except Exception as e:
                outcomes[i] = (None, e)
        return outcomes

    num_workers = min(max_workers, len(items))
    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        future_to_index = {
            executor.submit(worker, item): i
            for i, item in enumerate(items)
        }

        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                outcomes[index] = (future.result(), None)
            except Exception as e:
                outcomes[index] = (None, e)

    return outcomes


class FileAnalyzer:
    """
    Runs the enabled rules over single source files.

    Rules are stateless and the analyzer only reads its configuration,
    so one instance may analyze files on several threads at once.
    """

    def __init__(
        self,
        config: AnalysisConfig = None,
        project_index: Optional[ClassIndex] = None,
    ):
        self.config = config or AnalysisConfig()
        self.project_index = project_index
        self.detector = LanguageDetector(self.config)

        if self.config.type_resolver not in RESOLVER_KINDS:
            raise AnalysisError(
                f"Unknown type resolver: {self.config.type_resolver}",
                details={"available": list(RESOLVER_KINDS)},
            )

        self.rules = self._load_rules()
        self._dispatch: Dict[str, List[BaseRule]] = {}
        for rule in self.rules:
            for node_type in rule.NODE_TYPES:
                self._dispatch.setdefault(node_type, []).append(rule)

    def _load_rules(self) -> List[BaseRule]:
        """Load the enabled rule plugins."""
        from ormscan.analysis import rules  # noqa: F401

        loaded = []
        for name in self.config.rules:
            rule = RuleRegistry.get_rule(name)
            if rule is None:
                raise AnalysisError(
                    f"Unknown rule: {name}",
                    details={"available": RuleRegistry.list_rules()},
                )
            loaded.append(rule)
        return loaded

    def grammar_for(self, file_path: str) -> str:
        """Grammar to parse a file with, ``typescript`` when unknown."""
        detected = self.detector.detect_file_language(Path(file_path))
        if detected.language == "unknown":
            return DEFAULT_GRAMMAR
        return detected.language

    def parse(self, file_path: str, content: str, grammar: str = None) -> SourceFile:
        return parse_source(file_path, content, grammar or self.grammar_for(file_path))

    def analyze_source(
        self,
        file_path: str,
        content: str,
        grammar: str = None,
    ) -> List[Result]:
        """
        Analyze a single file's content.

        Args:
            file_path: Path reported in the results.
            content: File content.
            grammar: Grammar (detected from the extension if not provided).

        Returns:
            Results in syntax-tree traversal order.
        """
        source = self.parse(file_path, content, grammar)
        return self.analyze_tree(source)

    def analyze_tree(self, source: SourceFile) -> List[Result]:
        """Run the rules over an already parsed file."""
        resolver = create_type_resolver(
            self.config.type_resolver, source, self.project_index
        )
        context = RuleContext(source=source, resolver=resolver)

        for node in walk(source.root):
            for rule in self._dispatch.get(node.type, ()):
                rule.visit(node, context)

        return context.results

    def index_source(self, file_path: str, content: str, grammar: str = None) -> ClassIndex:
        """Index the classes and interfaces declared in a file."""
        return ClassIndex.from_source(self.parse(file_path, content, grammar))


class IndexingStage(PipelineStage):
    """
    Pipeline stage that indexes class declarations across the project.

    Lets the declaration resolver follow types declared in other files.
    Skipped when project indexing is disabled or the resolver does not
    read declarations.
    """

    @property
    def name(self) -> str:
        return "indexing"

    @property
    def dependencies(self) -> List[str]:
        return ["discovery"]

    def should_run(self, state: PipelineState) -> bool:
        analysis = self.config.analysis
        return analysis.index_project and analysis.type_resolver == "declaration"

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        analysis = self.config.analysis
        files = state.output_of("discovery")["files"]
        analyzer = FileAnalyzer(analysis)

        outcomes = process_files(
            files,
            lambda f: analyzer.index_source(f.relative_path, read_source(f.path)),
            max_workers=analysis.max_workers,
            parallel_threshold=analysis.parallel_threshold,
        )

        index = ClassIndex()
        failures = 0
        for file_info, (file_index, error) in zip(files, outcomes):
            if error is not None:
                failures += 1
                self.logger.debug(f"Could not index {file_info.relative_path}: {error}")
                continue
            for declared in file_index:
                index.add(declared)

        self.logger.info(
            f"Indexed {len(index)} {pluralize('declaration', len(index))} "
            f"from {len(files) - failures} {pluralize('file', len(files) - failures)}"
        )

        return {"index": index}, {
            "classes_indexed": len(index),
            "files_indexed": len(files) - failures,
        }


class AnalysisStage(PipelineStage):
    """
    Pipeline stage for static analysis.

    Splits the discovered files into batches, skips files the output
    document already lists as done, analyzes the rest and writes the
    output document after every batch.
    """

    @property
    def name(self) -> str:
        return "analysis"

    @property
    def dependencies(self) -> List[str]:
        return ["discovery", "indexing"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        discovery = state.output_of("discovery")
        files = discovery["files"]
        output = discovery["output"]
        indexing = state.output_of("indexing")
        index = indexing["index"] if indexing else None

        analyzer = FileAnalyzer(self.config.analysis, project_index=index)
        output_path = Path(self.config.output.output_path)

        combined = AnalysisResult()
        files_analyzed = 0
        files_skipped = 0

        batch_size = self.config.output.batch_size or max(len(files), 1)
        for start in range(0, len(files), batch_size):
            unskipped = files[start:start + batch_size]
            batch = [f for f in unskipped if not output.is_done(f.relative_path)]

            skipped = len(unskipped) - len(batch)
            if skipped:
                self.logger.info(f"Skipped {skipped} {pluralize('file', skipped)}")
                files_skipped += skipped

            batch_result = self.analyze_batch(analyzer, batch)
            combined.merge(batch_result)
            files_analyzed += len(batch)

            output.add_results(batch_result.results)
            output.mark_done(f.relative_path for f in batch)
            output.save(output_path, indent=self.config.output.indent)

            done = min(start + batch_size, len(files))
            progress = min(done / len(files) * 100, 100)
            self.logger.info(f"Analyzing... {progress:.2f}% ({done}/{len(files)})")

        if not files:
            output.save(output_path, indent=self.config.output.indent)

        combined.metrics = {
            "files_analyzed": files_analyzed,
            "files_skipped": files_skipped,
            "files_failed": len(combined.errors),
            "results": len(combined.results),
            "total_results": len(output.results),
        }

        self.logger.info(
            f"Analyzed {files_analyzed} {pluralize('file', files_analyzed)}, "
            f"reported {len(combined.results)} {pluralize('result', len(combined.results))}"
        )

        return {
            "result": combined,
            "output": output,
            "output_path": output_path,
        }, {
            **combined.metrics,
            "errors": combined.errors,
        }

    def analyze_batch(self, analyzer: FileAnalyzer, batch: Sequence[Any]) -> AnalysisResult:
        """
        Analyze a batch of files.

        A file that cannot be read, parsed or analyzed is recorded in the
        result's errors and contributes no results.
        """
        outcomes = process_files(
            batch,
            lambda f: analyzer.analyze_source(f.relative_path, read_source(f.path)),
            max_workers=self.config.analysis.max_workers,
            parallel_threshold=self.config.analysis.parallel_threshold,
        )

        batch_result = AnalysisResult()
        for file_info, (results, error) in zip(batch, outcomes):
            if error is not None:
                self.logger.warning(f"Error analyzing {file_info.relative_path}: {error}")
                batch_result.errors.append({
                    "file": file_info.relative_path,
                    "error": str(error),
                    "type": type(error).__name__,
                })
                continue
            batch_result.results.extend(results)

        return batch_result


def analyze_source(
    file_path: str,
    content: str,
    config: AnalysisConfig = None,
    grammar: str = None,
) -> List[Result]:
    """
    Convenience function to analyze one file's content.

    Args:
        file_path: Path reported in the results.
        content: TypeScript source code.
        config: Optional analysis configuration.
        grammar: Optional grammar override.

    Returns:
        List of Result records.
    """
    return FileAnalyzer(config).analyze_source(file_path, content, grammar)
