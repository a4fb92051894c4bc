"""
Main engine for the ORM usage scanner.

Provides a high-level interface for scanning a project directory and
for analyzing single files.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

from ormscan.core.config import Config, ScanConfig
from ormscan.core.pipeline import Pipeline
from ormscan.ingestion.discovery import DiscoveryStage
from ormscan.analysis.analyzer import AnalysisStage, FileAnalyzer, IndexingStage, read_source
from ormscan.analysis.entities import Result
from ormscan.reporting.output import ScanOutput

logger = logging.getLogger(__name__)


class ScanEngine:
    """
    Main engine for TypeORM usage scanning.

    Runs discovery, project indexing and batched analysis, and writes
    the output document as it goes.
    """

    def __init__(self, config: ScanConfig = None):
        self.config = config or Config.get()
        self.pipeline = self._create_pipeline()

    def _create_pipeline(self) -> Pipeline:
        """Create and configure the scan pipeline."""
        pipeline = Pipeline(self.config)

        pipeline.register_stage(DiscoveryStage(self.config))
        pipeline.register_stage(IndexingStage(self.config))
        pipeline.register_stage(AnalysisStage(self.config))

        pipeline.set_execution_order([
            "discovery",
            "indexing",
            "analysis",
        ])

        return pipeline

    def scan(self, root: str) -> Dict[str, Any]:
        """
        Scan every matching file under a root directory.

        Args:
            root: Directory to scan.

        Returns:
            Dictionary with the pipeline id, per-stage metrics, the
            output document and the path it was written to.
        """
        logger.info(f"Starting scan: root={root}")

        state = self.pipeline.run(root)
        analysis = state.data["analysis"]

        result = {
            "pipeline_id": state.pipeline_id,
            "status": "completed",
            "stages": {},
            "output": analysis["output"],
            "output_path": analysis["output_path"],
            "errors": analysis["result"].errors,
        }

        for stage_name, stage_result in state.stage_results.items():
            result["stages"][stage_name] = {
                "status": stage_result.status.value,
                "metrics": stage_result.metrics,
            }

        return result

    def analyze_source(self, file_path: str, content: str) -> List[Result]:
        """
        Analyze one file's content without discovery or output.

        Args:
            file_path: Path reported in the results.
            content: TypeScript source code.

        Returns:
            List of Result records.
        """
        analyzer = FileAnalyzer(self.config.analysis)
        return analyzer.analyze_source(file_path, content)

    def inspect_file(self, path: str) -> List[Result]:
        """
        Analyze one file on disk.

        Args:
            path: Path of the file.

        Returns:
            List of Result records, reported against ``path`` as given.
        """
        return self.analyze_source(Path(path).as_posix(), read_source(Path(path)))


def scan_repository(root: str, config: ScanConfig = None) -> ScanOutput:
    """
    Convenience function to scan a project directory.

    Args:
        root: Directory to scan.
        config: Optional configuration.

    Returns:
        The output document of the scan.
    """
    engine = ScanEngine(config)
    return engine.scan(root)["output"]
