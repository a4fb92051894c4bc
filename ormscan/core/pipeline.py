"""
Stage orchestration for a scan.

A scan is a fixed sequence of stages (discovery, indexing, analysis).
Each stage reads the outputs of the stages it depends on from the shared
PipelineState and returns its own output plus a metrics dictionary. A
stage may decline to run for a given configuration, in which case it is
recorded as skipped and its dependents see ``None`` as its output.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ormscan.core.config import ScanConfig, Config
from ormscan.core.exceptions import PipelineError

logger = logging.getLogger(__name__)


class StageStatus(Enum):
    """Lifecycle of a stage within one scan."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


# A dependency in one of these states lets its dependents run.
SETTLED_STATUSES = (StageStatus.COMPLETED, StageStatus.SKIPPED)


@dataclass
class StageResult:
    """Bookkeeping for one stage of one scan."""

    stage_name: str
    status: StageStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    output: Any = None
    error: Optional[str] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> Optional[float]:
        """Wall-clock seconds the stage took, once it has finished."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_name": self.stage_name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration": self.duration,
            "error": self.error,
            "metrics": self.metrics,
        }


@dataclass
class PipelineState:
    """Everything one scan has produced so far."""

    pipeline_id: str
    root: str
    created_at: datetime = field(default_factory=datetime.now)
    stage_results: Dict[str, StageResult] = field(default_factory=dict)
    current_stage: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def get_stage_status(self, stage_name: str) -> StageStatus:
        result = self.stage_results.get(stage_name)
        return result.status if result else StageStatus.PENDING

    def is_stage_completed(self, stage_name: str) -> bool:
        return self.get_stage_status(stage_name) == StageStatus.COMPLETED

    def is_stage_settled(self, stage_name: str) -> bool:
        """True once a stage has completed or was skipped."""
        return self.get_stage_status(stage_name) in SETTLED_STATUSES

    def output_of(self, stage_name: str) -> Any:
        """Output of an earlier stage, ``None`` if it was skipped."""
        return self.data.get(stage_name)

    def record_stage_start(self, stage_name: str) -> None:
        self.current_stage = stage_name
        self.stage_results[stage_name] = StageResult(
            stage_name=stage_name,
            status=StageStatus.RUNNING,
            started_at=datetime.now(),
        )

    def record_stage_completion(
        self, stage_name: str, output: Any, metrics: Dict[str, Any] = None
    ) -> None:
        result = self.stage_results.get(stage_name)
        if result is None:
            return
        result.status = StageStatus.COMPLETED
        result.completed_at = datetime.now()
        result.output = output
        result.metrics = metrics or {}
        self.data[stage_name] = output

    def record_stage_skipped(self, stage_name: str) -> None:
        now = datetime.now()
        self.stage_results[stage_name] = StageResult(
            stage_name=stage_name,
            status=StageStatus.SKIPPED,
            started_at=now,
            completed_at=now,
        )
        self.data[stage_name] = None

    def record_stage_failure(self, stage_name: str, error: str) -> None:
        result = self.stage_results.get(stage_name)
        if result is None:
            return
        result.status = StageStatus.FAILED
        result.completed_at = datetime.now()
        result.error = error

    @property
    def failed(self) -> bool:
        """True if any stage failed."""
        return any(
            r.status == StageStatus.FAILED for r in self.stage_results.values()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pipeline_id": self.pipeline_id,
            "root": self.root,
            "created_at": self.created_at.isoformat(),
            "current_stage": self.current_stage,
            "stage_results": {
                name: result.to_dict()
                for name, result in self.stage_results.items()
            },
        }


class PipelineStage(ABC):
    """
    Abstract base class for scan stages.

    Subclasses name themselves, list the stages whose output they read
    and implement ``execute``. Overriding ``should_run`` lets a stage
    opt out for a configuration.
    """

    def __init__(self, config: ScanConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this stage."""
        pass

    @property
    def dependencies(self) -> List[str]:
        """Stages that must be settled before this one runs."""
        return []

    def should_run(self, state: PipelineState) -> bool:
        return True

    @abstractmethod
    def execute(self, state: PipelineState) -> Tuple[Any, Dict[str, Any]]:
        """
        Run the stage.

        Args:
            state: Scan state holding the outputs of earlier stages.

        Returns:
            Tuple of (output_data, metrics_dict).

        Raises:
            PipelineError: If the stage cannot complete.
        """
        pass

    def unmet_dependencies(self, state: PipelineState) -> List[str]:
        """Dependencies that have neither completed nor been skipped."""
        return [dep for dep in self.dependencies if not state.is_stage_settled(dep)]


class Pipeline:
    """
    Runs registered stages in a fixed order over one scan root.

    The first failing stage stops the scan and its exception propagates
    to the caller.
    """

    def __init__(self, config: ScanConfig = None):
        self.config = config or Config.get()
        self.stages: Dict[str, PipelineStage] = {}
        self.execution_order: List[str] = []
        self.logger = logging.getLogger(__name__)

    def register_stage(self, stage: PipelineStage) -> None:
        self.stages[stage.name] = stage
        self.logger.debug(f"Registered stage: {stage.name}")

    def set_execution_order(self, order: List[str]) -> None:
        """
        Fix the order stages run in.

        Args:
            order: Stage names in execution order.

        Raises:
            ValueError: If a stage in the order is not registered.
            PipelineError: If a stage is ordered before one of its
                dependencies.
        """
        seen = set()
        for stage_name in order:
            if stage_name not in self.stages:
                raise ValueError(f"Unknown stage: {stage_name}")
            missing = [d for d in self.stages[stage_name].dependencies if d not in seen]
            if missing:
                raise PipelineError(
                    f"Stage {stage_name} must run after {', '.join(missing)}",
                    stage=stage_name,
                )
            seen.add(stage_name)
        self.execution_order = list(order)

    def run(self, root: str) -> PipelineState:
        """
        Run every stage over a scan root.

        Args:
            root: Directory to scan.

        Returns:
            Final scan state.

        Raises:
            PipelineError: Re-raised from the first failing stage.
        """
        state = PipelineState(pipeline_id=uuid.uuid4().hex[:8], root=root)
        self.logger.info(f"Starting scan {state.pipeline_id} of {root}")

        for stage_name in self.execution_order:
            stage = self.stages[stage_name]

            unmet = stage.unmet_dependencies(state)
            if unmet:
                raise PipelineError(
                    f"Dependencies not met: {', '.join(unmet)}", stage=stage_name
                )

            if not stage.should_run(state):
                state.record_stage_skipped(stage_name)
                self.logger.debug(f"Skipped stage: {stage_name}")
                continue

            state.record_stage_start(stage_name)
            try:
                output, metrics = stage.execute(state)
            except PipelineError as e:
                state.record_stage_failure(stage_name, str(e))
                self.logger.error(f"Stage {stage_name} failed: {e}")
                raise
            except Exception as e:
                state.record_stage_failure(stage_name, str(e))
                self.logger.exception(f"Unexpected error in stage {stage_name}")
                raise

            state.record_stage_completion(stage_name, output, metrics)
            self.logger.debug(
                f"Stage {stage_name} completed in "
                f"{state.stage_results[stage_name].duration:.2f}s: {metrics}"
            )

        return state

    def get_stage(self, name: str) -> Optional[PipelineStage]:
        return self.stages.get(name)

    def list_stages(self) -> List[str]:
        return list(self.stages.keys())
