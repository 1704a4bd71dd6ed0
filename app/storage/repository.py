"""Storage repository for pipeline runs."""

from pathlib import Path
from typing import Any, Optional

from app.core.config import Settings
from app.models.schemas import CompositionConfig, PipelineResult, PipelineState
from app.utils.io_utils import write_text_atomic


class RunRepository:
    """Repository for storing and loading pipeline results."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the repository.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.storage_path = Path(settings.storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.states_path = self.storage_path / "states"
        self.states_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, run_id: str) -> Path:
        return self.storage_path / f"{run_id}.json"

    def save_run(self, result: PipelineResult) -> Path:
        """
        Save a pipeline result to storage.

        Args:
            result: Result to save

        Returns:
            Path of the stored file
        """
        file_path = write_text_atomic(self._path_for(result.run_id), result.model_dump_json(indent=2))
        self.logger.info(f"Run saved to: {file_path}")
        return file_path

    def load_run(self, run_id: str) -> Optional[PipelineResult]:
        """
        Load a pipeline result from storage.

        Args:
            run_id: Run identifier

        Returns:
            Pipeline result if found, None otherwise
        """
        file_path = self._path_for(run_id)
        if not file_path.exists():
            self.logger.warning(f"Run not found: {run_id}")
            return None

        result = PipelineResult.model_validate_json(file_path.read_text(encoding="utf-8"))
        self.logger.info(f"Run loaded: {run_id}")
        return result

    def save_composition(self, run_id: str, composition: CompositionConfig) -> Optional[PipelineResult]:
        """
        Replace the stored composition of a run.

        Args:
            run_id: Run identifier
            composition: Validated composition

        Returns:
            Updated result, or None if the run does not exist
        """
        result = self.load_run(run_id)
        if result is None:
            return None
        updated = result.model_copy(update={"composition": composition})
        self.save_run(updated)
        return updated

    def save_state(self, state: PipelineState) -> Path:
        """
        Save the state of a run that has no result, such as a failed run.

        Args:
            state: Run state to save

        Returns:
            Path of the stored file
        """
        file_path = write_text_atomic(self.states_path / f"{state.run_id}.json", state.model_dump_json(indent=2))
        self.logger.info(f"Run state saved: {state.run_id} ({state.stage.value})")
        return file_path

    def load_state(self, run_id: str) -> Optional[PipelineState]:
        """
        Load the latest state of a run.

        A completed run reports the state stored with its result; otherwise
        the separately saved state is used.

        Args:
            run_id: Run identifier

        Returns:
            Run state if the run is known, None otherwise
        """
        if self._path_for(run_id).exists():
            return self.load_run(run_id).state

        file_path = self.states_path / f"{run_id}.json"
        if not file_path.exists():
            return None
        return PipelineState.model_validate_json(file_path.read_text(encoding="utf-8"))

    def list_runs(self) -> list[str]:
        """
        List all run IDs.

        Returns:
            List of run IDs, sorted
        """
        run_ids = sorted(f.stem for f in self.storage_path.glob("*.json"))
        self.logger.info(f"Found {len(run_ids)} runs")
        return run_ids
