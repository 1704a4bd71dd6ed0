"""Pipeline orchestrators for the Video Overview Pipeline."""

from app.pipelines.run_video_overview import main
from app.pipelines.video_overview_pipeline import VideoOverviewPipeline

__all__ = ["VideoOverviewPipeline", "main"]
