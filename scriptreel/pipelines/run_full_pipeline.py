"""Full pipeline orchestrator - script → narration → footage or captions → rendered video."""

import argparse
import json
import sys
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from pydantic import ValidationError

from scriptreel.core.config import Settings, settings
from scriptreel.core.errors import PipelineError, PipelineStageError
from scriptreel.core.logging_config import configure_from_settings, get_logger
from scriptreel.models.schemas import (
    AudioGenerationOptions,
    AudioSegment,
    NarrationTrack,
    QualityTier,
    RenderedArtifact,
    Script,
    ScriptSection,
    StoredArtifact,
)
from scriptreel.services.audio_track_builder import AudioTrackBuilder
from scriptreel.services.footage_catalog import PexelsFootageCatalog
from scriptreel.services.interfaces import ArtifactStorage, FootageCatalog, SpeechSynthesizer
from scriptreel.services.tts_client import TTSClient
from scriptreel.services.video_compositor import VideoCompositor
from scriptreel.services.video_segment_selector import VideoSegmentSelector
from scriptreel.storage.repository import LocalArtifactStore
from scriptreel.utils.error_handler import format_error_message, get_fallback_suggestion
from scriptreel.utils.io_utils import timestamped_identifier

T = TypeVar("T")

# Stage name -> service name used for recovery suggestions
STAGE_SERVICES = {
    "audio": "TTS",
    "footage selection": "Footage Search",
    "compositing": "Video Encoding",
    "storage": "Storage",
}


class PipelineOrchestrator:
    """Runs narration, footage selection and compositing in sequence for one script."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        synthesizer: Optional[SpeechSynthesizer] = None,
        catalog: Optional[FootageCatalog] = None,
        compositor: Optional[VideoCompositor] = None,
        store: Optional[ArtifactStorage] = None,
    ):
        """
        Initialize the orchestrator.

        Collaborators default to the configured production implementations.

        Args:
            settings: Application settings
            logger: Logger instance
            synthesizer: Speech synthesizer (TTSClient by default)
            catalog: Footage catalog (Pexels by default)
            compositor: Video compositor
            store: Artifact storage (local disk by default)
        """
        self.settings = settings
        self.logger = logger
        self.synthesizer = synthesizer or TTSClient(settings, logger)
        self.catalog = catalog or PexelsFootageCatalog(settings, logger)
        self.audio_builder = AudioTrackBuilder(settings, logger, self.synthesizer)
        self.selector = VideoSegmentSelector(settings, logger, self.catalog)
        self.compositor = compositor or VideoCompositor(settings, logger, self.catalog)
        self.store = store or LocalArtifactStore(settings, logger)

    def _stage(self, name: str, run_id: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run one stage; failures are logged and re-raised as PipelineStageError."""
        try:
            return func(*args, **kwargs)
        except Exception as e:
            service = STAGE_SERVICES.get(name, name)
            context = {"run_id": run_id}
            section_title = getattr(e, "section_title", None)
            if section_title:
                context["section"] = section_title
            self.logger.bind(run_id=run_id).error(
                format_error_message(
                    operation=f"Stage '{name}'",
                    error=e,
                    context=context,
                    suggestion=get_fallback_suggestion(service, e),
                )
            )
            raise PipelineStageError(name, e) from e

    def generate_narration(
        self,
        sections: list[ScriptSection],
        options: Optional[AudioGenerationOptions] = None,
        run_id: Optional[str] = None,
    ) -> tuple[NarrationTrack, list[AudioSegment]]:
        """
        Run only the audio stage.

        Args:
            sections: Script sections
            options: Voice and pause options
            run_id: Optional run identifier for log context

        Returns:
            Tuple of (NarrationTrack, AudioSegments)

        Raises:
            PipelineStageError: If narration fails
        """
        run_id = run_id or f"run_{uuid.uuid4().hex[:12]}"
        return self._stage("audio", run_id, self.audio_builder.build, sections, options)

    def run(
        self,
        sections: list[ScriptSection],
        quality: Optional[QualityTier] = None,
        options: Optional[AudioGenerationOptions] = None,
    ) -> RenderedArtifact:
        """
        Main entrypoint: turn script sections into a rendered video.

        Stages run strictly in order and the first failure ends the run.

        Args:
            sections: Script sections
            quality: Quality tier (settings default when None)
            options: Voice and pause options

        Returns:
            RenderedArtifact for the caller to store

        Raises:
            PipelineStageError: Wrapping the failing stage's error
        """
        run_id = f"run_{uuid.uuid4().hex[:12]}"
        quality = quality or QualityTier(self.settings.default_quality)
        start_time = time.time()
        log = self.logger.bind(run_id=run_id)

        log.info("=" * 60)
        log.info(f"Starting pipeline run {run_id}")
        log.info(f"Sections: {len(sections)}, quality: {quality.value}")
        log.info("=" * 60)

        # Step 1: Narration
        log.info("Step 1: Building narration track...")
        narration, segments = self.generate_narration(sections, options, run_id=run_id)

        # Step 2: Footage selection
        log.info("Step 2: Selecting footage...")
        weights = AudioTrackBuilder.section_durations(segments)
        budgets = self._stage(
            "footage selection", run_id, self.selector.compute_budgets, sections, narration.duration_seconds, weights
        )
        plans = self._stage("footage selection", run_id, self.selector.select, budgets, narration.duration_seconds)

        # Step 3: Compositing
        log.info("Step 3: Compositing video...")
        artifact = self._stage("compositing", run_id, self.compositor.render, plans, narration, quality, budgets)

        elapsed = time.time() - start_time
        log.info("=" * 60)
        log.info(f"Pipeline run {run_id} complete in {elapsed:.2f}s")
        log.info(f"Duration: {artifact.duration_seconds:.2f}s, segments: {artifact.segment_count}")
        if artifact.looping_applied:
            log.info(f"Looped footage: {artifact.looped_seconds:.2f}s")
        log.info("=" * 60)
        return artifact

    def run_and_store(
        self, script: Script, quality: Optional[QualityTier] = None
    ) -> tuple[StoredArtifact, RenderedArtifact]:
        """
        Run the full pipeline and hand the video to storage.

        Returns:
            Tuple of (StoredArtifact, RenderedArtifact)
        """
        artifact = self.run(script.sections, quality)
        identifier = timestamped_identifier(f"script-video-{script.title}")
        metadata = {"title": script.title, **artifact.metadata()}
        stored = self._stage(
            "storage", identifier, self.store.save, artifact.buffer, "videos", identifier, "mp4", metadata
        )
        return stored, artifact

    def run_subtitles(
        self,
        sections: list[ScriptSection],
        quality: Optional[QualityTier] = None,
        options: Optional[AudioGenerationOptions] = None,
    ) -> RenderedArtifact:
        """
        Turn script sections into a narrated caption video without stock footage.

        Args:
            sections: Script sections
            quality: Quality tier (settings default when None)
            options: Voice and pause options

        Returns:
            RenderedArtifact for the caller to store

        Raises:
            PipelineStageError: Wrapping the failing stage's error
        """
        run_id = f"run_{uuid.uuid4().hex[:12]}"
        quality = quality or QualityTier(self.settings.default_quality)
        start_time = time.time()
        log = self.logger.bind(run_id=run_id)

        log.info(f"Starting subtitle run {run_id}: {len(sections)} sections, quality {quality.value}")

        narration, segments = self.generate_narration(sections, options, run_id=run_id)
        artifact = self._stage(
            "compositing", run_id, self.compositor.render_subtitles, sections, segments, narration, quality
        )

        log.info(f"Subtitle run {run_id} complete in {time.time() - start_time:.2f}s ({artifact.segment_count} cues)")
        return artifact

    def subtitles_and_store(
        self, script: Script, quality: Optional[QualityTier] = None
    ) -> tuple[StoredArtifact, RenderedArtifact]:
        """
        Render a caption video and hand it to storage.

        Returns:
            Tuple of (StoredArtifact, RenderedArtifact)
        """
        artifact = self.run_subtitles(script.sections, quality)
        identifier = timestamped_identifier(f"script-subtitles-{script.title}")
        metadata = {"title": script.title, **artifact.metadata()}
        stored = self._stage(
            "storage", identifier, self.store.save, artifact.buffer, "videos", identifier, "mp4", metadata
        )
        return stored, artifact

    def narrate_and_store(
        self, script: Script, options: Optional[AudioGenerationOptions] = None
    ) -> tuple[StoredArtifact, NarrationTrack, list[AudioSegment]]:
        """
        Build the narration track and hand it to storage without rendering video.

        Returns:
            Tuple of (StoredArtifact, NarrationTrack, AudioSegments)
        """
        narration, segments = self.generate_narration(script.sections, options)
        identifier = timestamped_identifier(f"script-audio-{script.title}")
        metadata = {
            "title": script.title,
            "duration_seconds": narration.duration_seconds,
            "total_sections": len(script.sections),
            "audio_segments": len(segments),
        }
        stored = self._stage(
            "storage", identifier, self.store.save, narration.buffer, "audio", identifier, "wav", metadata
        )
        return stored, narration, segments


def load_script(path: Path) -> Script:
    """
    Load a script from a JSON file.

    Accepts either ``{"title": ..., "sections": [...]}`` or a bare list of sections.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"title": path.stem, "sections": data}
    return Script.model_validate(data)


def main():
    """Main entrypoint for full pipeline."""
    parser = argparse.ArgumentParser(
        description="Scriptreel - turn a script into a narrated stock-footage video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--script",
        type=str,
        required=True,
        help="Path to a JSON script ({\"title\": ..., \"sections\": [{\"orderIndex\", \"title\", \"content\", \"estimatedDuration\"}]})",
    )
    parser.add_argument(
        "--quality",
        type=str,
        default=None,
        choices=[q.value for q in QualityTier],
        help="Encoding quality tier (default: DEFAULT_QUALITY setting)",
    )
    parser.add_argument(
        "--audio-only",
        action="store_true",
        help="Only build and store the narration track (skip footage and rendering)",
    )
    parser.add_argument(
        "--subtitles",
        action="store_true",
        help="Render narration over caption cards instead of stock footage",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Storage directory for artifacts (default: STORAGE_PATH setting)",
    )
    parser.add_argument(
        "--no-pauses",
        action="store_true",
        help="Do not insert silence between sections",
    )

    args = parser.parse_args()

    run_settings = settings
    overrides: dict[str, Any] = {}
    if args.output_dir:
        overrides["storage_path"] = args.output_dir
    if args.no_pauses:
        overrides["add_pause_between_sections"] = False
    if overrides:
        run_settings = settings.model_copy(update=overrides)

    configure_from_settings(run_settings)
    logger = get_logger(__name__)

    try:
        script = load_script(Path(args.script))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Could not read script {args.script}: {e}")
        return 1

    logger.info(f"Loaded script '{script.title}' with {len(script.sections)} sections")

    try:
        orchestrator = PipelineOrchestrator(run_settings, logger)

        if args.audio_only:
            stored, narration, segments = orchestrator.narrate_and_store(script)
            logger.info(f"Narration: {narration.duration_seconds:.2f}s from {len(segments)} segments")
        elif args.subtitles:
            quality = QualityTier(args.quality) if args.quality else None
            stored, artifact = orchestrator.subtitles_and_store(script, quality)
            logger.info(f"Subtitle video: {artifact.duration_seconds:.2f}s, {artifact.segment_count} cues")
        else:
            quality = QualityTier(args.quality) if args.quality else None
            stored, artifact = orchestrator.run_and_store(script, quality)
            logger.info(f"Video: {artifact.duration_seconds:.2f}s, {artifact.segment_count} segments")

        print(stored.url)
        return 0

    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user")
        return 1
    except PipelineError as e:
        logger.error(f"\n❌ Error: {e}")
        if e.suggestion:
            logger.error(f"💡 Suggestion: {e.suggestion}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
