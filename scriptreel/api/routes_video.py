"""FastAPI routes for narration and video generation."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from scriptreel.core.config import Settings
from scriptreel.core.errors import InsufficientFootage, InvalidInput, PipelineError, PipelineStageError
from scriptreel.core.logging_config import get_logger
from scriptreel.models.schemas import (
    AudioGenerationOptions,
    GenerateAudioRequest,
    GenerateAudioResponse,
    GenerateVideoRequest,
    GenerateVideoResponse,
)
from scriptreel.pipelines.run_full_pipeline import PipelineOrchestrator

router = APIRouter(prefix="/videos", tags=["videos"])

# Caller mistakes rather than service failures
CLIENT_ERRORS = (InvalidInput, InsufficientFootage)


def get_settings(http_request: Request) -> Settings:
    """Settings the application was created with."""
    return http_request.app.state.settings


def get_orchestrator(settings: Settings, logger: Any) -> PipelineOrchestrator:
    """Build an orchestrator wired to the production collaborators."""
    return PipelineOrchestrator(settings, logger)


def to_http_error(error: PipelineError) -> HTTPException:
    """Map a pipeline failure to an HTTP error with stage, message and suggestion."""
    cause = error.error if isinstance(error, PipelineStageError) else error
    status_code = 400 if isinstance(cause, CLIENT_ERRORS) else 500
    return HTTPException(
        status_code=status_code,
        detail={
            "stage": getattr(error, "stage", None),
            "error": str(cause),
            "error_type": type(cause).__name__,
            "suggestion": error.suggestion,
        },
    )


@router.post("/audio", response_model=GenerateAudioResponse)
async def generate_audio(request: GenerateAudioRequest, settings: Settings = Depends(get_settings)) -> GenerateAudioResponse:
    """
    Convert a script to a single narration WAV.

    Pipeline:
    TTS per section → silence between sections → concatenation → storage
    """
    logger = get_logger(__name__, script_title=request.script.title)
    logger.info(f"Narration request: '{request.script.title}' ({len(request.script.sections)} sections)")

    options = AudioGenerationOptions(
        add_pause_between_sections=request.add_pause_between_sections,
        pause_duration=request.pause_duration,
    )

    try:
        orchestrator = get_orchestrator(settings, logger)
        stored, narration, segments = await run_in_threadpool(orchestrator.narrate_and_store, request.script, options)
    except PipelineError as e:
        raise to_http_error(e) from e

    return GenerateAudioResponse(
        audio_url=stored.url,
        duration_seconds=narration.duration_seconds,
        total_sections=len(request.script.sections),
        audio_segments=len(segments),
    )


@router.post("/generate", response_model=GenerateVideoResponse)
async def generate_video(request: GenerateVideoRequest, settings: Settings = Depends(get_settings)) -> GenerateVideoResponse:
    """
    Render a script into a narrated stock-footage video.

    Pipeline:
    AudioTrackBuilder → VideoSegmentSelector → VideoCompositor → storage
    """
    logger = get_logger(__name__, script_title=request.script.title)
    logger.info("=" * 60)
    logger.info(f"Video request: '{request.script.title}' ({len(request.script.sections)} sections)")
    logger.info(f"Quality: {request.quality.value}")
    logger.info("=" * 60)

    try:
        orchestrator = get_orchestrator(settings, logger)
        stored, artifact = await run_in_threadpool(orchestrator.run_and_store, request.script, request.quality)
    except PipelineError as e:
        raise to_http_error(e) from e

    return GenerateVideoResponse(video_url=stored.url, metadata=artifact.metadata())


@router.post("/subtitles", response_model=GenerateVideoResponse)
async def generate_subtitle_video(request: GenerateVideoRequest, settings: Settings = Depends(get_settings)) -> GenerateVideoResponse:
    """
    Render a script into a narrated caption video (no stock footage).

    Pipeline:
    AudioTrackBuilder → caption cues → VideoCompositor.render_subtitles → storage
    """
    logger = get_logger(__name__, script_title=request.script.title)
    logger.info(f"Subtitle video request: '{request.script.title}' ({len(request.script.sections)} sections)")

    try:
        orchestrator = get_orchestrator(settings, logger)
        stored, artifact = await run_in_threadpool(orchestrator.subtitles_and_store, request.script, request.quality)
    except PipelineError as e:
        raise to_http_error(e) from e

    return GenerateVideoResponse(video_url=stored.url, metadata=artifact.metadata())
