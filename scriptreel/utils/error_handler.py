"""Error Handler - formats pipeline failures into actionable log messages."""

from typing import Optional


def format_error_message(
    operation: str,
    error: Exception,
    context: Optional[dict] = None,
    suggestion: Optional[str] = None,
) -> str:
    """
    Format a user-friendly error message.

    Args:
        operation: What operation was being performed (e.g., "Synthesizing narration")
        error: The exception that occurred
        context: Additional context (e.g., {"run_id": "run_123", "section": "Intro"})
        suggestion: Optional suggestion for how to fix the issue

    Returns:
        Formatted error message
    """
    error_type = type(error).__name__

    context_str = ""
    if context:
        context_parts = [f"{k}={v}" for k, v in context.items()]
        context_str = f" ({', '.join(context_parts)})"

    message = f"❌ {operation} failed{context_str}\n"
    message += f"   Error: {error_type}: {error}"

    if suggestion:
        message += f"\n   💡 Suggestion: {suggestion}"

    return message


def get_fallback_suggestion(service: str, error: Exception) -> Optional[str]:
    """
    Get a suggestion for how to recover from a service failure.

    Errors that carry their own ``suggestion`` attribute take precedence.

    Args:
        service: Service name ("TTS", "Footage Search", "Video Encoding", "Storage")
        error: The exception

    Returns:
        Suggestion string or None
    """
    own_suggestion = getattr(error, "suggestion", None)
    if own_suggestion:
        return own_suggestion

    error_msg = str(error).lower()

    if service == "TTS":
        if "api key" in error_msg or "401" in error_msg:
            return "Check ELEVENLABS_API_KEY in your .env file, or unset it to use silent stub narration."
        elif "rate limit" in error_msg or "429" in error_msg:
            return "ElevenLabs rate limit exceeded. Wait a few minutes and re-run the script."
        elif "network" in error_msg or "timeout" in error_msg or "timed out" in error_msg:
            return "Network error reaching the TTS provider. Check your connection and re-run."
        else:
            return "Narration synthesis failed. Review the failing section's text and re-run."

    elif service == "Footage Search":
        if "api key" in error_msg or "401" in error_msg:
            return "Check PEXELS_API_KEY in your .env file."
        elif "rate limit" in error_msg or "429" in error_msg:
            return "Pexels rate limit exceeded. Wait and try again later."
        elif "network" in error_msg or "timeout" in error_msg or "timed out" in error_msg:
            return "Network error reaching the footage catalog. Check your connection and re-run."
        else:
            return "Footage search failed. Try sections with more concrete, searchable terms."

    elif service == "Video Encoding":
        if "ffmpeg" in error_msg:
            return "Check that ffmpeg is installed and can decode the downloaded clips."
        elif "no such file" in error_msg or "not found" in error_msg:
            return "A footage clip was missing on disk. Re-run to download it again."
        else:
            return "Rendering failed. Try a lower quality tier or re-run the pipeline."

    elif service == "Storage":
        if "permission" in error_msg:
            return "Check write permissions for STORAGE_PATH."
        elif "no space" in error_msg:
            return "Free disk space under STORAGE_PATH and re-run."
        else:
            return "Storing the artifact failed. Check STORAGE_PATH and re-run."

    return None
