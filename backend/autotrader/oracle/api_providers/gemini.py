"""
Gemini API integration for the decision oracle
"""

import asyncio
import logging

logger = logging.getLogger(__name__)

GEMINI_MODEL = "gemini-2.0-flash"


async def call_gemini(prompt: str, api_key: str, max_output_tokens: int = 2048) -> str:
    """Call Google Gemini; the SDK call is blocking so it runs in a worker thread."""
    import google.generativeai as genai

    if not api_key:
        raise ValueError("GEMINI_API_KEY not configured")

    genai.configure(api_key=api_key)
    model = genai.GenerativeModel(GEMINI_MODEL)
    response = await asyncio.to_thread(
        model.generate_content,
        prompt,
        generation_config=genai.GenerationConfig(
            temperature=0,  # Deterministic responses
            max_output_tokens=max_output_tokens,
        )
    )

    usage = getattr(response, "usage_metadata", None)
    if usage:
        logger.info(f"📊 Gemini API - Input: {usage.prompt_token_count} tokens, Output: {usage.candidates_token_count} tokens")
    return response.text
