"""
Claude API integration for the decision oracle
"""

import logging

logger = logging.getLogger(__name__)

CLAUDE_MODEL = "claude-sonnet-4-5-20250929"


async def call_claude(prompt: str, api_key: str, max_tokens: int = 2048) -> str:
    """Call Claude via the async Anthropic client."""
    from anthropic import AsyncAnthropic

    if not api_key:
        raise ValueError("ANTHROPIC_API_KEY not configured")

    client = AsyncAnthropic(api_key=api_key)
    response = await client.messages.create(
        model=CLAUDE_MODEL,
        max_tokens=max_tokens,
        temperature=0,
        messages=[{"role": "user", "content": prompt}]
    )

    logger.info(f"📊 Claude API - Input: {response.usage.input_tokens} tokens, Output: {response.usage.output_tokens} tokens")
    return response.content[0].text
