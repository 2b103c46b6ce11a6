"""
OpenAI API integration for the decision oracle
"""

import logging

logger = logging.getLogger(__name__)

OPENAI_MODEL = "gpt-4o"


async def call_openai(prompt: str, api_key: str, max_tokens: int = 2048) -> str:
    from openai import AsyncOpenAI

    if not api_key:
        raise ValueError("OPENAI_API_KEY not configured")

    client = AsyncOpenAI(api_key=api_key)
    response = await client.chat.completions.create(
        model=OPENAI_MODEL,
        max_tokens=max_tokens,
        temperature=0,
        response_format={"type": "json_object"},
        messages=[{"role": "user", "content": prompt}]
    )

    usage = response.usage
    if usage:
        logger.info(f"📊 OpenAI API - Input: {usage.prompt_tokens} tokens, Output: {usage.completion_tokens} tokens")
    return response.choices[0].message.content or ""
