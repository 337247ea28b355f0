"""Gemini backend for the running coach (google-genai SDK).

The model can be overridden with GEMINI_MODEL; the key comes from
GEMINI_API_KEY.
"""

import os

from google import genai

MODEL = "gemini-2.5-flash"
MAX_OUTPUT_TOKENS = 2048


def get_client() -> genai.Client:
    """Create a Gemini client using the API key from environment."""
    api_key = os.environ.get("GEMINI_API_KEY")
    if not api_key:
        raise ValueError("GEMINI_API_KEY not set in environment")
    return genai.Client(api_key=api_key)


def model_name() -> str:
    return os.environ.get("GEMINI_MODEL") or MODEL


def generate_reply(
    message: str,
    system_instruction: str,
    client: genai.Client | None = None,
) -> str:
    """Send one user message with a system instruction; return the stripped reply.

    API errors from google.genai propagate to the caller.
    """
    client = client or get_client()
    response = client.models.generate_content(
        model=model_name(),
        contents=[
            genai.types.Content(
                role="user",
                parts=[genai.types.Part(text=message)],
            ),
        ],
        config=genai.types.GenerateContentConfig(
            system_instruction=system_instruction,
            max_output_tokens=MAX_OUTPUT_TOKENS,
        ),
    )
    return (response.text or "").strip()
