"""Running coach: send the training context plus a command to Gemini."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from google import genai

from src.agent.llm import generate_reply, get_client
from src.agent.prompts import build_instruction, build_system_prompt
from src.tools.activity import Profile
from src.tools.activity_context import build_training_context
from src.tools.activity_store import ActivityStore

logger = logging.getLogger(__name__)

COACHING_DIR = Path(__file__).parent.parent.parent / "data" / "coaching"


def build_coach_message(context: str, instruction: str) -> str:
    """Concatenate the rendered training data and the instruction."""
    return f"## Training Data\n\n{context}\n\n---\n\n{instruction}"


def ask_coach(
    command: str,
    store: ActivityStore,
    profile: Profile | None = None,
    question: str | None = None,
    client: genai.Client | None = None,
    now: datetime | None = None,
    history_dir: str | Path | None = None,
) -> str:
    """Run a coaching command (analyze, week, ask) and return the reply text.

    The exchange is saved under data/coaching/. Raises ValueError for an
    unknown command; google.genai errors propagate on API failure.
    """
    instruction = build_instruction(command, question)
    now = now or datetime.now(timezone.utc)
    context = build_training_context(store, profile, now=now)
    message = build_coach_message(context, instruction)

    logger.info("Asking the coach (%s, %d chars of context)", command, len(context))
    text = generate_reply(message, build_system_prompt(profile), client=client or get_client())
    save_coaching_response(command, message, text, created_at=now, history_dir=history_dir)
    return text


def save_coaching_response(
    command: str,
    prompt: str,
    response: str,
    created_at: datetime | None = None,
    history_dir: str | Path | None = None,
) -> Path:
    """Save one coaching exchange to data/coaching/ with a timestamp filename."""
    dest = Path(history_dir) if history_dir else COACHING_DIR
    dest.mkdir(parents=True, exist_ok=True)
    created_at = created_at or datetime.now(timezone.utc)
    path = dest / f"{created_at.strftime('%Y-%m-%d_%H%M%S')}_{command}.json"
    path.write_text(json.dumps({
        "command": command,
        "prompt": prompt,
        "response": response,
        "created_at": created_at.isoformat(),
    }, indent=2))
    logger.debug("Saved coaching response to %s", path)
    return path
