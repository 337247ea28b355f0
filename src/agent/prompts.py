"""Prompts for the running coach."""

from src.tools.activity import Profile

COACH_SYSTEM_PROMPT = """\
You are an experienced running coach. Be direct and data-driven.

The athlete's training data is given to you as a structured report. All numbers
in it are already computed -- do not recalculate them, interpret them.

Guidelines:
- Reference specific runs, dates and numbers from the report
- Flag week-over-week mileage increases above 10%
- Treat an upward heart rate drift as a possible sign of accumulating fatigue
- Keep recommendations concrete and actionable
"""

ANALYZE_INSTRUCTION = """\
Analyze my current training. Focus on:
1. Is my weekly mileage progression safe? Flag any week-over-week increases over 10%.
2. Am I running my easy days easy enough?
3. Are there back-to-back hard efforts I should be concerned about?
4. Any heart rate trends that suggest accumulating fatigue?
5. How does my training align with my goal (if set)?

Be specific with numbers. Tell me what to change.
"""

WEEK_INSTRUCTION = """\
Give me a weekly summary covering:
1. What I did this week: total mileage, number of runs, key workouts.
2. What went well and what's concerning.
3. Specific recommendations for next week: what days to run, suggested mileage, what type of runs.
4. One thing I should focus on improving.

Keep it actionable. I want a plan for the next 7 days.
"""

ASK_INSTRUCTION = """\
The athlete is asking: "{question}"

Answer based on their training data above. Be specific and reference their recent runs when relevant.
"""

COMMANDS = ("analyze", "week", "ask")


def build_system_prompt(profile: Profile | None = None) -> str:
    """Coach persona, with the athlete's goal appended when one is set."""
    prompt = COACH_SYSTEM_PROMPT
    if profile is None:
        return prompt

    lines = ["", "## Athlete's Goal", f"Race: {profile.goal_race}"]
    if profile.goal_date:
        lines.append(f"Date: {profile.goal_date}")
    if profile.goal_time:
        lines.append(f"Target Time: {profile.goal_time}")
    if profile.weekly_mileage_target is not None:
        lines.append(f"Weekly Mileage Target: {profile.weekly_mileage_target} miles")
    return prompt + "\n".join(lines) + "\n"


def build_instruction(command: str, question: str | None = None) -> str:
    """Return the user instruction for a coaching command.

    Raises ValueError for an unknown command or an ``ask`` without a question.
    """
    if command == "analyze":
        return ANALYZE_INSTRUCTION
    if command == "week":
        return WEEK_INSTRUCTION
    if command == "ask":
        if not question or not question.strip():
            raise ValueError("The ask command needs a question")
        return ASK_INSTRUCTION.format(question=question.strip())
    raise ValueError(f"Unknown coaching command: {command!r} (expected one of {', '.join(COMMANDS)})")
