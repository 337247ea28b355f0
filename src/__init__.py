"""Run Tracker: Strava sync and training context for the coaching agent."""

from dotenv import load_dotenv

load_dotenv()
