# backend/llm_agent.py

import json
import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional

import dotenv
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_groq import ChatGroq

dotenv.load_dotenv()

logger = logging.getLogger(__name__)

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "groq").lower()
GROQ_MODEL = "llama-3.3-70b-versatile"
GOOGLE_MODEL = "gemini-2.5-flash-lite"

SYSTEM_PROMPT = (
    "You are the FormCoach AI trainer reviewing a finished home workout set.\n\n"
    "You receive one JSON session summary produced by a pose-tracking rep counter. "
    "Judge the user's form with safety first, then depth and consistency.\n\n"
    "Style rules:\n"
    "- Talk directly to the user as \"you\".\n"
    "- Supportive, concrete, no jargon. At most 3 short sentences.\n"
    "- No emojis, never mention JSON, fields, scores formulas or that you are an AI.\n\n"
    "You MUST respond with a SINGLE JSON object ONLY, no commentary, no markdown.\n\n"
    "JSON format:\n"
    "{\n"
    '  "overall_score": integer 0-100,\n'
    '  "comment": string,              // the spoken/written feedback\n'
    '  "main_issue": string | null,    // most important event tag, e.g. "shallow_squat"\n'
    '  "severity": "none" | "low" | "medium" | "high"\n'
    "}\n\n"
    "How to read the summary:\n"
    "- exercise: pushup, situp or squat.\n"
    "- rep_summaries[]: per rep, metrics depth / alignment / symmetry / stability "
    "(and knee_tracking, torso_angle for squats; rom, control for situps), each "
    "with value 0..1 (higher is better, null = not measured) and a short note.\n"
    "- rep_summaries[].events: detected faults such as shallow_depth, "
    "hips_sag_at_bottom, asymmetric_movement, shallow_squat, knee_valgus, "
    "torso_collapse, incomplete_lowering, momentum_bounce.\n"
    "- overall_stats: tempo (mean seconds per rep, cv = variation) and "
    "mean/min/max of the headline metrics.\n"
    "- highlights: best and worst rep index and a trend list.\n\n"
    "Guidelines:\n"
    "- Safety faults (knee_valgus, torso_collapse, hips_sag_at_bottom) outrank depth.\n"
    "- A fault on most reps is medium or high severity; on one rep it is low.\n"
    "- Mention a degrading trend as fatigue and suggest fewer, cleaner reps.\n"
    "- If form is clean, score above 80 and reinforce what went well.\n"
)


@lru_cache(maxsize=1)
def _get_llm():
    """Chat model picked by LLM_PROVIDER; built on first use."""
    if LLM_PROVIDER == "google":
        return ChatGoogleGenerativeAI(
            api_key=os.getenv("GOOGLE_API_KEY"),
            model=os.getenv("LLM_MODEL", GOOGLE_MODEL),
            temperature=0.2,
            max_retries=1,
            timeout=10,
        )
    return ChatGroq(
        api_key=os.getenv("GROQ_API_KEY"),
        model=os.getenv("LLM_MODEL", GROQ_MODEL),
        temperature=0.2,
        max_retries=1,
        timeout=10,
    )


def parse_llm_json(raw: str) -> Optional[Dict[str, Any]]:
    """Pull the JSON object out of raw model output (fenced or chatty)."""
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`").strip()
        if text.lower().startswith("json"):
            text = text[4:].strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        try:
            start = text.index("{")
            end = text.rindex("}") + 1
            parsed = json.loads(text[start:end])
        except ValueError:
            return None
    return parsed if isinstance(parsed, dict) else None


def evaluate_session_with_llm(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Calls the LLM and returns the parsed evaluation dict.
    If the LLM fails for ANY reason -> None (no canned fallback feedback).
    """
    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(
            content=(
                f"Exercise: {payload.get('exercise')}\n"
                f"Reps: {payload.get('reps')}\n"
                f"Session JSON: {json.dumps(payload, ensure_ascii=False)}"
            )
        ),
    ]

    try:
        resp = _get_llm().invoke(messages)
    except Exception:
        logger.exception("LLM call failed")
        return None

    raw = resp.content if hasattr(resp, "content") else str(resp)
    parsed = parse_llm_json(raw if isinstance(raw, str) else str(raw))
    if not parsed:
        logger.error("Could not parse LLM JSON. Raw: %s", raw)
        return None
    return parsed
