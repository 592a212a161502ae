"""Prompt construction for workout parsing and strategy generation."""

from __future__ import annotations

import json
import re
from typing import Any

from wod_gateway.schemas import ParsedWorkout, UserProfile

_TAG_CHARS = re.compile(r"[<>]")

PARSE_WOD_SYSTEM_PROMPT = (
    "You are a CrossFit workout parser. "
    "Analyze workout images and extract structured data.\n\n"
    "Always respond with valid JSON only, no other text. Use this exact format:\n"
    "{\n"
    '  "workoutType": "AMRAP" | "For Time" | "EMOM" | "Chipper" | "Intervals" | "Other",\n'
    '  "timeCap": number or null,\n'
    '  "rounds": number or null,\n'
    '  "movements": [\n'
    "    {\n"
    '      "name": "string",\n'
    '      "reps": number,\n'
    '      "weightRx": { "male": number, "female": number } or null,\n'
    '      "equipment": "string" or null,\n'
    '      "notes": "string" or null\n'
    "    }\n"
    "  ],\n"
    '  "notes": "string" or null,\n'
    '  "confidence": "high" | "medium" | "low"\n'
    "}"
)

STRATEGY_SYSTEM_PROMPT = (
    "You are an expert CrossFit coach providing personalized workout strategies.\n\n"
    "Always respond with valid JSON only, no other text. Use this exact format:\n"
    "{\n"
    '  "scaling": [{"movement": "string", "original": "string", '
    '"scaled": "string", "reason": "string"}] or null,\n'
    '  "pacing": "string",\n'
    '  "setBreakdowns": [{"movement": "string", "strategy": "string"}],\n'
    '  "estimatedTime": {"min": number, "max": number},\n'
    '  "tips": ["string"],\n'
    '  "cautions": ["string"] or null,\n'
    '  "substitutions": [{"movement": "string", '
    '"options": [{"name": "string", "reason": "string"}]}] or null\n'
    "}"
)

NOT_SPECIFIED = "Not specified"


def sanitize_string(value: Any, max_length: int = 500) -> str:
    """Trim, drop angle brackets and cap length of user text bound for a prompt."""
    return _TAG_CHARS.sub("", str(value).strip())[:max_length]


def build_parse_wod_messages(image_base64: str, mime_type: str) -> list[dict]:
    """Return chat messages asking the model to read a whiteboard photo."""
    data_url = f"data:{mime_type};base64,{image_base64}"
    return [
        {"role": "system", "content": PARSE_WOD_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "Parse the workout on this whiteboard."},
                {"type": "image_url", "image_url": {"url": data_url}},
            ],
        },
    ]


def _format_profile(profile: UserProfile | None) -> str:
    profile = profile or UserProfile()
    level = profile.experience_level
    skills = profile.skills
    strength = profile.strength_numbers
    limitations = [
        sanitize_string(item, 200) for item in profile.limitations or [] if str(item).strip()
    ]
    return "\n".join(
        [
            f"- Experience Level: {sanitize_string(level, 50) if level else NOT_SPECIFIED}",
            f"- Skills: {json.dumps(skills, sort_keys=True) if skills else NOT_SPECIFIED}",
            "- Strength Numbers (1RM in lbs): "
            f"{json.dumps(strength, sort_keys=True) if strength else NOT_SPECIFIED}",
            "- Limitations/Injuries: "
            f"{', '.join(limitations) if limitations else 'None specified'}",
        ]
    )


def build_strategy_messages(
    workout: ParsedWorkout, profile: UserProfile | None
) -> list[dict]:
    """Return chat messages asking for a strategy tailored to ``profile``.

    The output is deterministic for a given input: the workout is serialized
    with sorted keys and the profile lines always appear in the same order.
    """
    workout_json = json.dumps(workout.to_wire(), indent=2, sort_keys=True)
    user_message = (
        "WORKOUT:\n"
        f"{workout_json}\n\n"
        "USER PROFILE:\n"
        f"{_format_profile(profile)}\n\n"
        "Provide a personalized strategy for this workout based on the user's "
        "profile. Consider their skill levels and any limitations when "
        "suggesting scaling or substitutions."
    )
    return [
        {"role": "system", "content": STRATEGY_SYSTEM_PROMPT},
        {"role": "user", "content": user_message},
    ]


__all__ = [
    "PARSE_WOD_SYSTEM_PROMPT",
    "STRATEGY_SYSTEM_PROMPT",
    "sanitize_string",
    "build_parse_wod_messages",
    "build_strategy_messages",
]
