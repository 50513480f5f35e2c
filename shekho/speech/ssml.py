"""SSML for multi-voice dialogue playback."""

import html
from typing import Sequence

from shekho.schemas import DialogueLine


DIALOGUE_VOICES = ("bn-IN-Wavenet-B", "bn-IN-Wavenet-A")  # male, female
DIALOGUE_SPEAKING_RATE = 0.85


def build_dialogue_ssml(
    lines: Sequence[DialogueLine],
    voices: Sequence[str] = DIALOGUE_VOICES,
    line_break_ms: int = 400,
    final_break_ms: int = 800,
) -> str:
    """
    Build SSML that reads a dialogue with one voice per speaker.

    Speakers get voices in order of first appearance, cycling through
    `voices` if there are more speakers than voices.
    """
    if not voices:
        raise ValueError("At least one voice is required")

    speaker_voices: dict[str, str] = {}
    parts = ["<speak>"]
    for i, line in enumerate(lines):
        if line.speaker not in speaker_voices:
            speaker_voices[line.speaker] = voices[len(speaker_voices) % len(voices)]
        voice = html.escape(speaker_voices[line.speaker])
        parts.append(f'<voice name="{voice}">{html.escape(line.bengali, quote=False)}</voice>')
        if i < len(lines) - 1:
            parts.append(f'<break time="{line_break_ms}ms"/>')
    parts.append(f'<break time="{final_break_ms}ms"/>')
    parts.append("</speak>")
    return "".join(parts)
