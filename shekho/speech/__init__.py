"""
Shekho Speech - Text-to-speech playback for flashcards and dialogues.

This module provides:
- SpeechCoordinator: one clip at a time, cancellable
- GoogleSynthesizer / HttpSynthesizer: synthesis collaborators
- build_dialogue_ssml: multi-voice SSML for conversation scripts
"""

from .synthesis import (
    SpeechPayload,
    GoogleSynthesizer,
    HttpSynthesizer,
    decode_audio_data_uri,
)

from .ssml import (
    build_dialogue_ssml,
    DIALOGUE_VOICES,
    DIALOGUE_SPEAKING_RATE,
)

from .coordinator import (
    SpeechCoordinator,
    AudioHandle,
    AudioPlayer,
    BufferedPlayer,
    PlaybackState,
)

__all__ = [
    # Synthesis
    "SpeechPayload",
    "GoogleSynthesizer",
    "HttpSynthesizer",
    "decode_audio_data_uri",
    # SSML
    "build_dialogue_ssml",
    "DIALOGUE_VOICES",
    "DIALOGUE_SPEAKING_RATE",
    # Coordinator
    "SpeechCoordinator",
    "AudioHandle",
    "AudioPlayer",
    "BufferedPlayer",
    "PlaybackState",
]
