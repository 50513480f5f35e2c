"""
Speech synthesis collaborators.

Both synthesizers are callables `synthesize(payload) -> bytes` returning MP3
audio and raising SynthesisFailed on any failure:
- GoogleSynthesizer: Google Cloud Text-to-Speech, Bengali Wavenet voice
- HttpSynthesizer: POSTs to a /api/tts endpoint that answers with a data URI
"""

import base64
import binascii
import logging
from typing import Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, model_validator

from shekho.errors import SynthesisFailed


logger = logging.getLogger(__name__)

LANGUAGE_CODE = "bn-IN"
DEFAULT_VOICE = "bn-IN-Wavenet-A"
DATA_URI_PREFIX = "data:audio/mp3;base64,"


class SpeechPayload(BaseModel):
    """
    Text or SSML to speak. Exactly one of `text` and `ssml` is set.

    Serializes to the endpoint's JSON body with camelCase keys.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    text: Optional[str] = None
    ssml: Optional[str] = None
    speaking_rate: float = Field(1.0, alias="speakingRate", gt=0.0, le=4.0)
    pitch: float = Field(0.0, ge=-20.0, le=20.0)

    @model_validator(mode="after")
    def _exactly_one_input(self):
        if bool(self.text) == bool(self.ssml):
            raise ValueError("Exactly one of text or ssml is required")
        return self

    def to_request(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# -----------------------------------------------------------------------------
# Google Cloud TTS
# -----------------------------------------------------------------------------

class GoogleSynthesizer:
    """Synthesize with Google Cloud Text-to-Speech."""

    def __init__(self, client=None, voice_name: str = DEFAULT_VOICE):
        """
        Args:
            client: TextToSpeechClient (created on first use if omitted)
            voice_name: Google Cloud TTS voice name
        """
        self._client = client
        self.voice_name = voice_name

    def _get_client(self):
        if self._client is None:
            from google.cloud import texttospeech
            self._client = texttospeech.TextToSpeechClient()
        return self._client

    def __call__(self, payload: SpeechPayload) -> bytes:
        from google.cloud import texttospeech

        try:
            if payload.ssml:
                synthesis_input = texttospeech.SynthesisInput(ssml=payload.ssml)
            else:
                synthesis_input = texttospeech.SynthesisInput(text=payload.text)

            voice = texttospeech.VoiceSelectionParams(
                language_code=LANGUAGE_CODE,
                name=self.voice_name,
                ssml_gender=texttospeech.SsmlVoiceGender.FEMALE,
            )
            audio_config = texttospeech.AudioConfig(
                audio_encoding=texttospeech.AudioEncoding.MP3,
                speaking_rate=payload.speaking_rate,
                pitch=payload.pitch,
            )

            response = self._get_client().synthesize_speech(
                input=synthesis_input,
                voice=voice,
                audio_config=audio_config,
            )
        except Exception as e:
            logger.error(f"TTS synthesis failed: {e}")
            raise SynthesisFailed(str(e) or "Failed to generate speech") from e

        if not response.audio_content:
            raise SynthesisFailed("Failed to generate audio")
        return response.audio_content


# -----------------------------------------------------------------------------
# HTTP endpoint
# -----------------------------------------------------------------------------

def decode_audio_data_uri(data_uri: Optional[str]) -> bytes:
    """
    Decode a `data:audio/mp3;base64,...` URI to raw bytes.

    Raises:
        SynthesisFailed: If the URI is missing or not base64 MP3 data
    """
    if not data_uri or not data_uri.startswith(DATA_URI_PREFIX):
        raise SynthesisFailed("Response did not contain an audio data URI")
    try:
        return base64.b64decode(data_uri[len(DATA_URI_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as e:
        raise SynthesisFailed("Audio data URI is not valid base64") from e


class HttpSynthesizer:
    """Synthesize through the app's /api/tts endpoint."""

    def __init__(self, endpoint: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, payload: SpeechPayload) -> bytes:
        try:
            response = self.session.post(self.endpoint, json=payload.to_request(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"TTS request to {self.endpoint} failed: {e}")
            raise SynthesisFailed(f"Could not reach speech service: {e}") from e

        if not response.ok:
            raise SynthesisFailed(_error_message(response))

        try:
            data = response.json()
        except ValueError as e:
            raise SynthesisFailed("Speech service returned invalid JSON") from e
        if not isinstance(data, dict):
            raise SynthesisFailed("Speech service response is not a JSON object")
        return decode_audio_data_uri(data.get("audioDataUri"))


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    message = data.get("error") if isinstance(data, dict) else None
    return message or f"Failed to generate speech (HTTP {response.status_code})"
