"""Tests for speech payloads, SSML, synthesizers and the coordinator."""

import base64

import pytest
import requests
from pydantic import ValidationError

from conftest import DeferredExecutor, RecordingPlayer, fake_synthesize
from shekho.errors import SynthesisFailed
from shekho.schemas import DialogueLine
from shekho.speech import (
    BufferedPlayer,
    GoogleSynthesizer,
    HttpSynthesizer,
    PlaybackState,
    SpeechCoordinator,
    SpeechPayload,
    build_dialogue_ssml,
    decode_audio_data_uri,
)


def line(speaker: str, bengali: str) -> DialogueLine:
    return DialogueLine(speaker=speaker, bengali=bengali, transliteration="-", english="-")


def failing_synthesize(payload):
    raise SynthesisFailed("quota exceeded")


class TestSpeechPayload:
    """Test payload validation and serialization."""

    def test_text_payload(self):
        payload = SpeechPayload(text="মা")
        assert payload.speaking_rate == 1.0
        assert payload.to_request() == {"text": "মা", "speakingRate": 1.0, "pitch": 0.0}

    def test_ssml_payload_uses_camel_case(self):
        payload = SpeechPayload(ssml="<speak>মা</speak>", speaking_rate=0.85)
        body = payload.to_request()
        assert body["speakingRate"] == 0.85
        assert "text" not in body

    def test_alias_accepted(self):
        assert SpeechPayload(text="মা", speakingRate=0.5).speaking_rate == 0.5

    @pytest.mark.parametrize("kwargs", [
        {},
        {"text": ""},
        {"text": "মা", "ssml": "<speak>মা</speak>"},
        {"text": "মা", "speaking_rate": 0},
        {"text": "মা", "pitch": 25},
    ])
    def test_invalid_payloads(self, kwargs):
        with pytest.raises(ValidationError):
            SpeechPayload(**kwargs)


class TestDialogueSsml:
    """Test multi-voice SSML construction."""

    def test_two_speakers_alternate_voices(self):
        ssml = build_dialogue_ssml([line("A", "হ্যালো"), line("B", "নমস্কার"), line("A", "ভালো")])
        assert ssml == (
            "<speak>"
            '<voice name="bn-IN-Wavenet-B">হ্যালো</voice><break time="400ms"/>'
            '<voice name="bn-IN-Wavenet-A">নমস্কার</voice><break time="400ms"/>'
            '<voice name="bn-IN-Wavenet-B">ভালো</voice>'
            '<break time="800ms"/>'
            "</speak>"
        )

    def test_extra_speakers_cycle_voices(self):
        ssml = build_dialogue_ssml([line("A", "এক"), line("B", "দুই"), line("C", "তিন")], voices=("v1", "v2"))
        assert '<voice name="v1">তিন</voice>' in ssml

    def test_markup_is_escaped(self):
        ssml = build_dialogue_ssml([line("A", "a < b & c")])
        assert "a &lt; b &amp; c" in ssml

    def test_requires_a_voice(self):
        with pytest.raises(ValueError):
            build_dialogue_ssml([line("A", "এক")], voices=())


class TestDataUri:
    def test_decode(self):
        uri = "data:audio/mp3;base64," + base64.b64encode(b"ID3audio").decode("ascii")
        assert decode_audio_data_uri(uri) == b"ID3audio"

    @pytest.mark.parametrize("uri", [None, "", "data:audio/wav;base64,AAAA", "data:audio/mp3;base64,!!!"])
    def test_rejects_bad_uris(self, uri):
        with pytest.raises(SynthesisFailed):
            decode_audio_data_uri(uri)


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, json=None, timeout=None):
        self.requests.append((url, json, timeout))
        if self.error is not None:
            raise self.error
        return self.response


class TestHttpSynthesizer:
    """Test the /api/tts client."""

    ENDPOINT = "http://localhost:8080/api/tts"

    def test_posts_payload_and_decodes_audio(self):
        uri = "data:audio/mp3;base64," + base64.b64encode(b"mp3").decode("ascii")
        session = FakeSession(FakeResponse(body={"audioDataUri": uri}))
        synthesize = HttpSynthesizer(self.ENDPOINT, timeout=5, session=session)

        assert synthesize(SpeechPayload(text="মা", speaking_rate=0.85)) == b"mp3"
        assert session.requests == [
            (self.ENDPOINT, {"text": "মা", "speakingRate": 0.85, "pitch": 0.0}, 5),
        ]

    def test_server_error_message(self):
        session = FakeSession(FakeResponse(500, {"error": "Failed to generate speech"}))
        with pytest.raises(SynthesisFailed, match="Failed to generate speech"):
            HttpSynthesizer(self.ENDPOINT, session=session)(SpeechPayload(text="মা"))

    def test_server_error_without_body(self):
        session = FakeSession(FakeResponse(502))
        with pytest.raises(SynthesisFailed, match="HTTP 502"):
            HttpSynthesizer(self.ENDPOINT, session=session)(SpeechPayload(text="মা"))

    def test_connection_error(self):
        session = FakeSession(error=requests.exceptions.ConnectionError("refused"))
        with pytest.raises(SynthesisFailed, match="Could not reach"):
            HttpSynthesizer(self.ENDPOINT, session=session)(SpeechPayload(text="মা"))

    def test_invalid_json(self):
        session = FakeSession(FakeResponse(200))
        with pytest.raises(SynthesisFailed, match="invalid JSON"):
            HttpSynthesizer(self.ENDPOINT, session=session)(SpeechPayload(text="মা"))

    @pytest.mark.parametrize("body", [["data:audio/mp3;base64,AAAA"], "data:audio/mp3;base64,AAAA", 42])
    def test_non_object_json(self, body):
        session = FakeSession(FakeResponse(200, body))
        with pytest.raises(SynthesisFailed, match="not a JSON object"):
            HttpSynthesizer(self.ENDPOINT, session=session)(SpeechPayload(text="মা"))

    @pytest.mark.parametrize("body", [["oops"], "oops"])
    def test_server_error_with_non_object_json(self, body):
        session = FakeSession(FakeResponse(500, body))
        with pytest.raises(SynthesisFailed, match="HTTP 500"):
            HttpSynthesizer(self.ENDPOINT, session=session)(SpeechPayload(text="মা"))

    def test_missing_audio(self):
        session = FakeSession(FakeResponse(200, {}))
        with pytest.raises(SynthesisFailed):
            HttpSynthesizer(self.ENDPOINT, session=session)(SpeechPayload(text="মা"))


class FakeTtsClient:
    def __init__(self, audio=b"mp3", error=None):
        self.audio = audio
        self.error = error
        self.calls = []

    def synthesize_speech(self, input, voice, audio_config):
        self.calls.append((input, voice, audio_config))
        if self.error is not None:
            raise self.error

        class Response:
            audio_content = self.audio

        return Response()


class TestGoogleSynthesizer:
    """Test request construction for Google Cloud TTS."""

    def test_text_request(self):
        client = FakeTtsClient()
        assert GoogleSynthesizer(client=client)(SpeechPayload(text="মা", speaking_rate=0.85)) == b"mp3"

        synthesis_input, voice, audio_config = client.calls[0]
        assert synthesis_input.text == "মা"
        assert voice.language_code == "bn-IN"
        assert voice.name == "bn-IN-Wavenet-A"
        assert audio_config.speaking_rate == pytest.approx(0.85)

    def test_ssml_request(self):
        client = FakeTtsClient()
        GoogleSynthesizer(client=client)(SpeechPayload(ssml="<speak>মা</speak>"))
        assert client.calls[0][0].ssml == "<speak>মা</speak>"

    def test_client_error_is_wrapped(self):
        client = FakeTtsClient(error=RuntimeError("permission denied"))
        with pytest.raises(SynthesisFailed, match="permission denied"):
            GoogleSynthesizer(client=client)(SpeechPayload(text="মা"))

    def test_empty_audio(self):
        client = FakeTtsClient(audio=b"")
        with pytest.raises(SynthesisFailed):
            GoogleSynthesizer(client=client)(SpeechPayload(text="মা"))


class TestSpeechCoordinator:
    """Test single-clip playback and cancellation."""

    def test_speak_loads_then_plays(self, speech, executor, player):
        handle = speech.speak(SpeechPayload(text="মা"))
        assert handle.state == PlaybackState.LOADING
        assert speech.busy

        executor.run()
        assert handle.state == PlaybackState.PLAYING
        assert handle.audio == "mp3:মা".encode("utf-8")
        assert player.played == [handle]
        assert handle.wait(timeout=0)
        assert speech.busy

    def test_finished_clears_busy(self, speech, executor):
        handle = speech.speak(SpeechPayload(text="মা"))
        executor.run()
        speech.finished(handle)
        assert handle.state == PlaybackState.FINISHED
        assert not speech.busy
        assert speech.current is None

    def test_new_request_cancels_pending_one(self, speech, executor, player):
        first = speech.speak(SpeechPayload(text="এক"))
        second = speech.speak(SpeechPayload(text="দুই"))

        assert first.state == PlaybackState.CANCELLED
        assert executor.calls[0][0].cancelled()
        assert speech.current is second

        executor.run(1)
        assert player.played == [second]

    def test_late_result_for_superseded_request_is_dropped(self, speech, executor, player):
        first = speech.speak(SpeechPayload(text="এক"))
        executor.start(0)  # already synthesizing, cannot be cancelled
        second = speech.speak(SpeechPayload(text="দুই"))

        executor.finish(0)
        assert first.state == PlaybackState.CANCELLED
        assert first.audio is None
        assert player.played == []

        executor.run(1)
        assert player.played == [second]
        assert speech.current is second

    def test_new_request_stops_playing_clip(self, speech, executor, player):
        first = speech.speak(SpeechPayload(text="এক"))
        executor.run()
        speech.speak(SpeechPayload(text="দুই"))
        assert first.state == PlaybackState.CANCELLED
        assert player.stopped == [first]

    def test_stop(self, speech, executor):
        handle = speech.speak(SpeechPayload(text="মা"))
        speech.stop()
        assert handle.state == PlaybackState.CANCELLED
        assert not speech.busy
        assert handle.wait(timeout=0)
        speech.stop()  # nothing active

    def test_failure_is_reported(self, executor, player):
        speech = SpeechCoordinator(failing_synthesize, player=player, executor=executor)
        handle = speech.speak(SpeechPayload(text="মা"))
        executor.run()

        assert handle.state == PlaybackState.FAILED
        assert str(handle.error) == "quota exceeded"
        assert speech.last_error is handle.error
        assert not speech.busy
        assert player.played == []

    def test_unexpected_error_is_wrapped(self, executor, player):
        def broken(payload):
            raise OSError("disk full")

        speech = SpeechCoordinator(broken, player=player, executor=executor)
        handle = speech.speak(SpeechPayload(text="মা"))
        executor.run()
        assert isinstance(handle.error, SynthesisFailed)

    def test_next_request_clears_last_error(self, executor, player):
        speech = SpeechCoordinator(failing_synthesize, player=player, executor=executor)
        speech.speak(SpeechPayload(text="মা"))
        executor.run()
        speech.speak(SpeechPayload(text="মা"))
        assert speech.last_error is None

    def test_finished_ignores_stale_handles(self, speech, executor):
        first = speech.speak(SpeechPayload(text="এক"))
        executor.run()
        second = speech.speak(SpeechPayload(text="দুই"))
        speech.finished(first)
        assert speech.current is second

    def test_thread_pool_default(self):
        speech = SpeechCoordinator(fake_synthesize, player=RecordingPlayer())
        try:
            handle = speech.speak(SpeechPayload(text="মা"))
            assert handle.wait(timeout=5)
            assert handle.state == PlaybackState.PLAYING
        finally:
            speech.shutdown()


class TestBufferedPlayer:
    def test_take_hands_over_clip_once(self):
        player = BufferedPlayer()
        speech = SpeechCoordinator(fake_synthesize, player=player, executor=DeferredExecutor())
        handle = speech.speak(SpeechPayload(text="মা"))
        speech._executor.run()

        assert player.take() is handle
        assert player.take() is None

    def test_stop_forgets_clip(self):
        player = BufferedPlayer()
        speech = SpeechCoordinator(fake_synthesize, player=player, executor=DeferredExecutor())
        speech.speak(SpeechPayload(text="মা"))
        speech._executor.run()
        speech.stop()
        assert player.take() is None
