"""Tests for VoiceSessionController driven step by step with fake collaborators."""

import queue
import threading

import numpy as np
import pytest

from mega import config
from mega.controller import (
    EXECUTING_PHRASE,
    NOT_FOUND_PHRASE,
    SEARCHING_PHRASE,
    ExecingCommand,
    HeardTrigger,
    Idle,
    SearchingForCommand,
    VoiceSessionController,
)
from mega.errors import ChannelClosedError, ScriptExecutionError, SpeechEngineError

MIC_RATE = 1600          # keeps buffers small; 1 s = 1600 samples
CHUNK = MIC_RATE // 10   # 100 ms per capture chunk


class FakeSTT:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def speech_to_text(self, samples, n_best):
        self.calls.append((np.asarray(samples), n_best))
        response = self.responses.pop(0) if self.responses else []
        if isinstance(response, Exception):
            raise response
        return response


def silence(seconds):
    return [np.zeros(CHUNK, dtype=np.float32) for _ in range(int(seconds * 10))]


def speech(seconds, amplitude=0.5):
    return [np.full(CHUNK, amplitude, dtype=np.float32) for _ in range(int(seconds * 10))]


def utterance():
    return silence(0.5) + speech(1) + silence(1)


@pytest.fixture()
def commands(tmp_path):
    root = tmp_path / "commands"
    root.mkdir()
    (root / "say.py").write_text("speak(' '.join(arguments))\nspeak(repr(raw_arguments))\n")
    (root / "fail.py").write_text("raise ValueError('broken command')\n")
    (root / "door").write_text("")
    return root


@pytest.fixture()
def mic():
    return queue.Queue()


@pytest.fixture()
def spoken():
    return []


def make_controller(mic, stt, spoken, commands, **kwargs):
    return VoiceSessionController(
        mic_queue=mic,
        mic_sample_rate=MIC_RATE,
        stt=stt,
        speak=spoken.append,
        commands_dir=commands,
        **kwargs,
    )


def feed(controller, mic, chunks):
    for chunk in chunks:
        mic.put(chunk)
        controller.step()


def wake(controller, mic):
    feed(controller, mic, utterance())
    assert isinstance(controller.state, HeardTrigger)


class TestIdle:
    def test_one_utterance_one_stt_call(self, mic, spoken, commands):
        stt = FakeSTT(["hello"])
        controller = make_controller(mic, stt, spoken, commands)
        feed(controller, mic, silence(2) + speech(1) + silence(1))
        assert len(stt.calls) == 1
        assert stt.calls[0][1] == config.STT_N_BEST
        assert stt.calls[0][0].dtype == np.int16
        assert isinstance(controller.state, Idle)
        assert spoken == []

    def test_silence_never_calls_stt(self, mic, spoken, commands):
        stt = FakeSTT()
        controller = make_controller(mic, stt, spoken, commands)
        feed(controller, mic, silence(5))
        assert stt.calls == []

    def test_start_of_speech_only_latches(self, mic, spoken, commands):
        controller = make_controller(mic, FakeSTT(), spoken, commands)
        state = controller.state
        feed(controller, mic, speech(0.5))
        assert controller.state is state
        assert state.vad.crossed_loudness

    def test_all_pending_chunks_drained_in_one_step(self, mic, spoken, commands):
        controller = make_controller(mic, FakeSTT(), spoken, commands)
        for chunk in silence(1):
            mic.put(chunk)
        assert controller.step() is True
        assert mic.empty()
        assert len(controller.state.window) == int(MIC_RATE * config.IDLE_BUFFER_SECONDS)

    def test_step_without_audio_reports_idle(self, mic, spoken, commands):
        controller = make_controller(mic, FakeSTT(), spoken, commands)
        assert controller.step() is False

    def test_wake_word_must_match_whole_hypothesis(self, mic, spoken, commands):
        stt = FakeSTT(["mega open", "Mega", "omega"])
        controller = make_controller(mic, stt, spoken, commands)
        feed(controller, mic, utterance())
        assert isinstance(controller.state, Idle)
        assert not controller.state.vad.crossed_loudness
        assert spoken == []

    def test_wake_word_in_lower_rank(self, mic, spoken, commands):
        stt = FakeSTT(["make a", "mega"])
        controller = make_controller(mic, stt, spoken, commands)
        wake(controller, mic)
        assert spoken == [config.WAKE_WORD_ACK_PHRASE]
        capacity = int(MIC_RATE * config.COMMAND_BUFFER_SECONDS)
        assert controller.state.window.capacity == capacity
        assert len(controller.state.window) == capacity
        assert not controller.state.window.snapshot().any()

    def test_idle_window_is_two_seconds(self, mic, spoken, commands):
        controller = make_controller(mic, FakeSTT(), spoken, commands)
        feed(controller, mic, silence(5))
        assert len(controller.state.window) == int(MIC_RATE * config.IDLE_BUFFER_SECONDS)


class TestCommandFlow:
    def test_full_command(self, mic, spoken, commands):
        stt = FakeSTT(["mega"], ["say hello world", "say yellow world", "see"])
        controller = make_controller(mic, stt, spoken, commands)
        wake(controller, mic)

        feed(controller, mic, utterance())
        assert isinstance(controller.state, SearchingForCommand)
        assert spoken[-1] == SEARCHING_PHRASE
        # The leading silence is trimmed before transcription.
        full_length = len(utterance()) * CHUNK * config.STT_SAMPLE_RATE // MIC_RATE
        assert 0 < stt.calls[1][0].size < full_length

        controller.step()
        assert isinstance(controller.state, ExecingCommand)
        assert controller.state.command.path == commands / "say.py"
        assert spoken[-1] == EXECUTING_PHRASE

        controller.step()
        assert isinstance(controller.state, Idle)
        assert spoken[-2:] == ["hello world", "[['hello', 'yellow'], ['world', 'world']]"]

    def test_command_without_leading_silence(self, mic, spoken, commands):
        stt = FakeSTT(["mega"], ["say hi"])
        controller = make_controller(mic, stt, spoken, commands)
        wake(controller, mic)
        feed(controller, mic, speech(0.3) + silence(1))
        assert isinstance(controller.state, SearchingForCommand)
        assert spoken[-1] == SEARCHING_PHRASE
        assert stt.calls[1][0].size > 0

    def test_quiet_blip_keeps_listening(self, mic, spoken, commands):
        stt = FakeSTT(["mega"])
        controller = make_controller(mic, stt, spoken, commands)
        wake(controller, mic)
        feed(controller, mic, speech(0.3, amplitude=0.02) + silence(1))
        assert isinstance(controller.state, HeardTrigger)
        assert not controller.state.vad.crossed_loudness
        assert len(stt.calls) == 1

    def test_unknown_command_returns_to_idle(self, mic, spoken, commands):
        stt = FakeSTT(["mega"], ["xyz"])
        controller = make_controller(mic, stt, spoken, commands)
        wake(controller, mic)
        feed(controller, mic, utterance())
        controller.step()
        assert isinstance(controller.state, Idle)
        assert spoken[-1] == NOT_FOUND_PHRASE
        assert EXECUTING_PHRASE not in spoken

    def test_empty_transcript_returns_to_idle(self, mic, spoken, commands):
        stt = FakeSTT(["mega"], [])
        controller = make_controller(mic, stt, spoken, commands)
        wake(controller, mic)
        feed(controller, mic, utterance())
        controller.step()
        assert isinstance(controller.state, Idle)
        assert spoken[-1] == NOT_FOUND_PHRASE

    def test_malformed_tree_speaks_path(self, mic, spoken, commands):
        stt = FakeSTT(["mega"], ["door"])
        controller = make_controller(mic, stt, spoken, commands)
        wake(controller, mic)
        feed(controller, mic, utterance())
        controller.step()
        assert isinstance(controller.state, Idle)
        assert spoken[-1] == str(commands / "door")

    def test_script_error_is_fatal(self, mic, spoken, commands):
        stt = FakeSTT(["mega"], ["fail"])
        controller = make_controller(mic, stt, spoken, commands)
        wake(controller, mic)
        feed(controller, mic, utterance())
        controller.step()
        with pytest.raises(ScriptExecutionError):
            controller.step()


class TestFatalErrors:
    def test_stt_error_propagates(self, mic, spoken, commands):
        stt = FakeSTT(SpeechEngineError("decoder crashed"))
        controller = make_controller(mic, stt, spoken, commands)
        with pytest.raises(SpeechEngineError):
            feed(controller, mic, utterance())

    def test_dead_microphone(self, mic, spoken, commands):
        controller = make_controller(mic, FakeSTT(), spoken, commands, mic_alive=lambda: False)
        with pytest.raises(ChannelClosedError):
            controller.step()

    def test_pending_audio_still_drained_after_mic_stops(self, mic, spoken, commands):
        controller = make_controller(mic, FakeSTT(), spoken, commands, mic_alive=lambda: False)
        mic.put(np.zeros(CHUNK, dtype=np.float32))
        assert controller.step() is True


def test_recorder_receives_preprocessed_audio(mic, spoken, commands):
    recorded = []
    controller = make_controller(mic, FakeSTT(["hi"]), spoken, commands, recorder=recorded.append)
    feed(controller, mic, utterance())
    assert len(recorded) == 1
    assert recorded[0].dtype == np.int16


def test_echo_receives_raw_utterance(mic, spoken, commands):
    echoed = []
    controller = make_controller(mic, FakeSTT(["hi"]), spoken, commands, echo=echoed.append)
    feed(controller, mic, utterance())
    assert len(echoed) == 1
    assert echoed[0].dtype == np.float32
    assert echoed[0].size == int(MIC_RATE * config.IDLE_BUFFER_SECONDS)


def test_run_returns_when_stopped(mic, spoken, commands):
    controller = make_controller(mic, FakeSTT(), spoken, commands)
    stop = threading.Event()
    stop.set()
    controller.run(stop)
    assert isinstance(controller.state, Idle)
